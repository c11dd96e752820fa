from pathlib import Path

from starlette.requests import Request

from closure_util.deps.manager import Manager, ManagerConfig
from closure_util.project import ServeOptions
from closure_util.server.loader import LoaderServer


def _request(path: str, query: str = "", referer: str | None = None) -> Request:
    headers = [(b"host", b"localhost:3000")]
    if referer is not None:
        headers.append((b"referer", referer.encode()))
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": query.encode(),
            "headers": headers,
        }
    )


def _server(root: Path, **options: object) -> LoaderServer:
    manager = Manager(ManagerConfig(cwd=str(root), watch=False))
    return LoaderServer(manager, ServeOptions(root=str(root), **options))


def test_default_prefix(tmp_path: Path) -> None:
    server = _server(tmp_path)
    assert server.match_loader("/@") == ("/@", "")
    assert server.match_loader("/@/abs/lib/a.js") == ("/@", "/abs/lib/a.js")
    assert server.match_loader("/index.html") is None


def test_custom_loader_prefix(tmp_path: Path) -> None:
    server = _server(tmp_path, loader="/loader")
    assert server.match_loader("/loader/x/a.js") == ("/loader", "/x/a.js")
    assert server.match_loader("/@") is None


def test_loader_pattern_takes_precedence(tmp_path: Path) -> None:
    server = _server(tmp_path, loader_pattern=r"^/build/[^/]+\.js")
    assert server.match_loader("/build/app.js") == ("/build/app.js", "")
    assert server.match_loader("/build/app.js/abs/a.js") == ("/build/app.js", "/abs/a.js")
    assert server.match_loader("/@") is None


def test_main_relative_to_root(tmp_path: Path) -> None:
    server = _server(tmp_path)
    request = _request("/@", "main=src/main.js")
    assert server.get_main(request) == str(tmp_path / "src" / "main.js")


def test_main_relative_to_referer(tmp_path: Path) -> None:
    server = _server(tmp_path)
    request = _request("/@", "main=main.js", referer="http://localhost:3000/examples/page.html")
    assert server.get_main(request) == str(tmp_path / "examples" / "main.js")


def test_no_main(tmp_path: Path) -> None:
    assert _server(tmp_path).get_main(_request("/@")) is None


def test_script_url_quotes_path(tmp_path: Path) -> None:
    server = _server(tmp_path)
    assert server.script_url("/@", "/my dir/a.js") == "/@/my%20dir/a.js"
