from pathlib import Path

from closure_util.server.rendering import TemplateRenderer
from closure_util.server.static import ListingEntry, StaticServer, list_entries


def test_list_entries_sorted_without_dot_files(fixtures: Path) -> None:
    assert list_entries(str(fixtures / "basic")) == [
        ListingEntry(path="index.txt", name="index.txt", dir=False),
        ListingEntry(path="one.js", name="one.js", dir=False),
        ListingEntry(path="sub/", name="sub", dir=True),
    ]


def test_resolve_inside_root(tmp_path: Path) -> None:
    server = StaticServer(str(tmp_path), TemplateRenderer())
    assert server.resolve("/") == str(tmp_path)
    assert server.resolve("/a/b.js") == str(tmp_path / "a" / "b.js")
    assert server.resolve("/a/../b.js") == str(tmp_path / "b.js")


def test_resolve_rejects_escape(tmp_path: Path) -> None:
    server = StaticServer(str(tmp_path / "root"), TemplateRenderer())
    assert server.resolve("/../secret.txt") is None
    assert server.resolve("/../root-sibling/x.js") is None


def test_renderer_missing_template() -> None:
    response = TemplateRenderer().response("missing.js", {})
    assert response.status_code == 500
    assert response.body == b"Cannot find missing.js template"


def test_renderer_error_script_escapes_message() -> None:
    response = TemplateRenderer().response("error.js", {"message": 'bad "quote" </script>'})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/javascript; charset=utf-8"
    body = response.body.decode()
    assert "</script>" not in body
    assert "throw new Error(message);" in body
