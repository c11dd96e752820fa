import json
from pathlib import Path

import pytest

from closure_util.config import load_settings
from closure_util.errors import ConfigError
from closure_util.project import ProjectConfig, load_project


def _write(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload))
    return path


def test_relative_paths_resolve_against_config_dir(tmp_path: Path) -> None:
    (tmp_path / "app").mkdir()
    config = _write(
        tmp_path / "app" / "project.json",
        {"cwd": "src", "lib": "lib/**/*.js", "serve": {"root": "..", "port": 8080}},
    )
    project = load_project(config)
    assert project.cwd == str(tmp_path / "app" / "src")
    assert project.lib == ["lib/**/*.js"]
    assert project.main == []
    assert project.serve.root == str(tmp_path)
    assert project.serve.port == 8080


def test_camel_case_keys() -> None:
    project = ProjectConfig.model_validate(
        {
            "ignoreRequires": "^meat\\.",
            "serve": {"loaderPattern": "^/load/(.*)$", "socketPath": "/events"},
        }
    )
    assert project.ignore_requires == "^meat\\."
    assert project.serve.loader_pattern == "^/load/(.*)$"
    assert project.serve.socket_path == "/events"
    assert project.serve.loader == "/@"


def test_serve_root_defaults_to_cwd(tmp_path: Path) -> None:
    project = load_project(_write(tmp_path / "p.json", {"lib": ["*.js"]}))
    assert project.serve_options().root == str(tmp_path)
    assert project.serve.root is None


def test_manager_config_takes_library_dir_from_settings(tmp_path: Path) -> None:
    project = load_project(_write(tmp_path / "p.json", {"lib": ["*.js"], "closure": True}))
    settings = load_settings(library_dir="/opt/closure-library")
    config = project.manager_config(settings, watch=False)
    assert config.cwd == str(tmp_path)
    assert config.lib == ("*.js",)
    assert config.closure is True
    assert config.closure_library_dir == "/opt/closure-library"
    assert config.library_patterns()[-1] == "/opt/closure-library/closure/goog/**/*.js"


def test_closure_without_library_dir(tmp_path: Path) -> None:
    project = load_project(_write(tmp_path / "p.json", {"closure": True}))
    config = project.manager_config(load_settings(), watch=False)
    with pytest.raises(ConfigError):
        config.library_patterns()


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("{not json", "Invalid JSON"),
        ("[1, 2]", "must contain an object"),
        ('{"serve": {"port": "many"}}', "Invalid config"),
    ],
)
def test_invalid_config_files(tmp_path: Path, content: str, expected: str) -> None:
    config = tmp_path / "p.json"
    config.write_text(content)
    with pytest.raises(ConfigError, match=expected):
        load_project(config)


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_project(tmp_path / "absent.json")
