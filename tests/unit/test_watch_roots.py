import os
from pathlib import Path

from closure_util.deps.watcher import glob_root, watch_roots


def test_glob_root() -> None:
    assert glob_root("/proj", "lib/**/*.js") == "/proj/lib"
    assert glob_root("/proj", "src/app/*.js") == "/proj/src/app"
    assert glob_root("/proj", "*.js") == "/proj"
    assert glob_root("/proj", "main.js") == "/proj"
    assert glob_root("/proj", "src/main.js") == "/proj/src"
    assert glob_root("/proj", "/opt/library/closure/goog/**/*.js") == "/opt/library/closure/goog"
    assert glob_root("/proj", "../shared/*.js") == "/shared"
    assert glob_root("/proj", "src/+(a|b)/*.js") == "/proj/src"
    assert glob_root("/proj", "src/{app,lib}/**/*.js") == "/proj/src"


def test_watch_roots_folds_nested_and_skips_missing(tmp_path: Path) -> None:
    (tmp_path / "lib" / "nested").mkdir(parents=True)
    (tmp_path / "src").mkdir()
    roots = watch_roots(
        str(tmp_path),
        ["lib/**/*.js", "lib/nested/*.js", "src/main.js", "missing/**/*.js"],
    )
    assert roots == [str(tmp_path / "lib"), str(tmp_path / "src")]


def test_watch_roots_cwd_covers_everything(tmp_path: Path) -> None:
    (tmp_path / "lib").mkdir()
    assert watch_roots(str(tmp_path), ["*.js", "lib/*.js"]) == [os.path.normpath(str(tmp_path))]
