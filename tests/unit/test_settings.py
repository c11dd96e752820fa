import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from closure_util.config import find_upwards, load_settings


def test_defaults() -> None:
    settings = load_settings()
    assert settings.log_level == "INFO"
    assert settings.java == "java"
    assert settings.jvm_flags == ["-server", "-XX:+TieredCompilation"]
    assert settings.port == 3000


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLOSURE_LOG_LEVEL", "debug")
    monkeypatch.setenv("CLOSURE_COMPILER_DIR", "/opt/compiler")
    monkeypatch.setenv("CLOSURE_JVM_FLAGS", '["-Xmx1g"]')
    settings = load_settings()
    assert settings.log_level == "DEBUG"
    assert settings.compiler_dir == "/opt/compiler"
    assert settings.jvm_flags == ["-Xmx1g"]


def test_invalid_log_level_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLOSURE_LOG_LEVEL", "chatty")
    with pytest.raises(ValidationError):
        load_settings()


def test_config_file_found_in_ancestor(tmp_path: Path) -> None:
    (tmp_path / "closure-util.json").write_text(
        json.dumps({"library_dir": "/opt/closure-library", "port": 4000})
    )
    settings = load_settings()
    assert settings.library_dir == "/opt/closure-library"
    assert settings.port == 4000


def test_env_beats_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "closure-util.json").write_text(json.dumps({"port": 4000}))
    monkeypatch.setenv("CLOSURE_PORT", "5000")
    assert load_settings().port == 5000


def test_init_overrides_beat_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLOSURE_LOG_LEVEL", "ERROR")
    assert load_settings(log_level="warning").log_level == "WARNING"


def test_find_upwards(tmp_path: Path) -> None:
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    marker = tmp_path / "a" / "closure-util.json"
    marker.write_text("{}")
    assert find_upwards(nested) == marker
    assert find_upwards(nested, "missing-name.json") is None
