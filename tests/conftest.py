import asyncio
import os
import shutil
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from closure_util.deps.manager import Manager, ManagerConfig

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for key in list(os.environ):
        if key.upper().startswith("CLOSURE_"):
            monkeypatch.delenv(key)
    run_dir = tmp_path / "run"
    run_dir.mkdir()
    monkeypatch.chdir(run_dir)
    yield


@pytest.fixture
def fixtures() -> Path:
    return FIXTURES


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Writable copy of the fixture tree."""
    target = tmp_path / "workspace"
    shutil.copytree(FIXTURES, target)
    return target


@pytest.fixture
def started_manager() -> Iterator[Callable[..., Manager]]:
    """Factory for managers started without watching."""
    managers: list[Manager] = []

    def factory(**kwargs: object) -> Manager:
        kwargs.setdefault("watch", False)
        manager = Manager(ManagerConfig(**kwargs))
        asyncio.run(manager.start())
        managers.append(manager)
        return manager

    yield factory
    for manager in managers:
        manager.close()
