"""Project configuration file shared by the serve, build and deps commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from closure_util.config import Settings
from closure_util.deps.manager import ManagerConfig
from closure_util.errors import ConfigError


def _listify(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


class ServeOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    port: int | None = None
    root: str | None = None
    loader: str = "/@"
    loader_pattern: str | None = Field(default=None, alias="loaderPattern")
    socket: bool = True
    socket_path: str = Field(default="/@ws", alias="socketPath")


class ProjectConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cwd: str = "."
    lib: list[str] = Field(default_factory=list)
    main: list[str] = Field(default_factory=list)
    ignore_requires: str | None = Field(default=None, alias="ignoreRequires")
    closure: bool = False
    serve: ServeOptions = Field(default_factory=ServeOptions)
    compile: dict[str, Any] = Field(default_factory=dict)
    jvm: list[str] | None = None

    @field_validator("lib", "main", mode="before")
    @classmethod
    def listify_patterns(cls, value: object) -> object:
        return _listify(value)

    def manager_config(self, settings: Settings, *, watch: bool) -> ManagerConfig:
        return ManagerConfig(
            cwd=self.cwd,
            lib=tuple(self.lib),
            main=tuple(self.main),
            ignore_requires=self.ignore_requires,
            closure=self.closure,
            closure_library_dir=settings.library_dir or None,
            watch=watch,
        )

    def serve_options(self) -> ServeOptions:
        options = self.serve.model_copy()
        if options.root is None:
            options.root = self.cwd
        return options


def load_project(path: str | Path) -> ProjectConfig:
    """Read a project config; relative ``cwd`` and ``serve.root`` resolve against its directory."""
    config_path = Path(path).resolve()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain an object: {config_path}")
    try:
        project = ProjectConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {config_path}: {exc}") from exc

    base = config_path.parent
    project.cwd = str((base / project.cwd).resolve())
    if project.serve.root is not None:
        project.serve.root = str((base / project.serve.root).resolve())
    return project
