"""Script records managed by the dependency manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

GOOG = "goog"


class ScriptRole(str, Enum):
    LIBRARY = "library"
    MAIN = "main"


@dataclass(frozen=True, slots=True)
class DeclaredDependency:
    """One ``goog.addDependency`` entry from a manifest file."""

    path: str
    provides: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Script:
    path: str
    source: str | None
    provides: frozenset[str] = frozenset()
    requires: tuple[str, ...] = ()
    role: ScriptRole = ScriptRole.LIBRARY
    mtime: float | None = None
    provides_goog: bool = False
    dependencies: tuple[DeclaredDependency, ...] = field(default=())
    manifest: str | None = None

    @property
    def synthetic(self) -> bool:
        return self.manifest is not None

    @property
    def is_manifest(self) -> bool:
        return bool(self.dependencies)

    @property
    def declares(self) -> bool:
        """True when the script takes part in ordering on its own."""
        return bool(self.provides or self.requires)
