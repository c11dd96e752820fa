"""closure-util exception hierarchy.

Everything raised on purpose derives from ClosureUtilError. Graph errors
share GraphError so the server can render them as in-page error scripts.
"""

from __future__ import annotations

from collections.abc import Sequence


class ClosureUtilError(Exception):
    """Base exception for all closure-util errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigError(ClosureUtilError):
    """Invalid or missing configuration."""


class ParseError(ClosureUtilError):
    """Malformed provide/require declaration in one file."""

    def __init__(self, message: str, *, path: str, line: int | None = None) -> None:
        location = f"{path}:{line}" if line is not None else path
        super().__init__(f"{message} ({location})")
        self.path = path
        self.line = line


class GraphError(ClosureUtilError):
    """Dependency graph cannot be resolved."""


class DuplicateProvideError(GraphError):
    def __init__(self, name: str, paths: Sequence[str]) -> None:
        joined = ", ".join(paths)
        super().__init__(f'Redundant provide "{name}" in {joined}')
        self.name = name
        self.paths = tuple(paths)


class UnresolvedRequireError(GraphError):
    def __init__(self, name: str, path: str) -> None:
        super().__init__(f'Unsatisfied dependency "{name}" in {path}')
        self.name = name
        self.path = path


class CyclicDependencyError(GraphError):
    def __init__(self, cycle: Sequence[str]) -> None:
        chain = " -> ".join(cycle)
        super().__init__(f"Cyclical dependency starting at {cycle[0]}: {chain}")
        self.cycle = tuple(cycle)


class ManagerStateError(ClosureUtilError):
    """Query issued while the manager is not ready."""


class ClosedManagerError(ManagerStateError):
    """Query issued after the manager was closed."""


class SubprocessError(ClosureUtilError):
    """External compiler failed or could not be located."""

    def __init__(self, message: str = "", *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode
