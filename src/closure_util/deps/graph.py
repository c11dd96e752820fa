"""Name index and topological ordering over managed scripts."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from closure_util.deps.script import GOOG, Script, ScriptRole
from closure_util.errors import (
    CyclicDependencyError,
    DuplicateProvideError,
    UnresolvedRequireError,
)


class DependencyGraph:
    """Dependency graph derived from a script table.

    ``scripts`` must iterate in discovery order; that order breaks ties
    between independent subtrees when resolving the whole library. Building
    the graph indexes every provided name and fails on duplicate provision.
    Orders are recomputed on every ``resolve`` call.
    """

    def __init__(self, scripts: Mapping[str, Script]) -> None:
        self._scripts = dict(scripts)
        self._provides: dict[str, Script] = {}
        for script in self._scripts.values():
            for name in sorted(script.provides):
                existing = self._provides.get(name)
                if existing is not None and existing.path != script.path:
                    raise DuplicateProvideError(name, [existing.path, script.path])
                self._provides[name] = script
        self._base = self._provides.get(GOOG)

    def __len__(self) -> int:
        return len(self._scripts)

    def provider(self, name: str) -> Script | None:
        return self._provides.get(name)

    def mains(self) -> list[Script]:
        return [script for script in self._scripts.values() if script.role is ScriptRole.MAIN]

    def requirements(self, script: Script) -> list[str]:
        """Names ``script`` depends on, the implicit base requirement first."""
        names = list(script.requires)
        base = self._base
        if (
            base is not None
            and base.path != script.path
            and script.declares
            and GOOG not in names
        ):
            names.insert(0, GOOG)
        return names

    def resolve(self, entry: Script | None = None) -> list[Script]:
        """Return scripts so that every dependency precedes its dependents.

        With an entry, only the entry and its transitive requirements are
        returned (the entry last). Without one, every library script that
        declares something is ordered and main scripts are left out.
        Manifests that declared any emitted path are appended at the end.
        """
        order: list[Script] = []
        visited: set[str] = set()
        if entry is not None:
            self._visit(entry, order, visited, [], set())
        else:
            for script in self._scripts.values():
                if script.role is ScriptRole.LIBRARY and script.declares:
                    self._visit(script, order, visited, [], set())
        return order + self._manifests_for(order)

    def _visit(
        self,
        script: Script,
        order: list[Script],
        visited: set[str],
        stack: list[str],
        on_stack: set[str],
    ) -> None:
        if script.path in visited:
            return
        if script.path in on_stack:
            start = stack.index(script.path)
            raise CyclicDependencyError([*stack[start:], script.path])
        stack.append(script.path)
        on_stack.add(script.path)
        for name in self.requirements(script):
            provider = self._provides.get(name)
            if provider is None:
                raise UnresolvedRequireError(name, script.path)
            self._visit(provider, order, visited, stack, on_stack)
        stack.pop()
        on_stack.discard(script.path)
        visited.add(script.path)
        order.append(script)

    def _manifests_for(self, order: Iterable[Script]) -> list[Script]:
        emitted = {script.path for script in order}
        manifests: list[Script] = []
        for script in self._scripts.values():
            if not script.is_manifest or script.path in emitted:
                continue
            # manifest entries hold absolute paths once managed
            if any(dependency.path in emitted for dependency in script.dependencies):
                manifests.append(script)
        return manifests
