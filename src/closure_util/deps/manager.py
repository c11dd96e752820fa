"""Dependency manager: discovery, resolution, watching and events."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from wcmatch import glob as wcglob

from closure_util.deps.events import (
    BeforeWatch,
    Closed,
    ErrorRaised,
    EventBus,
    EventHandler,
    ManagerEvent,
    Ready,
    Updated,
)
from closure_util.deps.graph import DependencyGraph
from closure_util.deps.parser import compile_ignore, filter_requires, parse_source
from closure_util.deps.script import DeclaredDependency, Script, ScriptRole
from closure_util.deps.watcher import FileEvent, ScriptWatcher, glob_root, watch_roots
from closure_util.errors import (
    ClosedManagerError,
    ClosureUtilError,
    ConfigError,
    GraphError,
    ManagerStateError,
    ParseError,
)

logger = logging.getLogger(__name__)

_GLOB_FLAGS = wcglob.GLOBSTAR | wcglob.EXTGLOB | wcglob.BRACE


class ManagerState(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


def _as_patterns(value: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(slots=True)
class ManagerConfig:
    cwd: str = field(default_factory=os.getcwd)
    lib: tuple[str, ...] = ()
    main: tuple[str, ...] = ()
    ignore_requires: str | None = None
    closure: bool = False
    closure_library_dir: str | None = None
    watch: bool = True

    def __post_init__(self) -> None:
        self.cwd = os.path.abspath(self.cwd)
        self.lib = _as_patterns(self.lib)
        self.main = _as_patterns(self.main)

    def library_patterns(self) -> list[str]:
        patterns = list(self.lib)
        if self.closure:
            if not self.closure_library_dir:
                raise ConfigError("closure is enabled but no Closure Library directory is set")
            library = os.path.abspath(self.closure_library_dir)
            patterns.append(os.path.join(library, "closure", "goog", "**", "*.js"))
        return patterns


class Manager:
    """Owns the script table for one set of library and main globs.

    Call ``await start()`` once; queries are valid while the manager is
    ready. With ``watch`` enabled, file changes are applied one at a time by
    a consumer task and reported through the subscribed event handlers.
    """

    def __init__(self, config: ManagerConfig) -> None:
        self.config = config
        self.state = ManagerState.INITIALIZING
        self._ignore = compile_ignore(config.ignore_requires)
        self._real: dict[str, Script] = {}
        self._scripts: dict[str, Script] = {}
        self._graph = DependencyGraph({})
        self._errors: dict[str, Exception] = {}
        self._events = EventBus()
        self._watcher: ScriptWatcher | None = None
        self._consumer: asyncio.Task[None] | None = None

    @property
    def cwd(self) -> str:
        return self.config.cwd

    # events

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for every event; returns the unsubscribe callable."""
        return self._events.subscribe(handler)

    @contextmanager
    def subscription(self) -> Iterator[asyncio.Queue[ManagerEvent]]:
        queue: asyncio.Queue[ManagerEvent] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            yield queue
        finally:
            unsubscribe()

    def _emit(self, event: ManagerEvent) -> None:
        if self.state is ManagerState.CLOSED and not isinstance(event, Closed):
            return
        self._events.emit(event)

    # lifecycle

    async def start(self) -> None:
        """Discover, parse and resolve every script, then begin watching.

        Raises:
            ClosureUtilError: Initial parsing or resolution failed. The error
                is also emitted and the manager stays in the error state.

        A ``close()`` issued while starting ends the start without ``Ready``.
        """
        if self.state is not ManagerState.INITIALIZING:
            raise ManagerStateError(f"Manager cannot start from state {self.state.value}")
        try:
            discovered = await asyncio.to_thread(self._discover)
            if self.state is ManagerState.CLOSED:
                return
            real = await asyncio.to_thread(self._load_all, discovered)
            if self.state is ManagerState.CLOSED:
                return
            table, graph = self._rebuild(real)
            self._resolve_all(graph)
        except (ClosureUtilError, OSError) as exc:
            if self.state is not ManagerState.CLOSED:
                self.state = ManagerState.ERROR
                logger.error("Initial dependency resolution failed: %s", exc)
                self._emit(ErrorRaised(exc))
            raise
        self._commit(real, table, graph)
        logger.info("Parsed %d scripts in %s", len(self._scripts), self.cwd)

        if self.config.watch:
            self._emit(BeforeWatch())
            if self.state is not ManagerState.INITIALIZING:
                return
            self._arm_watcher()
        self.state = ManagerState.READY
        self._emit(Ready())

    def close(self) -> None:
        """Release watchers and stop emitting events. Safe to call twice."""
        if self.state is ManagerState.CLOSED:
            return
        if self._consumer is not None:
            self._consumer.cancel()
            self._consumer = None
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        self.state = ManagerState.CLOSED
        self._emit(Closed())
        self._events.clear()
        logger.info("Manager closed")

    # queries

    def _ensure_ready(self) -> None:
        if self.state is ManagerState.CLOSED:
            raise ClosedManagerError("Manager has been closed")
        if self.state is not ManagerState.READY:
            raise ManagerStateError(f"Manager is not ready ({self.state.value})")

    def get_dependencies(self, main: str | None = None) -> list[Script]:
        """Ordered scripts for ``main`` (absolute path), or the whole library."""
        self._ensure_ready()
        if main is None:
            return self._graph.resolve()
        script = self._scripts.get(os.path.abspath(main))
        if script is None:
            raise ClosureUtilError(f"Main script not in manager paths: {main}")
        return self._graph.resolve(script)

    def get_script(self, path: str) -> Script | None:
        self._ensure_ready()
        return self._scripts.get(os.path.abspath(path))

    def get_scripts(self) -> list[Script]:
        self._ensure_ready()
        return list(self._scripts.values())

    def get_errors(self) -> list[Exception]:
        self._ensure_ready()
        return list(self._errors.values())

    async def read_source(self, script: Script) -> str:
        """Source text of ``script``; manifest entries are read from disk."""
        if script.source is not None:
            return script.source
        return await asyncio.to_thread(_read_text, script.path)

    # discovery and parsing

    def _patterns(self) -> list[tuple[ScriptRole, list[str]]]:
        return [
            (ScriptRole.LIBRARY, self.config.library_patterns()),
            (ScriptRole.MAIN, list(self.config.main)),
        ]

    def _discover(self) -> list[tuple[str, ScriptRole]]:
        # discovery order is first match; a main match always sets the role
        seen: dict[str, ScriptRole] = {}
        for role, patterns in self._patterns():
            for pattern in patterns:
                for match in sorted(wcglob.glob(pattern, flags=_GLOB_FLAGS, root_dir=self.cwd)):
                    path = os.path.abspath(os.path.join(self.cwd, match))
                    if not os.path.isfile(path):
                        continue
                    if path not in seen or role is ScriptRole.MAIN:
                        seen[path] = role
        return list(seen.items())

    def _role_for(self, path: str) -> ScriptRole | None:
        for role, patterns in reversed(self._patterns()):
            for pattern in patterns:
                root = glob_root(self.cwd, pattern)
                if path != root and not path.startswith(root + os.sep):
                    continue
                candidate = path if os.path.isabs(pattern) else os.path.relpath(path, self.cwd)
                if wcglob.globmatch(candidate, pattern, flags=_GLOB_FLAGS):
                    return role
        return None

    def _load_all(self, discovered: list[tuple[str, ScriptRole]]) -> dict[str, Script]:
        return {path: self._read_script(path, role) for path, role in discovered}

    def _read_script(self, path: str, role: ScriptRole) -> Script:
        source = _read_text(path)
        mtime = os.stat(path).st_mtime
        parsed = parse_source(source, path, self._ignore)
        directory = os.path.dirname(path)
        dependencies = tuple(
            DeclaredDependency(
                path=os.path.normpath(os.path.join(directory, declared.path)),
                provides=declared.provides,
                requires=filter_requires(declared.requires, self._ignore),
            )
            for declared in parsed.dependencies
        )
        return Script(
            path=path,
            source=source,
            provides=parsed.provides,
            requires=parsed.requires,
            role=role,
            mtime=mtime,
            provides_goog=parsed.provides_goog,
            dependencies=dependencies,
        )

    def _rebuild(self, real: dict[str, Script]) -> tuple[dict[str, Script], DependencyGraph]:
        table: dict[str, Script] = {}
        for script in real.values():
            table[script.path] = script
            for declared in script.dependencies:
                if declared.path in real or declared.path in table:
                    continue
                table[declared.path] = Script(
                    path=declared.path,
                    source=None,
                    provides=frozenset(declared.provides),
                    requires=tuple(dict.fromkeys(declared.requires)),
                    role=script.role,
                    manifest=script.path,
                )
        return table, DependencyGraph(table)

    def _resolve_all(self, graph: DependencyGraph) -> None:
        graph.resolve()
        for script in graph.mains():
            graph.resolve(script)

    def _commit(
        self, real: dict[str, Script], table: dict[str, Script], graph: DependencyGraph
    ) -> None:
        self._real = real
        self._scripts = table
        self._graph = graph

    # watching

    def _arm_watcher(self) -> None:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[FileEvent] = asyncio.Queue()
        patterns = [pattern for _, group in self._patterns() for pattern in group]
        self._watcher = ScriptWatcher(watch_roots(self.cwd, patterns), loop, queue)
        self._watcher.start()
        self._consumer = loop.create_task(self._consume(queue))

    async def _consume(self, queue: asyncio.Queue[FileEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                if event.kind == "delete":
                    await self.handle_delete(event.path)
                else:
                    await self.handle_change(event.path)
            except Exception:
                logger.exception("Failed to apply %s event for %s", event.kind, event.path)

    def _report(self, path: str, error: Exception) -> None:
        logger.warning("Dependency error for %s: %s", path, error)
        self._errors[path] = error
        self._emit(ErrorRaised(error))

    def _check_resolution(self, path: str) -> None:
        try:
            self._resolve_all(self._graph)
        except GraphError as exc:
            self._report(path, exc)
            return
        for key, error in list(self._errors.items()):
            if isinstance(error, GraphError):
                del self._errors[key]

    async def handle_change(self, path: str) -> None:
        """Reparse one created or modified file and apply it to the graph."""
        if self.state is not ManagerState.READY:
            return
        path = os.path.abspath(path)
        current = self._real.get(path)
        if current is None:
            declared = self._scripts.get(path)
            if declared is not None:
                # manifest entries are served from disk, nothing to reparse
                self._emit(Updated(declared, path))
                return
            role = await asyncio.to_thread(self._role_for, path)
            if role is None:
                return
        else:
            role = current.role

        try:
            script = await asyncio.to_thread(self._read_script, path, role)
        except FileNotFoundError:
            logger.debug("File vanished before reparse: %s", path)
            return
        except (ParseError, OSError) as exc:
            if self.state is ManagerState.READY:
                self._report(path, exc)
            return
        if self.state is not ManagerState.READY:
            return
        if current is not None and current.source == script.source:
            # reverted to the committed text; any error recorded since is stale
            if self._errors.pop(path, None) is not None:
                logger.info("Error cleared for %s", path)
                self._check_resolution(path)
                self._emit(Updated(current, path))
            return

        real = dict(self._real)
        real[path] = script
        try:
            table, graph = self._rebuild(real)
        except GraphError as exc:
            self._report(path, exc)
            return
        self._commit(real, table, graph)
        self._errors.pop(path, None)
        logger.info("Updated %s", path)
        self._check_resolution(path)
        self._emit(Updated(script, path))

    async def handle_delete(self, path: str) -> None:
        """Drop a deleted file (and any entries it declared) from the graph."""
        if self.state is not ManagerState.READY:
            return
        path = os.path.abspath(path)
        if path not in self._real:
            if self._errors.pop(path, None) is not None:
                logger.info("Error cleared for removed %s", path)
                self._emit(Updated(None, path))
            return
        real = dict(self._real)
        del real[path]
        try:
            table, graph = self._rebuild(real)
        except GraphError as exc:
            self._report(path, exc)
            return
        self._commit(real, table, graph)
        self._errors.pop(path, None)
        logger.info("Removed %s", path)
        self._check_resolution(path)
        self._emit(Updated(None, path))


def _read_text(path: str) -> str:
    try:
        with open(path, encoding="utf-8") as handle:
            return handle.read()
    except UnicodeDecodeError as exc:
        raise ParseError("File is not valid UTF-8", path=path) from exc
