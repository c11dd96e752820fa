"""File-system watching for managed scripts.

watchdog delivers events on its observer thread; they are handed to the
event loop with ``call_soon_threadsafe`` and queued for a single consumer.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# wildcards, character classes, extglob groups and brace sets
_MAGIC_CHARS = frozenset("*?[({")


@dataclass(frozen=True, slots=True)
class FileEvent:
    kind: Literal["change", "delete"]
    path: str


def glob_root(cwd: str, pattern: str) -> str:
    """Deepest directory of ``pattern`` that contains no glob magic."""
    parts: list[str] = []
    for part in pattern.replace("\\", "/").split("/"):
        if any(char in _MAGIC_CHARS for char in part):
            break
        parts.append(part)
    else:
        # literal file pattern, watch its directory
        parts = parts[:-1]
    prefix = "/".join(parts)
    if pattern.startswith("/") and not prefix:
        prefix = "/"
    return os.path.normpath(os.path.join(cwd, prefix))


def watch_roots(cwd: str, patterns: Iterable[str]) -> list[str]:
    """Existing directories to watch, with nested roots folded into parents."""
    roots = sorted({glob_root(cwd, pattern) for pattern in patterns})
    folded: list[str] = []
    for root in roots:
        if not os.path.isdir(root):
            continue
        if any(root == parent or root.startswith(parent + os.sep) for parent in folded):
            continue
        folded.append(root)
    return folded


class _QueueingHandler(FileSystemEventHandler):
    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[FileEvent]) -> None:
        super().__init__()
        self._loop = loop
        self._queue = queue

    def _put(self, kind: Literal["change", "delete"], raw_path: str | bytes) -> None:
        path = os.path.abspath(os.fsdecode(raw_path))
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, FileEvent(kind, path))
        except RuntimeError:
            logger.debug("Event loop closed; dropping %s event for %s", kind, path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put("change", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put("change", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put("delete", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put("delete", event.src_path)
            self._put("change", event.dest_path)


class ScriptWatcher:
    """Recursive watchdog observer over the roots of the configured globs."""

    def __init__(
        self,
        roots: Iterable[str],
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[FileEvent],
    ) -> None:
        self.roots = list(roots)
        self._handler = _QueueingHandler(loop, queue)
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        for root in self.roots:
            observer.schedule(self._handler, root, recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching %d root(s): %s", len(self.roots), ", ".join(self.roots))

    def stop(self) -> None:
        """Stop the observer thread and wait for it to exit."""
        observer = self._observer
        self._observer = None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
