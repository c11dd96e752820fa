"""Manager event types and subscriber registry."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from closure_util.deps.script import Script

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Ready:
    pass


@dataclass(frozen=True, slots=True)
class ErrorRaised:
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass(frozen=True, slots=True)
class Updated:
    """A managed file changed (``script`` set) or was removed (``script`` is None)."""

    script: Script | None
    path: str


@dataclass(frozen=True, slots=True)
class BeforeWatch:
    pass


@dataclass(frozen=True, slots=True)
class Closed:
    pass


ManagerEvent = Ready | ErrorRaised | Updated | BeforeWatch | Closed
EventHandler = Callable[[ManagerEvent], None]


class EventBus:
    """Synchronous fan-out of manager events, in emission order."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def emit(self, event: ManagerEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", type(event).__name__)

    def clear(self) -> None:
        self._handlers.clear()
