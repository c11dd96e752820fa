"""structlog setup shared by the CLI and the development server."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

import structlog

# third-party loggers and the most verbose level they may emit
_THIRD_PARTY_FLOOR = {
    "watchdog": logging.INFO,
    "uvicorn.access": logging.WARNING,
}


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(
    level: str, json_output: bool = False, stream: TextIO | None = None
) -> None:
    """Send stdlib and structlog records through one structlog formatter.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Render JSON lines instead of the console format.
        stream: Destination, stderr by default.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    stream = stream or sys.stderr

    shared = _shared_processors()
    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name, floor in _THIRD_PARTY_FLOOR.items():
        logging.getLogger(name).setLevel(max(log_level, floor))
    # uvicorn runs with log_config=None; its records reach the root handler
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers.clear()
        logging.getLogger(name).propagate = True


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs to every later record in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


@contextmanager
def request_context(**kwargs: object) -> Iterator[None]:
    """Bind ``kwargs`` for the duration of one request, restoring the previous context."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
