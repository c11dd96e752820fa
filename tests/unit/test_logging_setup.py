import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from closure_util.logging import bind_context, configure_logging, request_context


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def test_json_output_includes_bound_context() -> None:
    stream = io.StringIO()
    configure_logging("info", json_output=True, stream=stream)
    bind_context(command="deps")
    with request_context(path="/@"):
        logging.getLogger("closure_util.test").info("resolved %d scripts", 4)
    logging.getLogger("closure_util.test").debug("hidden")

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert len(lines) == 1
    record = lines[0]
    assert record["event"] == "resolved 4 scripts"
    assert record["level"] == "info"
    assert record["command"] == "deps"
    assert record["path"] == "/@"


def test_request_context_is_scoped() -> None:
    stream = io.StringIO()
    configure_logging("DEBUG", json_output=True, stream=stream)
    with request_context(path="/@"):
        pass
    logging.getLogger("closure_util.test").debug("after request")
    record = json.loads(stream.getvalue().splitlines()[0])
    assert "path" not in record


def test_third_party_floor() -> None:
    configure_logging("DEBUG", stream=io.StringIO())
    assert logging.getLogger("watchdog").level == logging.INFO
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
