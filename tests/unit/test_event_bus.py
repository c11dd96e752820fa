from closure_util.deps.events import Closed, ErrorRaised, EventBus, Ready, Updated
from closure_util.errors import ParseError


def test_emit_in_subscription_order() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(lambda event: seen.append(f"a:{type(event).__name__}"))
    bus.subscribe(lambda event: seen.append(f"b:{type(event).__name__}"))
    bus.emit(Ready())
    bus.emit(Closed())
    assert seen == ["a:Ready", "b:Ready", "a:Closed", "b:Closed"]


def test_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    seen: list[object] = []
    unsubscribe = bus.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    bus.emit(Ready())
    assert seen == []
    assert len(bus) == 0


def test_failing_handler_does_not_block_others() -> None:
    bus = EventBus()
    seen: list[object] = []

    def broken(event: object) -> None:
        raise RuntimeError("handler bug")

    bus.subscribe(broken)
    bus.subscribe(seen.append)
    event = Updated(None, "/gone.js")
    bus.emit(event)
    assert seen == [event]


def test_clear_removes_handlers() -> None:
    bus = EventBus()
    bus.subscribe(lambda event: None)
    bus.clear()
    assert len(bus) == 0


def test_error_event_message() -> None:
    event = ErrorRaised(ParseError("Malformed goog.provide call", path="/bad.js", line=1))
    assert event.message == "Malformed goog.provide call (/bad.js:1)"
