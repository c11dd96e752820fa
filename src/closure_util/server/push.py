"""WebSocket push channel for live reload and error reporting."""

from __future__ import annotations

import asyncio
import logging

from starlette.websockets import WebSocket, WebSocketDisconnect

from closure_util.deps.events import Closed, ErrorRaised, ManagerEvent, Updated
from closure_util.deps.manager import Manager
from closure_util.errors import ManagerStateError

logger = logging.getLogger(__name__)


def error_payload(error: Exception) -> dict[str, object]:
    return {"event": "error", "data": {"message": str(error)}}


def event_payload(event: ManagerEvent) -> dict[str, object] | None:
    if isinstance(event, ErrorRaised):
        return error_payload(event.error)
    if isinstance(event, Updated):
        return {"event": "update", "data": event.script.path if event.script else None}
    return None


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def push_events(websocket: WebSocket, manager: Manager) -> None:
    """Replay current errors, then forward manager errors and updates until disconnect."""
    await websocket.accept()
    try:
        pending = manager.get_errors()
    except ManagerStateError as exc:
        logger.info("Refusing push client: %s", exc)
        await websocket.close()
        return
    with manager.subscription() as queue:
        for error in pending:
            await websocket.send_json(error_payload(error))
        disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
        try:
            while True:
                next_event = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {next_event, disconnected}, return_when=asyncio.FIRST_COMPLETED
                )
                if next_event not in done:
                    next_event.cancel()
                    return
                event = next_event.result()
                if isinstance(event, Closed):
                    await websocket.close()
                    return
                payload = event_payload(event)
                if payload is not None:
                    await websocket.send_json(payload)
        except WebSocketDisconnect:
            logger.debug("Push client disconnected")
        finally:
            disconnected.cancel()
