"""FastAPI application wiring for the development server."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from starlette.responses import Response

from closure_util import __version__
from closure_util.deps.manager import ManagerState
from closure_util.logging import request_context
from closure_util.server.loader import LoaderServer
from closure_util.server.push import push_events

logger = logging.getLogger(__name__)

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(server: LoaderServer) -> FastAPI:
    """Build the app around ``server``.

    The lifespan starts the manager if it has not been started yet and
    closes it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        manager = server.manager
        if manager.state is ManagerState.INITIALIZING:
            await manager.start()
        logger.info("Serving %s (loader %s)", server.root, server.options.loader)
        try:
            yield
        finally:
            manager.close()

    app = FastAPI(
        title="closure-util",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.server = server

    @app.middleware("http")
    async def bind_request(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        with request_context(path=request.url.path, method=request.method):
            return await call_next(request)

    if server.options.socket:

        async def websocket_endpoint(websocket: WebSocket) -> None:
            await push_events(websocket, server.manager)

        app.add_api_websocket_route(server.options.socket_path, websocket_endpoint)

    app.add_api_route(
        "/{path:path}",
        server.handle,
        methods=_ALL_METHODS,
        include_in_schema=False,
    )
    return app
