"""Loader protocol: map requests onto the dependency manager.

Requests whose path starts with the loader prefix (``/@`` by default) are
handled here. ``/@?main=app.js`` renders a bootstrap script listing every
dependency of the main script in load order, and ``/@/abs/path/to/file.js``
serves the source of one managed script. Anything else is static.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
from urllib.parse import quote, urlsplit

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from closure_util.deps.manager import Manager
from closure_util.errors import GraphError
from closure_util.project import ServeOptions
from closure_util.server.rendering import TemplateRenderer
from closure_util.server.static import StaticServer

logger = logging.getLogger(__name__)


class LoaderServer:
    """Request handler bridging HTTP and a :class:`Manager`.

    The server only queries the manager and never mutates it.
    """

    def __init__(
        self,
        manager: Manager,
        options: ServeOptions | None = None,
        templates: TemplateRenderer | None = None,
    ) -> None:
        self.manager = manager
        self.options = options or ServeOptions()
        self.root = os.path.abspath(self.options.root or manager.cwd)
        pattern = self.options.loader_pattern
        self._pattern = re.compile(pattern) if pattern else None
        self._templates = templates or TemplateRenderer()
        self.static = StaticServer(self.root, self._templates)

    def match_loader(self, pathname: str) -> tuple[str, str] | None:
        """Return ``(prefix, remainder)`` for loader requests, else None."""
        if self._pattern is not None:
            match = self._pattern.search(pathname)
            if match is None or not match.group(0):
                return None
            return match.group(0), pathname[match.end() :]
        loader = self.options.loader
        if not pathname.startswith(loader):
            return None
        return loader, pathname[len(loader) :]

    def get_main(self, request: Request) -> str | None:
        """Absolute path of the ``main`` query parameter.

        Relative to the referring page's directory when a referer is sent,
        otherwise relative to the server root.
        """
        main = request.query_params.get("main")
        if not main:
            return None
        base = self.root
        referer = request.headers.get("referer")
        if referer:
            referer_dir = posixpath.dirname(urlsplit(referer).path)
            base = os.path.join(self.root, referer_dir.lstrip("/"))
        return os.path.abspath(os.path.join(base, main))

    def script_url(self, prefix: str, path: str) -> str:
        return prefix + quote(path)

    async def handle(self, request: Request) -> Response:
        if request.method != "GET":
            return PlainTextResponse("Not allowed", status_code=405)
        try:
            match = self.match_loader(request.url.path)
            if match is None:
                return await self.static.serve(request)
            prefix, remainder = match
            if remainder:
                return await self.serve_script(os.path.abspath(remainder))
            return self.serve_loader(request, prefix)
        except Exception as exc:
            logger.exception("Request failed: %s", request.url.path)
            return PlainTextResponse(str(exc), status_code=500)

    def serve_loader(self, request: Request, prefix: str) -> Response:
        main = self.get_main(request)
        if main is not None and self.manager.get_script(main) is None:
            return self.render_error(f"Main script not in manager paths: {main}")
        try:
            dependencies = self.manager.get_dependencies(main)
        except GraphError as exc:
            return self.render_error(str(exc))
        paths = [self.script_url(prefix, script.path) for script in dependencies]
        return self._templates.response(
            "load.js",
            {
                "root": f"http://{request.headers.get('host', '')}",
                "paths": paths,
                "loader": prefix,
                "socket": self.options.socket,
                "socket_path": self.options.socket_path,
            },
        )

    def render_error(self, message: str) -> Response:
        logger.warning("Loader error: %s", message)
        return self._templates.response("error.js", {"message": message})

    async def serve_script(self, path: str) -> Response:
        script = self.manager.get_script(path)
        if script is None:
            return PlainTextResponse(f"Script not being managed: {path}", status_code=404)
        try:
            source = await self.manager.read_source(script)
        except FileNotFoundError:
            return PlainTextResponse(f"Script not being managed: {path}", status_code=404)
        return Response(source.encode("utf-8"), media_type="application/javascript")
