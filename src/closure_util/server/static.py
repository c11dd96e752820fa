"""Static file serving and directory listings for non-loader requests."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass

from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response
from starlette.staticfiles import StaticFiles

from closure_util.server.rendering import TemplateRenderer


@dataclass(frozen=True, slots=True)
class ListingEntry:
    path: str
    name: str
    dir: bool


def list_entries(directory: str) -> list[ListingEntry]:
    """Entries of ``directory`` without dot files; directories get a trailing slash."""
    entries: list[ListingEntry] = []
    for name in sorted(os.listdir(directory)):
        if name.startswith("."):
            continue
        is_dir = os.path.isdir(os.path.join(directory, name))
        entries.append(ListingEntry(path=name + ("/" if is_dir else ""), name=name, dir=is_dir))
    return entries


class StaticServer(StaticFiles):
    """Starlette static files under ``root``, listing directories without an index.

    Files and ``index.html`` pages go through :class:`StaticFiles`, which
    handles content types and conditional requests. A directory that has no
    index page is rendered as a listing instead of a 404.
    """

    def __init__(self, root: str, templates: TemplateRenderer) -> None:
        self.root = os.path.abspath(root)
        super().__init__(directory=self.root, html=True, check_dir=False)
        self._templates = templates

    def resolve(self, pathname: str) -> str | None:
        """Absolute file system path for a URL path, or None if it escapes the root."""
        target = os.path.normpath(os.path.join(self.root, pathname.lstrip("/")))
        if target != self.root and not target.startswith(self.root + os.sep):
            return None
        return target

    async def serve(self, request: Request) -> Response:
        pathname = request.url.path
        target = self.resolve(pathname)
        if target is None:
            return PlainTextResponse("Outside root", status_code=403)
        if not pathname.endswith("/") and os.path.isdir(target):
            return RedirectResponse(pathname + "/", status_code=301)
        try:
            return await self.get_response(self.get_path(request.scope), request.scope)
        except HTTPException as exc:
            if exc.status_code == 404 and pathname.endswith("/") and os.path.isdir(target):
                return await self.listing(pathname, target)
            return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    async def listing(self, pathname: str, directory: str) -> Response:
        try:
            entries = await asyncio.to_thread(list_entries, directory)
        except OSError as exc:
            return PlainTextResponse(str(exc), status_code=500)
        if pathname != "/":
            entries.insert(0, ListingEntry(path="..", name="..", dir=True))
        return self._templates.response("index.html", {"pathname": pathname, "entries": entries})
