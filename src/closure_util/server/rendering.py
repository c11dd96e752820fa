"""Jinja2 rendering for the loader bootstrap, error scripts and listings."""

from __future__ import annotations

import logging
import posixpath
from typing import Any

from jinja2 import Environment, PackageLoader, TemplateError, TemplateNotFound, select_autoescape
from starlette.responses import PlainTextResponse, Response

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {
    ".js": "application/javascript; charset=utf-8",
    ".html": "text/html; charset=utf-8",
}


class TemplateRenderer:
    def __init__(self, environment: Environment | None = None) -> None:
        self._env = environment or Environment(
            loader=PackageLoader("closure_util.server", "templates"),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )

    def render(self, name: str, context: dict[str, Any]) -> str:
        return self._env.get_template(name).render(**context)

    def response(self, name: str, context: dict[str, Any]) -> Response:
        """Render ``name`` to a 200 response; template failures become a 500."""
        try:
            body = self.render(name, context)
        except TemplateNotFound:
            logger.error("Template not found: %s", name)
            return PlainTextResponse(f"Cannot find {name} template", status_code=500)
        except TemplateError as exc:
            logger.exception("Failed to render %s", name)
            return PlainTextResponse(str(exc), status_code=500)
        content_type = _CONTENT_TYPES.get(posixpath.splitext(name)[1], "text/plain")
        return Response(body, status_code=200, headers={"Content-Type": content_type})
