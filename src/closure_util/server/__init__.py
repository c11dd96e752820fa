"""Development server package."""

from closure_util.server.app import create_app
from closure_util.server.loader import LoaderServer

__all__ = ["LoaderServer", "create_app"]
