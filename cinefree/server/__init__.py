"""HTTP server for the CineFree catalog."""

from cinefree.server.api import create_app

__all__ = ["create_app"]
