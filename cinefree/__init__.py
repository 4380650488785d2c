"""CineFree: a small movie catalog with an upload API and client."""

__version__ = "0.1.0"
