"""liveserve: a local development file server with live reload."""

__version__ = "1.0.0"
