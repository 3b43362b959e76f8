"""Static file serving: multi-root resolution, listings, status pages, reload injection."""

from .app import StaticFileService, create_app
from .resolver import ResolvedFile, RootSet, build_root_set, resolve

__all__ = [
    "StaticFileService",
    "create_app",
    "ResolvedFile",
    "RootSet",
    "build_root_set",
    "resolve",
]
