"""Closed extension -> Content-Type table for served files."""

import os
from typing import Dict

DEFAULT_MIME_TYPE = "application/octet-stream"

ALLOWED_MIME_TYPES: Dict[str, str] = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".mjs": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".txt": "text/plain; charset=utf-8",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".eot": "application/vnd.ms-fontobject",
    ".otf": "font/otf",
    ".wasm": "application/wasm",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".webm": "video/webm",
    ".webp": "image/webp",
    ".avif": "image/avif",
}


def get_mime_type(path: str) -> str:
    """Content-Type for path's extension; unknown extensions get a generic binary type."""
    ext = os.path.splitext(path)[1].lower()
    return ALLOWED_MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def is_html(path: str) -> bool:
    return os.path.splitext(path)[1].lower() == ".html"
