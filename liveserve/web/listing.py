"""
Directory listings for directories without an index.html.

Ordering: the parent link first, then directories, then files; each group
sorted by name with numeric-aware comparison ("file2" before "file10").
"""

from __future__ import annotations

import html
import os
import posixpath
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Tuple, Union
from urllib.parse import quote

PARENT = ".."

_CHUNK_RE = re.compile(r"(\d+)")

FILE_ICONS = {
    ".html": "🌐", ".htm": "🌐",
    ".css": "🎨", ".scss": "🎨", ".sass": "🎨", ".less": "🎨",
    ".js": "⚡", ".mjs": "⚡", ".ts": "⚡", ".jsx": "⚡", ".tsx": "⚡",
    ".json": "📋", ".xml": "📋", ".yaml": "📋", ".yml": "📋",
    ".md": "📝", ".txt": "📝", ".rtf": "📝",
    ".pdf": "📄", ".doc": "📄", ".docx": "📄",
    ".png": "🖼️", ".jpg": "🖼️", ".jpeg": "🖼️", ".gif": "🖼️", ".svg": "🖼️", ".webp": "🖼️",
    ".mp3": "🎵", ".wav": "🎵", ".ogg": "🎵", ".m4a": "🎵",
    ".mp4": "🎬", ".avi": "🎬", ".mov": "🎬", ".webm": "🎬",
    ".zip": "📦", ".rar": "📦", ".7z": "📦", ".tar": "📦", ".gz": "📦",
    ".exe": "⚙️", ".app": "⚙️", ".deb": "⚙️", ".rpm": "⚙️",
    ".py": "🐍", ".rb": "💎", ".php": "🐘", ".java": "☕",
    ".c": "🔧", ".cpp": "🔧", ".h": "🔧",
    ".woff": "🔤", ".woff2": "🔤", ".ttf": "🔤", ".otf": "🔤", ".eot": "🔤",
}


@dataclass(frozen=True)
class ListingItem:
    name: str
    href: str
    is_dir: bool
    size: str = "-"
    modified: str = "-"
    icon: str = "📁"


def natural_key(name: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    """Sort key comparing digit runs by value and text case-insensitively."""
    key = []
    for chunk in _CHUNK_RE.split(name):
        if not chunk:
            continue
        if chunk.isdigit():
            key.append((0, int(chunk)))
        else:
            key.append((1, chunk.casefold()))
    return tuple(key)


def sort_items(items: List[ListingItem]) -> List[ListingItem]:
    return sorted(items, key=lambda item: (
        item.name != PARENT,
        not item.is_dir,
        natural_key(item.name),
        item.name,
    ))


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size / (1024 ** exponent), 1)
    return f"{value:g} {units[exponent]}"


def get_file_icon(name: str, is_dir: bool) -> str:
    if is_dir:
        return "📁"
    return FILE_ICONS.get(os.path.splitext(name)[1].lower(), "📄")


def parent_url(url_path: str) -> str:
    parent = posixpath.dirname(url_path.rstrip("/"))
    return parent or "/"


def collect_items(dir_path: str, url_path: str) -> List[ListingItem]:
    """
    Read dir_path and build sorted listing rows. Hidden entries are skipped.

    Raises:
        OSError: the directory cannot be read
    """
    items: List[ListingItem] = []
    if url_path not in ("", "/"):
        items.append(ListingItem(name=PARENT, href=quote(parent_url(url_path)), is_dir=True))

    with os.scandir(dir_path) as entries:
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                stat = entry.stat()
                is_dir = entry.is_dir()
            except OSError:
                # dangling symlink or entry removed mid-scan
                continue
            items.append(ListingItem(
                name=entry.name,
                href=quote(posixpath.join(url_path or "/", entry.name)),
                is_dir=is_dir,
                size="-" if is_dir else format_file_size(stat.st_size),
                modified=datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d"),
                icon=get_file_icon(entry.name, is_dir),
            ))

    return sort_items(items)


_LISTING_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
      body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
              background: #f8f9fa; color: #333; line-height: 1.6; margin: 0; }}
      .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white;
                 padding: 2rem 0; text-align: center; }}
      .header h1 {{ font-size: 2rem; font-weight: 300; }}
      .container {{ max-width: 1200px; margin: 2rem auto; padding: 0 1rem; }}
      .file-list {{ background: white; border-radius: 10px; overflow: hidden;
                    box-shadow: 0 2px 10px rgba(0,0,0,0.1); }}
      .file-item {{ display: grid; grid-template-columns: auto 1fr auto auto; gap: 1rem;
                    padding: 1rem 1.5rem; border-bottom: 1px solid #eee; align-items: center; }}
      .file-name {{ color: #667eea; text-decoration: none; font-weight: 500; }}
      .directory .file-name {{ color: #e67e22; }}
      .parent-dir .file-name {{ color: #95a5a6; }}
      .file-size, .file-date {{ color: #666; font-size: 0.9rem; text-align: right; min-width: 80px; }}
      .empty-state {{ text-align: center; padding: 3rem; color: #666; }}
    </style>
  </head>
  <body>
    <div class="header">
      <h1>📁 {title}</h1>
    </div>
    <div class="container">
      <div class="file-list">
{rows}
      </div>
    </div>
  </body>
</html>"""

_ROW = """        <div class="file-item{classes}">
          <span class="file-icon">{icon}</span>
          <a href="{href}" class="file-name">{label}</a>
          <span class="file-size">{size}</span>
          <span class="file-date">{modified}</span>
        </div>"""

_EMPTY = """        <div class="empty-state">
          <p>This directory is empty</p>
        </div>"""


def render_listing(url_path: str, items: List[ListingItem], root_name: str = "") -> str:
    title = f"Index of {url_path}"
    if root_name:
        title += f" (from {root_name})"

    rows = []
    for item in items:
        classes = ""
        if item.is_dir:
            classes += " directory"
        if item.name == PARENT:
            classes += " parent-dir"
        label = item.name + ("/" if item.is_dir and item.name != PARENT else "")
        rows.append(_ROW.format(
            classes=classes,
            icon=item.icon,
            href=html.escape(item.href, quote=True),
            label=html.escape(label),
            size=item.size,
            modified=item.modified,
        ))

    return _LISTING_PAGE.format(
        title=html.escape(title),
        rows="\n".join(rows) if rows else _EMPTY,
    )
