"""Which filesystem events are too noisy to trigger a reload."""

import re
from pathlib import PurePath
from typing import Pattern, Tuple

# Matched against the final path component
IGNORED_NAME_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"~$"),              # editor backups
    re.compile(r"\.tmp$"),          # temp files
    re.compile(r"\.log$"),          # log files
    re.compile(r"\.sw[po]$"),       # vim swap files
    re.compile(r"^\.DS_Store$"),    # macOS metadata
    re.compile(r"^Thumbs\.db$"),    # Windows metadata
)

# Matched against every path component
IGNORED_SEGMENTS = frozenset({
    "node_modules",
    ".git",
    ".hg",
    ".svn",
})


def should_ignore(filename: str) -> bool:
    """
    True for hidden paths, temp/log/swap files, OS metadata and anything
    inside dependency or version-control directories.

    filename is relative to the watched root.
    """
    parts = PurePath(filename).parts
    if not parts:
        return True

    for part in parts:
        if part.startswith(".") and part not in (".", ".."):
            return True
        if part in IGNORED_SEGMENTS:
            return True

    name = parts[-1]
    return any(pattern.search(name) for pattern in IGNORED_NAME_PATTERNS)
