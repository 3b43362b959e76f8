"""
liveserve/web/resolver.py

Purpose:
    Maps a request path onto the first root directory that contains it.

Security:
    - Roots are canonicalized, checked and de-duplicated once, when the
      RootSet is built. Lookups never touch an unverified root.
    - Every candidate is normalized and must stay inside its root; "..",
      and encoded variants decoded before lookup, cannot escape.
    - System directories are refused as roots unless enforcement is off.
"""

from __future__ import annotations

import logging
import os
import stat as stat_module
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple

from ..errors import ConfigError, ErrorCode

logger = logging.getLogger(__name__)

# Refused as roots together with everything beneath them
UNSAFE_TREES: Tuple[str, ...] = (
    "/etc",
    "/usr",
    "/bin",
    "/sbin",
    "/boot",
    "/dev",
    "/proc",
    "/sys",
)

# Refused only as exact roots; project folders below them are fine
UNSAFE_EXACT: Tuple[str, ...] = (
    "/",
    "/var",
    "/tmp",
    "/root",
)


def _unsafe_exact_paths() -> set:
    paths = {os.path.realpath(p) for p in UNSAFE_EXACT}
    for home in (os.environ.get("HOME"), os.path.expanduser("~")):
        if home:
            paths.add(os.path.realpath(home))
    return paths


def is_unsafe_root(path: str) -> bool:
    """True if path is a system tree, lies inside one, or is a bare top-level/home directory."""
    resolved = os.path.realpath(path)
    if resolved in _unsafe_exact_paths():
        return True
    for tree in UNSAFE_TREES:
        tree = os.path.realpath(tree)
        if resolved == tree or resolved.startswith(tree + os.sep):
            return True
    return False


class RootSet:
    """Ordered, immutable sequence of canonical root directories."""

    def __init__(self, roots: Iterable[Path]):
        self._roots: Tuple[Path, ...] = tuple(roots)
        if not self._roots:
            raise ConfigError("No valid root directories found", ErrorCode.CONFIG_NO_VALID_ROOTS)

    def __iter__(self) -> Iterator[Path]:
        return iter(self._roots)

    def __len__(self) -> int:
        return len(self._roots)

    def __getitem__(self, index: int) -> Path:
        return self._roots[index]

    def __repr__(self) -> str:
        return f"RootSet({[str(r) for r in self._roots]})"


def build_root_set(roots: Iterable[str | Path], enforce_safe_roots: bool = True) -> RootSet:
    """
    Canonicalize and validate root directories.

    Missing paths, non-directories, duplicates and (when enforced) unsafe
    system paths are skipped with a warning.

    Raises:
        ConfigError: nothing usable is left
    """
    if isinstance(roots, (str, Path)):
        roots = [roots]

    valid = []
    seen = set()
    for root in roots:
        try:
            normalized = os.path.realpath(os.path.abspath(os.fspath(root)))
        except (OSError, ValueError) as e:
            logger.warning(f"Error processing root path {root}: {e}")
            continue

        if enforce_safe_roots and is_unsafe_root(normalized):
            logger.warning(f"Skipping unsafe root path: {root}")
            continue
        if not os.path.exists(normalized):
            logger.warning(f"Skipping non-existent path: {root}")
            continue
        if not os.path.isdir(normalized):
            logger.warning(f"Skipping non-directory path: {root}")
            continue
        if normalized in seen:
            logger.debug(f"Skipping duplicate root: {root}")
            continue

        seen.add(normalized)
        valid.append(Path(normalized))
        logger.info(f"Added root directory: {normalized}")

    return RootSet(valid)


@dataclass(frozen=True)
class ResolvedFile:
    path: Path
    stat: os.stat_result
    origin_root: Path

    @property
    def is_dir(self) -> bool:
        return stat_module.S_ISDIR(self.stat.st_mode)

    @property
    def size(self) -> int:
        return self.stat.st_size

    @property
    def mtime(self) -> float:
        return self.stat.st_mtime


def _within(candidate: str, root: str) -> bool:
    return candidate == root or candidate.startswith(root.rstrip(os.sep) + os.sep)


def resolve(roots: RootSet, request_path: str) -> Optional[ResolvedFile]:
    """
    Find request_path (already URL-decoded, query stripped) in the first root that has it.

    Returns None when no root holds an existing, in-bounds candidate.
    """
    relative = request_path.lstrip("/\\")
    for root in roots:
        root_str = str(root)
        candidate = os.path.normpath(os.path.join(root_str, relative))
        if not _within(candidate, root_str):
            continue
        try:
            stat = os.stat(candidate)
        except (OSError, ValueError):
            continue
        return ResolvedFile(path=Path(candidate), stat=stat, origin_root=root)
    return None
