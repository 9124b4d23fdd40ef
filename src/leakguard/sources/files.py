"""Directory fragment source — one fragment per readable text file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional

from leakguard.sources.models import FileSkipped, Fragment, SourceError

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({".git", ".hg", ".svn"})
_BINARY_SNIFF = 8000


def _is_binary(data: bytes) -> bool:
    return b"\x00" in data[:_BINARY_SNIFF]


def _read_fragment(
    path: Path,
    display: str,
    max_bytes: int,
    skipped: List[FileSkipped],
    symlink_path: str = "",
) -> Optional[Fragment]:
    try:
        size = path.stat().st_size
        if max_bytes and size > max_bytes:
            logger.info("Skipping %s: %d bytes exceeds limit", display, size)
            skipped.append(FileSkipped(display, "oversized"))
            return None
        data = path.read_bytes()
    except OSError as exc:
        logger.warning("Skipping %s: %s", display, exc.strerror or exc)
        skipped.append(FileSkipped(display, "unreadable"))
        return None
    if _is_binary(data):
        logger.debug("Skipping binary file %s", display)
        skipped.append(FileSkipped(display, "binary"))
        return None
    text = data.decode("utf-8", errors="replace")
    return Fragment.from_text(display, text, symlink_path=symlink_path)


def iter_directory(
    root: Path,
    max_file_size_kb: int = 1024,
    follow_symlinks: bool = False,
    skipped: Optional[List[FileSkipped]] = None,
) -> Iterator[Fragment]:
    """Yield fragments for every text file under *root*, in sorted order.

    File paths are relative to *root* with ``/`` separators. Symlinked files
    are skipped unless *follow_symlinks* is set, in which case the fragment
    carries the link path in ``symlink_path`` and the target in ``file_path``.
    """
    root = Path(root)
    if skipped is None:
        skipped = []
    max_bytes = max_file_size_kb * 1024
    if root.is_file():
        frag = _read_fragment(root, root.name, max_bytes, skipped)
        if frag is not None:
            yield frag
        return
    if not root.is_dir():
        raise SourceError(f"not a file or directory: {root}")

    for dirpath, dirnames, filenames in os.walk(root, followlinks=follow_symlinks):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            display = path.relative_to(root).as_posix()
            symlink = ""
            if path.is_symlink():
                if not follow_symlinks:
                    skipped.append(FileSkipped(display, "symlink"))
                    continue
                symlink = display
                target = path.resolve()
                try:
                    display = target.relative_to(root.resolve()).as_posix()
                except ValueError:
                    display = target.as_posix()
                path = target
            if not path.is_file():
                continue
            frag = _read_fragment(path, display, max_bytes, skipped, symlink_path=symlink)
            if frag is not None:
                yield frag
