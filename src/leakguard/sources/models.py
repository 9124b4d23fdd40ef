"""Data models for scannable content — fragments, commits, line lookup."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple


class LineLookupError(ValueError):
    """Raised when an offset cannot be mapped to a line of its fragment."""


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class CommitInfo:
    """Commit metadata attached to fragments in history mode."""

    sha: str
    author: str = ""
    email: str = ""
    date: str = ""
    message: str = ""


@dataclass(frozen=True)
class LineIndex:
    """Map character offsets in a fragment to 1-based source line numbers.

    ``starts[i]`` is the offset of the i-th line of the fragment text and
    ``numbers[i]`` the line number it had in the original file. Diff hunks
    are not contiguous, so the numbers may jump.
    """

    starts: Tuple[int, ...]
    numbers: Tuple[int, ...]
    length: int

    @classmethod
    def contiguous(cls, text: str, first_line: int = 1) -> "LineIndex":
        starts = [0]
        pos = text.find("\n")
        while pos != -1:
            starts.append(pos + 1)
            pos = text.find("\n", pos + 1)
        numbers = tuple(range(first_line, first_line + len(starts)))
        return cls(starts=tuple(starts), numbers=numbers, length=len(text))

    def __len__(self) -> int:
        return len(self.starts)

    def index_of(self, offset: int) -> int:
        """Return the position (0-based) of the line holding *offset*."""
        if offset < 0 or offset > self.length or not self.starts:
            raise LineLookupError(f"offset {offset} outside fragment of length {self.length}")
        return bisect_right(self.starts, offset) - 1

    def locate(self, offset: int) -> Tuple[int, int]:
        """Return ``(line_number, column)`` for *offset*, both 1-based."""
        idx = self.index_of(offset)
        return self.numbers[idx], offset - self.starts[idx] + 1

    def line_span(self, idx: int) -> Tuple[int, int]:
        """Return ``(start, end)`` offsets of line *idx*, excluding the newline."""
        start = self.starts[idx]
        end = self.starts[idx + 1] - 1 if idx + 1 < len(self.starts) else self.length
        return start, end


@dataclass(frozen=True)
class Fragment:
    """A unit of scannable text: a file's added lines in one commit or diff,
    or a whole working-tree file."""

    file_path: str
    raw: Optional[str]
    lines: LineIndex
    commit: Optional[CommitInfo] = None
    symlink_path: str = ""
    status: FileStatus = FileStatus.MODIFIED

    @classmethod
    def from_text(
        cls,
        file_path: str,
        text: Optional[str],
        *,
        commit: Optional[CommitInfo] = None,
        symlink_path: str = "",
    ) -> "Fragment":
        index = LineIndex.contiguous(text or "")
        return cls(file_path=file_path, raw=text, lines=index, commit=commit, symlink_path=symlink_path)

    @classmethod
    def from_lines(
        cls,
        file_path: str,
        lines: Iterable[Tuple[int, str]],
        *,
        commit: Optional[CommitInfo] = None,
        status: FileStatus = FileStatus.MODIFIED,
    ) -> "Fragment":
        """Build a fragment from ``(line_number, content)`` pairs, e.g. diff hunks."""
        starts = []
        numbers = []
        parts = []
        offset = 0
        for line_no, content in lines:
            starts.append(offset)
            numbers.append(line_no)
            parts.append(content)
            offset += len(content) + 1
        raw = "\n".join(parts)
        index = LineIndex(starts=tuple(starts), numbers=tuple(numbers), length=len(raw))
        return cls(file_path=file_path, raw=raw, lines=index, commit=commit, status=status)

    @property
    def commit_sha(self) -> str:
        return self.commit.sha if self.commit else ""

    def line_text(self, idx: int) -> str:
        start, end = self.lines.line_span(idx)
        return (self.raw or "")[start:end]

    def numbered_lines(self) -> Sequence[Tuple[int, str]]:
        """Return ``(line_number, content)`` pairs in fragment order."""
        return [(self.lines.numbers[i], self.line_text(i)) for i in range(len(self.lines))]


class SourceError(Exception):
    """Raised by a fragment source that cannot continue (e.g. git failed)."""


@dataclass(frozen=True)
class FileSkipped:
    """Record of a file that was skipped by a source."""

    path: str
    reason: str  # 'binary', 'mode_only', 'oversized', 'symlink', 'unreadable'
    commit: str = ""
