"""Streaming unified diff parser for ``git diff`` and ``git log -p`` output.

Consumes lines lazily and yields one :class:`Fragment` per file per commit,
holding only that file's added lines with their new-side line numbers.
Handles commit headers, BOM, CRLF, binary markers, renames, mode-only
changes, submodule pointers and ``\\ No newline at end of file``.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from leakguard.sources.models import CommitInfo, FileSkipped, FileStatus, Fragment

_COMMIT_RE = re.compile(r"^commit ([0-9a-f]{7,64})\b")
_AUTHOR_RE = re.compile(r"^Author:\s*(.*?)\s*(?:<([^>]*)>)?\s*$")
_DATE_RE = re.compile(r"^(?:Author)?Date:\s*(.*)$")
_QUOTED = r'"(?:[^"\\]|\\.)*"'  # git C-quotes paths with non-ASCII, quotes or control chars
_DIFF_HEADER_RE = re.compile(rf"^diff --git (?:{_QUOTED}|a/.*) (?P<new>{_QUOTED}|b/.*)$")
_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_BINARY_RE = re.compile(r"^(?:Binary files .* and .* differ|GIT binary patch)$")
_RENAME_FROM_RE = re.compile(r"^rename from (.+)$")
_RENAME_TO_RE = re.compile(r"^rename to (.+)$")
_SUBPROJECT_RE = re.compile(r"^\+Subproject commit [0-9a-f]+$")
_NO_NEWLINE = "\\ No newline at end of file"
_NEW_PATH_RE = re.compile(rf"^\+\+\+ (?:(?P<new>{_QUOTED}|b/.*)|/dev/null)$")
_OLD_PATH_RE = re.compile(rf"^--- (?:{_QUOTED}|a/.*|/dev/null)$")
_OLD_MODE_RE = re.compile(r"^old mode \d+$")
_DELETED_FILE_RE = re.compile(r"^deleted file mode \d+$")
_NEW_FILE_RE = re.compile(r"^new file mode \d+$")

DiffItem = Union[Fragment, FileSkipped]


_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}


def unquote_path(token: str) -> str:
    """Undo git's C-style path quoting.

    ``"caf\\303\\251.txt"`` becomes ``café.txt``: octal escapes are raw
    bytes of the UTF-8 name. Unquoted tokens are returned unchanged.
    """
    if len(token) < 2 or token[0] != '"' or token[-1] != '"':
        return token
    body = token[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 == len(body):
            out += ch.encode("utf-8")
            i += 1
            continue
        octal = body[i + 1:i + 4]
        if len(octal) == 3 and all(c in "01234567" for c in octal):
            out.append(int(octal, 8) & 0xFF)
            i += 4
        elif body[i + 1] in _ESCAPES:
            out.append(_ESCAPES[body[i + 1]])
            i += 2
        else:
            out += body[i + 1].encode("utf-8")
            i += 2
    return out.decode("utf-8", errors="replace")


def _side_path(token: str, prefix: str) -> str:
    path = unquote_path(token)
    return path[len(prefix):] if path.startswith(prefix) else path


def _strip_bom(line: str) -> str:
    return line.lstrip("\ufeff")


def _chomp(line: str) -> str:
    """Drop the line terminator (LF or CRLF) only."""
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


class _FileState:
    def __init__(self, path: str) -> None:
        self.path = path
        self.status = FileStatus.MODIFIED
        self.mode_changed = False
        self.binary = False
        self.added: List[Tuple[int, str]] = []


class DiffParser:
    """Parse unified diff lines into fragments.

    Usage::

        for item in DiffParser(proc.stdout).parse():
            if isinstance(item, FileSkipped):
                ...
            else:
                detector.detect(item)
    """

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = lines

    @classmethod
    def from_text(cls, text: str) -> "DiffParser":
        return cls(text.splitlines())

    def parse(self) -> Iterator[DiffItem]:
        commit: Optional[CommitInfo] = None
        in_header = False
        message: List[str] = []
        header: dict = {}
        current: Optional[_FileState] = None
        line_no = 0

        for raw_line in self._lines:
            line = _chomp(raw_line)

            # --- commit header (git log -p) ---
            m = _COMMIT_RE.match(line)
            if m:
                yield from self._flush(current, commit)
                current = None
                in_header = True
                header = {"sha": m.group(1)}
                message = []
                commit = None
                continue
            if in_header:
                if line.startswith("diff --git "):
                    commit = CommitInfo(message="\n".join(message).strip(), **header)
                    in_header = False
                else:
                    self._header_line(line, header, message)
                    continue

            # --- diff --git header → new file ---
            m = _DIFF_HEADER_RE.match(line)
            if m:
                yield from self._flush(current, commit)
                current = _FileState(_side_path(m.group("new"), "b/"))
                line_no = 0
                continue
            if line.startswith("diff --git "):
                # never fold an unreadable file's lines into the previous one
                yield from self._flush(current, commit)
                current = None
                line_no = 0
                yield FileSkipped(
                    path=line[len("diff --git "):],
                    reason="unparsed_header",
                    commit=commit.sha if commit else "",
                )
                continue
            if current is None:
                continue

            # --- extended headers ---
            if current.added or line_no:
                pass  # inside hunks, headers cannot appear
            elif _OLD_MODE_RE.match(line):
                current.mode_changed = True
                continue
            elif _DELETED_FILE_RE.match(line):
                current.status = FileStatus.DELETED
                continue
            elif _NEW_FILE_RE.match(line):
                current.status = FileStatus.ADDED
                continue
            elif (rt := _RENAME_TO_RE.match(line)):
                current.path = unquote_path(rt.group(1))
                current.status = FileStatus.RENAMED
                continue
            elif _RENAME_FROM_RE.match(line):
                continue
            elif _BINARY_RE.match(line):
                current.binary = True
                continue
            elif _OLD_PATH_RE.match(line):
                continue
            elif (np := _NEW_PATH_RE.match(line)):
                if np.group("new"):
                    current.path = _side_path(np.group("new"), "b/")
                continue

            # --- hunk header ---
            hm = _HUNK_HEADER_RE.match(line)
            if hm:
                line_no = int(hm.group(3))
                continue

            if line == _NO_NEWLINE or _SUBPROJECT_RE.match(line):
                continue

            # --- content ---
            if line.startswith("+"):
                current.added.append((line_no, _strip_bom(line[1:])))
                line_no += 1
            elif line.startswith(" "):
                line_no += 1

        yield from self._flush(current, commit)

    @staticmethod
    def _header_line(line: str, header: dict, message: List[str]) -> None:
        am = _AUTHOR_RE.match(line)
        if am and line.startswith("Author:"):
            header["author"] = am.group(1)
            header["email"] = am.group(2) or ""
            return
        dm = _DATE_RE.match(line)
        if dm:
            header["date"] = dm.group(1).strip()
            return
        if line.startswith("    "):
            message.append(line[4:])

    @staticmethod
    def _flush(state: Optional[_FileState], commit: Optional[CommitInfo]) -> Iterator[DiffItem]:
        if state is None:
            return
        sha = commit.sha if commit else ""
        if state.binary:
            yield FileSkipped(path=state.path, reason="binary", commit=sha)
            return
        if not state.added:
            if state.mode_changed:
                yield FileSkipped(path=state.path, reason="mode_only", commit=sha)
            return
        yield Fragment.from_lines(state.path, state.added, commit=commit, status=state.status)


def parse_diff(text: str) -> List[DiffItem]:
    """Parse a whole diff held in memory."""
    return list(DiffParser.from_text(text).parse())
