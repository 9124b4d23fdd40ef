"""Inline allow markers and .leakguardignore support.

Inline markers (any comment syntax, anywhere on the line):
  - ``leakguard:allow`` on line N suppresses ALL rules on line N.
  - ``leakguard:allow`` as a standalone comment on line N also suppresses N+1.
  - ``leakguard:allow[rule-a,rule-b]`` suppresses only those rules.

.leakguardignore file format:
  - One entry per line; lines starting with ``#`` are comments.
  - A finding fingerprint (``[commit:]file:rule:line``) ignores that finding.
  - ``rule:RULE_ID path/glob`` ignores one rule under a path glob.
  - Anything else is a path glob ignored for every rule.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from leakguard.sources.models import Fragment

logger = logging.getLogger(__name__)

MARKER = "leakguard:allow"
IGNORE_FILENAME = ".leakguardignore"

_ALLOW_RE = re.compile(
    r"leakguard:allow"
    r"(?:\[([A-Za-z0-9_.,\-\s]+)\])?"  # optional [rule-a, rule-b]
)
_FINGERPRINT_RE = re.compile(r"^\S+:[A-Za-z0-9_.\-]+:\d+$")


@dataclass(frozen=True)
class Suppression:
    """Audit record of a suppressed finding."""

    rule_id: str
    file: str
    line_no: int
    reason: str  # 'inline', 'next-line', 'ignorefile'
    source: str  # e.g. 'leakguard:allow[aws-access-token]' or '.leakguardignore'
    commit: str = ""


def parse_inline_allow(line_content: str) -> Tuple[bool, Optional[FrozenSet[str]]]:
    """Parse a line for a ``leakguard:allow`` marker.

    Returns:
        (is_allowed, rule_ids) — *rule_ids* is None to allow ALL rules,
        or a frozenset of specific IDs.
    """
    m = _ALLOW_RE.search(line_content)
    if m is None:
        return False, None
    scope = m.group(1)
    if scope:
        ids = frozenset(r.strip() for r in scope.split(",") if r.strip())
        return True, ids
    return True, None


def is_pure_comment(line_content: str) -> bool:
    """Return True if the line is a standalone comment (Python/shell/JS/SQL style)."""
    stripped = line_content.strip()
    return stripped.startswith(("#", "//", "/*", "--", ";"))


class SuppressionChecker:
    """Check whether a finding is allowed by an inline marker.

    Built from a fragment's lines in order, so it can look at the
    *previous* line for next-line suppression.
    """

    def __init__(self) -> None:
        # line_no -> (reason, specific_rules or None for all)
        self._lines: Dict[int, Tuple[str, Optional[FrozenSet[str]]]] = {}

    @classmethod
    def from_fragment(cls, fragment: Fragment) -> "SuppressionChecker":
        checker = cls()
        checker.register_lines(fragment.numbered_lines())
        return checker

    def register_lines(self, lines: List[Tuple[int, str]]) -> None:
        """Pre-scan ``(line_no, content)`` pairs **in order** for markers."""
        pending: Optional[FrozenSet[str]] = None
        pending_line: Optional[int] = None  # line the pending marker applies to

        for line_no, content in lines:
            allowed, rule_ids = parse_inline_allow(content)
            if pending_line == line_no:
                self._lines.setdefault(line_no, ("next-line", pending))
            pending, pending_line = None, None
            if allowed:
                self._lines[line_no] = ("inline", rule_ids)
                if is_pure_comment(content):
                    pending, pending_line = rule_ids, line_no + 1

    def is_suppressed(self, file: str, line_no: int, rule_id: str, commit: str = "") -> Optional[Suppression]:
        """Return a Suppression record if the finding is allowed inline, else None."""
        entry = self._lines.get(line_no)
        if entry is None:
            return None
        reason, specific_ids = entry
        if specific_ids is None:
            source = MARKER
        elif rule_id in specific_ids:
            source = f"{MARKER}[{rule_id}]"
        else:
            return None
        return Suppression(
            rule_id=rule_id, file=file, line_no=line_no, reason=reason, source=source, commit=commit
        )


class IgnoreFile:
    """Parse and evaluate a .leakguardignore file."""

    def __init__(self) -> None:
        self.fingerprints: Set[str] = set()
        self._global_patterns: List[str] = []
        self._rule_patterns: Dict[str, List[str]] = {}  # rule_id -> [glob, ...]

    @classmethod
    def from_file(cls, path: Path) -> "IgnoreFile":
        """Load an ignore file; a missing file ignores nothing."""
        instance = cls()
        if not path.is_file():
            return instance
        with open(path, encoding="utf-8") as f:
            for raw in f:
                instance.add(raw)
        logger.debug(
            "Loaded %s: %d fingerprint(s), %d glob(s)",
            path, len(instance.fingerprints),
            len(instance._global_patterns) + sum(len(v) for v in instance._rule_patterns.values()),
        )
        return instance

    def add(self, entry: str) -> None:
        line = entry.strip()
        if not line or line.startswith("#"):
            return
        if line.startswith("rule:"):
            parts = line.split(None, 1)
            if len(parts) == 2:
                rule_id = parts[0].removeprefix("rule:")
                self._rule_patterns.setdefault(rule_id, []).append(parts[1])
            else:
                logger.warning("Ignoring malformed ignore entry: %s", line)
            return
        if _FINGERPRINT_RE.match(line):
            self.fingerprints.add(line)
            return
        self._global_patterns.append(line)

    def is_ignored(self, filepath: str, rule_id: Optional[str] = None) -> bool:
        """Return True if *filepath* should be ignored (for *rule_id*, if given)."""
        for pat in self._global_patterns:
            if fnmatch(filepath, pat):
                return True
        if rule_id:
            for pat in self._rule_patterns.get(rule_id, []):
                if fnmatch(filepath, pat):
                    return True
        return False
