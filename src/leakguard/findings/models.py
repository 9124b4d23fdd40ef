"""Finding data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from leakguard.scanner.suppression import Suppression

EXIT_CLEAN = 0
EXIT_ERROR = 2
EXIT_CANCELLED = 130


def make_fingerprint(commit: str, file: str, rule_id: str, start_line: int) -> str:
    """Stable identity of a finding: ``commit:file:rule:line``.

    The commit part is omitted outside history mode, so the same secret in
    a working-tree scan fingerprints as ``file:rule:line``.
    """
    parts = [file, rule_id, str(start_line)]
    if commit:
        parts.insert(0, commit)
    return ":".join(parts)


@dataclass(frozen=True)
class Finding:
    """One confirmed, non-suppressed match. Never mutated after creation."""

    rule_id: str
    description: str
    file: str
    match: str
    secret: str
    start_line: int
    end_line: int
    start_column: int
    end_column: int
    line: str = ""
    symlink_file: str = ""
    commit: str = ""
    author: str = ""
    email: str = ""
    date: str = ""
    message: str = ""
    url: str = ""
    entropy: float = 0.0
    tags: Tuple[str, ...] = ()
    fingerprint: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.fingerprint:
            object.__setattr__(
                self,
                "fingerprint",
                make_fingerprint(self.commit, self.file, self.rule_id, self.start_line),
            )


@dataclass(frozen=True)
class Diagnostic:
    """Something the scan skipped or could not evaluate."""

    kind: str  # 'line-too-long', 'no-content', 'bad-offset', 'rule-error', 'source-warning'
    file: str
    message: str
    commit: str = ""
    rule_id: str = ""
    line_no: int = 0


class ScanStatus(str, Enum):
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ScanResult:
    """Complete result of a scan run."""

    findings: List[Finding] = field(default_factory=list)
    known: List[Finding] = field(default_factory=list)  # baseline matches, if kept
    suppressed: List["Suppression"] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    fragments_scanned: int = 0
    baseline_matches: int = 0
    status: ScanStatus = ScanStatus.COMPLETE
    error: Optional[str] = None
    scan_duration_ms: float = 0.0

    @property
    def total_findings(self) -> int:
        return len(self.findings)

    @property
    def partial(self) -> bool:
        """True when the scan stopped before the source was exhausted."""
        return self.status is not ScanStatus.COMPLETE

    def exit_code(self, leak_code: int = 1) -> int:
        """Map the outcome to a process exit status.

        Clean, leaks found, failed and cancelled are always distinguishable
        as long as *leak_code* is not 0, 2 or 130.
        """
        if self.status is ScanStatus.CANCELLED:
            return EXIT_CANCELLED
        if self.status is ScanStatus.FAILED:
            return EXIT_ERROR
        if self.findings:
            return leak_code
        return EXIT_CLEAN
