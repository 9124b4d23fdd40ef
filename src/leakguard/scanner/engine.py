"""Core detection engine — per-fragment detection and the concurrent scan.

A scan is a producer/worker pipeline: the calling thread pulls fragments
from the source into a bounded queue, a fixed pool of worker threads runs
:meth:`Detector.detect` on each, and results are appended to one
lock-guarded collector. The rule set is immutable and shared without locks.

Exception safety: errors raised while scanning are logged by type only, so
matched secret values never leak into tracebacks or log lines.
"""

from __future__ import annotations

import logging
import queue
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Tuple

from leakguard.config.schema import LeakGuardConfig
from leakguard.findings.aggregator import deduplicate, split_baseline, split_by_fingerprint
from leakguard.findings.models import Diagnostic, Finding, ScanResult, ScanStatus
from leakguard.rules.models import Rule
from leakguard.rules.registry import RuleSet
from leakguard.scanner.allowlist import is_allowed, skips_fragment
from leakguard.scanner.entropy import passes_entropy, shannon_entropy
from leakguard.scanner.matcher import Candidate, find_candidates, keyword_prefilter, scannable_segments
from leakguard.scanner.suppression import MARKER, IgnoreFile, Suppression, SuppressionChecker
from leakguard.sources.models import Fragment, LineLookupError, SourceError

logger = logging.getLogger(__name__)

_STOP = object()
_POLL_SECONDS = 0.1


class ScanError(Exception):
    """Raised on internal scanner error (never contains secret values)."""


@dataclass
class ScanOptions:
    workers: int = 4
    queue_size: int = 64
    max_line_length: int = 100_000
    inline_allow: bool = True
    repo_url: Optional[str] = None
    ignore: Optional[IgnoreFile] = None
    baseline: FrozenSet[str] = frozenset()
    keep_known: bool = False

    @classmethod
    def from_config(cls, config: LeakGuardConfig, **overrides) -> "ScanOptions":
        opts = cls(
            workers=config.scan.workers,
            queue_size=config.scan.queue_size,
            max_line_length=config.scan.max_line_length,
            inline_allow=config.scan.inline_allow,
            keep_known=config.baseline.keep_known,
        )
        for key, value in overrides.items():
            setattr(opts, key, value)
        return opts


@dataclass
class FragmentReport:
    """What one fragment produced."""

    findings: List[Finding] = field(default_factory=list)
    suppressed: List[Suppression] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class _Collector:
    """Lock-guarded sink shared by all workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.report = FragmentReport()
        self.fragments = 0

    def add(self, report: FragmentReport) -> None:
        with self._lock:
            self.report.findings.extend(report.findings)
            self.report.suppressed.extend(report.suppressed)
            self.report.diagnostics.extend(report.diagnostics)
            self.fragments += 1


class Detector:
    """Runs a rule set over fragments."""

    def __init__(self, rule_set: RuleSet, options: Optional[ScanOptions] = None) -> None:
        if not isinstance(rule_set, RuleSet):
            # validates ids; raises RuleError on duplicates
            rule_set = RuleSet(rule_set)
        self.rule_set = rule_set
        self.options = options or ScanOptions()
        if self.options.workers < 1:
            raise ScanError("workers must be at least 1")
        if self.options.queue_size < 1:
            raise ScanError("queue_size must be at least 1")

    # ---- single fragment ----

    def detect(self, fragment: Fragment) -> FragmentReport:
        """Evaluate every applicable rule against *fragment*."""
        report = FragmentReport()
        if fragment.raw is None:
            logger.warning("Skipping %s: no content", fragment.file_path)
            report.diagnostics.append(
                Diagnostic("no-content", fragment.file_path, "fragment has no content", commit=fragment.commit_sha)
            )
            return report

        if any(skips_fragment(a, fragment) for a in self.rule_set.allowlists):
            return report
        ignore = self.options.ignore
        if ignore is not None and ignore.is_ignored(fragment.file_path):
            return report

        try:
            self._detect(fragment, report)
        except LineLookupError as exc:
            logger.warning("Skipping %s: %s", fragment.file_path, exc)
            return FragmentReport(
                diagnostics=[
                    Diagnostic("bad-offset", fragment.file_path, str(exc), commit=fragment.commit_sha)
                ]
            )
        return report

    def _detect(self, fragment: Fragment, report: FragmentReport) -> None:
        raw = fragment.raw or ""
        path = fragment.file_path
        sha = fragment.commit_sha
        ignore = self.options.ignore
        lowered = raw.lower()

        segments, skipped = scannable_segments(fragment, self.options.max_line_length)
        for line_no in skipped:
            logger.warning("%s:%d exceeds %d characters, not scanned", path, line_no, self.options.max_line_length)
            report.diagnostics.append(
                Diagnostic(
                    "line-too-long", path,
                    f"line longer than {self.options.max_line_length} characters not scanned",
                    commit=sha, line_no=line_no,
                )
            )

        checker: Optional[SuppressionChecker] = None
        if self.options.inline_allow and MARKER in lowered:
            checker = SuppressionChecker.from_fragment(fragment)

        for rule in self.rule_set:
            if rule.path is not None and not rule.path.search(path):
                continue
            if any(skips_fragment(a, fragment) for a in rule.allowlists):
                continue
            if ignore is not None and ignore.is_ignored(path, rule.id):
                continue

            if rule.is_path_rule:
                report.findings.append(self._path_finding(rule, fragment))
                continue
            if not segments or not keyword_prefilter(rule, lowered):
                continue

            try:
                candidates = find_candidates(rule, fragment, segments)
            except LineLookupError:
                raise
            except (IndexError, re.error, RecursionError) as exc:
                logger.error("Rule %s failed on %s (%s); continuing", rule.id, path, type(exc).__name__)
                report.diagnostics.append(
                    Diagnostic("rule-error", path, type(exc).__name__, commit=sha, rule_id=rule.id)
                )
                continue

            for cand in candidates:
                if not passes_entropy(rule, cand.secret):
                    continue
                if is_allowed(fragment, cand, self.rule_set.allowlists, rule.allowlists):
                    continue
                if checker is not None:
                    sup = checker.is_suppressed(path, cand.start_line, rule.id, sha)
                    if sup is not None:
                        report.suppressed.append(sup)
                        continue
                report.findings.append(self._finding(rule, fragment, cand))

    def _commit_fields(self, fragment: Fragment, start_line: int, end_line: int) -> dict:
        commit = fragment.commit
        if commit is None:
            return {}
        url = ""
        if self.options.repo_url:
            url = f"{self.options.repo_url}/blob/{commit.sha}/{fragment.file_path}"
            if start_line > 0:
                url += f"#L{start_line}"
                if end_line != start_line:
                    url += f"-L{end_line}"
        return {
            "commit": commit.sha,
            "author": commit.author,
            "email": commit.email,
            "date": commit.date,
            "message": commit.message,
            "url": url,
        }

    def _finding(self, rule: Rule, fragment: Fragment, cand: Candidate) -> Finding:
        return Finding(
            rule_id=rule.id,
            description=rule.description,
            file=fragment.file_path,
            symlink_file=fragment.symlink_path,
            match=cand.match,
            secret=cand.secret,
            line=cand.line,
            start_line=cand.start_line,
            end_line=cand.end_line,
            start_column=cand.start_column,
            end_column=cand.end_column,
            entropy=round(shannon_entropy(cand.secret), 4),
            tags=rule.tags,
            **self._commit_fields(fragment, cand.start_line, cand.end_line),
        )

    def _path_finding(self, rule: Rule, fragment: Fragment) -> Finding:
        return Finding(
            rule_id=rule.id,
            description=rule.description,
            file=fragment.file_path,
            symlink_file=fragment.symlink_path,
            match=f"file detected: {fragment.file_path}",
            secret="",
            start_line=0,
            end_line=0,
            start_column=0,
            end_column=0,
            tags=rule.tags,
            **self._commit_fields(fragment, 0, 0),
        )

    # ---- full scan ----

    def scan(
        self,
        fragments: Iterable[Fragment],
        cancel: Optional[threading.Event] = None,
    ) -> ScanResult:
        """Scan every fragment from *fragments* and return a sorted, deduplicated result.

        Setting *cancel* (or a KeyboardInterrupt while reading the source)
        stops dispatching; fragments already being scanned finish and the
        result is marked cancelled. A :class:`SourceError` from the source
        ends the scan as failed. Both keep the findings gathered so far.
        """
        start = time.perf_counter()
        cancel = cancel or threading.Event()
        work: queue.Queue = queue.Queue(maxsize=self.options.queue_size)
        collector = _Collector()
        outcome: Tuple[ScanStatus, Optional[str]] = (ScanStatus.FAILED, "scan aborted")

        with ThreadPoolExecutor(max_workers=self.options.workers, thread_name_prefix="leakguard") as pool:
            workers = [pool.submit(self._work, work, collector) for _ in range(self.options.workers)]
            try:
                outcome = self._produce(fragments, work, cancel)
            finally:
                # the caller's event is never set here; workers stop on _STOP
                if outcome[0] is not ScanStatus.COMPLETE:
                    dropped = _drain(work)
                    if dropped:
                        logger.debug("Dropped %d queued fragment(s)", dropped)
                for _ in workers:
                    work.put(_STOP)
            for w in workers:
                w.result()

        status, error = outcome
        result = self._finalize(collector, status, error)
        result.scan_duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            "Scan %s: %d fragment(s), %d finding(s), %d known, %d suppressed in %.0fms",
            status.value, result.fragments_scanned, result.total_findings,
            result.baseline_matches, len(result.suppressed), result.scan_duration_ms,
        )
        return result

    def _produce(
        self,
        fragments: Iterable[Fragment],
        work: queue.Queue,
        cancel: threading.Event,
    ) -> Tuple[ScanStatus, Optional[str]]:
        try:
            for fragment in fragments:
                if fragment is None:
                    logger.error("Fragment source produced an empty fragment; aborting")
                    return ScanStatus.FAILED, "fragment source produced an empty fragment"
                if not _put(work, fragment, cancel):
                    return ScanStatus.CANCELLED, "scan cancelled"
            if cancel.is_set():
                return ScanStatus.CANCELLED, "scan cancelled"
        except KeyboardInterrupt:
            logger.warning("Interrupted; finishing fragments in flight")
            return ScanStatus.CANCELLED, "scan interrupted"
        except (SourceError, OSError) as exc:
            logger.error("Fragment source failed: %s", exc)
            return ScanStatus.FAILED, str(exc)
        return ScanStatus.COMPLETE, None

    def _work(self, work: queue.Queue, collector: _Collector) -> None:
        while True:
            item = work.get()
            if item is _STOP:
                return
            try:
                report = self.detect(item)
            except Exception as exc:  # noqa: BLE001 - one bad fragment must not stop the pool
                logger.error("Internal error scanning %s (%s)", item.file_path, type(exc).__name__)
                report = FragmentReport(
                    diagnostics=[
                        Diagnostic("internal-error", item.file_path, type(exc).__name__, commit=item.commit_sha)
                    ]
                )
            collector.add(report)

    def _finalize(self, collector: _Collector, status: ScanStatus, error: Optional[str]) -> ScanResult:
        raw = collector.report
        findings = deduplicate(raw.findings)
        suppressed = list(raw.suppressed)

        ignore = self.options.ignore
        if ignore is not None and ignore.fingerprints:
            findings, ignored = split_by_fingerprint(findings, ignore.fingerprints)
            suppressed.extend(
                Suppression(
                    rule_id=f.rule_id, file=f.file, line_no=f.start_line,
                    reason="ignorefile", source=f.fingerprint, commit=f.commit,
                )
                for f in ignored
            )

        findings, known = split_baseline(findings, self.options.baseline)

        suppressed.sort(key=lambda s: (s.file, s.line_no, s.rule_id, s.commit))
        diagnostics = sorted(raw.diagnostics, key=lambda d: (d.file, d.line_no, d.kind, d.rule_id, d.commit))
        return ScanResult(
            findings=findings,
            known=known if self.options.keep_known else [],
            baseline_matches=len(known),
            suppressed=suppressed,
            diagnostics=diagnostics,
            fragments_scanned=collector.fragments,
            status=status,
            error=error,
        )


def _put(work: queue.Queue, item: Fragment, cancel: threading.Event) -> bool:
    """Block until *item* is queued; False if cancelled while waiting."""
    while not cancel.is_set():
        try:
            work.put(item, timeout=_POLL_SECONDS)
            return True
        except queue.Full:
            continue
    return False


def _drain(work: queue.Queue) -> int:
    dropped = 0
    while True:
        try:
            work.get_nowait()
        except queue.Empty:
            return dropped
        dropped += 1


def scan(
    fragments: Iterable[Fragment],
    rule_set: RuleSet,
    options: Optional[ScanOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> ScanResult:
    """Convenience wrapper: ``Detector(rule_set, options).scan(fragments)``."""
    return Detector(rule_set, options).scan(fragments, cancel=cancel)
