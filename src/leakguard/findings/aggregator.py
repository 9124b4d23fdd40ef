"""Finding deduplication, baseline filtering and canonical ordering."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Tuple

from leakguard.findings.models import Finding


def sort_key(f: Finding) -> Tuple:
    """Canonical order: file, start line, rule id, then tie-breakers."""
    return (f.file, f.start_line, f.rule_id, f.start_column, f.commit, f.end_line, f.end_column, f.secret)


def canonical_sort(findings: Iterable[Finding]) -> List[Finding]:
    return sorted(findings, key=sort_key)


def deduplicate(findings: Iterable[Finding]) -> List[Finding]:
    """Collapse findings sharing a fingerprint, keeping the canonically first.

    The result is canonically sorted, so running it again is a no-op.
    """
    seen: set[str] = set()
    unique: List[Finding] = []
    for f in canonical_sort(findings):
        if f.fingerprint in seen:
            continue
        seen.add(f.fingerprint)
        unique.append(f)
    return unique


def split_by_fingerprint(
    findings: Iterable[Finding], fingerprints: AbstractSet[str]
) -> Tuple[List[Finding], List[Finding]]:
    """Return ``(not_listed, listed)`` for a set of fingerprints.

    Used both for baselines (listed = previously known) and for the
    ignore file (listed = dropped).
    """
    fresh: List[Finding] = []
    listed: List[Finding] = []
    for f in findings:
        (listed if f.fingerprint in fingerprints else fresh).append(f)
    return fresh, listed


def split_baseline(findings: Iterable[Finding], baseline: AbstractSet[str]) -> Tuple[List[Finding], List[Finding]]:
    """Return ``(new, known)`` against a baseline fingerprint set."""
    return split_by_fingerprint(findings, baseline)
