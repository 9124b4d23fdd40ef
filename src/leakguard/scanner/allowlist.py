"""Allowlist evaluation — global tier first, then the rule's own."""

from __future__ import annotations

from typing import List, Sequence

from leakguard.rules.models import Allowlist, MatchCondition, RegexTarget
from leakguard.scanner.matcher import Candidate
from leakguard.sources.models import Fragment


def _regex_text(allowlist: Allowlist, candidate: Candidate) -> str:
    if allowlist.regex_target is RegexTarget.LINE:
        return candidate.line
    if allowlist.regex_target is RegexTarget.MATCH:
        return candidate.match
    return candidate.secret


def _checks(allowlist: Allowlist, fragment: Fragment, candidate: Candidate | None) -> List[bool]:
    """Evaluate each populated check, in order: commits, paths, regexes, stopwords.

    With no candidate only the fragment-level checks are evaluated.
    """
    results: List[bool] = []
    if allowlist.commits:
        results.append(fragment.commit_sha in allowlist.commits)
    if allowlist.paths:
        results.append(any(p.search(fragment.file_path) for p in allowlist.paths))
    if candidate is not None:
        if allowlist.regexes:
            text = _regex_text(allowlist, candidate)
            results.append(any(r.search(text) for r in allowlist.regexes))
        if allowlist.stopwords:
            secret = candidate.secret.lower()
            results.append(any(w in secret for w in allowlist.stopwords))
    return results


def allowlist_matches(allowlist: Allowlist, fragment: Fragment, candidate: Candidate) -> bool:
    """True if *allowlist* suppresses *candidate* found in *fragment*."""
    if allowlist.is_empty:
        return False
    if allowlist.condition is MatchCondition.ALL:
        return all(_checks(allowlist, fragment, candidate))
    # ANY: short-circuit in check order
    if allowlist.commits and fragment.commit_sha in allowlist.commits:
        return True
    if allowlist.paths and any(p.search(fragment.file_path) for p in allowlist.paths):
        return True
    if allowlist.regexes:
        text = _regex_text(allowlist, candidate)
        if any(r.search(text) for r in allowlist.regexes):
            return True
    if allowlist.stopwords:
        secret = candidate.secret.lower()
        if any(w in secret for w in allowlist.stopwords):
            return True
    return False


def skips_fragment(allowlist: Allowlist, fragment: Fragment) -> bool:
    """True if *allowlist* suppresses everything in *fragment*, whatever matches.

    That holds when a commit or path check fires under ``any``, or when
    every populated check is a commit/path check and all fire under ``all``.
    """
    if allowlist.is_empty:
        return False
    if allowlist.condition is MatchCondition.ALL:
        if allowlist.has_content_checks:
            return False
        return all(_checks(allowlist, fragment, None))
    return any(_checks(allowlist, fragment, None))


def is_allowed(
    fragment: Fragment,
    candidate: Candidate,
    global_allowlists: Sequence[Allowlist],
    rule_allowlists: Sequence[Allowlist] = (),
) -> bool:
    """True if any global allowlist, then any rule allowlist, suppresses *candidate*."""
    for allowlist in global_allowlists:
        if allowlist_matches(allowlist, fragment, candidate):
            return True
    for allowlist in rule_allowlists:
        if allowlist_matches(allowlist, fragment, candidate):
            return True
    return False
