"""Rule builder and validator.

``build`` turns a declarative :class:`RuleSpec` (built-in module constant,
``[[rules]]`` table or YAML entry) into a compiled :class:`Rule`.
``validate`` checks a built rule against sample true and false positives.
Both are pure; neither is used while scanning.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from leakguard.rules.models import Allowlist, MatchCondition, RegexTarget, Rule, RuleError

_ALLOWLIST_KEYS = {
    "description", "condition", "commits", "paths", "regexes", "regex_target", "stopwords",
}


@dataclass
class RuleSpec:
    """Uncompiled rule definition plus its validation samples."""

    id: str
    description: str = ""
    regex: Optional[str] = None
    secret_group: int = 0
    keywords: List[str] = field(default_factory=list)
    entropy: Optional[float] = None
    path: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    allowlists: List[Mapping[str, Any]] = field(default_factory=list)
    true_positives: List[str] = field(default_factory=list)
    false_positives: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RuleSpec":
        """Create a spec from a TOML/YAML table, ignoring unknown keys."""
        rule_id = data.get("id")
        if not rule_id or not isinstance(rule_id, str):
            raise RuleError(str(rule_id or "<unnamed>"), "missing or non-string id")
        valid = {f.name for f in dataclasses.fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in valid}
        # single allowlist table is accepted as well as a list of them
        if "allowlist" in data and "allowlists" not in data:
            kwargs["allowlists"] = [data["allowlist"]]
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise RuleError(rule_id, str(exc)) from exc


def _compile(rule_id: str, pattern: str, what: str) -> re.Pattern[str]:
    if not isinstance(pattern, str):
        raise RuleError(rule_id, f"{what} must be a string, got {type(pattern).__name__}")
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise RuleError(rule_id, f"invalid {what} {pattern!r}: {exc}") from exc


def _string_list(rule_id: str, value: Any, what: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str) or not all(isinstance(v, str) for v in value):
        raise RuleError(rule_id, f"{what} must be a list of strings")
    return list(value)


def build_allowlist(data: Mapping[str, Any], owner: str = "<global>") -> Allowlist:
    """Compile an allowlist table. *owner* names the rule for error messages."""
    unknown = set(data) - _ALLOWLIST_KEYS
    if unknown:
        raise RuleError(owner, f"unknown allowlist key(s): {', '.join(sorted(unknown))}")
    try:
        condition = MatchCondition(str(data.get("condition", "any")).lower())
    except ValueError as exc:
        raise RuleError(owner, f"allowlist condition must be 'any' or 'all', not {data['condition']!r}") from exc
    try:
        target = RegexTarget(str(data.get("regex_target", "secret")).lower())
    except ValueError as exc:
        raise RuleError(
            owner, f"allowlist regex_target must be secret, match or line, not {data['regex_target']!r}"
        ) from exc

    return Allowlist(
        description=str(data.get("description", "")),
        commits=frozenset(_string_list(owner, data.get("commits"), "allowlist commits")),
        paths=tuple(
            _compile(owner, p, "allowlist path")
            for p in _string_list(owner, data.get("paths"), "allowlist paths")
        ),
        regexes=tuple(
            _compile(owner, p, "allowlist regex")
            for p in _string_list(owner, data.get("regexes"), "allowlist regexes")
        ),
        stopwords=tuple(
            w.lower() for w in _string_list(owner, data.get("stopwords"), "allowlist stopwords")
        ),
        condition=condition,
        regex_target=target,
    )


def build(spec: RuleSpec) -> Rule:
    """Compile *spec* into an immutable :class:`Rule`."""
    pattern = _compile(spec.id, spec.regex, "regex") if spec.regex is not None else None
    path = _compile(spec.id, spec.path, "path") if spec.path is not None else None
    if spec.entropy is not None and not isinstance(spec.entropy, (int, float)):
        raise RuleError(spec.id, "entropy must be a number")
    if not isinstance(spec.secret_group, int) or spec.secret_group < 0:
        raise RuleError(spec.id, "secret_group must be a non-negative integer")
    return Rule(
        id=spec.id,
        description=spec.description,
        pattern=pattern,
        secret_group=spec.secret_group,
        keywords=tuple(k.lower() for k in _string_list(spec.id, spec.keywords, "keywords")),
        entropy=float(spec.entropy) if spec.entropy is not None else None,
        path=path,
        allowlists=tuple(build_allowlist(a, spec.id) for a in spec.allowlists),
        tags=tuple(_string_list(spec.id, spec.tags, "tags")),
    )


def validate(
    rule: Rule,
    true_positives: Sequence[str] = (),
    false_positives: Sequence[str] = (),
) -> List[str]:
    """Return a list of mismatches; an empty list means the rule behaves.

    For content rules the samples are text, matched regardless of the
    rule's path filter. For path-only rules the samples are file paths.
    """
    from leakguard.rules.registry import RuleSet
    from leakguard.scanner.engine import Detector, ScanOptions
    from leakguard.sources.models import Fragment

    if rule.is_path_rule:
        probe = rule

        def fragment(sample: str) -> Fragment:
            return Fragment.from_text(sample, "")
    else:
        probe = dataclasses.replace(rule, path=None)

        def fragment(sample: str) -> Fragment:
            return Fragment.from_text("sample.txt", sample)

    detector = Detector(RuleSet([probe]), ScanOptions(workers=1, inline_allow=False))
    mismatches: List[str] = []
    for sample in true_positives:
        if not detector.detect(fragment(sample)).findings:
            mismatches.append(f"{rule.id}: no finding for true positive {sample!r}")
    for sample in false_positives:
        found = detector.detect(fragment(sample)).findings
        if found:
            mismatches.append(
                f"{rule.id}: unexpected finding {found[0].secret!r} for false positive {sample!r}"
            )
    return mismatches


def build_validated(spec: RuleSpec) -> Rule:
    """Build *spec* and fail with :class:`RuleError` if its samples disagree."""
    rule = build(spec)
    mismatches = validate(rule, spec.true_positives, spec.false_positives)
    if mismatches:
        raise RuleError(spec.id, "; ".join(mismatches))
    return rule
