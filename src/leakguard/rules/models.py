"""Rule and allowlist data model — compiled once, then shared read-only."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from leakguard.config.loader import ConfigError


class RuleError(ConfigError):
    """Raised for an invalid rule definition; always names the rule."""

    def __init__(self, rule_id: str, reason: str) -> None:
        self.rule_id = rule_id
        self.reason = reason
        super().__init__(f"rule {rule_id!r}: {reason}")


class MatchCondition(str, Enum):
    ANY = "any"  # any populated check suppresses
    ALL = "all"  # every populated check must match


class RegexTarget(str, Enum):
    SECRET = "secret"
    MATCH = "match"
    LINE = "line"


@dataclass(frozen=True)
class Allowlist:
    """Suppression predicate, scoped globally or to a single rule."""

    description: str = ""
    commits: FrozenSet[str] = frozenset()
    paths: Tuple[re.Pattern[str], ...] = ()
    regexes: Tuple[re.Pattern[str], ...] = ()
    stopwords: Tuple[str, ...] = ()  # lower-cased
    condition: MatchCondition = MatchCondition.ANY
    regex_target: RegexTarget = RegexTarget.SECRET

    @property
    def is_empty(self) -> bool:
        return not (self.commits or self.paths or self.regexes or self.stopwords)

    @property
    def has_content_checks(self) -> bool:
        return bool(self.regexes or self.stopwords)


@dataclass(frozen=True)
class Rule:
    """A single detection rule.

    ``pattern`` may be ``None`` for path-only rules, which report the file
    itself. ``keywords`` are stored lower-cased for the prefilter.
    """

    id: str
    description: str = ""
    pattern: Optional[re.Pattern[str]] = None
    secret_group: int = 0
    keywords: Tuple[str, ...] = ()
    entropy: Optional[float] = None
    path: Optional[re.Pattern[str]] = None
    allowlists: Tuple[Allowlist, ...] = ()
    tags: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise RuleError("<unnamed>", "missing id")
        if self.pattern is None and self.path is None:
            raise RuleError(self.id, "a rule needs a regex, a path, or both")
        if self.pattern is not None and self.secret_group > self.pattern.groups:
            raise RuleError(
                self.id,
                f"secret group {self.secret_group} exceeds the {self.pattern.groups} "
                "group(s) in the regex",
            )
        if self.entropy is not None and self.entropy < 0:
            raise RuleError(self.id, "entropy threshold must not be negative")

    @property
    def is_path_rule(self) -> bool:
        """True if this rule detects by file path rather than content."""
        return self.pattern is None

    @property
    def effective_group(self) -> int | str:
        """Group that holds the secret: the designated index, else a named
        ``secret`` group, else the whole match."""
        if self.secret_group:
            return self.secret_group
        if self.pattern is not None and "secret" in self.pattern.groupindex:
            return "secret"
        return 0
