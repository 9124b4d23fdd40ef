"""Rule engine — models, builder, registry, built-in rules."""

from leakguard.rules.builder import RuleSpec, build, validate
from leakguard.rules.models import Allowlist, MatchCondition, RegexTarget, Rule, RuleError
from leakguard.rules.registry import RuleSet, build_rule_set

__all__ = [
    "Allowlist",
    "MatchCondition",
    "RegexTarget",
    "Rule",
    "RuleError",
    "RuleSet",
    "RuleSpec",
    "build",
    "build_rule_set",
    "validate",
]
