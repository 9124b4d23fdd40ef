"""Built-in rule specs — aggregate all categories."""

from leakguard.rules.builder import RuleSpec
from leakguard.rules.builtin.aws import ALL_AWS_RULES
from leakguard.rules.builtin.files import ALL_FILE_RULES
from leakguard.rules.builtin.flutterwave import ALL_FLUTTERWAVE_RULES
from leakguard.rules.builtin.generic import ALL_GENERIC_RULES
from leakguard.rules.builtin.github import ALL_GITHUB_RULES
from leakguard.rules.builtin.keys import ALL_KEY_RULES
from leakguard.rules.builtin.tokens import ALL_TOKEN_RULES

ALL_BUILTIN_SPECS: list[RuleSpec] = [
    *ALL_AWS_RULES,
    *ALL_GITHUB_RULES,
    *ALL_TOKEN_RULES,
    *ALL_FLUTTERWAVE_RULES,
    *ALL_KEY_RULES,
    *ALL_GENERIC_RULES,
    *ALL_FILE_RULES,
]

__all__ = ["ALL_BUILTIN_SPECS"]
