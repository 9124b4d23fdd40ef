"""Shannon entropy of candidate secrets."""

from __future__ import annotations

import math
from collections import Counter
from typing import Union

from leakguard.rules.models import Rule


def shannon_entropy(value: Union[str, bytes]) -> float:
    """Compute Shannon entropy (bits per byte) of *value*.

    H = -Σ p(b) · log₂(p(b))  over the UTF-8 byte distribution.
    Strings of length 0 or 1 carry no information and return 0.0.
    """
    data = value.encode("utf-8") if isinstance(value, str) else value
    if len(data) <= 1:
        return 0.0
    counts = Counter(data)
    total = len(data)
    return -sum((c / total) * math.log2(c / total) for c in counts.values())


def passes_entropy(rule: Rule, secret: str) -> bool:
    """True if *rule* has no entropy threshold or *secret* meets it."""
    if rule.entropy is None:
        return True
    return shannon_entropy(secret) >= rule.entropy
