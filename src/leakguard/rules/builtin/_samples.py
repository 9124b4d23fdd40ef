"""Deterministic sample secrets for built-in rule validation."""

from __future__ import annotations

import random
import string

ALNUM = string.ascii_letters + string.digits
UPPER_ALNUM = string.ascii_uppercase + string.digits
HEX = string.digits + "abcdef"
WORD = ALNUM + "_"


def random_string(alphabet: str, length: int, seed: str) -> str:
    """Return a reproducible pseudo-random string (same seed, same output)."""
    rng = random.Random(seed)
    return "".join(rng.choice(alphabet) for _ in range(length))


def assignment(identifier: str, secret: str) -> str:
    """A typical config line carrying *secret*."""
    return f'{identifier}_token = "{secret}"'
