"""Baseline loading — fingerprints of findings that are already known."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import FrozenSet, Union

from leakguard.config.loader import ConfigError

logger = logging.getLogger(__name__)


def load_baseline(path: Union[str, Path]) -> FrozenSet[str]:
    """Read fingerprints from a previous JSON report or a plain-text list.

    A JSON baseline is the list written by ``--format json``; each entry's
    ``Fingerprint`` is taken. Any other file is read one fingerprint per
    line, skipping blanks and ``#`` comments.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read baseline {p}: {exc}") from exc

    stripped = text.lstrip()
    if stripped.startswith("["):
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Baseline {p} is not valid JSON: {exc}") from exc
        fingerprints = set()
        for entry in data:
            if not isinstance(entry, dict):
                raise ConfigError(f"Baseline {p}: entries must be finding objects")
            fp = entry.get("Fingerprint") or entry.get("fingerprint")
            if fp:
                fingerprints.add(fp)
            else:
                logger.warning("Baseline %s: entry without a fingerprint skipped", p)
        return frozenset(fingerprints)

    return frozenset(
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    )
