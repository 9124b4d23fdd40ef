"""Secret value redaction for safe output."""

from __future__ import annotations

import dataclasses

from leakguard.findings.models import Finding

REDACTED = "[REDACTED]"


def redact_partial(value: str) -> str:
    """Partial reveal for local terminal: first 4 + last 2 chars.

    Example: ``ghp_Abc123xyz9`` → ``ghp_...z9``
    """
    if len(value) <= 6:
        return REDACTED
    return f"{value[:4]}...{value[-2:]}"


def redact_full(_value: str) -> str:
    """Full redaction for CI logs — never reveal any part."""
    return REDACTED


def redact(value: str, mode: str = "partial") -> str:
    """Redact a matched secret value. *mode* is none, partial or full."""
    if mode == "none" or not value:
        return value
    if mode == "full":
        return redact_full(value)
    return redact_partial(value)


def redact_finding(finding: Finding, mode: str = "partial") -> Finding:
    """Return a copy of *finding* with the secret masked everywhere it appears.

    The fingerprint does not depend on the secret, so it is unchanged.
    """
    if mode == "none" or not finding.secret:
        return finding
    masked = redact(finding.secret, mode)
    return dataclasses.replace(
        finding,
        secret=masked,
        match=finding.match.replace(finding.secret, masked),
        line=finding.line.replace(finding.secret, masked),
    )
