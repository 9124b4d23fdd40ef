"""JSON reporter — a list of findings, readable back as a baseline."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

from leakguard.findings.models import Finding, ScanResult
from leakguard.findings.redactor import redact_finding


def finding_to_dict(f: Finding) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "RuleID": f.rule_id,
        "Description": f.description,
        "StartLine": f.start_line,
        "EndLine": f.end_line,
        "StartColumn": f.start_column,
        "EndColumn": f.end_column,
        "Line": f.line,
        "Match": f.match,
        "Secret": f.secret,
        "File": f.file,
        "SymlinkFile": f.symlink_file,
        "Commit": f.commit,
        "Entropy": f.entropy,
        "Author": f.author,
        "Email": f.email,
        "Date": f.date,
        "Message": f.message,
        "Tags": list(f.tags),
        "Fingerprint": f.fingerprint,
    }
    if f.url:
        out["URL"] = f.url
    return out


def to_list(findings: Iterable[Finding], *, redact_mode: str = "none") -> List[Dict[str, Any]]:
    return [finding_to_dict(redact_finding(f, redact_mode)) for f in findings]


def render(result: ScanResult, *, redact_mode: str = "none") -> str:
    """Return the report text; no findings renders as ``[]``."""
    items = to_list(result.findings, redact_mode=redact_mode)
    if not items:
        return "[]"
    return json.dumps(items, indent=2)
