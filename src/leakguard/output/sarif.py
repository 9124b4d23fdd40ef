"""SARIF v2.1.0 reporter — GitHub Advanced Security / Code Scanning.

Secret values are ALWAYS redacted in SARIF output, whatever the
configured redaction mode.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from leakguard import __version__
from leakguard.findings.models import ScanResult
from leakguard.findings.redactor import REDACTED

SCHEMA_URI = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/sarif-2.1/schema/sarif-schema-2.1.0.json"


def to_dict(result: ScanResult) -> Dict[str, Any]:
    """Convert ScanResult to a SARIF v2.1.0 dict."""
    rules: List[Dict[str, Any]] = []
    seen_rules: set[str] = set()
    results: List[Dict[str, Any]] = []

    for f in result.findings:
        if f.rule_id not in seen_rules:
            seen_rules.add(f.rule_id)
            rules.append({
                "id": f.rule_id,
                "name": f.rule_id,
                "shortDescription": {"text": f.description or f.rule_id},
                "defaultConfiguration": {"level": "error"},
                "properties": {"tags": list(f.tags)},
            })

        region: Dict[str, Any] = {
            "startLine": max(f.start_line, 1),
            "endLine": max(f.end_line, 1),
            "snippet": {"text": REDACTED},
        }
        if f.start_column:
            region["startColumn"] = f.start_column
            region["endColumn"] = f.end_column + 1  # SARIF end column is exclusive

        entry: Dict[str, Any] = {
            "ruleId": f.rule_id,
            "level": "error",
            "message": {"text": f"{f.rule_id} detected {REDACTED}"},
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {"uri": f.file},
                        "region": region,
                    }
                }
            ],
            "partialFingerprints": {"leakguard/v1": f.fingerprint},
        }
        if f.commit:
            entry["properties"] = {
                "commitSha": f.commit,
                "author": f.author,
                "email": f.email,
                "date": f.date,
            }
        results.append(entry)

    return {
        "$schema": SCHEMA_URI,
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "leakguard",
                        "version": __version__,
                        "rules": rules,
                    }
                },
                "results": results,
            }
        ],
    }


def render(result: ScanResult) -> str:
    """Return SARIF JSON string."""
    return json.dumps(to_dict(result), indent=2)
