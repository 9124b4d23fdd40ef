"""Finding models, dedup, baselines and redaction."""

from leakguard.findings.aggregator import canonical_sort, deduplicate, split_baseline, split_by_fingerprint
from leakguard.findings.baseline import load_baseline
from leakguard.findings.models import (
    Diagnostic,
    Finding,
    ScanResult,
    ScanStatus,
    make_fingerprint,
)
from leakguard.findings.redactor import redact, redact_finding

__all__ = [
    "Diagnostic",
    "Finding",
    "ScanResult",
    "ScanStatus",
    "canonical_sort",
    "deduplicate",
    "load_baseline",
    "make_fingerprint",
    "redact",
    "redact_finding",
    "split_baseline",
    "split_by_fingerprint",
]
