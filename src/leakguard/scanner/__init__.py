"""Scanner — engine, matcher, entropy, allowlists, suppression."""

from leakguard.scanner.engine import Detector, FragmentReport, ScanError, ScanOptions, scan
from leakguard.scanner.entropy import passes_entropy, shannon_entropy
from leakguard.scanner.suppression import IgnoreFile, Suppression, SuppressionChecker

__all__ = [
    "Detector",
    "FragmentReport",
    "IgnoreFile",
    "ScanError",
    "ScanOptions",
    "Suppression",
    "SuppressionChecker",
    "passes_entropy",
    "scan",
    "shannon_entropy",
]
