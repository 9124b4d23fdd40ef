"""Flutterwave test-mode key rules."""

from leakguard.rules.builder import RuleSpec
from leakguard.rules.builtin._samples import HEX, assignment, random_string

FLUTTERWAVE_PUBLIC_KEY = RuleSpec(
    id="flutterwave-public-key",
    description="Flutterwave public key.",
    regex=r"FLWPUBK_TEST-(?i:[a-h0-9]{32})-X",
    keywords=["flwpubk_test"],
    tags=["flutterwave", "key"],
    true_positives=[
        assignment("flutterwave", "FLWPUBK_TEST-" + random_string(HEX, 32, "flw-pub") + "-X")
    ],
    false_positives=["FLWPUBK_TEST-" + "z" * 32 + "-X"],
)

FLUTTERWAVE_SECRET_KEY = RuleSpec(
    id="flutterwave-secret-key",
    description="Flutterwave secret key, usable for payment operations.",
    regex=r"FLWSECK_TEST-(?i:[a-h0-9]{32})-X",
    keywords=["flwseck_test"],
    tags=["flutterwave", "key"],
    true_positives=[
        assignment("flutterwave", "FLWSECK_TEST-" + random_string(HEX, 32, "flw-sec") + "-X")
    ],
)

FLUTTERWAVE_ENCRYPTION_KEY = RuleSpec(
    id="flutterwave-encryption-key",
    description="Flutterwave encryption key.",
    regex=r"FLWSECK_TEST-(?i:[a-h0-9]{12})",
    keywords=["flwseck_test"],
    tags=["flutterwave", "key"],
    true_positives=[assignment("flutterwave", "FLWSECK_TEST-" + random_string(HEX, 12, "flw-enc"))],
)

ALL_FLUTTERWAVE_RULES = [
    FLUTTERWAVE_PUBLIC_KEY,
    FLUTTERWAVE_SECRET_KEY,
    FLUTTERWAVE_ENCRYPTION_KEY,
]
