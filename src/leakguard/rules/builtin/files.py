"""Path-only rules — files whose presence alone is a leak."""

from leakguard.rules.builder import RuleSpec

PKCS12_FILE = RuleSpec(
    id="pkcs12-file",
    description="PKCS#12 certificate bundle, usually holding a private key.",
    path=r"(?i)\.(?:p12|pfx)$",
    tags=["file", "key"],
    true_positives=["deploy/signing.p12", "certs/Server.PFX"],
    false_positives=["docs/p12-howto.md"],
)

KEYSTORE_FILE = RuleSpec(
    id="keystore-file",
    description="Java or Android keystore.",
    path=r"(?i)\.(?:jks|keystore)$",
    tags=["file", "key"],
    true_positives=["android/app/release.keystore", "server.jks"],
    false_positives=["keystore.md"],
)

SSH_PRIVATE_KEY_FILE = RuleSpec(
    id="ssh-private-key-file",
    description="SSH private key file (id_rsa, id_ed25519, ...).",
    path=r"(?:^|/)id_(?:rsa|dsa|ecdsa|ed25519)$",
    tags=["file", "key"],
    true_positives=["id_rsa", "home/.ssh/id_ed25519"],
    false_positives=["home/.ssh/id_rsa.pub"],
)

ENV_FILE = RuleSpec(
    id="env-file",
    description="Environment file committed to the repository.",
    path=r"(?:^|/)\.env(?:\.[\w-]+)?$",
    tags=["file", "config"],
    allowlists=[{"paths": [r"\.env\.(?:example|sample|template)$"]}],
    true_positives=[".env", "services/api/.env.production"],
    false_positives=[".env.example", "config/.env.sample", "docs/env.md"],
)

ALL_FILE_RULES = [PKCS12_FILE, KEYSTORE_FILE, SSH_PRIVATE_KEY_FILE, ENV_FILE]
