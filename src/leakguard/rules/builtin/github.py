"""GitHub token rules."""

from leakguard.rules.builder import RuleSpec
from leakguard.rules.builtin._samples import ALNUM, WORD, assignment, random_string

GITHUB_PAT = RuleSpec(
    id="github-pat",
    description="GitHub Personal Access Token, granting repository access.",
    regex=r"ghp_[0-9a-zA-Z]{36}",
    entropy=3,
    keywords=["ghp_"],
    tags=["github", "token"],
    true_positives=[assignment("github", "ghp_" + random_string(ALNUM, 36, "github-pat"))],
    false_positives=["ghp_" + "x" * 36],
)

GITHUB_FINE_GRAINED_PAT = RuleSpec(
    id="github-fine-grained-pat",
    description="GitHub Fine-Grained Personal Access Token.",
    regex=r"github_pat_\w{82}",
    entropy=3,
    keywords=["github_pat_"],
    tags=["github", "token"],
    true_positives=[
        assignment("github", "github_pat_" + random_string(WORD, 82, "github-fine-grained-pat"))
    ],
    false_positives=["github_pat_" + "x" * 22 + "_" + "x" * 59],
)

GITHUB_OAUTH = RuleSpec(
    id="github-oauth",
    description="GitHub OAuth Access Token.",
    regex=r"gho_[0-9a-zA-Z]{36}",
    entropy=3,
    keywords=["gho_"],
    tags=["github", "token"],
    true_positives=[assignment("github", "gho_" + random_string(ALNUM, 36, "github-oauth"))],
    false_positives=["gho_" + "x" * 36],
)

GITHUB_APP_TOKEN = RuleSpec(
    id="github-app-token",
    description="GitHub App user-to-server or server-to-server token.",
    regex=r"(?:ghu|ghs)_[0-9a-zA-Z]{36}",
    entropy=3,
    keywords=["ghu_", "ghs_"],
    tags=["github", "token"],
    true_positives=[
        assignment("github", "ghu_" + random_string(ALNUM, 36, "github-app-token-u")),
        assignment("github", "ghs_" + random_string(ALNUM, 36, "github-app-token-s")),
    ],
    false_positives=["ghu_" + "x" * 36, "ghs_" + "x" * 36],
)

GITHUB_REFRESH_TOKEN = RuleSpec(
    id="github-refresh-token",
    description="GitHub Refresh Token.",
    regex=r"ghr_[0-9a-zA-Z]{36}",
    entropy=3,
    keywords=["ghr_"],
    tags=["github", "token"],
    true_positives=[assignment("github", "ghr_" + random_string(ALNUM, 36, "github-refresh-token"))],
    false_positives=["ghr_" + "x" * 36],
)

ALL_GITHUB_RULES = [
    GITHUB_PAT,
    GITHUB_FINE_GRAINED_PAT,
    GITHUB_OAUTH,
    GITHUB_APP_TOKEN,
    GITHUB_REFRESH_TOKEN,
]
