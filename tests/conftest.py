"""Shared test fixtures — sample diffs, git log output, rules, temp git repos."""

from __future__ import annotations

import re
import subprocess
import textwrap
from pathlib import Path

import pytest

from leakguard.rules.models import Rule
from leakguard.rules.registry import RuleSet


@pytest.fixture
def token_rule() -> Rule:
    """A minimal content rule: TOKEN- followed by eight alphanumerics."""
    return Rule(
        id="test-token",
        description="Test token",
        pattern=re.compile(r"TOKEN-[A-Za-z0-9]{8}"),
        keywords=("token-",),
    )


@pytest.fixture
def token_rules(token_rule: Rule) -> RuleSet:
    return RuleSet([token_rule])


@pytest.fixture
def sample_diff_clean() -> str:
    """A diff with no secrets."""
    return textwrap.dedent("""\
        diff --git a/hello.py b/hello.py
        new file mode 100644
        index 0000000..e69de29
        --- /dev/null
        +++ b/hello.py
        @@ -0,0 +1,3 @@
        +def greet(name):
        +    return f"Hello, {name}!"
        +
    """)


@pytest.fixture
def sample_diff_with_aws_key() -> str:
    """A diff containing an AWS access key."""
    return textwrap.dedent("""\
        diff --git a/config.py b/config.py
        new file mode 100644
        index 0000000..abc1234
        --- /dev/null
        +++ b/config.py
        @@ -0,0 +1,4 @@
        +import os
        +
        +AWS_KEY = "AKIAIOSFODNN7REAL123"
        +DB_HOST = "localhost"
    """)


@pytest.fixture
def sample_diff_hunks() -> str:
    """Two hunks in one file; new-side line numbers jump from 3 to 40."""
    return textwrap.dedent("""\
        diff --git a/app/settings.py b/app/settings.py
        index 1234567..abcdef0 100644
        --- a/app/settings.py
        +++ b/app/settings.py
        @@ -2,0 +3,2 @@
        +DEBUG = False
        +KEY = "TOKEN-ab12CD34"
        @@ -38 +40 @@
        -OLD = 1
        +NEW = "TOKEN-zz98YX76"
    """)


@pytest.fixture
def sample_diff_binary() -> str:
    """A diff with a binary file."""
    return textwrap.dedent("""\
        diff --git a/image.png b/image.png
        new file mode 100644
        index 0000000..abc1234
        Binary files /dev/null and b/image.png differ
    """)


@pytest.fixture
def sample_diff_rename() -> str:
    """A diff with a renamed file."""
    return textwrap.dedent("""\
        diff --git a/old_name.py b/new_name.py
        similarity index 97%
        rename from old_name.py
        rename to new_name.py
        index abc1234..def5678 100644
        --- a/old_name.py
        +++ b/new_name.py
        @@ -1,0 +2,1 @@
        +# New line added after rename
    """)


@pytest.fixture
def sample_diff_mode_only() -> str:
    """A diff with only file mode change."""
    return textwrap.dedent("""\
        diff --git a/script.sh b/script.sh
        old mode 100644
        new mode 100755
    """)


@pytest.fixture
def sample_diff_submodule() -> str:
    """A diff with submodule pointer change."""
    return textwrap.dedent("""\
        diff --git a/vendor/lib b/vendor/lib
        index abc1234..def5678 160000
        --- a/vendor/lib
        +++ b/vendor/lib
        @@ -1 +1 @@
        -Subproject commit abc1234567890abcdef1234567890abcdef123456
        +Subproject commit def4567890abcdef1234567890abcdef123456ab
    """)


@pytest.fixture
def sample_diff_no_newline() -> str:
    """A diff with 'No newline at end of file' marker."""
    return textwrap.dedent("""\
        diff --git a/data.txt b/data.txt
        new file mode 100644
        index 0000000..abc1234
        --- /dev/null
        +++ b/data.txt
        @@ -0,0 +1 @@
        +final line without newline
        \\ No newline at end of file
    """)


@pytest.fixture
def sample_diff_deleted() -> str:
    """A diff deleting a file."""
    return textwrap.dedent("""\
        diff --git a/gone.py b/gone.py
        deleted file mode 100644
        index abc1234..0000000
        --- a/gone.py
        +++ /dev/null
        @@ -1,2 +0,0 @@
        -KEY = "TOKEN-ab12CD34"
        -x = 1
    """)


@pytest.fixture
def sample_git_log() -> str:
    """``git log -p -U0 --date=iso-strict`` output for two commits."""
    return textwrap.dedent("""\
        commit 1111111111111111111111111111111111111111
        Author: Ada Lovelace <ada@example.com>
        Date:   2024-03-01T10:00:00+00:00

            add settings

            with a longer body

        diff --git a/settings.py b/settings.py
        new file mode 100644
        index 0000000..abc1234
        --- /dev/null
        +++ b/settings.py
        @@ -0,0 +1,2 @@
        +NAME = "demo"
        +KEY = "TOKEN-ab12CD34"

        commit 2222222222222222222222222222222222222222
        Merge: 1111111 3333333
        Author: Grace Hopper <grace@example.com>
        Date:   2024-03-02T11:30:00+00:00

            tidy up

        diff --git a/settings.py b/settings.py
        index abc1234..def5678 100644
        --- a/settings.py
        +++ b/settings.py
        @@ -2 +2 @@
        -KEY = "TOKEN-ab12CD34"
        +KEY = os.environ["KEY"]
        diff --git a/notes.md b/notes.md
        new file mode 100644
        index 0000000..1234567
        --- /dev/null
        +++ b/notes.md
        @@ -0,0 +1 @@
        +remember TOKEN-qq11WW22
    """)


def _git(cwd: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=cwd, capture_output=True, check=True)


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository with one clean commit."""
    subprocess.run(["git", "init", str(tmp_path)], capture_output=True, check=True)
    _git(tmp_path, "config", "user.email", "test@test.com")
    _git(tmp_path, "config", "user.name", "Test")
    _git(tmp_path, "config", "commit.gpgsign", "false")
    (tmp_path / "README.md").write_text("# Test\n")
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-m", "init")
    return tmp_path


@pytest.fixture
def commit_file(tmp_git_repo: Path):
    """Return a helper that writes, stages and commits a file."""

    def _commit(name: str, content: str, message: str = "change") -> Path:
        path = tmp_git_repo / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        _git(tmp_git_repo, "add", name)
        _git(tmp_git_repo, "commit", "-m", message)
        return path

    return _commit
