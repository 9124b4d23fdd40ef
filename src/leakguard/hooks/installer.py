"""Pre-commit hook management for ``leakguard install`` / ``uninstall``."""

from __future__ import annotations

import logging
import stat
from pathlib import Path
from typing import Tuple

from leakguard.sources.git import SourceError, run_git

logger = logging.getLogger(__name__)

HOOK_MARKER = "# leakguard-hook"
HOOK_SCRIPT = f"""\
#!/bin/sh
{HOOK_MARKER}
# Scans staged changes before each commit. Remove with: leakguard uninstall

exec leakguard git --staged --redact full
"""


def hooks_dir(repo_root: Path) -> Path:
    """Hooks directory git will actually run, honouring ``core.hooksPath``."""
    try:
        out = run_git(["rev-parse", "--git-path", "hooks"], cwd=repo_root).strip()
    except SourceError as exc:
        logger.debug("Falling back to .git/hooks: %s", exc)
        return repo_root / ".git" / "hooks"
    path = Path(out)
    return path if path.is_absolute() else repo_root / path


def install_hook(repo_root: Path, *, force: bool = False) -> Tuple[bool, str]:
    """Write the pre-commit hook. Returns ``(success, message)``."""
    if not (repo_root / ".git").exists():
        return False, f"Not a git repository: {repo_root}"

    target = hooks_dir(repo_root)
    target.mkdir(parents=True, exist_ok=True)
    hook_path = target / "pre-commit"

    if hook_path.exists():
        existing = hook_path.read_text(encoding="utf-8", errors="replace")
        if HOOK_MARKER in existing:
            return True, "leakguard hook is already installed."
        if not force:
            return (
                False,
                f"A pre-commit hook already exists at {hook_path}. "
                "Use --force to replace it, or call 'leakguard git --staged' from it.",
            )
        logger.warning("Replacing existing pre-commit hook at %s", hook_path)

    hook_path.write_text(HOOK_SCRIPT, encoding="utf-8")
    mode = hook_path.stat().st_mode
    hook_path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return True, f"Installed leakguard pre-commit hook at {hook_path}"


def uninstall_hook(repo_root: Path) -> Tuple[bool, str]:
    """Remove the hook if leakguard wrote it. Returns ``(success, message)``."""
    hook_path = hooks_dir(repo_root) / "pre-commit"
    if not hook_path.exists():
        return True, "No pre-commit hook found; nothing to remove."

    content = hook_path.read_text(encoding="utf-8", errors="replace")
    if HOOK_MARKER not in content:
        return False, "Pre-commit hook exists but was not installed by leakguard."

    hook_path.unlink()
    return True, f"Removed leakguard pre-commit hook from {hook_path}"
