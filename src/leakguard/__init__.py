"""leakguard — find hard-coded secrets in git history, diffs and directories."""

__version__ = "0.4.0"
