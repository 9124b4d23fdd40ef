"""Fragment sources — git history, git diffs and plain directories."""

from leakguard.sources.files import iter_directory
from leakguard.sources.git import GitSource, SourceOutcome, classify_stderr, get_repo_root
from leakguard.sources.models import CommitInfo, FileSkipped, Fragment, LineIndex, SourceError

__all__ = [
    "CommitInfo",
    "FileSkipped",
    "Fragment",
    "GitSource",
    "LineIndex",
    "SourceError",
    "SourceOutcome",
    "classify_stderr",
    "get_repo_root",
    "iter_directory",
]
