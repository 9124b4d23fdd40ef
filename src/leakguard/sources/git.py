"""Git fragment source — streams ``git log -p`` / ``git diff`` into fragments."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional, Tuple

from leakguard.sources.diff_parser import DiffParser
from leakguard.sources.models import FileSkipped, Fragment, SourceError

logger = logging.getLogger(__name__)

__all__ = [
    "GitSource",
    "OutcomeKind",
    "SourceError",
    "SourceOutcome",
    "classify_stderr",
    "get_repo_root",
    "get_repo_url",
    "normalize_remote_url",
]

_DIFF_FLAGS = ["-U0", "--no-color", "--no-ext-diff"]
_DEFAULT_LOG_OPTS = ["--full-history", "--all"]

# stderr lines git prints for large histories; scanning still completes
_BENIGN_STDERR = (
    "exhaustive rename detection was skipped",
    "inexact rename detection was skipped",
    "you may want to set your diff.renamelimit",
    "only found copies from modified paths",
)


class OutcomeKind(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass(frozen=True)
class SourceOutcome:
    """How a git invocation ended, judged from its stderr and exit status."""

    kind: OutcomeKind = OutcomeKind.OK
    messages: Tuple[str, ...] = ()

    @property
    def fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL


def classify_line(line: str) -> OutcomeKind:
    """Classify a single stderr line."""
    text = line.strip()
    if not text:
        return OutcomeKind.OK
    lowered = text.lower()
    if any(b in lowered for b in _BENIGN_STDERR) or lowered.startswith(("warning:", "hint:")):
        return OutcomeKind.WARNING
    if lowered.startswith(("fatal:", "error:")):
        return OutcomeKind.FATAL
    return OutcomeKind.WARNING


def classify_stderr(lines: Iterable[str], returncode: int = 0) -> SourceOutcome:
    """Fold stderr lines and the exit status into one outcome."""
    kind = OutcomeKind.OK
    messages: List[str] = []
    for line in lines:
        k = classify_line(line)
        if k is OutcomeKind.OK:
            continue
        messages.append(line.strip())
        if k is OutcomeKind.FATAL:
            kind = OutcomeKind.FATAL
        elif kind is OutcomeKind.OK:
            kind = OutcomeKind.WARNING
    if returncode:
        kind = OutcomeKind.FATAL
        if not messages:
            messages.append(f"git exited with status {returncode}")
    return SourceOutcome(kind=kind, messages=tuple(messages))


@dataclass
class GitSource:
    """Iterable of fragments produced by one git invocation.

    The child process is read lazily; stderr is drained on a listener thread
    so a chatty git never blocks on a full pipe. A fatal outcome is raised as
    :class:`SourceError` once stdout is exhausted.
    """

    repo_path: Path
    args: List[str]
    skipped: List[FileSkipped] = field(default_factory=list)
    outcome: Optional[SourceOutcome] = None
    _stderr: List[str] = field(default_factory=list, repr=False)

    @classmethod
    def log(cls, repo_path: Path, log_opts: str = "") -> "GitSource":
        """Full history: ``git log -p -U0 --full-history --all`` or *log_opts*."""
        extra = shlex.split(log_opts) if log_opts else list(_DEFAULT_LOG_OPTS)
        return cls(Path(repo_path), ["log", "-p", "--date=iso-strict", *_DIFF_FLAGS, *extra])

    @classmethod
    def diff(cls, repo_path: Path, staged: bool = False) -> "GitSource":
        """Uncommitted changes; ``--staged`` for the index only."""
        args = ["diff", *_DIFF_FLAGS]
        if staged:
            args.append("--staged")
        args.append(".")
        return cls(Path(repo_path), args)

    @property
    def command(self) -> List[str]:
        return ["git", "-C", str(self.repo_path), *self.args]

    def __iter__(self) -> Iterator[Fragment]:
        return self.fragments()

    def fragments(self) -> Iterator[Fragment]:
        logger.debug("Running %s", shlex.join(self.command))
        try:
            proc = subprocess.Popen(
                self.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            raise SourceError("git is not installed or not on PATH") from exc

        listener = threading.Thread(
            target=self._listen, args=(proc.stderr,), name="leakguard-git-stderr", daemon=True
        )
        listener.start()

        completed = False
        try:
            for item in DiffParser(proc.stdout).parse():
                if isinstance(item, FileSkipped):
                    if item.reason == "unparsed_header":
                        logger.warning("Cannot parse diff header, file not scanned: %s", item.path)
                    else:
                        logger.debug("Skipped %s (%s)", item.path, item.reason)
                    self.skipped.append(item)
                    continue
                yield item
            completed = True
        finally:
            if not completed and proc.poll() is None:
                proc.terminate()
            proc.stdout.close()
            returncode = proc.wait()
            listener.join(timeout=5)

        self.outcome = classify_stderr(self._stderr, returncode)
        if self.outcome.fatal:
            for msg in self.outcome.messages:
                logger.error("git: %s", msg)
            raise SourceError("; ".join(self.outcome.messages))
        for msg in self.outcome.messages:
            logger.warning("git: %s", msg)

    def _listen(self, stream: IO[str]) -> None:
        for line in stream:
            self._stderr.append(line.rstrip("\n"))
        stream.close()


def run_git(args: List[str], cwd: Path, timeout: int = 30) -> str:
    """Run a short git command and return stdout. Raises SourceError on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as exc:
        raise SourceError("git is not installed or not on PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise SourceError(f"git command timed out after {timeout}s: git {' '.join(args)}") from exc
    if result.returncode != 0:
        raise SourceError(f"git error: {result.stderr.strip() or result.returncode}")
    return result.stdout


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Return the root of the git repository containing *cwd*."""
    out = run_git(["rev-parse", "--show-toplevel"], cwd=cwd or Path.cwd())
    return Path(out.strip())


_SCP_RE = re.compile(r"^(?:[\w.\-]+@)?([\w.\-]+):(?!//)(.+)$")


def normalize_remote_url(url: str) -> str:
    """Turn a remote URL into a browsable https URL.

    ``git@github.com:org/repo.git`` and ``ssh://git@host/org/repo`` both
    become ``https://host/org/repo``; credentials and ``.git`` are dropped.
    """
    url = url.strip()
    if not url:
        return ""
    if url.startswith("ssh://"):
        rest = url[len("ssh://"):]
        rest = rest.split("@", 1)[-1]
        host, _, path = rest.partition("/")
        host = host.split(":", 1)[0]
        url = f"https://{host}/{path}"
    elif "://" not in url:
        m = _SCP_RE.match(url)
        if m:
            url = f"https://{m.group(1)}/{m.group(2).lstrip('/')}"
    elif url.startswith(("http://", "https://")):
        scheme, _, rest = url.partition("://")
        if "@" in rest.split("/", 1)[0]:
            rest = rest.split("@", 1)[1]
        url = f"{scheme}://{rest}"
    url = url.rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


def get_repo_url(repo_root: Path, remote: str = "origin") -> Optional[str]:
    """Browsable URL of *remote*, or None when it is not configured."""
    try:
        out = run_git(["config", "--get", f"remote.{remote}.url"], cwd=repo_root)
    except SourceError:
        return None
    return normalize_remote_url(out) or None
