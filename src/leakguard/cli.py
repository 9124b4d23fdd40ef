"""leakguard CLI — Typer application with git, dir, init, install and audit commands."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Iterable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from leakguard import __version__

if TYPE_CHECKING:
    from leakguard.config.schema import LeakGuardConfig
    from leakguard.findings.models import ScanResult
    from leakguard.sources.models import Fragment

app = typer.Typer(
    name="leakguard",
    help="Find hard-coded secrets in git history, diffs and directories.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)
logger = logging.getLogger("leakguard")

# ── shared options ────────────────────────────────────────────────────────────

ConfigOpt = Annotated[Optional[str], typer.Option("--config", "-c", help="Path to .leakguard.toml")]
FormatOpt = Annotated[Optional[str], typer.Option("--format", "-f", help="Report format: terminal | json | sarif")]
ReportOpt = Annotated[Optional[Path], typer.Option("--report", "-o", help="Write the report to this file")]
BaselineOpt = Annotated[Optional[Path], typer.Option("--baseline", "-b", help="Previous report; its findings are ignored")]
KeepKnownOpt = Annotated[bool, typer.Option("--keep-known", help="Keep baseline matches on the result")]
WorkersOpt = Annotated[Optional[int], typer.Option("--workers", "-w", min=1, help="Worker threads")]
LineCapOpt = Annotated[Optional[int], typer.Option("--max-line-length", min=0, help="Skip longer lines (0 = no cap)")]
RedactOpt = Annotated[Optional[str], typer.Option("--redact", help="Secret redaction: none | partial | full")]
ExitCodeOpt = Annotated[Optional[int], typer.Option("--exit-code", help="Exit status when leaks are found")]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Verbose logging")]
LogLevelOpt = Annotated[Optional[str], typer.Option("--log-level", help="debug | info | warning | error")]
CIOpt = Annotated[bool, typer.Option("--ci", help="Enable CI mode (full redaction, annotations)")]


def _detect_ci() -> bool:
    """Auto-detect CI environment."""
    return os.environ.get("CI", "").lower() in ("true", "1", "yes")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def _fail(label: str, exc: BaseException) -> "typer.Exit":
    console.print(f"[bold red]{label}:[/bold red] {exc}")
    return typer.Exit(code=2)


def _resolve_repo_root(path: Optional[Path] = None) -> Path:
    """Find the git repo root, exit 2 on failure."""
    from leakguard.sources.git import SourceError, get_repo_root

    try:
        return get_repo_root(path)
    except SourceError as exc:
        raise _fail("Error", exc) from exc


def _prepare_config(
    root: Path,
    *,
    config: Optional[str],
    format: Optional[str],
    baseline: Optional[Path],
    keep_known: bool,
    workers: Optional[int],
    max_line_length: Optional[int],
    redact: Optional[str],
    exit_code: Optional[int],
    verbose: bool,
    log_level: Optional[str],
    ci: bool,
) -> "LeakGuardConfig":
    from leakguard.config.loader import ConfigError, load_config
    from leakguard.config.schema import LOG_LEVELS, OUTPUT_FORMATS, REDACT_MODES

    if log_level is not None and log_level.lower() not in LOG_LEVELS:
        raise _fail("Invalid log level", ValueError(log_level))
    _setup_logging(log_level or ("info" if verbose else "warning"))
    try:
        cfg = load_config(root, config)
    except ConfigError as exc:
        raise _fail("Config error", exc) from exc

    if log_level is None and not verbose:
        _setup_logging(cfg.log.level)

    if ci or _detect_ci():
        if cfg.output.format == "terminal" and format is None:
            cfg.output.format = "json"
        if cfg.ci.full_redaction:
            cfg.output.redact = "full"
        if cfg.ci.annotation_format == "none" and os.environ.get("GITHUB_ACTIONS") == "true":
            cfg.ci.annotation_format = "github"

    if format is not None:
        if format not in OUTPUT_FORMATS:
            raise _fail("Invalid format", ValueError(format))
        cfg.output.format = format  # type: ignore[assignment]
    if redact is not None:
        if redact not in REDACT_MODES:
            raise _fail("Invalid redact mode", ValueError(redact))
        cfg.output.redact = redact  # type: ignore[assignment]
    if workers is not None:
        cfg.scan.workers = workers
    if max_line_length is not None:
        cfg.scan.max_line_length = max_line_length
    if exit_code is not None:
        cfg.output.exit_code = exit_code
    if baseline is not None:
        cfg.baseline.path = str(baseline)
    if keep_known:
        cfg.baseline.keep_known = True
    return cfg


def _run(
    cfg: "LeakGuardConfig",
    root: Path,
    fragments: Iterable["Fragment"],
    *,
    report: Optional[Path],
    repo_url: Optional[str] = None,
) -> None:
    """Scan, render, and exit with the outcome's status."""
    from leakguard.config.loader import ConfigError
    from leakguard.findings.baseline import load_baseline
    from leakguard.rules.registry import build_rule_set
    from leakguard.scanner.engine import Detector, ScanError, ScanOptions
    from leakguard.scanner.suppression import IGNORE_FILENAME, IgnoreFile

    try:
        rule_set = build_rule_set(cfg, root)
        known = frozenset()
        if cfg.baseline.path:
            bpath = Path(cfg.baseline.path)
            if not bpath.is_absolute() and not bpath.exists():
                bpath = root / bpath
            known = load_baseline(bpath)
        ignore = IgnoreFile.from_file(root / IGNORE_FILENAME)
    except (ConfigError, OSError) as exc:
        raise _fail("Config error", exc) from exc

    logger.info("Rules loaded: %d, root: %s", len(rule_set), root)
    options = ScanOptions.from_config(cfg, ignore=ignore, baseline=known, repo_url=repo_url)

    cancel = threading.Event()
    try:
        result = Detector(rule_set, options).scan(fragments, cancel=cancel)
    except ScanError as exc:
        raise _fail("Scanner error", exc) from exc
    except KeyboardInterrupt:
        cancel.set()
        console.print("[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=130)

    _emit(cfg, result, report)
    raise typer.Exit(code=result.exit_code(cfg.output.exit_code))


def _emit(cfg: "LeakGuardConfig", result: "ScanResult", report: Optional[Path]) -> None:
    from leakguard.findings.models import ScanStatus
    from leakguard.output import json_report, sarif, terminal

    fmt = cfg.output.format
    if fmt == "terminal":
        terminal.render(result, redact_mode=cfg.output.redact, show_summary=cfg.output.show_summary)
    elif report is None:
        text = sarif.render(result) if fmt == "sarif" else json_report.render(result, redact_mode=cfg.output.redact)
        typer.echo(text)

    if report is not None:
        # terminal format still writes a machine-readable file
        if fmt == "sarif":
            text = sarif.render(result)
        else:
            text = json_report.render(result, redact_mode=cfg.output.redact)
        report.write_text(text + "\n", encoding="utf-8")
        logger.info("Report written to %s", report)

    if cfg.ci.annotation_format == "github" and result.findings:
        _emit_github_annotations(result)

    if result.status is ScanStatus.FAILED:
        console.print(f"[bold red]Scan failed:[/bold red] {result.error}")


def _emit_github_annotations(result: "ScanResult") -> None:
    """GitHub Actions workflow commands; secrets are never printed."""
    for f in result.findings:
        typer.echo(
            f"::error file={f.file},line={max(f.start_line, 1)},col={max(f.start_column, 1)}"
            f"::{f.rule_id} detected [REDACTED]"
        )


# ── git ───────────────────────────────────────────────────────────────────────


@app.command()
def git(
    path: Annotated[Path, typer.Argument(help="Repository to scan")] = Path("."),
    staged: Annotated[bool, typer.Option("--staged", help="Scan staged changes only")] = False,
    uncommitted: Annotated[bool, typer.Option("--uncommitted", help="Scan uncommitted changes")] = False,
    log_opts: Annotated[Optional[str], typer.Option("--log-opts", help="Extra options for git log -p")] = None,
    config: ConfigOpt = None,
    format: FormatOpt = None,
    report: ReportOpt = None,
    baseline: BaselineOpt = None,
    keep_known: KeepKnownOpt = False,
    workers: WorkersOpt = None,
    max_line_length: LineCapOpt = None,
    redact: RedactOpt = None,
    exit_code: ExitCodeOpt = None,
    verbose: VerboseOpt = False,
    log_level: LogLevelOpt = None,
    ci: CIOpt = False,
) -> None:
    """Scan git history, or staged / uncommitted changes."""
    from leakguard.sources.git import GitSource, get_repo_url

    if staged and uncommitted:
        console.print("[bold red]Error:[/bold red] --staged and --uncommitted are exclusive")
        raise typer.Exit(code=2)

    root = _resolve_repo_root(path.resolve())
    cfg = _prepare_config(
        root, config=config, format=format, baseline=baseline, keep_known=keep_known,
        workers=workers, max_line_length=max_line_length, redact=redact,
        exit_code=exit_code, verbose=verbose, log_level=log_level, ci=ci,
    )

    if staged or uncommitted:
        source = GitSource.diff(root, staged=staged)
        repo_url = None
    else:
        source = GitSource.log(root, log_opts if log_opts is not None else cfg.scan.log_opts)
        repo_url = get_repo_url(root)
    _run(cfg, root, source, report=report, repo_url=repo_url)


# ── dir ───────────────────────────────────────────────────────────────────────


@app.command("dir")
def dir_(
    path: Annotated[Path, typer.Argument(help="Directory or file to scan")] = Path("."),
    follow_symlinks: Annotated[bool, typer.Option("--follow-symlinks", help="Scan symlink targets")] = False,
    config: ConfigOpt = None,
    format: FormatOpt = None,
    report: ReportOpt = None,
    baseline: BaselineOpt = None,
    keep_known: KeepKnownOpt = False,
    workers: WorkersOpt = None,
    max_line_length: LineCapOpt = None,
    redact: RedactOpt = None,
    exit_code: ExitCodeOpt = None,
    verbose: VerboseOpt = False,
    log_level: LogLevelOpt = None,
    ci: CIOpt = False,
) -> None:
    """Scan files in a directory (no git required)."""
    from leakguard.sources.files import iter_directory

    if not path.exists():
        console.print(f"[bold red]Error:[/bold red] no such file or directory: {path}")
        raise typer.Exit(code=2)
    root = path if path.is_dir() else path.parent
    cfg = _prepare_config(
        root, config=config, format=format, baseline=baseline, keep_known=keep_known,
        workers=workers, max_line_length=max_line_length, redact=redact,
        exit_code=exit_code, verbose=verbose, log_level=log_level, ci=ci,
    )
    fragments = iter_directory(
        path,
        max_file_size_kb=cfg.scan.max_file_size_kb,
        follow_symlinks=follow_symlinks or cfg.scan.follow_symlinks,
    )
    _run(cfg, root, fragments, report=report)


# ── install ───────────────────────────────────────────────────────────────────


@app.command()
def install(
    force: bool = typer.Option(False, "--force", help="Overwrite existing pre-commit hook"),
) -> None:
    """Install leakguard as a git pre-commit hook."""
    from leakguard.hooks.installer import install_hook

    repo_root = _resolve_repo_root()
    success, msg = install_hook(repo_root, force=force)
    if success:
        console.print(f"[green]✓[/green] {msg}")
    else:
        console.print(f"[red]✗[/red] {msg}")
        raise typer.Exit(code=1)


@app.command()
def uninstall() -> None:
    """Remove the leakguard pre-commit hook."""
    from leakguard.hooks.installer import uninstall_hook

    repo_root = _resolve_repo_root()
    success, msg = uninstall_hook(repo_root)
    if success:
        console.print(f"[green]✓[/green] {msg}")
    else:
        console.print(f"[red]✗[/red] {msg}")
        raise typer.Exit(code=1)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init(
    full: bool = typer.Option(False, "--full", help="Include all config options with comments"),
) -> None:
    """Generate a starter .leakguard.toml in the repo root."""
    from leakguard.config.defaults import DEFAULT_TOML, FULL_TOML
    from leakguard.config.loader import CONFIG_FILENAME

    repo_root = _resolve_repo_root()
    config_path = repo_root / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(FULL_TOML if full else DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── audit ─────────────────────────────────────────────────────────────────────


@app.command()
def audit() -> None:
    """List every leakguard:allow marker in tracked files (audit trail)."""
    from leakguard.scanner.suppression import MARKER, parse_inline_allow

    repo_root = _resolve_repo_root()
    try:
        proc = subprocess.run(
            ["git", "grep", "-n", "-I", "-F", MARKER],
            cwd=repo_root,
            capture_output=True,
            text=True,
            timeout=30,
        )
    except FileNotFoundError:
        console.print("[bold red]Error:[/bold red] git is not available")
        raise typer.Exit(code=2)
    # git grep exits 1 when nothing matches
    if proc.returncode not in (0, 1):
        console.print(f"[bold red]Error:[/bold red] {proc.stderr.strip()}")
        raise typer.Exit(code=2)

    lines = proc.stdout.strip().splitlines()
    if not lines:
        console.print("[green]No leakguard:allow markers found.[/green]")
        raise typer.Exit(code=0)

    console.print(f"[bold]Found {len(lines)} allow marker(s):[/bold]")
    console.print()
    for line in lines:
        parts = line.split(":", 2)
        if len(parts) != 3:
            console.print(f"  {line}", markup=False)
            continue
        file, line_no, content = parts
        _, rule_ids = parse_inline_allow(content)
        scope = ",".join(sorted(rule_ids)) if rule_ids else "ALL"
        console.print(
            f"  [cyan]{file}[/cyan]:[green]{line_no}[/green]  scope=[yellow]{scope}[/yellow]"
        )


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"leakguard {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """leakguard — find hard-coded secrets before they ship."""


if __name__ == "__main__":
    app()
