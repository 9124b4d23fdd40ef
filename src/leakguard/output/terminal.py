"""Rich terminal reporter."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table

from leakguard.findings.models import ScanResult, ScanStatus
from leakguard.findings.redactor import redact


def render(
    result: ScanResult,
    *,
    redact_mode: str = "partial",
    show_summary: bool = True,
    console: Optional[Console] = None,
) -> None:
    """Print scan results to the terminal using Rich."""
    console = console or Console(stderr=True)

    if result.findings:
        console.print()
        table = Table(
            title="leakguard findings",
            show_lines=True,
            title_style="bold",
            border_style="dim",
        )
        table.add_column("Rule", style="cyan", min_width=20)
        table.add_column("File", style="magenta")
        table.add_column("Line", justify="right", style="green")
        table.add_column("Commit", style="dim")
        table.add_column("Secret", min_width=15)

        for f in result.findings:
            table.add_row(
                f.rule_id,
                f.file,
                str(f.start_line) if f.start_line > 0 else "-",
                f.commit[:8] if f.commit else "-",
                redact(f.secret, redact_mode) if f.secret else f.match,
            )
        console.print(table)

    if show_summary:
        _print_summary(console, result)

    console.print()
    if result.status is ScanStatus.FAILED:
        console.print(f"[bold red]✗ Scan failed:[/bold red] {result.error}")
        if result.findings:
            console.print("[yellow]Findings above are partial.[/yellow]")
    elif result.status is ScanStatus.CANCELLED:
        console.print("[bold yellow]⚠ Scan cancelled; results are partial.[/bold yellow]")
    elif result.findings:
        console.print(f"[bold red]✗ {result.total_findings} leak(s) found.[/bold red]")
    else:
        console.print("[bold green]✓ No leaks found.[/bold green]")


def _print_summary(console: Console, result: ScanResult) -> None:
    console.print()
    console.print(f"[dim]Fragments scanned:[/dim] {result.fragments_scanned}")
    console.print(f"[dim]Findings:[/dim]          {result.total_findings}")
    console.print(f"[dim]Known (baseline):[/dim]  {result.baseline_matches}")
    console.print(f"[dim]Suppressed:[/dim]        {len(result.suppressed)}")
    console.print(f"[dim]Diagnostics:[/dim]       {len(result.diagnostics)}")
    console.print(f"[dim]Duration:[/dim]          {result.scan_duration_ms:.0f}ms")
