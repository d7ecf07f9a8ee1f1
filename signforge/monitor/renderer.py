"""Rich terminal rendering of dispatch results.

Color scheme
------------
- green     : DEPLOYED
- cyan      : PUBLISHED
- dim       : UP_TO_DATE
- bold red  : FAILED
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from signforge.core.timer import format_elapsed
from signforge.models.stages import DeployOutcome, DispatchReport

_OUTCOME_LABELS: dict[DeployOutcome, str] = {
    DeployOutcome.DEPLOYED: "[green]DEPLOYED[/green]",
    DeployOutcome.PUBLISHED: "[cyan]PUBLISHED[/cyan]",
    DeployOutcome.UP_TO_DATE: "[dim]UP TO DATE[/dim]",
    DeployOutcome.FAILED: "[bold red]FAILED[/bold red]",
}


def _short(value: str | None, width: int = 12) -> str:
    if not value:
        return "[dim]-[/dim]"
    return value[:width]


class ReportRenderer:
    """Prints ``DispatchReport`` summaries.

    Parameters
    ----------
    console:
        Rich Console instance. A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def build_table(self, report: DispatchReport) -> Table:
        """One row per folder, sorted by name."""
        table = Table(title="Deployment Summary", show_lines=False, expand=False)
        table.add_column("Folder", style="cyan")
        table.add_column("Outcome", justify="center")
        table.add_column("Stage")
        table.add_column("Source hash")
        table.add_column("Signed hash")
        table.add_column("Version", justify="right")
        table.add_column("Took", justify="right")
        table.add_column("Error", style="red")

        for name in sorted(report.results):
            result = report.results[name]
            table.add_row(
                name,
                _OUTCOME_LABELS[result.outcome],
                result.stage.value,
                _short(result.unsigned_hash),
                _short(result.signed_hash),
                result.function_version or "[dim]-[/dim]",
                format_elapsed(result.elapsed_seconds),
                escape(result.error or ""),
            )
        return table

    def print_report(self, report: DispatchReport) -> None:
        """Print the summary table and the elapsed time."""
        if report.results:
            self.console.print(self.build_table(report))
        self.console.print(f"Took {format_elapsed(report.elapsed_seconds)}.")

    def print_status(self, rows: list[tuple[str, str | None, bool | None]]) -> None:
        """Print (folder, fingerprint, up_to_date) rows from ``signforge status``.

        ``up_to_date`` is None when the folder could not be fingerprinted.
        """
        table = Table(title="Deployment Status")
        table.add_column("Folder", style="cyan")
        table.add_column("Source hash")
        table.add_column("State", justify="center")
        for folder, fingerprint, fresh in rows:
            if fresh is None:
                state = "[bold red]UNREADABLE[/bold red]"
            elif fresh:
                state = "[green]UP TO DATE[/green]"
            else:
                state = "[yellow]STALE[/yellow]"
            table.add_row(folder, _short(fingerprint), state)
        self.console.print(table)
