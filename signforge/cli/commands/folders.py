"""``signforge folders ROOT`` — list the folders a deploy would consider."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from signforge.cli.commands._selection import resolve_folders
from signforge.config import load_settings
from signforge.core.errors import ConfigurationError

console = Console()


def folders_cmd(
    root: Path = typer.Argument(
        Path("."),
        help="Directory containing the function folders.",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    exclude: str = typer.Option(
        None, "--exclude", help="Comma-separated folders to leave out (default: internal)."
    ),
    instance_index: int = typer.Option(None, "--instance-index", help="Shard index."),
    instance_count: int = typer.Option(None, "--instance-count", help="Shard count."),
) -> None:
    """Print the eligible folders, one per line."""
    try:
        selected = resolve_folders(
            root,
            load_settings(),
            exclude=exclude,
            instance_index=instance_index,
            instance_count=instance_count,
        )
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2)

    if not selected:
        console.print("[dim]No deployable folders found.[/dim]")
        return
    for name in selected:
        console.print(name)
