"""Main Typer application — imports and registers all CLI commands.

Entry point: ``signforge`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape

from signforge.cli.commands.deploy import deploy_cmd
from signforge.cli.commands.folders import folders_cmd
from signforge.cli.commands.status import status_cmd
from signforge.config import load_settings
from signforge.core.errors import ConfigurationError
from signforge.logging_setup import configure_logging

app = typer.Typer(
    name="signforge",
    help="signforge: build, sign and publish function folders concurrently.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (default from SIGNFORGE_LOG_LEVEL or INFO)."
    ),
) -> None:
    """Validate settings and configure logging before any command runs."""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        Console().print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2)
    configure_logging(log_level or settings.log_level)


# Register subcommands
app.command(name="deploy", help="Build, sign and publish function folders.")(deploy_cmd)
app.command(name="folders", help="List deployable function folders.")(folders_cmd)
app.command(name="status", help="Show which folders are out of date.")(status_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
