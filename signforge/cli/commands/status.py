"""``signforge status ROOT`` — report which folders need redeploying.

Fingerprints each folder and compares it with the signed artifact's stored
metadata. Read-only: nothing is built, uploaded or deleted.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from signforge.bridge.aws import AwsClients
from signforge.cli.commands._selection import resolve_folders
from signforge.config import load_settings
from signforge.core.artifact_store import ArtifactStore, S3ArtifactStore
from signforge.core.errors import ConfigurationError, FileError
from signforge.core.freshness import is_up_to_date
from signforge.core.hasher import fingerprint_folder
from signforge.models.config import object_key
from signforge.monitor.renderer import ReportRenderer

logger = logging.getLogger(__name__)

console = Console()


def make_store(bucket: str, *, region: str, profile: str | None) -> ArtifactStore:
    """Create the S3-backed store used for metadata lookups."""
    return S3ArtifactStore(AwsClients(region=region, profile=profile).s3, bucket)


def collect_status(
    root: Path,
    folders: list[str],
    store: ArtifactStore,
    signed_prefix: str,
    patterns: tuple[str, ...],
) -> list[tuple[str, str | None, bool | None]]:
    """Fingerprint each folder and check it against its signed artifact."""
    rows: list[tuple[str, str | None, bool | None]] = []
    for folder in folders:
        try:
            fingerprint = fingerprint_folder(root / folder, patterns)
        except FileError as exc:
            logger.error("%s | %s", folder, exc)
            rows.append((folder, None, None))
            continue
        key = object_key(signed_prefix, f"{folder}.zip")
        rows.append((folder, fingerprint, is_up_to_date(store, key, fingerprint, folder=folder)))
    return rows


def status_cmd(
    root: Path = typer.Argument(
        Path("."),
        help="Directory containing the function folders.",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    bucket: str = typer.Option(..., "--bucket", help="Which bucket to use."),
    signed_prefix: str = typer.Option(
        ..., "--signed-prefix", help="Where signed deployment packages are published."
    ),
    region: str = typer.Option(None, "--region", help="AWS region (default from settings)."),
    profile: str = typer.Option(None, "--profile", help="AWS credentials profile."),
    folders: str = typer.Option(None, "--folders", help="Comma-separated folders to check."),
    exclude: str = typer.Option(None, "--exclude", help="Comma-separated folders to leave out."),
) -> None:
    """Show whether each folder's signed package is up to date."""
    try:
        settings = load_settings()
        selected = resolve_folders(root, settings, folders=folders, exclude=exclude)
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2)

    store = make_store(
        bucket, region=region or settings.region, profile=profile or settings.aws_profile
    )
    rows = collect_status(root, selected, store, signed_prefix, tuple(settings.source_patterns))
    ReportRenderer(console=console).print_status(rows)
