"""``signforge deploy ROOT`` — build, sign, publish and activate function folders.

Every eligible folder under ROOT is deployed concurrently. Folders whose
source fingerprint matches the signed artifact's metadata are skipped unless
``--force`` is given. The command exits non-zero, listing the failed
folders, if any folder's pipeline fails.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from signforge.bridge.aws import AwsClients
from signforge.cli.commands._selection import resolve_folders
from signforge.config import load_settings
from signforge.core.artifact_store import ArtifactStore, S3ArtifactStore
from signforge.core.builder import GoBuilder
from signforge.core.dispatcher import Dispatcher
from signforge.core.errors import ConfigurationError, DispatchError
from signforge.core.pipeline import FolderPipeline
from signforge.core.publisher import FunctionPublisher, LambdaPublisher
from signforge.core.signing import AwsSigner, Signer
from signforge.models.config import DeployConfig
from signforge.monitor.renderer import ReportRenderer

console = Console()


def make_backends(
    config: DeployConfig, *, region: str, profile: str | None
) -> tuple[ArtifactStore, Signer, FunctionPublisher | None]:
    """Create the AWS-backed store, signer and (optionally) publisher."""
    clients = AwsClients(region=region, profile=profile)
    store = S3ArtifactStore(clients.s3, config.bucket)
    signer = AwsSigner(
        clients.signer,
        bucket=config.bucket,
        profile_name=config.signing_profile,
        staging_prefix=config.staging_prefix,
        window=config.signing_poll,
    )
    publisher = (
        LambdaPublisher(clients.lambda_, window=config.function_poll)
        if config.update_functions
        else None
    )
    return store, signer, publisher


def deploy_cmd(
    root: Path = typer.Argument(
        Path("."),
        help="Directory containing the function folders.",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    bucket: str = typer.Option(..., "--bucket", help="Which bucket to use."),
    unsigned_prefix: str = typer.Option(
        ..., "--unsigned-prefix", help="Where to upload unsigned deployment packages."
    ),
    staging_prefix: str = typer.Option(
        ..., "--staging-prefix", help="Where the signer writes signed deployment packages."
    ),
    signed_prefix: str = typer.Option(
        ..., "--signed-prefix", help="Where signed deployment packages are published."
    ),
    signing_profile: str = typer.Option(
        ..., "--signing-profile", help="Which profile to sign deployment packages with."
    ),
    region: str = typer.Option(None, "--region", help="AWS region (default from settings)."),
    profile: str = typer.Option(None, "--profile", help="AWS credentials profile."),
    folders: str = typer.Option(
        None, "--folders", help="Comma-separated folders to deploy (default: all)."
    ),
    exclude: str = typer.Option(
        None, "--exclude", help="Comma-separated folders never deployed (default: internal)."
    ),
    force: bool = typer.Option(
        False, "--force", help="Deploy even if the signed deployment package is up to date."
    ),
    no_update_functions: bool = typer.Option(
        False, "--no-update-functions", help="Publish signed packages without touching functions."
    ),
    alias: str = typer.Option(None, "--alias", help="Alias to repoint (default from settings)."),
    instance_index: int = typer.Option(
        None, "--instance-index", help="This instance's index when sharding across instances."
    ),
    instance_count: int = typer.Option(
        None, "--instance-count", help="Total number of sharded instances."
    ),
) -> None:
    """Deploy every selected folder concurrently."""
    try:
        settings = load_settings()
        selected = resolve_folders(
            root,
            settings,
            folders=folders,
            exclude=exclude,
            instance_index=instance_index,
            instance_count=instance_count,
        )
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2)

    if folders:
        console.print(f"Only deploying {', '.join(selected)}.")
    else:
        console.print(f"Deploying {len(selected)} folder(s).")

    config = DeployConfig(
        bucket=bucket,
        unsigned_prefix=unsigned_prefix,
        staging_prefix=staging_prefix,
        signed_prefix=signed_prefix,
        signing_profile=signing_profile,
        force=force,
        update_functions=not no_update_functions,
        alias_name=alias or settings.alias_name,
        build_env=settings.build_env(),
        entry_name=settings.entry_name,
        source_patterns=tuple(settings.source_patterns),
        signing_poll=settings.signing_poll,
        function_poll=settings.function_poll,
    )

    store, signer, publisher = make_backends(
        config, region=region or settings.region, profile=profile or settings.aws_profile
    )
    pipeline = FolderPipeline(
        config,
        root=root,
        store=store,
        builder=GoBuilder(
            config.build_env, go_binary=settings.go_binary, entry_name=config.entry_name
        ),
        signer=signer,
        publisher=publisher,
    )

    report = Dispatcher(pipeline.run).run(selected)

    console.print()
    ReportRenderer(console=console).print_report(report)

    try:
        report.raise_for_failures()
    except DispatchError as exc:
        console.print(f"[bold red]Deployment failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
