"""Shared folder-selection logic for CLI commands."""

from __future__ import annotations

from pathlib import Path

from signforge.config import Settings
from signforge.core.dispatcher import (
    discover_folders,
    parse_folder_list,
    partition_folders,
    select_folders,
)
from signforge.core.errors import ConfigurationError


def resolve_folders(
    root: Path,
    settings: Settings,
    *,
    folders: str | None = None,
    exclude: str | None = None,
    instance_index: int | None = None,
    instance_count: int | None = None,
) -> list[str]:
    """Discover, filter and partition the folders a command operates on.

    Raises
    ------
    ConfigurationError
        For unknown include names or an invalid instance pair.
    """
    excluded = parse_folder_list(exclude) if exclude is not None else settings.excluded_folders
    eligible = discover_folders(root, exclude=excluded)
    selected = select_folders(eligible, parse_folder_list(folders))

    if (instance_index is None) != (instance_count is None):
        raise ConfigurationError(
            "--instance-index and --instance-count must be given together"
        )
    if instance_index is not None and instance_count is not None:
        selected = partition_folders(selected, instance_index, instance_count)
    return selected
