"""Folder discovery, selection, partitioning and concurrent dispatch.

``Dispatcher.run`` fans out one pipeline per folder on its own thread and
fans the results back in, one slot per folder. Folders share nothing
mutable. The number of concurrent folders is not capped; throttling by the
external services surfaces as per-folder failures.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from signforge.core.errors import ConfigurationError
from signforge.core.timer import Timer
from signforge.models.stages import DeployOutcome, DispatchReport, FolderResult

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED: tuple[str, ...] = ("internal",)


# ---------------------------------------------------------------------------
# Folder selection
# ---------------------------------------------------------------------------


def discover_folders(
    root: Path,
    *,
    marker: str = "*.go",
    exclude: Iterable[str] = DEFAULT_EXCLUDED,
) -> list[str]:
    """Names of the direct subdirectories of *root* holding a *marker* file.

    Excluded names are dropped. The result is sorted and free of duplicates.
    """
    excluded = set(exclude)
    folders = {
        match.parent.name
        for match in Path(root).glob(f"*/{marker}")
        if match.is_file() and match.parent.name not in excluded
    }
    return sorted(folders)


def select_folders(eligible: Sequence[str], include: Sequence[str] | None = None) -> list[str]:
    """Apply an optional include list to the eligible folders.

    Every included name must be eligible; otherwise ``ConfigurationError``
    is raised naming the offender and listing what is eligible.
    """
    if not include:
        return list(eligible)
    selected: list[str] = []
    for name in include:
        if name not in eligible:
            raise ConfigurationError(
                f"{name!r} is not a deployable folder. "
                f"Deployable folders: {', '.join(eligible) or '(none)'}"
            )
        if name not in selected:
            selected.append(name)
    return selected


def partition_folders(folders: Sequence[str], index: int, count: int) -> list[str]:
    """Return the *index*-th of *count* contiguous, balanced chunks of *folders*.

    Chunk ``i`` spans ``[len * i // count, len * (i + 1) // count)``, so the
    chunks of all instances cover every folder exactly once.
    """
    if count < 1:
        raise ConfigurationError(f"Instance count must be at least 1, got {count}")
    if not 0 <= index < count:
        raise ConfigurationError(
            f"Instance index must be in [0, {count}), got {index}"
        )
    total = len(folders)
    return list(folders[total * index // count: total * (index + 1) // count])


def parse_folder_list(value: str | None) -> list[str]:
    """Split a comma-separated flag value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class Dispatcher:
    """Runs one pipeline per folder concurrently and aggregates the results.

    Parameters
    ----------
    run_folder:
        Callable running the full pipeline for one folder, typically
        ``FolderPipeline.run``. It must be safe to call from many threads.
    """

    def __init__(self, run_folder: Callable[[str], FolderResult]) -> None:
        self._run_folder = run_folder

    def run(self, folders: Sequence[str]) -> DispatchReport:
        """Deploy every folder and return exactly one result per folder."""
        timer = Timer()
        unique = list(dict.fromkeys(folders))
        if not unique:
            logger.info("No folders to deploy.")
            return DispatchReport(results={}, elapsed_seconds=timer.elapsed)

        logger.info("Deploying %d folder(s): %s", len(unique), ", ".join(unique))
        results: dict[str, FolderResult] = {}
        with ThreadPoolExecutor(
            max_workers=len(unique), thread_name_prefix="signforge"
        ) as executor:
            futures: dict[str, Future[FolderResult]] = {
                folder: executor.submit(self._run_folder, folder) for folder in unique
            }
            for folder, future in futures.items():
                results[folder] = self._collect(folder, future)

        report = DispatchReport(results=results, elapsed_seconds=timer.elapsed)
        if report.failed_folders:
            logger.error("Failed folders: %s", ", ".join(report.failed_folders))
        return report

    @staticmethod
    def _collect(folder: str, future: Future[FolderResult]) -> FolderResult:
        try:
            return future.result()
        except Exception as exc:
            logger.exception("%s | Pipeline crashed: %s", folder, exc)
            return FolderResult(
                folder=folder,
                outcome=DeployOutcome.FAILED,
                error_type=type(exc).__name__,
                error=str(exc),
            )
