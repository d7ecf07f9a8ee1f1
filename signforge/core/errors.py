"""Error taxonomy for the deployment pipeline.

Every stage failure is a ``DeployError`` subclass. The pipeline catches
``DeployError`` and attributes it to the folder that raised it; anything
else escaping a pipeline is still caught by the dispatcher so no folder is
ever dropped from a report.
"""

from __future__ import annotations


class DeployError(RuntimeError):
    """Base class for errors that are fatal to one folder's pipeline."""


class FileError(DeployError):
    """Raised when a source file cannot be opened or read while fingerprinting."""


class BuildError(DeployError):
    """Raised when the compiler exits non-zero or cannot be started."""


class PackageError(DeployError):
    """Raised when the executable cannot be archived."""


class StoreError(DeployError):
    """Raised when an object store operation fails."""


class SigningError(DeployError):
    """Raised when a signing job cannot be submitted, fails, or times out."""


class FunctionUpdateError(DeployError):
    """Raised when any of the function update/publish/alias calls fails."""


class PollTimeoutError(TimeoutError):
    """Raised by the poller when the wait window elapses before completion."""


class ConfigurationError(ValueError):
    """Raised for invalid settings, folder selection or partition arguments."""


class DispatchError(RuntimeError):
    """Aggregate failure of a dispatch — one or more folders failed.

    Parameters
    ----------
    failed_folders:
        Names of the folders whose pipelines failed, sorted.
    """

    def __init__(self, failed_folders: list[str]) -> None:
        self.failed_folders = sorted(failed_folders)
        super().__init__(
            f"{len(self.failed_folders)} folder(s) failed: "
            f"{', '.join(self.failed_folders)}"
        )
