"""Pipeline stage and per-folder result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from signforge.core.errors import DispatchError


class PipelineStage(str, Enum):
    """Stages of a folder pipeline, in execution order."""

    PENDING = "pending"
    FINGERPRINTING = "fingerprinting"
    FRESHNESS_CHECK = "freshness_check"
    BUILDING = "building"
    PACKAGING = "packaging"
    UPLOADING = "uploading"
    SIGNING_SUBMIT = "signing_submit"
    SIGNING_WAIT = "signing_wait"
    DOWNLOADING = "downloading"
    FINGERPRINTING_SIGNED = "fingerprinting_signed"
    COPYING = "copying"
    UPDATING_CODE = "updating_code"
    AWAITING_UPDATE = "awaiting_update"
    PUBLISHING_VERSION = "publishing_version"
    UPDATING_ALIAS = "updating_alias"
    DONE = "done"


STAGE_DISPLAY_NAMES: dict[PipelineStage, str] = {
    PipelineStage.PENDING: "Pending",
    PipelineStage.FINGERPRINTING: "Hashing source code",
    PipelineStage.FRESHNESS_CHECK: "Checking previous deployment package",
    PipelineStage.BUILDING: "Building executable",
    PipelineStage.PACKAGING: "Zipping executable",
    PipelineStage.UPLOADING: "Uploading unsigned deployment package",
    PipelineStage.SIGNING_SUBMIT: "Starting signing job",
    PipelineStage.SIGNING_WAIT: "Waiting for signing job",
    PipelineStage.DOWNLOADING: "Downloading signed deployment package",
    PipelineStage.FINGERPRINTING_SIGNED: "Hashing signed deployment package",
    PipelineStage.COPYING: "Copying signed deployment package",
    PipelineStage.UPDATING_CODE: "Updating function code",
    PipelineStage.AWAITING_UPDATE: "Waiting for function code to update",
    PipelineStage.PUBLISHING_VERSION: "Publishing function version",
    PipelineStage.UPDATING_ALIAS: "Updating function alias",
    PipelineStage.DONE: "Done",
}


class DeployOutcome(str, Enum):
    """Terminal outcome of one folder pipeline."""

    DEPLOYED = "deployed"        # signed artifact published and function activated
    PUBLISHED = "published"      # signed artifact published, functions untouched
    UP_TO_DATE = "up_to_date"    # fingerprint unchanged, nothing done
    FAILED = "failed"


class FolderResult(BaseModel):
    """Exactly one of these is produced per dispatched folder."""

    model_config = ConfigDict(frozen=True)

    folder: str
    outcome: DeployOutcome
    stage: PipelineStage = PipelineStage.PENDING  # last stage entered
    unsigned_hash: str | None = None
    signed_hash: str | None = None
    function_version: str | None = None
    error_type: str | None = None
    error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def failed(self) -> bool:
        return self.outcome == DeployOutcome.FAILED


class DispatchReport(BaseModel):
    """Aggregated results of a dispatch, keyed by folder name."""

    model_config = ConfigDict(frozen=True)

    results: dict[str, FolderResult] = Field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def failed_folders(self) -> list[str]:
        """Sorted names of the folders whose pipeline failed."""
        return sorted(name for name, r in self.results.items() if r.failed)

    @property
    def ok(self) -> bool:
        return not self.failed_folders

    def raise_for_failures(self) -> None:
        """Raise ``DispatchError`` listing every failed folder, if any."""
        failed = self.failed_folders
        if failed:
            raise DispatchError(failed)
