"""Pydantic data models for signforge (all frozen)."""

from signforge.models.artifacts import DeploymentMetadata, ObjectHead
from signforge.models.config import DeployConfig, PollWindow
from signforge.models.stages import (
    DeployOutcome,
    DispatchReport,
    FolderResult,
    PipelineStage,
)

__all__ = [
    "DeployConfig",
    "DeployOutcome",
    "DeploymentMetadata",
    "DispatchReport",
    "FolderResult",
    "ObjectHead",
    "PipelineStage",
    "PollWindow",
]
