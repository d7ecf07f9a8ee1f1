"""Run configuration model — built once per invocation and passed explicitly."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PollWindow(BaseModel):
    """Backoff window for a blocking wait.

    The first poll sleeps ``min_delay`` seconds, each subsequent sleep
    doubles up to ``max_delay``, and the whole wait gives up after
    ``max_wait`` seconds.
    """

    model_config = ConfigDict(frozen=True)

    min_delay: float = Field(default=2.0, gt=0)
    max_delay: float = Field(default=10.0, gt=0)
    max_wait: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def _check_order(self) -> PollWindow:
        if self.max_delay < self.min_delay:
            raise ValueError(
                f"max_delay ({self.max_delay:g}) must not be less than "
                f"min_delay ({self.min_delay:g})"
            )
        return self


class DeployConfig(BaseModel):
    """Immutable configuration shared read-only by every folder pipeline."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    unsigned_prefix: str
    staging_prefix: str
    signed_prefix: str
    signing_profile: str

    force: bool = False
    update_functions: bool = True
    alias_name: str = "TEST"

    # Environment handed to the compiler (host env plus cross-compile vars)
    build_env: dict[str, str] = Field(default_factory=dict)
    entry_name: str = "main"
    source_patterns: tuple[str, ...] = ("go.*", "*.go")

    signing_poll: PollWindow = PollWindow(min_delay=2.0, max_delay=10.0)
    function_poll: PollWindow = PollWindow(min_delay=3.0, max_delay=10.0)

    @field_validator("unsigned_prefix", "staging_prefix", "signed_prefix")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/")

    # ------------------------------------------------------------------
    # Key layout
    # ------------------------------------------------------------------

    def unsigned_key(self, folder: str) -> str:
        """Key of the transient, pre-signing package for *folder*."""
        return object_key(self.unsigned_prefix, f"{folder}.zip")

    def staging_key(self, job_id: str) -> str:
        """Key where the signer writes the output of *job_id*."""
        return object_key(self.staging_prefix, f"{job_id}.zip")

    def signed_key(self, folder: str) -> str:
        """Key of the durable, signed package for *folder*."""
        return object_key(self.signed_prefix, f"{folder}.zip")


def object_key(prefix: str, name: str) -> str:
    """Join a key prefix and a name; an empty prefix yields the bare name."""
    prefix = prefix.strip("/")
    return f"{prefix}/{name}" if prefix else name
