"""Environment-driven settings.

Centralized defaults using pydantic-settings. Reads from a ``.env`` file and
``SIGNFORGE_*`` environment variables; command-line flags override these and
the merged result becomes an immutable ``DeployConfig``.
"""

from __future__ import annotations

import os

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from signforge.core.errors import ConfigurationError
from signforge.models.config import PollWindow


class Settings(BaseSettings):
    """Deployer settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export SIGNFORGE_REGION=eu-west-1
        export SIGNFORGE_TARGET_ARCH=arm64
        export SIGNFORGE_SIGNING_MAX_WAIT=120
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SIGNFORGE_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # AWS
    region: str = "us-east-1"
    aws_profile: str | None = None

    # Function activation
    alias_name: str = "TEST"

    # Build
    go_binary: str = "go"
    target_os: str = "linux"
    target_arch: str = "amd64"
    entry_name: str = "main"
    source_patterns: list[str] = ["go.*", "*.go"]
    excluded_folders: list[str] = ["internal"]

    # Wait windows (seconds)
    signing_min_delay: float = Field(default=2.0, gt=0)
    signing_max_delay: float = Field(default=10.0, gt=0)
    signing_max_wait: float = Field(default=30.0, gt=0)
    function_min_delay: float = Field(default=3.0, gt=0)
    function_max_delay: float = Field(default=10.0, gt=0)
    function_max_wait: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def _check_poll_windows(self) -> Settings:
        for name in ("signing", "function"):
            min_delay = getattr(self, f"{name}_min_delay")
            max_delay = getattr(self, f"{name}_max_delay")
            if max_delay < min_delay:
                raise ValueError(
                    f"{name}_max_delay ({max_delay:g}) must not be less than "
                    f"{name}_min_delay ({min_delay:g})"
                )
        return self

    def build_env(self) -> dict[str, str]:
        """Host environment plus the cross-compilation variables."""
        env = dict(os.environ)
        env.update({
            "GOOS": self.target_os,
            "GOARCH": self.target_arch,
            "CGO_ENABLED": "0",
        })
        return env

    @property
    def signing_poll(self) -> PollWindow:
        return PollWindow(
            min_delay=self.signing_min_delay,
            max_delay=self.signing_max_delay,
            max_wait=self.signing_max_wait,
        )

    @property
    def function_poll(self) -> PollWindow:
        return PollWindow(
            min_delay=self.function_min_delay,
            max_delay=self.function_max_delay,
            max_wait=self.function_max_wait,
        )


def load_settings() -> Settings:
    """Read settings from the environment.

    Raises
    ------
    ConfigurationError
        If any ``SIGNFORGE_*`` value fails validation.
    """
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid SIGNFORGE_* settings: {exc}") from exc
