"""Code-signing coordinator backed by AWS Signer.

Submits the unsigned package (addressed by key and version id) to a signing
profile and blocks until the job is terminal. On success the signer has
written the signed package under the staging prefix, named after the job id.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from botocore.exceptions import BotoCoreError, ClientError

from signforge.core.errors import PollTimeoutError, SigningError
from signforge.core.poller import wait_until
from signforge.models.config import PollWindow

logger = logging.getLogger(__name__)

_SUCCEEDED = "Succeeded"
_FAILED = "Failed"


@runtime_checkable
class Signer(Protocol):
    """Protocol for signing backends."""

    def submit(self, unsigned_key: str, version_id: str) -> str:
        """Start a signing job and return its id."""
        ...

    def await_completion(self, job_id: str) -> None:
        """Block until the job succeeds; raise ``SigningError`` otherwise."""
        ...


class AwsSigner:
    """Signer for one bucket and signing profile.

    Parameters
    ----------
    client:
        A boto3 ``signer`` client.
    bucket:
        Bucket holding both the unsigned source and the staging output.
    profile_name:
        Signing profile to sign with.
    staging_prefix:
        Key prefix the signer writes its output under.
    window:
        Backoff window for ``await_completion``.
    """

    def __init__(
        self,
        client: Any,
        *,
        bucket: str,
        profile_name: str,
        staging_prefix: str,
        window: PollWindow | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self.bucket = bucket
        self.profile_name = profile_name
        self.staging_prefix = staging_prefix.strip("/")
        self.window = window or PollWindow(min_delay=2.0, max_delay=10.0)
        self._sleep = sleep

    def submit(self, unsigned_key: str, version_id: str) -> str:
        destination_prefix = f"{self.staging_prefix}/" if self.staging_prefix else ""
        try:
            response = self._client.start_signing_job(
                profileName=self.profile_name,
                source={
                    "s3": {
                        "bucketName": self.bucket,
                        "key": unsigned_key,
                        "version": version_id,
                    }
                },
                destination={
                    "s3": {
                        "bucketName": self.bucket,
                        "prefix": destination_prefix,
                    }
                },
            )
        except (ClientError, BotoCoreError) as exc:
            raise SigningError(f"Failed to start signing job for {unsigned_key}: {exc}") from exc
        return response["jobId"]

    def _job_done(self, job_id: str) -> bool:
        try:
            response = self._client.describe_signing_job(jobId=job_id)
        except (ClientError, BotoCoreError) as exc:
            raise SigningError(f"Failed to describe signing job {job_id}: {exc}") from exc
        status = response.get("status")
        logger.debug("Signing job %s status: %s", job_id, status)
        if status == _SUCCEEDED:
            return True
        if status == _FAILED:
            reason = response.get("statusReason") or "no reason given"
            raise SigningError(f"Signing job {job_id} failed: {reason}")
        return False

    def await_completion(self, job_id: str) -> None:
        try:
            wait_until(
                lambda: self._job_done(job_id),
                self.window,
                description=f"signing job {job_id}",
                sleep=self._sleep,
            )
        except PollTimeoutError as exc:
            raise SigningError(str(exc)) from exc
