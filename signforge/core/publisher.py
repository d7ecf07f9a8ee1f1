"""Function publisher backed by AWS Lambda.

Points a function at the signed package, waits for the update to land,
publishes an immutable version pinned to the signed package's hash, and
moves the alias onto it. Lambda refuses the publish if the deployed code
does not hash to ``CodeSha256``, which is what ties the live version to the
signed artifact.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from botocore.exceptions import BotoCoreError, ClientError

from signforge.core.errors import FunctionUpdateError, PollTimeoutError
from signforge.core.poller import wait_until
from signforge.models.config import PollWindow

logger = logging.getLogger(__name__)


@runtime_checkable
class FunctionPublisher(Protocol):
    """Protocol for compute function backends."""

    def update_code(self, function_name: str, bucket: str, key: str) -> None: ...

    def await_code_updated(self, function_name: str) -> None: ...

    def publish_version(self, function_name: str, code_sha256: str) -> str: ...

    def update_alias(self, function_name: str, alias_name: str, version: str) -> None: ...


class LambdaPublisher:
    """Publisher for Lambda functions named after their folders.

    Parameters
    ----------
    client:
        A boto3 ``lambda`` client.
    window:
        Backoff window for ``await_code_updated``.
    """

    def __init__(
        self,
        client: Any,
        *,
        window: PollWindow | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self.window = window or PollWindow(min_delay=3.0, max_delay=10.0)
        self._sleep = sleep

    def update_code(self, function_name: str, bucket: str, key: str) -> None:
        try:
            self._client.update_function_code(
                FunctionName=function_name, S3Bucket=bucket, S3Key=key
            )
        except (ClientError, BotoCoreError) as exc:
            raise FunctionUpdateError(
                f"Failed to update code of {function_name}: {exc}"
            ) from exc

    def _update_done(self, function_name: str) -> bool:
        try:
            response = self._client.get_function(FunctionName=function_name)
        except (ClientError, BotoCoreError) as exc:
            raise FunctionUpdateError(f"Failed to get function {function_name}: {exc}") from exc
        configuration = response.get("Configuration", {})
        status = configuration.get("LastUpdateStatus")
        logger.debug("Function %s update status: %s", function_name, status)
        if status == "Successful":
            return True
        if status == "Failed":
            reason = configuration.get("LastUpdateStatusReason") or "no reason given"
            raise FunctionUpdateError(f"Code update of {function_name} failed: {reason}")
        return False

    def await_code_updated(self, function_name: str) -> None:
        try:
            wait_until(
                lambda: self._update_done(function_name),
                self.window,
                description=f"code update of {function_name}",
                sleep=self._sleep,
            )
        except PollTimeoutError as exc:
            raise FunctionUpdateError(str(exc)) from exc

    def publish_version(self, function_name: str, code_sha256: str) -> str:
        try:
            response = self._client.publish_version(
                FunctionName=function_name, CodeSha256=code_sha256
            )
        except (ClientError, BotoCoreError) as exc:
            raise FunctionUpdateError(
                f"Failed to publish version of {function_name}: {exc}"
            ) from exc
        return response["Version"]

    def update_alias(self, function_name: str, alias_name: str, version: str) -> None:
        try:
            self._client.update_alias(
                FunctionName=function_name, Name=alias_name, FunctionVersion=version
            )
        except (ClientError, BotoCoreError) as exc:
            raise FunctionUpdateError(
                f"Failed to point alias {alias_name} of {function_name} at {version}: {exc}"
            ) from exc
