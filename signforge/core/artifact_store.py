"""Artifact store clients — thin put/get/head/copy/delete wrappers.

``S3ArtifactStore`` talks to a versioned S3 bucket through boto3 and satisfies
the ``ArtifactStore`` protocol the pipeline is written against.

It does not retry beyond what the underlying client already does. Every
failure surfaces as ``StoreError``; a missing object on ``head`` is the only
case reported as a value (``None``) rather than an error.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from botocore.exceptions import BotoCoreError, ClientError

from signforge.core.errors import StoreError
from signforge.models.artifacts import ObjectHead

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


@runtime_checkable
class ArtifactStore(Protocol):
    """Protocol for object store backends bound to one bucket."""

    bucket: str

    def put(self, key: str, data: bytes, metadata: dict[str, str] | None = None) -> str:
        """Store *data* under *key* and return the new version id."""
        ...

    def get(self, key: str) -> bytes:
        """Return the body of *key*."""
        ...

    def head(self, key: str) -> ObjectHead | None:
        """Return metadata for *key* without its body; ``None`` if absent."""
        ...

    def copy(self, src_key: str, dst_key: str, metadata: dict[str, str]) -> None:
        """Copy *src_key* to *dst_key*, replacing destination metadata wholesale."""
        ...

    def delete(self, key: str) -> None:
        """Delete *key*."""
        ...


# ---------------------------------------------------------------------------
# S3
# ---------------------------------------------------------------------------


class S3ArtifactStore:
    """S3 backend for one bucket.

    Parameters
    ----------
    client:
        A boto3 S3 client. Clients are thread-safe and may be shared by
        every folder pipeline.
    bucket:
        Bucket name. Versioning must be enabled: the signer reads the
        unsigned package by version id.
    """

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self.bucket = bucket

    def put(self, key: str, data: bytes, metadata: dict[str, str] | None = None) -> str:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": data}
        if metadata:
            kwargs["Metadata"] = metadata
        try:
            response = self._client.put_object(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to put s3://{self.bucket}/{key}: {exc}") from exc
        version_id = response.get("VersionId")
        if not version_id:
            raise StoreError(
                f"No version id returned for s3://{self.bucket}/{key}; "
                "bucket versioning must be enabled"
            )
        return version_id

    def get(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to get s3://{self.bucket}/{key}: {exc}") from exc

    def head(self, key: str) -> ObjectHead | None:
        try:
            response = self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return None
            raise StoreError(f"Failed to head s3://{self.bucket}/{key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"Failed to head s3://{self.bucket}/{key}: {exc}") from exc
        return ObjectHead(
            key=key,
            version_id=response.get("VersionId"),
            size_bytes=response.get("ContentLength", 0),
            metadata=response.get("Metadata"),
        )

    def copy(self, src_key: str, dst_key: str, metadata: dict[str, str]) -> None:
        try:
            self._client.copy_object(
                CopySource={"Bucket": self.bucket, "Key": src_key},
                Bucket=self.bucket,
                Key=dst_key,
                Metadata=metadata,
                MetadataDirective="REPLACE",
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(
                f"Failed to copy s3://{self.bucket}/{src_key} to {dst_key}: {exc}"
            ) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to delete s3://{self.bucket}/{key}: {exc}") from exc

