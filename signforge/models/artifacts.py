"""Stored artifact models and the deployment metadata attached to signed packages."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# S3 lowercases user metadata keys, so these are written lowercase.
UNSIGNED_HASH_KEY = "unsignedhash"
SIGNED_HASH_KEY = "signedhash"
SOURCE_CODE_HASH_KEY = "source-code-hash"


class ObjectHead(BaseModel):
    """Result of a metadata-only lookup of a stored object."""

    model_config = ConfigDict(frozen=True)

    key: str
    version_id: str | None = None
    size_bytes: int = 0
    metadata: dict[str, str] | None = None


class DeploymentMetadata(BaseModel):
    """Fingerprints attached to the signed artifact.

    ``unsigned_hash`` drives change detection; ``signed_hash`` is what the
    compute service checks the deployed code against.
    """

    model_config = ConfigDict(frozen=True)

    unsigned_hash: str
    signed_hash: str

    def as_object_metadata(self) -> dict[str, str]:
        """Flat string mapping written to the object store."""
        return {
            UNSIGNED_HASH_KEY: self.unsigned_hash,
            SIGNED_HASH_KEY: self.signed_hash,
            SOURCE_CODE_HASH_KEY: self.signed_hash,
        }
