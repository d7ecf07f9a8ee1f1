"""Change detection against the signed artifact's stored fingerprint."""

from __future__ import annotations

import logging

from signforge.core.artifact_store import ArtifactStore
from signforge.core.errors import StoreError
from signforge.models.artifacts import UNSIGNED_HASH_KEY

logger = logging.getLogger(__name__)


def is_up_to_date(
    store: ArtifactStore, signed_key: str, fingerprint: str, *, folder: str = ""
) -> bool:
    """Return True if the signed artifact was built from *fingerprint*.

    Metadata-only lookup. Returns False, never raising, when:

    - the signed artifact does not exist,
    - it has no metadata,
    - its metadata lacks the unsigned fingerprint,
    - the stored fingerprint differs,
    - the lookup itself fails.

    Store errors are treated the same as a missing object.
    """
    label = folder or signed_key
    try:
        head = store.head(signed_key)
    except StoreError as exc:
        logger.warning(
            "%s | Failed to get previous deployment package %s, proceeding: %s",
            label, signed_key, exc,
        )
        return False

    if head is None:
        logger.info("%s | No previous deployment package at %s, proceeding.", label, signed_key)
        return False
    if not head.metadata:
        logger.info("%s | Previous deployment package has no metadata, proceeding.", label)
        return False

    previous = head.metadata.get(UNSIGNED_HASH_KEY)
    if previous is None:
        logger.info(
            "%s | Previous deployment package has no %s, proceeding.", label, UNSIGNED_HASH_KEY
        )
        return False
    if previous != fingerprint:
        logger.info("%s | Previous deployment is out of date (%s), proceeding.", label, previous)
        return False

    logger.info("%s | Deployment package is up to date.", label)
    return True
