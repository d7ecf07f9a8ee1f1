"""AWS client construction.

Clients are created once, on the main thread, from a single boto3 session
and then shared read-only by every folder pipeline (boto3 clients are
thread-safe; sessions are not).
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

_CLIENT_CONFIG = Config(retries={"max_attempts": 3, "mode": "standard"})


class AwsClients:
    """The three service clients a deployment needs.

    Parameters
    ----------
    region:
        AWS region for every client.
    profile:
        Optional named credentials profile.
    """

    def __init__(self, region: str, profile: str | None = None) -> None:
        session = boto3.session.Session(profile_name=profile, region_name=region)
        self.region = region
        self.s3: Any = session.client("s3", config=_CLIENT_CONFIG)
        self.signer: Any = session.client("signer", config=_CLIENT_CONFIG)
        self.lambda_: Any = session.client("lambda", config=_CLIENT_CONFIG)
        logger.debug("AWS clients created (region=%s, profile=%s)", region, profile or "default")
