"""Bounded backoff polling for external asynchronous operations."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_result,
    stop_after_delay,
    wait_exponential,
)

from signforge.core.errors import PollTimeoutError
from signforge.models.config import PollWindow

logger = logging.getLogger(__name__)


def _pending(done: bool) -> bool:
    return not done


def wait_until(
    check: Callable[[], bool],
    window: PollWindow,
    *,
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Call *check* until it returns True, sleeping between attempts.

    *check* returns True when the operation has succeeded, False while it is
    still pending, and raises for a terminal failure (which propagates
    unchanged). The first sleep is ``window.min_delay``; each subsequent one
    doubles, capped at ``window.max_delay``. The first pending result seen
    after ``window.max_wait`` has elapsed ends the wait. Sleeps are never
    shortened, so the wait can overrun ``max_wait`` by up to one sleep.

    Returns the number of checks made.

    Raises
    ------
    PollTimeoutError
        If the operation is still pending when the window elapses.
    """
    attempts = 0

    def counted_check() -> bool:
        nonlocal attempts
        attempts += 1
        return check()

    retrying = Retrying(
        retry=retry_if_result(_pending),
        wait=wait_exponential(
            multiplier=window.min_delay, min=window.min_delay, max=window.max_delay
        ),
        stop=stop_after_delay(window.max_wait),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )
    try:
        retrying(counted_check)
    except RetryError as exc:
        raise PollTimeoutError(
            f"Timed out after {window.max_wait:g}s waiting for {description}"
        ) from exc
    return attempts
