"""Wall-clock timing helpers for progress lines."""

from __future__ import annotations

import time


def format_elapsed(seconds: float) -> str:
    """Render a duration as ``"N seconds"`` or ``"M minutes and N seconds"``."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    if minutes == 0:
        return f"{secs} seconds"
    return f"{minutes} minutes and {secs} seconds"


class Timer:
    """Started on construction; ``str(timer)`` renders the time since then."""

    def __init__(self) -> None:
        self._started = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    def __str__(self) -> str:
        return format_elapsed(self.elapsed)
