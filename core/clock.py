"""Clock utilities for monotonic timekeeping."""

from __future__ import annotations

import time
from typing import Callable

__all__ = ["ClockFn", "now_mono"]

ClockFn = Callable[[], float]
"""Zero-argument callable returning monotonic seconds."""


def now_mono() -> float:
    """Return the current monotonic time in seconds."""
    return time.monotonic()
