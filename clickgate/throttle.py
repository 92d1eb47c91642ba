"""Leading-edge throttling for high-frequency UI events."""

from __future__ import annotations

import threading
from typing import Optional

from core.clock import ClockFn, now_mono

__all__ = ["ThrottleFirst"]

_NS_PER_S = 1_000_000_000


def _to_ns(seconds: float) -> int:
    return round(seconds * _NS_PER_S)


class ThrottleFirst:
    """Admit the first event, then return False until the cooldown elapsed.

    Clock readings are quantised to integer nanoseconds so an event landing
    exactly on the window edge compares equal to the cooldown.
    """

    def __init__(self, cooldown_s: float = 0.0, clock: ClockFn = now_mono) -> None:
        self._cooldown = max(0.0, float(cooldown_s))
        self._cooldown_ns = _to_ns(self._cooldown)
        self._clock = clock
        self._last_ns: Optional[int] = None
        self._lock = threading.Lock()

    @property
    def cooldown_s(self) -> float:
        return self._cooldown

    def allow(self) -> bool:
        """Return True only if the previous admitted event is outside the window."""

        if self._cooldown_ns <= 0:
            return True
        now_ns = _to_ns(self._clock())
        with self._lock:
            last_ns = self._last_ns
            if last_ns is None or now_ns - last_ns >= self._cooldown_ns:
                self._last_ns = now_ns
                return True
            return False
