from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic millisecond clock.

    The engine reads time only through this interface; press durations,
    double-click windows and rhythm offsets are all timestamp arithmetic on it.
    """

    def now_ms(self) -> float:
        """Return monotonic milliseconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0
