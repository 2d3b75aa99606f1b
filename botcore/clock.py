"""
Time sources.

Wall-clock instants are persisted by the component ID store, monotonic
instants drive rate limiter windows.
"""

import math
import time
import threading


class SystemClock:
    """Clock backed by the host's timers."""

    def now(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()


class FakeClock:
    """Manually driven clock for tests. Both readings move together."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def monotonic(self) -> float:
        return self.now()

    def advance(self, seconds: float) -> float:
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, instant: float) -> None:
        with self._lock:
            self._now = float(instant)


def format_relative(seconds: float) -> str:
    """
    Format a future offset the way a human would say it.

    Rounds up, so the instant named is never earlier than the real one.
    Examples: "in 1 second", "in 5 minutes", "now".
    """
    if seconds <= 0:
        return "now"

    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            amount = math.ceil(seconds / size)
            return f"in {amount} {unit}{'s' if amount != 1 else ''}"

    amount = math.ceil(seconds)
    return f"in {amount} second{'s' if amount != 1 else ''}"
