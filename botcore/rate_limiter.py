"""
Sliding-window rate limiting.

Keeps the last `capacity` admission instants in a ring. A request is admitted
while fewer than `capacity` of them fall inside the window.
"""

import threading
from collections import deque
from typing import Deque


class RateLimiter:
    """Admits at most `capacity` requests in any window of `window` seconds."""

    def __init__(self, window: float, capacity: int):
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")

        self.window = window
        self.capacity = capacity
        self._admitted: Deque[float] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def allow(self, now: float) -> bool:
        """Record and admit a request at `now` if the window has room."""
        with self._lock:
            while self._admitted and now - self._admitted[0] >= self.window:
                self._admitted.popleft()

            if len(self._admitted) >= self.capacity:
                return False

            self._admitted.append(now)
            return True

    def next_allowed(self, now: float) -> float:
        """Earliest instant at which allow() would succeed, absent other calls."""
        with self._lock:
            if len(self._admitted) < self.capacity:
                return now
            return max(now, self._admitted[0] + self.window)

    def reset(self) -> None:
        with self._lock:
            self._admitted.clear()

