"""Minimum-interval rate limiting for outbound API requests."""

from __future__ import annotations

import threading
import time


class RequestRateLimiter:
    """Enforce a minimum interval between consecutive :meth:`wait` calls."""

    def __init__(self, min_interval: float) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self._min_interval = min_interval
        self._lock = threading.Lock()
        self._next_allowed: float | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    def wait(self) -> None:
        if self._min_interval == 0:
            return
        with self._lock:
            now = time.monotonic()
            start = now if self._next_allowed is None else max(now, self._next_allowed)
            delay = start - now
            self._next_allowed = start + self._min_interval
        if delay > 0:
            time.sleep(delay)
