"""Client-side throttling for calls to the courier API."""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class RateLimiter:
    """Spaces courier calls at least ``60 / calls_per_minute`` seconds apart.

    Each caller reserves the next free slot while holding the lock and waits
    for it afterwards, so dispatch workers sharing one limiter queue up in
    order without blocking each other's reservations.
    """

    def __init__(
        self,
        calls_per_minute: Optional[float],
        *,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._interval = 60.0 / float(calls_per_minute) if calls_per_minute else 0.0
        self._monotonic = monotonic
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = 0.0

    @property
    def interval(self) -> float:
        return self._interval

    def _reserve(self) -> float:
        with self._lock:
            now = self._monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self._interval
            return slot - now

    def acquire(self) -> None:
        if self._interval <= 0:
            return
        wait = self._reserve()
        if wait > 0:
            self._sleep(wait)


__all__ = ["RateLimiter"]
