"""
permitvault.clock — time sources for deadline checks.

Deadlines are compared against a single `now()` reading per call, in whole
epoch seconds.

- SystemClock : wall time (int(time.time()))
- ManualClock : settable and never moving backwards; used by the local chain
                to model block timestamps ("set next block timestamp", "mine")
"""

from __future__ import annotations

import threading
import time
from typing import Optional, Protocol, runtime_checkable

from .errors import ClockError


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Monotonic non-decreasing clock driven by the caller."""

    def __init__(self, start: Optional[int] = None) -> None:
        self._now = int(time.time()) if start is None else int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def set(self, timestamp: int) -> int:
        with self._lock:
            if timestamp < self._now:
                raise ClockError(self._now, timestamp)
            self._now = int(timestamp)
            return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ClockError(self.now(), self.now() + seconds)
        with self._lock:
            self._now += int(seconds)
            return self._now


__all__ = ["Clock", "SystemClock", "ManualClock"]
