"""Clock abstractions used by caches and debouncers."""

from __future__ import annotations

import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic time in seconds."""

    def now(self) -> float:
        ...


class MonotonicClock:
    """Wall clock backed by :func:`time.monotonic`."""

    def now(self) -> float:
        return time.monotonic()


class VirtualClock:
    """Manually advanced clock for deterministic tests and simulations."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        with self._lock:
            self._now += seconds
            return self._now
