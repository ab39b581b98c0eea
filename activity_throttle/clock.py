"""Millisecond time sources used by the throttling counters."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything able to report the current instant in integer milliseconds."""

    def now_ms(self) -> int:
        ...


class MonotonicClock:
    """Production clock backed by :func:`time.monotonic_ns`."""

    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000


class ManualClock:
    """Controllable clock for tests and simulations.

    Time only moves when :meth:`advance` or :meth:`set` is called, and never
    backwards.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = start_ms

    def now_ms(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        """Move the clock forward by ``ms`` and return the new instant."""
        if ms < 0:
            raise ValueError("clock cannot move backwards")
        self._now += ms
        return self._now

    def set(self, now_ms: int) -> None:
        if now_ms < self._now:
            raise ValueError("clock cannot move backwards")
        self._now = now_ms
