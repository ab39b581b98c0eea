"""Shared throttling configuration value object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .clock import Clock
from .counter import Counter

if TYPE_CHECKING:
    from .keyed import KeyedCounter


@dataclass(frozen=True, slots=True)
class ThrottlePolicy:
    """Window length, event limit and lockout length shared by counters."""

    window_ms: int
    limit: int
    lockout_ms: int

    def build_counter(self, clock: Clock | None = None) -> Counter:
        return Counter(self.window_ms, self.limit, self.lockout_ms, clock=clock)

    def build_keyed(
        self, clock: Clock | None = None, max_keys: int | None = None
    ) -> KeyedCounter:
        from .keyed import KeyedCounter

        return KeyedCounter(
            self.window_ms, self.limit, self.lockout_ms, clock=clock, max_keys=max_keys
        )
