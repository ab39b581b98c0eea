"""Single-subject activity counter with sliding window and lockout."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque

from .clock import Clock, MonotonicClock

logger = logging.getLogger(__name__)


class Counter:
    """Decide whether the current event of one subject should be throttled.

    At most ``limit`` events are admitted inside any trailing ``window_ms``
    span. The event that exceeds the limit is rejected and starts a flat
    ``lockout_ms`` lockout, during which every event is rejected. Once the
    lockout elapses counting restarts from an empty window.

    Instances are not thread-safe; callers sharing one across threads must
    serialise access.
    """

    def __init__(
        self,
        window_ms: int,
        limit: int,
        lockout_ms: int,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._window_ms = window_ms
        self._limit = limit
        self._lockout_ms = lockout_ms
        self._clock = clock if clock is not None else MonotonicClock()
        self._event_times: Deque[int] = deque()
        self._locked_until: int | None = None

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def lockout_ms(self) -> int:
        return self._lockout_ms

    @property
    def locked_until(self) -> int | None:
        """Clock instant at which the last lockout ends; cleared by the next call after it."""
        return self._locked_until

    def is_throttled(self) -> bool:
        """Record one event and return ``True`` when it must be rejected."""
        now = self._clock.now_ms()
        if self._locked_until is not None:
            if now < self._locked_until:
                return True
            self._locked_until = None

        self._prune(now)
        self._event_times.append(now)
        if len(self._event_times) > self._limit:
            self._locked_until = now + self._lockout_ms
            self._event_times.clear()
            logger.debug(
                "activity limit of %d exceeded, locking out for %d ms",
                self._limit,
                self._lockout_ms,
            )
            return True
        return False

    def lockout_remaining_ms(self) -> int:
        """Milliseconds left in the current lockout, ``0`` when not locked out."""
        if self._locked_until is None:
            return 0
        return max(0, self._locked_until - self._clock.now_ms())

    def is_idle(self) -> bool:
        """Return ``True`` when no lockout is active and the window holds no events."""
        now = self._clock.now_ms()
        if self._locked_until is not None and now < self._locked_until:
            return False
        queue = self._event_times
        return not queue or queue[-1] < now - self._window_ms

    def reset(self) -> None:
        """Forget all recorded events and lift any lockout."""
        self._event_times.clear()
        self._locked_until = None

    def _prune(self, now: int) -> None:
        cutoff = now - self._window_ms
        queue = self._event_times
        while queue and queue[0] < cutoff:
            queue.popleft()
