"""Per-identity throttling built on :class:`~activity_throttle.counter.Counter`."""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Hashable
from typing import Generic, TypeVar

from .clock import Clock, MonotonicClock
from .counter import Counter
from .policy import ThrottlePolicy

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


class KeyedCounter(Generic[K]):
    """Apply the :class:`Counter` algorithm independently per key.

    A key's counter is created on first use with the shared configuration,
    so distinct keys never affect each other's window or lockout. Keys are
    kept until :meth:`reset`, :meth:`sweep` or, when ``max_keys`` is set,
    least-recently-used eviction removes them.
    """

    def __init__(
        self,
        window_ms: int,
        limit: int,
        lockout_ms: int,
        *,
        clock: Clock | None = None,
        max_keys: int | None = None,
    ) -> None:
        self._policy = ThrottlePolicy(window_ms, limit, lockout_ms)
        self._clock = clock if clock is not None else MonotonicClock()
        self._max_keys = max_keys
        self._counters: OrderedDict[K, Counter] = OrderedDict()

    def __len__(self) -> int:
        return len(self._counters)

    def __contains__(self, key: object) -> bool:
        return key in self._counters

    @property
    def policy(self) -> ThrottlePolicy:
        """Configuration shared by every key's counter."""
        return self._policy

    @property
    def max_keys(self) -> int | None:
        return self._max_keys

    def is_throttled(self, key: K) -> bool:
        """Record one event for ``key`` and return ``True`` when it must be rejected."""
        counter = self._counters.get(key)
        if counter is None:
            counter = self._insert(key)
        else:
            self._counters.move_to_end(key)
        return counter.is_throttled()

    def lockout_remaining_ms(self, key: K) -> int:
        counter = self._counters.get(key)
        if counter is None:
            return 0
        return counter.lockout_remaining_ms()

    def reset(self, key: K) -> None:
        """Drop all state held for ``key``; unknown keys are ignored."""
        self._counters.pop(key, None)

    def sweep(self) -> int:
        """Remove keys with no in-window activity and no active lockout.

        Returns the number of keys removed.
        """
        idle = [key for key, counter in self._counters.items() if counter.is_idle()]
        for key in idle:
            del self._counters[key]
        if idle:
            logger.debug("swept %d idle keys, %d remaining", len(idle), len(self._counters))
        return len(idle)

    def _insert(self, key: K) -> Counter:
        if self._max_keys is not None:
            while self._counters and len(self._counters) >= self._max_keys:
                evicted, _ = self._counters.popitem(last=False)
                logger.debug("evicted least recently used key %r", evicted)
        counter = self._policy.build_counter(self._clock)
        self._counters[key] = counter
        return counter
