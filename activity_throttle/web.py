"""FastAPI integration for per-identity throttling."""

import logging
import math
from collections.abc import Hashable
from threading import Lock
from typing import Any, Callable

from fastapi import HTTPException, Request, status
from pydantic import BaseModel

from .config import Settings, get_settings
from .keyed import KeyedCounter

logger = logging.getLogger(__name__)


class ThrottledResponse(BaseModel):
    """Body returned with a ``429 Too Many Requests`` response."""

    detail: str = "rate limited"


def client_host(request: Request) -> str:
    """Default key function: the remote address of the caller."""
    if request.client is None:
        return "unknown"
    return request.client.host


class ThrottleGuard:
    """Reject requests whose key is throttled by a shared :class:`KeyedCounter`.

    Use an instance directly as a FastAPI dependency to throttle by
    ``key_func(request)``, or call :meth:`check` from a handler with a key
    taken from the payload (an email address on a sign-in route, say).
    Calls into the counter are serialised since FastAPI runs sync
    dependencies on a thread pool.
    """

    def __init__(
        self,
        counter: KeyedCounter,
        *,
        key_func: Callable[[Request], Hashable] = client_host,
        scope: str | None = None,
    ) -> None:
        self._counter = counter
        self._key_func = key_func
        self._scope = scope or None
        self._lock = Lock()

    @property
    def counter(self) -> KeyedCounter:
        return self._counter

    @property
    def responses(self) -> dict[int | str, dict[str, Any]]:
        """OpenAPI ``responses`` entry for routes protected by this guard."""
        return {status.HTTP_429_TOO_MANY_REQUESTS: {"model": ThrottledResponse}}

    def __call__(self, request: Request) -> None:
        self.check(self._key_func(request))

    def check(self, key: Hashable) -> None:
        """Record an attempt for ``key`` and raise HTTP 429 when it is throttled."""
        if self._scope:
            key = (self._scope, key)
        with self._lock:
            if not self._counter.is_throttled(key):
                return
            remaining_ms = self._counter.lockout_remaining_ms(key)
        logger.warning("throttled attempt for key %r, lockout %d ms", key, remaining_ms)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=ThrottledResponse().detail,
            headers={"Retry-After": str(_retry_after_seconds(remaining_ms))},
        )


def _retry_after_seconds(remaining_ms: int) -> int:
    return max(1, math.ceil(remaining_ms / 1000))


def build_guard(settings: Settings | None = None, **kwargs: Any) -> ThrottleGuard:
    """Instantiate a guard from the configured throttling policy."""
    settings = settings or get_settings()
    policy = settings.policy
    counter = policy.build_keyed(clock=kwargs.pop("clock", None), max_keys=settings.max_keys)
    kwargs.setdefault("scope", settings.scope)
    logger.info(
        "throttle guard configured: %d events per %d ms, lockout %d ms, max keys %s",
        policy.limit,
        policy.window_ms,
        policy.lockout_ms,
        settings.max_keys,
    )
    return ThrottleGuard(counter, **kwargs)
