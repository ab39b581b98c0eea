from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os

from .policy import ThrottlePolicy


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default))


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


@dataclass(frozen=True)
class Settings:
    """Throttling configuration read from the process environment."""

    window_ms: int = field(default_factory=lambda: _env_int("THROTTLE_WINDOW_MS", "60000"))
    limit: int = field(default_factory=lambda: _env_int("THROTTLE_LIMIT", "5"))
    lockout_ms: int = field(default_factory=lambda: _env_int("THROTTLE_LOCKOUT_MS", "180000"))
    max_keys: int | None = field(default_factory=lambda: _env_optional_int("THROTTLE_MAX_KEYS"))
    scope: str = field(default_factory=lambda: os.getenv("THROTTLE_SCOPE", ""))

    @property
    def policy(self) -> ThrottlePolicy:
        return ThrottlePolicy(self.window_ms, self.limit, self.lockout_ms)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
