from __future__ import annotations

import pytest

from activity_throttle.clock import ManualClock
from activity_throttle.config import get_settings


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(start_ms=1_000_000)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
