"""Activity counters that throttle bursts and lock out offenders."""

from .clock import Clock, ManualClock, MonotonicClock
from .config import Settings, get_settings
from .counter import Counter
from .keyed import KeyedCounter
from .policy import ThrottlePolicy

__version__ = "0.1.0"

__all__ = [
    "Clock",
    "Counter",
    "KeyedCounter",
    "ManualClock",
    "MonotonicClock",
    "Settings",
    "ThrottlePolicy",
    "get_settings",
]
