"""
Shared utility functions used across the project.
"""
import time
from typing import Callable

Clock = Callable[[], float]


def exchange_now(offset_hours: float = 0.0, clock: Clock = time.time) -> float:
    """Current time on the exchange clock, in seconds."""
    return clock() + offset_hours * 60 * 60


def seconds_since(past: float, offset_hours: float = 0.0, clock: Clock = time.time) -> float:
    """Seconds elapsed on the exchange clock since ``past``."""
    return exchange_now(offset_hours, clock) - past
