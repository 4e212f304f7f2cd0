"""Timer package."""

from .engine import TimerEngine, TICK_INTERVAL_MS, wall_clock_ms
from .transitions import Transition

__all__ = [
    "TimerEngine",
    "TICK_INTERVAL_MS",
    "Transition",
    "wall_clock_ms",
]
