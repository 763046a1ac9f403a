from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    exploring: int
    retrieving: int
    pickups: int
    food_remaining: float
    signal_load: float
    tick_duration_ms: float = 0.0
