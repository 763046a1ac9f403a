from __future__ import annotations

from typing import Iterable

from ..core.agent import Ant, SignalKind
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    ants: Iterable[Ant],
    pickups: int,
    food_remaining: float,
    signal_load: float,
    duration_ms: float,
) -> TickMetrics:
    population = 0
    retrieving = 0
    for ant in ants:
        population += 1
        if ant.state == SignalKind.RETRIEVING:
            retrieving += 1
    return TickMetrics(
        tick=tick,
        population=population,
        exploring=population - retrieving,
        retrieving=retrieving,
        pickups=pickups,
        food_remaining=food_remaining,
        signal_load=signal_load,
        tick_duration_ms=duration_ms,
    )
