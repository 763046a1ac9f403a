from __future__ import annotations

import math

from ..core.agent import Ant
from ..core.field import Region


def _wrap_axis(value: float, low: float, high: float) -> float:
    extent = high - low
    if extent <= 0.0 or not math.isfinite(value):
        return value
    if value > high:
        value -= math.ceil((value - high) / extent) * extent
    if value < low:
        value += math.ceil((low - value) / extent) * extent
    return value


def wrap_position(ant: Ant, domain: Region) -> None:
    ant.position.update(
        _wrap_axis(ant.position.x, domain.min_x, domain.max_x),
        _wrap_axis(ant.position.y, domain.min_y, domain.max_y),
    )
