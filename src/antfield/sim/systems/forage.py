from __future__ import annotations

from ..core.agent import Ant, SignalKind
from ..core.config import AntConfig
from ..core.food import FoodField


def drain_inventory(ant: Ant, config: AntConfig, dt: float) -> None:
    ant.inventory.drain(config.inventory_drain_per_second * dt)
    if not ant.inventory.is_full:
        ant.state = SignalKind.EXPLORING


def gather_food(ant: Ant, food: FoodField) -> bool:
    if ant.state != SignalKind.EXPLORING:
        return False
    ant.inventory.fill_from(ant.position, food)
    if ant.inventory.is_full:
        ant.state = SignalKind.RETRIEVING
        return True
    return False
