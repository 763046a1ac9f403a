from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.agent import Ant
from . import steering

if TYPE_CHECKING:
    from ..core.world import World


def tick_environment(world: World, dt: float) -> None:
    world._signals.update(dt)
    world._food.update(dt)


def queue_deposit(world: World, ant: Ant) -> None:
    world._pending_deposits.append(steering.signal_for(ant, world._config.ant))


def apply_signal_events(world: World) -> None:
    signals = world._signals
    for position, amount, kind in world._pending_deposits:
        signals.deposit(position, amount, kind)
    world._pending_deposits.clear()
