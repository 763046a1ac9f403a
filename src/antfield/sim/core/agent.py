from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pygame.math import Vector2

from .food import Inventory


class SignalKind(str, Enum):
    EXPLORING = "Exploring"
    RETRIEVING = "Retrieving"


@dataclass(slots=True)
class Ant:
    id: int
    position: Vector2
    velocity: Vector2 = field(default_factory=lambda: Vector2(1.0, 0.0))
    state: SignalKind = SignalKind.EXPLORING
    inventory: Inventory = field(default_factory=Inventory)
    thrust: float = 0.0
    turn_rate: float = 0.0
