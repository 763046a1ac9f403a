from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from pygame.math import Vector2

from .field import Cell, Region, ScalarField


class FoodField:
    def __init__(self, lattice: Vector2, size: Vector2, diffusion_rate: float = 0.0001, evaporation_rate: float = 0.0):
        self._field = ScalarField(lattice, size)
        self._diffusion_rate = diffusion_rate
        self._evaporation_rate = evaporation_rate

    @property
    def field(self) -> ScalarField:
        return self._field

    def put(self, area: Region, depth: float) -> int:
        area = Region.from_center_size(Vector2(), self._field.size).intersect(area)
        if area.is_empty:
            return 0
        dimensions = self._field.dimensions
        placed = 0
        for y in range(dimensions.height):
            for x in range(dimensions.width):
                if area.contains(self._field.cell_center(x, y)):
                    self._field.set_cell(x, y, depth)
                    placed += 1
        return placed

    def amount_at(self, position: Vector2) -> float:
        return self._field.value_at(position)

    def take(self, position: Vector2, amount: float) -> float:
        available = self._field.value_at(position)
        taken = min(max(0.0, amount), available)
        if taken > 0.0:
            self._field.set(position, available - taken)
        return taken

    def update(self, dt: float) -> None:
        self._field.step(self._diffusion_rate, self._evaporation_rate, dt)

    def total(self) -> float:
        return self._field.total()

    def cells(self) -> List[Cell]:
        return self._field.cells()

    def reset(self) -> None:
        self._field.clear()

    def export(self) -> Dict[str, Any]:
        cells = [{**cell.region.to_dict(), "value": cell.value} for cell in self._field.cells() if cell.value > 0.0]
        dimensions = self._field.dimensions
        return {"cells": cells, "resolution": [dimensions.width, dimensions.height]}


@dataclass(slots=True)
class Inventory:
    capacity: float = 2.0
    contents: float = 0.0
    full_fraction: float = 0.5

    @property
    def is_full(self) -> bool:
        return self.contents > self.full_fraction * self.capacity

    def space(self) -> float:
        return self.capacity - self.contents

    def fill_from(self, position: Vector2, food: FoodField) -> float:
        taken = food.take(position, self.space())
        self.contents = min(self.capacity, self.contents + taken)
        return taken

    def drain(self, amount: float) -> None:
        self.contents = max(0.0, self.contents - amount)
