from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np
from pygame.math import Vector2

from .lattice import LatticeIndexer

logger = logging.getLogger(__name__)

# Orthogonal and diagonal neighbour weights of the relaxation stencil.
_ORTHOGONAL = 1.0
_DIAGONAL = 0.5 * math.sqrt(0.5)
_ORTHOGONAL_SHARE = _ORTHOGONAL / (_ORTHOGONAL + _DIAGONAL)
_DIAGONAL_SHARE = _DIAGONAL / (_ORTHOGONAL + _DIAGONAL)


@dataclass(frozen=True, slots=True)
class Region:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_center_size(cls, center: Vector2, size: Vector2) -> "Region":
        half_x = 0.5 * size.x
        half_y = 0.5 * size.y
        return cls(center.x - half_x, center.y - half_y, center.x + half_x, center.y + half_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Vector2:
        return Vector2(0.5 * (self.min_x + self.max_x), 0.5 * (self.min_y + self.max_y))

    @property
    def size(self) -> Vector2:
        return Vector2(self.width, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0.0 or self.height <= 0.0

    def contains(self, point: Vector2) -> bool:
        return self.min_x <= point.x <= self.max_x and self.min_y <= point.y <= self.max_y

    def intersect(self, other: "Region") -> "Region":
        min_x = max(self.min_x, other.min_x)
        min_y = max(self.min_y, other.min_y)
        return Region(min_x, min_y, max(min_x, min(self.max_x, other.max_x)), max(min_y, min(self.max_y, other.max_y)))

    def to_dict(self) -> dict[str, float]:
        return {"x": self.min_x, "y": self.min_y, "w": self.width, "h": self.height}


@dataclass(frozen=True, slots=True)
class Cell:
    region: Region
    value: float


@dataclass(frozen=True, slots=True)
class VectorCell:
    region: Region
    value: Vector2


class ScalarField:
    """Dense scalar grid over a domain centred on the origin.

    The grid is toroidal: world positions wrap modulo the grid extent when they
    are mapped to cells, and the relaxation stencil wraps at the edges.
    """

    def __init__(self, lattice: Vector2, size: Vector2) -> None:
        lattice = Vector2(lattice)
        size = Vector2(size)
        if not (math.isfinite(lattice.x) and math.isfinite(lattice.y)) or lattice.x <= 0 or lattice.y <= 0:
            raise ValueError(f"Lattice step must be positive on both axes, got ({lattice.x}, {lattice.y})")
        if not (math.isfinite(size.x) and math.isfinite(size.y)):
            raise ValueError(f"Domain size must be finite, got ({size.x}, {size.y})")
        self._lattice = lattice
        self._size = size
        self._dimensions = LatticeIndexer(int(size.x / lattice.x), int(size.y / lattice.y))
        self._values = np.zeros((self._dimensions.height, self._dimensions.width), dtype=np.float64)
        self._cell_cache: List[Cell] = []
        self._revision = 0
        leftover_x = size.x - self._dimensions.width * lattice.x
        leftover_y = size.y - self._dimensions.height * lattice.y
        if leftover_x > 1e-9 or leftover_y > 1e-9:
            # Addressing wraps over the whole cells only, so the strip past the last cell reads cell 0.
            logger.warning(
                "Domain %.2fx%.2f is not a whole number of %.2fx%.2f cells; the %.2fx%.2f edge strip wraps onto the first cells",
                size.x,
                size.y,
                lattice.x,
                lattice.y,
                leftover_x,
                leftover_y,
            )

    @property
    def lattice(self) -> Vector2:
        return Vector2(self._lattice)

    @property
    def size(self) -> Vector2:
        return Vector2(self._size)

    @property
    def dimensions(self) -> LatticeIndexer:
        return self._dimensions

    @property
    def revision(self) -> int:
        return self._revision

    def as_array(self) -> np.ndarray:
        return self._values.copy()

    def total(self) -> float:
        return float(self._values.sum())

    def cell_of(self, position: Vector2) -> Optional[Tuple[int, int]]:
        fx = (position.x + 0.5 * self._size.x) / self._lattice.x
        fy = (position.y + 0.5 * self._size.y) / self._lattice.y
        if not (math.isfinite(fx) and math.isfinite(fy)):
            return None
        return (math.floor(fx) % self._dimensions.width, math.floor(fy) % self._dimensions.height)

    def cell_center(self, x: int, y: int) -> Vector2:
        return Vector2(
            (x + 0.5) * self._lattice.x - 0.5 * self._size.x,
            (y + 0.5) * self._lattice.y - 0.5 * self._size.y,
        )

    def value_at_cell(self, x: int, y: int) -> Optional[float]:
        if self._dimensions.to_linear(x, y) is None:
            return None
        return float(self._values[y, x])

    def value_at(self, position: Vector2) -> float:
        cell = self.cell_of(position)
        if cell is None:
            return 0.0
        value = self.value_at_cell(*cell)
        return 0.0 if value is None else value

    def set_cell(self, x: int, y: int, value: float) -> None:
        if self._dimensions.to_linear(x, y) is None:
            return
        self._values[y, x] = value
        self._invalidate_cache()

    def set(self, position: Vector2, value: float) -> None:
        cell = self.cell_of(position)
        if cell is not None:
            self.set_cell(cell[0], cell[1], value)

    def accumulate(self, position: Vector2, value: float) -> None:
        cell = self.cell_of(position)
        if cell is not None:
            self.set_cell(cell[0], cell[1], self.value_at(position) + value)

    def fill_with(self, generator: Callable[[], float]) -> None:
        flat = self._values.reshape(-1)
        for index in range(self._dimensions.linear_max):
            flat[index] = generator()
        self._invalidate_cache()

    def clear(self) -> None:
        self._values.fill(0.0)
        self._invalidate_cache()

    def step(self, diffusion_rate: float, evaporation_rate: float, dt: float) -> None:
        """Advance one explicit-Euler diffusion and evaporation step.

        Stable only while `diffusion_rate * dt` stays well below one.
        """
        current = self._values
        left = np.roll(current, 1, axis=1)
        right = np.roll(current, -1, axis=1)
        below = np.roll(current, 1, axis=0)
        above = np.roll(current, -1, axis=0)
        below_left = np.roll(below, 1, axis=1)
        below_right = np.roll(below, -1, axis=1)
        above_left = np.roll(above, 1, axis=1)
        above_right = np.roll(above, -1, axis=1)

        neighbour_avg = 0.25 * (
            _ORTHOGONAL_SHARE * (left + below + right + above)
            + _DIAGONAL_SHARE * (below_left + below_right + above_left + above_right)
        )
        retention = max(0.0, 1.0 - evaporation_rate) ** dt
        self._values = (current + diffusion_rate * dt * (neighbour_avg - current)) * retention
        self._invalidate_cache()

    def cells(self) -> List[Cell]:
        if len(self._cell_cache) != self._dimensions.linear_max:
            width = self._dimensions.width
            flat = self._values.reshape(-1)
            self._cell_cache = [
                Cell(
                    region=Region.from_center_size(self.cell_center(index % width, index // width), self._lattice),
                    value=float(flat[index]),
                )
                for index in range(self._dimensions.linear_max)
            ]
        return self._cell_cache

    def _invalidate_cache(self) -> None:
        self._revision += 1
        if self._cell_cache:
            self._cell_cache = []


class VectorField:
    """Pair of scalar channels sharing one lattice, read and written as 2D vectors."""

    def __init__(self, lattice: Vector2, size: Vector2) -> None:
        self._x = ScalarField(lattice, size)
        self._y = ScalarField(lattice, size)
        self._cell_cache: List[VectorCell] = []
        self._cached_revisions = (-1, -1)

    @property
    def x(self) -> ScalarField:
        return self._x

    @property
    def y(self) -> ScalarField:
        return self._y

    @property
    def lattice(self) -> Vector2:
        return self._x.lattice

    @property
    def size(self) -> Vector2:
        return self._x.size

    @property
    def dimensions(self) -> LatticeIndexer:
        return self._x.dimensions

    def value_at(self, position: Vector2) -> Vector2:
        return Vector2(self._x.value_at(position), self._y.value_at(position))

    def set(self, position: Vector2, value: Vector2) -> None:
        self._x.set(position, value.x)
        self._y.set(position, value.y)
        self._invalidate_cache()

    def set_cell(self, x: int, y: int, value: Vector2) -> None:
        self._x.set_cell(x, y, value.x)
        self._y.set_cell(x, y, value.y)
        self._invalidate_cache()

    def accumulate(self, position: Vector2, value: Vector2) -> None:
        self._x.accumulate(position, value.x)
        self._y.accumulate(position, value.y)
        self._invalidate_cache()

    def fill_with(self, generator: Callable[[], float]) -> None:
        self._x.fill_with(generator)
        self._y.fill_with(generator)
        self._invalidate_cache()

    def clear(self) -> None:
        self._x.clear()
        self._y.clear()
        self._invalidate_cache()

    def step(self, diffusion_rate: float, evaporation_rate: float, dt: float) -> None:
        self._x.step(diffusion_rate, evaporation_rate, dt)
        self._y.step(diffusion_rate, evaporation_rate, dt)
        self._invalidate_cache()

    def magnitude_total(self) -> float:
        return float(np.hypot(self._x.as_array(), self._y.as_array()).sum())

    def cells(self) -> List[VectorCell]:
        # Channels are public, so a write through either one must also refresh this cache.
        revisions = (self._x.revision, self._y.revision)
        if revisions != self._cached_revisions or len(self._cell_cache) != self.dimensions.linear_max:
            self._cached_revisions = revisions
            self._cell_cache = [
                VectorCell(region=x_cell.region, value=Vector2(x_cell.value, y_cell.value))
                for x_cell, y_cell in zip(self._x.cells(), self._y.cells())
            ]
        return self._cell_cache

    def _invalidate_cache(self) -> None:
        if self._cell_cache:
            self._cell_cache = []
