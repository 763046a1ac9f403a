from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class LatticeIndexer:
    """Row-major mapping between linear cell indices and `(x, y)` grid coordinates."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Lattice needs at least one cell per axis, got {self.width}x{self.height}")

    @property
    def linear_max(self) -> int:
        return self.width * self.height

    def to_linear(self, x: int, y: int) -> Optional[int]:
        if 0 <= x < self.width and 0 <= y < self.height:
            return x + y * self.width
        return None

    def to_grid(self, index: int) -> Optional[Tuple[int, int]]:
        if 0 <= index < self.linear_max:
            return (index % self.width, index // self.width)
        return None
