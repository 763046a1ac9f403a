from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np
from pygame.math import Vector2

from .agent import SignalKind
from .config import SignalsConfig
from .field import VectorField
from .qualia import Qualia, Qualium

logger = logging.getLogger(__name__)

# Normalisation of the unit Gaussian, 1 / sqrt(2 * pi).
_KERNEL_COEFF = 1.0 / math.sqrt(2.0 * math.pi)
_BASE_WIDTH = 0.5
_WIDTH_GROWTH_PER_SECOND = 0.2

_KINDS = list(SignalKind)
_KIND_CODES = {kind: code for code, kind in enumerate(_KINDS)}


class Signals(ABC):
    """Store of the chemical traces ants deposit and sense."""

    backend: str = ""

    @abstractmethod
    def deposit(self, position: Vector2, amount: Vector2, kind: SignalKind) -> None: ...

    @abstractmethod
    def update(self, dt: float) -> None: ...

    @abstractmethod
    def sample_qualia(self, position: Vector2) -> Qualia: ...

    @abstractmethod
    def load(self) -> float: ...

    @abstractmethod
    def export(self) -> Dict[str, Any]: ...

    @abstractmethod
    def reset(self) -> None: ...

    def sample(self, kind: SignalKind, position: Vector2) -> Vector2:
        return self.sample_qualia(position).amount(kind)


class GridSignals(Signals):
    backend = "grid"

    def __init__(
        self,
        lattice: Vector2,
        size: Vector2,
        diffusion_rate: float = 0.01,
        evaporation_rate: float = 0.03,
    ) -> None:
        self._fields: Dict[SignalKind, VectorField] = {kind: VectorField(lattice, size) for kind in SignalKind}
        self._diffusion_rate = diffusion_rate
        self._evaporation_rate = evaporation_rate

    def get_field(self, kind: SignalKind) -> VectorField:
        return self._fields[kind]

    def deposit(self, position: Vector2, amount: Vector2, kind: SignalKind) -> None:
        self._fields[kind].accumulate(position, amount)

    def update(self, dt: float) -> None:
        for vector_field in self._fields.values():
            vector_field.step(self._diffusion_rate, self._evaporation_rate, dt)

    def sample(self, kind: SignalKind, position: Vector2) -> Vector2:
        return self._fields[kind].value_at(position)

    def sample_qualia(self, position: Vector2) -> Qualia:
        return Qualia(Qualium(kind, vector_field.value_at(position)) for kind, vector_field in self._fields.items())

    def load(self) -> float:
        return sum(vector_field.magnitude_total() for vector_field in self._fields.values())

    def export(self) -> Dict[str, Any]:
        channels: Dict[str, Any] = {}
        for kind, vector_field in self._fields.items():
            channels[kind.value] = [
                {**cell.region.to_dict(), "vx": cell.value.x, "vy": cell.value.y}
                for cell in vector_field.cells()
                if cell.value.x != 0.0 or cell.value.y != 0.0
            ]
        dimensions = next(iter(self._fields.values())).dimensions
        return {"backend": self.backend, "resolution": [dimensions.width, dimensions.height], "channels": channels}

    def reset(self) -> None:
        for vector_field in self._fields.values():
            vector_field.clear()


@dataclass(slots=True)
class Source:
    position: Vector2
    amount: Vector2
    kind: SignalKind
    age: float = 0.0

    @property
    def width(self) -> float:
        return self.age * _WIDTH_GROWTH_PER_SECOND + _BASE_WIDTH

    def advance(self, dt: float) -> None:
        self.age += dt

    def sample(self, position: Vector2) -> Qualium:
        width = self.width
        distance = position.distance_to(self.position)
        falloff = math.exp(-0.5 * (distance / width) ** 2)
        return Qualium(self.kind, self.amount * (_KERNEL_COEFF / width * falloff))


class KernelSignals(Signals):
    """Grid-free traces: each deposit is a point source whose Gaussian spreads as it ages.

    Sources are held column-wise in numpy arrays, oldest first, so a sample is one
    vectorised pass over every live source. New deposits wait in a pending list
    until the next read or update.
    """

    backend = "kernel"

    def __init__(self, max_age: float = 120.0) -> None:
        self._max_age = max_age
        self._positions = np.empty((0, 2), dtype=np.float64)
        self._amounts = np.empty((0, 2), dtype=np.float64)
        self._ages = np.empty(0, dtype=np.float64)
        self._kinds = np.empty(0, dtype=np.int8)
        self._pending: List[Source] = []

    @property
    def max_age(self) -> float:
        return self._max_age

    @property
    def sources(self) -> Tuple[Source, ...]:
        self._flush()
        return tuple(
            Source(Vector2(*position), Vector2(*amount), _KINDS[code], float(age))
            for position, amount, code, age in zip(
                self._positions.tolist(), self._amounts.tolist(), self._kinds.tolist(), self._ages.tolist()
            )
        )

    def deposit(self, position: Vector2, amount: Vector2, kind: SignalKind) -> None:
        self._pending.append(Source(Vector2(position), Vector2(amount), kind))

    def update(self, dt: float) -> None:
        self._flush()
        self._ages += dt
        # Sources age in lockstep, so the expired ones always form a prefix.
        expired = int(np.count_nonzero(self._ages > self._max_age))
        if expired:
            self._positions = self._positions[expired:]
            self._amounts = self._amounts[expired:]
            self._ages = self._ages[expired:]
            self._kinds = self._kinds[expired:]
            logger.debug("Expired %d signal sources, %d live", expired, len(self._ages))

    def sample_qualia(self, position: Vector2) -> Qualia:
        qualia = Qualia()
        weights = self._weights(position)
        if weights.size == 0:
            return qualia
        codes, first_seen = np.unique(self._kinds, return_index=True)
        for code in codes[np.argsort(first_seen)]:
            mask = self._kinds == code
            qualia.include(Qualium(_KINDS[int(code)], _to_vector(weights[mask] @ self._amounts[mask])))
        return qualia

    def sample(self, kind: SignalKind, position: Vector2) -> Vector2:
        weights = self._weights(position)
        mask = self._kinds == _KIND_CODES[kind]
        if not mask.any():
            return Vector2()
        return _to_vector(weights[mask] @ self._amounts[mask])

    def load(self) -> float:
        return float(len(self))

    def export(self) -> Dict[str, Any]:
        sources = [
            {
                "x": source.position.x,
                "y": source.position.y,
                "ax": source.amount.x,
                "ay": source.amount.y,
                "kind": source.kind.value,
                "age": source.age,
            }
            for source in self.sources
        ]
        return {"backend": self.backend, "max_age": self._max_age, "sources": sources}

    def reset(self) -> None:
        self._pending.clear()
        self._positions = self._positions[:0]
        self._amounts = self._amounts[:0]
        self._ages = self._ages[:0]
        self._kinds = self._kinds[:0]

    def __len__(self) -> int:
        return len(self._ages) + len(self._pending)

    def _flush(self) -> None:
        if not self._pending:
            return
        pending, self._pending = self._pending, []
        self._positions = np.concatenate(
            [self._positions, np.array([(s.position.x, s.position.y) for s in pending], dtype=np.float64)]
        )
        self._amounts = np.concatenate(
            [self._amounts, np.array([(s.amount.x, s.amount.y) for s in pending], dtype=np.float64)]
        )
        self._ages = np.concatenate([self._ages, np.array([s.age for s in pending], dtype=np.float64)])
        self._kinds = np.concatenate([self._kinds, np.array([_KIND_CODES[s.kind] for s in pending], dtype=np.int8)])

    def _weights(self, position: Vector2) -> np.ndarray:
        self._flush()
        widths = self._ages * _WIDTH_GROWTH_PER_SECOND + _BASE_WIDTH
        offsets = self._positions - (position.x, position.y)
        distance_sq = np.einsum("ij,ij->i", offsets, offsets)
        return _KERNEL_COEFF / widths * np.exp(-0.5 * distance_sq / widths**2)


def _to_vector(values: np.ndarray) -> Vector2:
    return Vector2(float(values[0]), float(values[1]))


def make_signals(config: SignalsConfig, size: Vector2) -> Signals:
    backend = config.backend.lower().strip()
    if backend == "grid":
        lattice = Vector2(config.lattice_size, config.lattice_size)
        return GridSignals(lattice, size, config.diffusion_rate, config.evaporation_rate)
    if backend == "kernel":
        return KernelSignals(config.max_source_age)
    raise ValueError(f"Unknown signal backend: {config.backend}")
