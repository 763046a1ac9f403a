from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from pygame.math import Vector2

from .agent import SignalKind


@dataclass(slots=True)
class Qualium:
    kind: SignalKind
    amount: Vector2

    def accumulate(self, other: "Qualium") -> None:
        if other.kind != self.kind:
            raise ValueError(f"Cannot accumulate {other.kind.value} into {self.kind.value}")
        self.amount = self.amount + other.amount


class Qualia:
    """Signal measurements at one point, summed per kind in order of first appearance."""

    def __init__(self, qualia: Iterable[Qualium] = ()) -> None:
        self._qualia: Dict[SignalKind, Qualium] = {}
        for qualium in qualia:
            self.include(qualium)

    def include(self, qualium: Qualium) -> None:
        existing = self._qualia.get(qualium.kind)
        if existing is None:
            self._qualia[qualium.kind] = Qualium(qualium.kind, Vector2(qualium.amount))
        else:
            existing.accumulate(qualium)

    def get(self, kind: SignalKind) -> Optional[Qualium]:
        return self._qualia.get(kind)

    def amount(self, kind: SignalKind) -> Vector2:
        qualium = self._qualia.get(kind)
        return Vector2() if qualium is None else Vector2(qualium.amount)

    def kinds(self) -> List[SignalKind]:
        return list(self._qualia)

    def to_list(self) -> List[Qualium]:
        return [Qualium(q.kind, Vector2(q.amount)) for q in self._qualia.values()]

    def __iter__(self) -> Iterator[Qualium]:
        return iter(self._qualia.values())

    def __len__(self) -> int:
        return len(self._qualia)

    def __contains__(self, kind: object) -> bool:
        return kind in self._qualia
