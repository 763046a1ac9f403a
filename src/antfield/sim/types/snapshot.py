from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    ants: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    fields: "SnapshotFields"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    world_width: float
    world_height: float
    sim_dt: float
    tick_rate: float
    seed: int
    backend: str
    config_version: str


@dataclass(slots=True)
class SnapshotFields:
    signals: Dict[str, Any]
    food: Dict[str, Any]
