from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import yaml


@dataclass
class SignalsConfig:
    backend: str = "grid"
    lattice_size: float = 10.0
    diffusion_rate: float = 0.01
    evaporation_rate: float = 0.03
    max_source_age: float = 120.0


@dataclass
class FoodPatchConfig:
    center: tuple[float, float] = (0.0, 0.0)
    size: tuple[float, float] = (400.0, 400.0)
    depth: float = 10.0


@dataclass
class FoodConfig:
    lattice_size: float = 10.0
    diffusion_rate: float = 0.0001
    evaporation_rate: float = 0.0
    patches: List[FoodPatchConfig] = field(default_factory=lambda: [FoodPatchConfig()])


@dataclass
class AntConfig:
    max_speed: float = 200.0
    steering_gain: float = 5.0
    wander_turn_gain: float = 1.0
    random_walk_weight: float = 20.0
    explore_follow_weight: float = 20.0
    retrieve_follow_gain: float = 1.0
    max_follow_angle_deg: float = 90.0
    max_turn_rate_deg: float = 180.0
    min_follow_thrust: float = 0.1
    signal_strength: float = 10.0
    inventory_capacity: float = 2.0
    inventory_full_fraction: float = 0.5
    inventory_drain_per_second: float = 0.1


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    world_width: float = 1920.0
    world_height: float = 1080.0
    ant_count: int = 1000
    spawn_fraction: float = 0.8
    seed: int = 42
    config_version: str = "v1"
    signals: SignalsConfig = field(default_factory=SignalsConfig)
    food: FoodConfig = field(default_factory=FoodConfig)
    ant: AntConfig = field(default_factory=AntConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def load_config(raw: dict) -> SimulationConfig:
    def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        return default

    signals = SignalsConfig(**raw.get("signals", {}))
    food_raw = raw.get("food", {})
    default_patch = FoodPatchConfig()
    patches = [
        FoodPatchConfig(
            center=_pair(patch.get("center"), default_patch.center),
            size=_pair(patch.get("size"), default_patch.size),
            depth=float(patch.get("depth", default_patch.depth)),
        )
        for patch in food_raw.get("patches", [])
    ]
    food_values = {k: v for k, v in food_raw.items() if k != "patches"}
    if "patches" in food_raw:
        food_values["patches"] = patches
    food = FoodConfig(**food_values)
    ant = AntConfig(**raw.get("ant", {}))
    sim_values = {k: v for k, v in raw.items() if k not in {"signals", "food", "ant"}}
    return SimulationConfig(signals=signals, food=food, ant=ant, **sim_values)
