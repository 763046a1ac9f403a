from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Optional

from pygame.math import Vector2

from .agent import Ant, SignalKind
from .config import SimulationConfig
from .field import Region
from .food import FoodField, Inventory
from .rng import DeterministicRng
from .signals import KernelSignals, Signals, make_signals
from ..systems import boundary, fields, forage, metrics as metrics_system, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotFields, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import _heading_from_velocity

logger = logging.getLogger(__name__)

# Live kernel sources above this make every per-ant sample slow.
_KERNEL_SOURCE_BUDGET = 200_000


class World:
    def __init__(self, config: SimulationConfig, signals: Optional[Signals] = None):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        size = Vector2(config.world_width, config.world_height)
        self._domain = Region.from_center_size(Vector2(), size)
        self._signals = signals if signals is not None else make_signals(config.signals, size)
        food_lattice = Vector2(config.food.lattice_size, config.food.lattice_size)
        self._food = FoodField(food_lattice, size, config.food.diffusion_rate, config.food.evaporation_rate)
        self._ants: List[Ant] = []
        self._pending_deposits: List[tuple[Vector2, Vector2, SignalKind]] = []
        self._next_id = 0
        self._metrics: TickMetrics | None = None
        self._warn_on_kernel_load()
        self._place_food()
        self._bootstrap_colony()
        logger.info(
            "World ready: %s backend, %.0fx%.0f domain, %d ants",
            self._signals.backend,
            config.world_width,
            config.world_height,
            len(self._ants),
        )

    @property
    def ants(self) -> List[Ant]:
        return self._ants

    @property
    def signals(self) -> Signals:
        return self._signals

    @property
    def food(self) -> FoodField:
        return self._food

    @property
    def domain(self) -> Region:
        return self._domain

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._ants.clear()
        self._pending_deposits.clear()
        self._signals.reset()
        self._food.reset()
        self._rng.reset()
        self._next_id = 0
        self._metrics = None
        self._place_food()
        self._bootstrap_colony()

    def spawn_ant(self, position: Vector2, heading: Vector2) -> Ant:
        ant_config = self._config.ant
        ant = Ant(
            id=self._next_id,
            position=Vector2(position),
            velocity=Vector2(heading),
            state=SignalKind.EXPLORING,
            inventory=Inventory(
                capacity=ant_config.inventory_capacity,
                full_fraction=ant_config.inventory_full_fraction,
            ),
        )
        self._ants.append(ant)
        self._next_id += 1
        return ant

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        config = self._config
        ant_config = config.ant
        dt = config.time_step
        self._pending_deposits.clear()

        fields.tick_environment(self, dt)

        pickups = 0
        for ant in self._ants:
            forage.drain_inventory(ant, ant_config, dt)
            steering.update_ant(ant, self._signals, self._rng, ant_config, dt)
            boundary.wrap_position(ant, self._domain)
            if forage.gather_food(ant, self._food):
                pickups += 1
            fields.queue_deposit(self, ant)

        fields.apply_signal_events(self)

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick, self._ants, pickups, self._food.total(), self._signals.load(), elapsed_ms
        )
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(tick, self._ants, 0, self._food.total(), self._signals.load(), 0.0)
        config = self._config
        metadata = SnapshotMetadata(
            world_width=config.world_width,
            world_height=config.world_height,
            sim_dt=config.time_step,
            tick_rate=0.0 if config.time_step <= 0 else 1.0 / config.time_step,
            seed=config.seed,
            backend=self._signals.backend,
            config_version=config.config_version,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            ants=[self._ant_snapshot(ant) for ant in self._ants],
            world=SnapshotWorld(width=config.world_width, height=config.world_height),
            metadata=metadata,
            fields=SnapshotFields(signals=self._signals.export(), food=self._food.export()),
        )

    def _warn_on_kernel_load(self) -> None:
        if not isinstance(self._signals, KernelSignals) or self._config.time_step <= 0:
            return
        peak_sources = self._config.ant_count * self._signals.max_age / self._config.time_step
        if peak_sources > _KERNEL_SOURCE_BUDGET:
            logger.warning(
                "Kernel backend will hold up to %.0f live sources with %d ants; sampling cost grows with that count, "
                "so use the grid backend or fewer ants",
                peak_sources,
                self._config.ant_count,
            )

    def _place_food(self) -> None:
        for patch in self._config.food.patches:
            area = Region.from_center_size(Vector2(patch.center), Vector2(patch.size))
            placed = self._food.put(area, patch.depth)
            logger.debug("Placed food patch at %s: %d cells of depth %.2f", patch.center, placed, patch.depth)

    def _bootstrap_colony(self) -> None:
        spread_x = self._config.spawn_fraction * self._config.world_width
        spread_y = self._config.spawn_fraction * self._config.world_height
        for _ in range(self._config.ant_count):
            position = Vector2(
                self._rng.next_range(-0.5, 0.5) * spread_x,
                self._rng.next_range(-0.5, 0.5) * spread_y,
            )
            self.spawn_ant(position, self._rng.next_unit_circle())

    @staticmethod
    def _ant_snapshot(ant: Ant) -> Dict[str, Any]:
        return {
            "id": ant.id,
            "x": ant.position.x,
            "y": ant.position.y,
            "vx": ant.velocity.x,
            "vy": ant.velocity.y,
            "heading": _heading_from_velocity(ant.velocity),
            "state": ant.state.value,
            "thrust": ant.thrust,
            "turn_rate": ant.turn_rate,
            "inventory": ant.inventory.contents,
            "is_full": ant.inventory.is_full,
        }
