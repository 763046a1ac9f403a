from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "population",
    "exploring",
    "retrieving",
    "pickups",
    "food_remaining",
    "signal_load",
    "tick_ms",
]

_PROGRESS_EVERY = 500


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.exploring,
        metrics.retrieving,
        metrics.pickups,
        f"{metrics.food_remaining:.4f}",
        f"{metrics.signal_load:.4f}",
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def build_config(
    seed: Optional[int] = None,
    backend: Optional[str] = None,
    config_path: Optional[Path] = None,
    ant_count: Optional[int] = None,
) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if backend is not None:
        config.signals.backend = backend
    if ant_count is not None:
        config.ant_count = ant_count
    return config


def run_headless(
    steps: int,
    config: Optional[SimulationConfig] = None,
    log_path: Optional[Path] = None,
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
) -> list[TickMetrics]:
    config = config if config is not None else SimulationConfig()
    world = World(config)
    logger.info("Running %d steps with seed %d on the %s backend", steps, config.seed, world.signals.backend)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    history: list[TickMetrics] = []
    try:
        for tick in range(steps):
            metrics = world.step(tick)
            history.append(metrics)
            if writer:
                tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
                writer.writerow(_format_row(metrics, tick_ms))
            if tick and tick % _PROGRESS_EVERY == 0:
                logger.debug("tick %d: %d retrieving, signal load %.2f", tick, metrics.retrieving, metrics.signal_load)
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        tick_ms_series = [0.0 if deterministic_log else m.tick_duration_ms for m in history]
        summary = {
            "steps": steps,
            "seed": config.seed,
            "backend": world.signals.backend,
            "ant_count": config.ant_count,
            "deterministic_log": deterministic_log,
            "total_pickups": sum(m.pickups for m in history),
            "tick_ms": _summary_stats(tick_ms_series),
            "retrieving": _summary_stats([float(m.retrieving) for m in history]),
            "signal_load": _summary_stats([m.signal_load for m in history]),
            "food_remaining": history[-1].food_remaining if history else world.food.total(),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    if history:
        last = history[-1]
        logger.info(
            "Finished %d steps: %d/%d ants retrieving, %.2f food left",
            steps,
            last.retrieving,
            last.population,
            last.food_remaining,
        )
    return history


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless ant foraging simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--ants", type=int, default=None, help="Override the number of ants")
    parser.add_argument("--backend", choices=["grid", "kernel"], default=None, help="Signal field representation")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file to write summary stats")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = build_config(seed=args.seed, backend=args.backend, config_path=args.config, ant_count=args.ants)
    run_headless(
        args.steps,
        config,
        log_path=args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
    )


if __name__ == "__main__":
    main()
