from __future__ import annotations

import logging
import math
from typing import Tuple

from pygame.math import Vector2

from ..core.agent import Ant, SignalKind
from ..core.config import AntConfig
from ..core.rng import DeterministicRng
from ..core.signals import Signals
from ..utils.math2d import _clamp_value, _rotate_xy, _safe_normalize, _signed_angle

logger = logging.getLogger(__name__)

_RANDOM_TURN_LIMIT = math.radians(90.0)


def random_walk(rng: DeterministicRng, config: AntConfig) -> Tuple[float, float]:
    steer = rng.next_range(-_RANDOM_TURN_LIMIT, _RANDOM_TURN_LIMIT)
    return 1.0, config.wander_turn_gain * steer


def follow(ant: Ant, direction: Vector2, config: AntConfig) -> Tuple[float, float]:
    desired = _safe_normalize(direction)
    if desired.length_squared() == 0.0:
        return 0.0, 0.0

    heading = _safe_normalize(ant.velocity)
    if heading.length_squared() == 0.0:
        heading = desired

    angle = _signed_angle(heading, desired)
    limit = math.radians(config.max_follow_angle_deg)
    steering = math.copysign(min(abs(angle), limit), angle) if angle != 0.0 else 0.0
    thrust = _clamp_value(heading.dot(desired), config.min_follow_thrust, 1.0)
    return thrust, steering


def perceive_signals(ant: Ant, signals: Signals, rng: DeterministicRng, config: AntConfig) -> Tuple[float, float]:
    walk_thrust, walk_turn = random_walk(rng, config)

    if ant.state == SignalKind.EXPLORING:
        # Move away from the trails that lead back, which spreads explorers out.
        retrieving = signals.sample(SignalKind.RETRIEVING, ant.position)
        follow_weight = config.explore_follow_weight
        follow_thrust, follow_turn = follow(ant, -retrieving, config)
    else:
        qualia = signals.sample_qualia(ant.position)
        desired = qualia.amount(SignalKind.RETRIEVING) - qualia.amount(SignalKind.EXPLORING)
        follow_weight = config.retrieve_follow_gain * desired.length()
        follow_thrust, follow_turn = follow(ant, desired, config)

    walk_weight = config.random_walk_weight
    total = walk_weight + follow_weight
    if total > 0.0:
        thrust = (walk_weight * walk_thrust + follow_weight * follow_thrust) / total
        turn_rate = (walk_weight * walk_turn + follow_weight * follow_turn) / total
    else:
        thrust = turn_rate = math.nan

    if not math.isfinite(thrust):
        logger.debug("Ant %d sensed a degenerate signal, thrust falls back to 1.0", ant.id)
        thrust = 1.0
    if not math.isfinite(turn_rate):
        logger.debug("Ant %d sensed a degenerate signal, turn falls back to 0.0", ant.id)
        turn_rate = 0.0
    return thrust, turn_rate


def update_ant(ant: Ant, signals: Signals, rng: DeterministicRng, config: AntConfig, dt: float) -> None:
    thrust, turn_rate = perceive_signals(ant, signals, rng, config)
    limit = math.radians(config.max_turn_rate_deg)
    turn_rate = _clamp_value(turn_rate, -limit, limit)

    heading = _safe_normalize(ant.velocity)
    if heading.length_squared() == 0.0:
        heading = Vector2(1.0, 0.0)
    hx, hy = _rotate_xy(heading.x, heading.y, turn_rate * config.steering_gain * dt)
    heading = _safe_normalize(Vector2(hx, hy))
    if heading.length_squared() == 0.0:
        heading = Vector2(1.0, 0.0)

    ant.velocity = heading
    step = config.max_speed * thrust * dt
    ant.position.update(ant.position.x + heading.x * step, ant.position.y + heading.y * step)
    ant.thrust = thrust
    ant.turn_rate = turn_rate


def signal_for(ant: Ant, config: AntConfig) -> Tuple[Vector2, Vector2, SignalKind]:
    heading = _safe_normalize(ant.velocity)
    return Vector2(ant.position), heading * config.signal_strength, ant.state


def leave_signal(ant: Ant, signals: Signals, config: AntConfig) -> None:
    signals.deposit(*signal_for(ant, config))
