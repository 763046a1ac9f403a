from __future__ import annotations

import math

from pygame.math import Vector2

ZERO = Vector2()


def _is_finite_xy(x: float, y: float) -> bool:
    return math.isfinite(x) and math.isfinite(y)


def _safe_normalize(vector: Vector2) -> Vector2:
    return _safe_normalize_xy(vector.x, vector.y)


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    if not _is_finite_xy(x, y):
        return Vector2()
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _signed_angle(from_vector: Vector2, to_vector: Vector2) -> float:
    """Counter-clockwise angle in radians that turns `from_vector` onto `to_vector`."""
    cross = from_vector.x * to_vector.y - from_vector.y * to_vector.x
    dot = from_vector.x * to_vector.x + from_vector.y * to_vector.y
    return math.atan2(cross, dot)


def _rotate_xy(x: float, y: float, angle: float) -> tuple[float, float]:
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


def _heading_from_velocity(vector: Vector2) -> float:
    if vector.length_squared() < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
