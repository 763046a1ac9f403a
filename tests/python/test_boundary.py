from __future__ import annotations

import math

import pytest
from pygame.math import Vector2
from pytest import approx

from antfield.sim.core.agent import Ant
from antfield.sim.core.field import Region
from antfield.sim.systems.boundary import wrap_position

DOMAIN = Region.from_center_size(Vector2(), Vector2(1920.0, 1080.0))


def _wrapped(x: float, y: float) -> Vector2:
    ant = Ant(id=0, position=Vector2(x, y))
    wrap_position(ant, DOMAIN)
    return ant.position


def test_leaving_one_edge_enters_the_opposite_edge():
    assert _wrapped(960.5, 0.0) == Vector2(-959.5, 0.0)
    assert _wrapped(0.0, -541.0) == Vector2(0.0, 539.0)


def test_positions_inside_or_on_the_edge_are_untouched():
    assert _wrapped(12.0, -34.0) == Vector2(12.0, -34.0)
    assert _wrapped(960.0, -540.0) == Vector2(960.0, -540.0)


def test_far_outside_wraps_by_whole_extents():
    position = _wrapped(960.0 + 3 * 1920.0 + 1.0, -540.0 - 2 * 1080.0 - 5.0)

    assert position.x == approx(-959.0)
    assert position.y == approx(535.0)


@pytest.mark.parametrize("value", [math.nan, math.inf])
def test_non_finite_coordinates_are_left_alone(value):
    position = _wrapped(value, 0.0)

    assert not math.isfinite(position.x)
    assert position.y == 0.0
