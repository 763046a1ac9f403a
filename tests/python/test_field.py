from __future__ import annotations

import itertools
import math

import pytest
from pygame.math import Vector2
from pytest import approx

from antfield.sim.core.field import Region, ScalarField, VectorField


def _field(width: int = 5, height: int = 5, lattice: float = 1.0) -> ScalarField:
    return ScalarField(Vector2(lattice, lattice), Vector2(width * lattice, height * lattice))


@pytest.mark.parametrize("lattice", [Vector2(0.0, 1.0), Vector2(1.0, 0.0), Vector2(-1.0, 1.0), Vector2(math.nan, 1.0)])
def test_bad_lattice_is_fatal(lattice):
    with pytest.raises(ValueError):
        ScalarField(lattice, Vector2(10.0, 10.0))


def test_domain_smaller_than_one_cell_is_fatal():
    with pytest.raises(ValueError):
        ScalarField(Vector2(10.0, 10.0), Vector2(5.0, 50.0))


def test_grid_size_truncates_domain_over_lattice():
    field = ScalarField(Vector2(10.0, 4.0), Vector2(105.0, 19.0))

    assert field.dimensions.width == 10
    assert field.dimensions.height == 4
    assert field.as_array().shape == (4, 10)
    assert field.total() == 0.0


def test_set_then_read_round_trips_inside_domain():
    field = ScalarField(Vector2(10.0, 10.0), Vector2(1920.0, 1080.0))

    for x, y in [(0.0, 0.0), (-955.0, -535.0), (955.0, 535.0), (123.4, -321.0)]:
        field.set(Vector2(x, y), 3.5)
        assert field.value_at(Vector2(x, y)) == 3.5


def test_positions_in_one_cell_share_a_value():
    field = _field(lattice=10.0)

    field.set(Vector2(-4.0, -4.0), 2.0)

    assert field.value_at(Vector2(4.0, 4.0)) == 2.0
    assert field.value_at(Vector2(6.0, -4.0)) == 0.0


def test_addressing_wraps_around_the_domain():
    field = _field(lattice=1.0)

    field.set(Vector2(-2.5, 0.0), 4.0)

    assert field.cell_of(Vector2(-2.5, 0.0)) == (0, 2)
    assert field.value_at(Vector2(2.5, 0.0)) == 4.0
    assert field.value_at(Vector2(7.5, 0.0)) == 4.0


def test_non_finite_positions_read_zero_and_ignore_writes():
    field = _field()

    field.set(Vector2(math.nan, 0.0), 1.0)
    field.accumulate(Vector2(0.0, math.inf), 1.0)

    assert field.cell_of(Vector2(math.nan, 0.0)) is None
    assert field.value_at(Vector2(math.nan, 0.0)) == 0.0
    assert field.total() == 0.0


def test_accumulate_adds_to_existing_value():
    field = _field()

    field.accumulate(Vector2(0.0, 0.0), 1.5)
    field.accumulate(Vector2(0.2, -0.2), 2.0)

    assert field.value_at(Vector2(0.0, 0.0)) == approx(3.5)


def test_out_of_range_cell_reads_none_and_ignores_writes():
    field = _field()

    field.set_cell(5, 0, 1.0)

    assert field.value_at_cell(5, 0) is None
    assert field.value_at_cell(0, -1) is None
    assert field.total() == 0.0


def test_fill_with_uses_generator_for_every_cell():
    field = _field(3, 2)
    counter = itertools.count()

    field.fill_with(lambda: float(next(counter)))

    assert field.as_array().tolist() == [[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]]
    assert field.value_at_cell(2, 1) == 5.0


def test_evaporation_without_diffusion_is_neighbour_independent():
    field = _field()
    field.fill_with(lambda: 2.0)
    field.set_cell(2, 2, 10.0)

    field.step(0.0, 0.03, 0.5)

    assert field.value_at_cell(2, 2) == approx(10.0 * 0.97**0.5)
    assert field.value_at_cell(0, 0) == approx(2.0 * 0.97**0.5)


def test_diffusion_is_symmetric_and_conserves_mass():
    field = _field()
    field.set_cell(2, 2, 1.0)

    field.step(0.5, 0.0, 1.0)

    orthogonal = [field.value_at_cell(x, y) for x, y in [(1, 2), (3, 2), (2, 1), (2, 3)]]
    diagonal = [field.value_at_cell(x, y) for x, y in [(1, 1), (3, 1), (1, 3), (3, 3)]]
    assert orthogonal == approx([orthogonal[0]] * 4)
    assert diagonal == approx([diagonal[0]] * 4)
    assert 0.0 < diagonal[0] < orthogonal[0]
    assert field.value_at_cell(2, 2) == approx(0.5)
    assert field.value_at_cell(0, 0) == 0.0
    assert field.total() <= 1.0 + 1e-12


def test_diffusion_wraps_around_grid_edges():
    field = _field()
    field.set_cell(0, 0, 1.0)

    field.step(0.5, 0.0, 1.0)

    assert field.value_at_cell(4, 0) == approx(field.value_at_cell(1, 0))
    assert field.value_at_cell(0, 4) == approx(field.value_at_cell(0, 1))
    assert field.value_at_cell(4, 4) == approx(field.value_at_cell(1, 1))
    assert field.value_at_cell(4, 4) > 0.0


def test_cells_cover_grid_and_follow_mutation():
    field = ScalarField(Vector2(10.0, 10.0), Vector2(40.0, 20.0))

    cells = field.cells()
    assert len(cells) == 8
    assert cells[0].region == Region(-20.0, -10.0, -10.0, 0.0)
    assert cells[-1].region.center == Vector2(15.0, 5.0)
    assert field.cells() is cells

    field.set(Vector2(-15.0, -5.0), 7.0)

    refreshed = field.cells()
    assert refreshed is not cells
    assert refreshed[0].value == 7.0


def test_vector_field_fans_out_to_channels():
    field = VectorField(Vector2(1.0, 1.0), Vector2(4.0, 4.0))

    field.set(Vector2(0.5, 0.5), Vector2(1.0, -2.0))
    field.accumulate(Vector2(0.5, 0.5), Vector2(0.5, 0.5))

    assert field.value_at(Vector2(0.5, 0.5)) == Vector2(1.5, -1.5)
    assert field.x.value_at(Vector2(0.5, 0.5)) == 1.5
    assert field.y.value_at(Vector2(0.5, 0.5)) == -1.5
    assert field.magnitude_total() == approx(math.hypot(1.5, 1.5))

    cells = field.cells()
    assert len(cells) == 16
    assert [cell.value for cell in cells if cell.value.length_squared() > 0] == [Vector2(1.5, -1.5)]

    field.step(0.0, 1.0, 1.0)
    assert field.value_at(Vector2(0.5, 0.5)) == Vector2()
    assert all(cell.value == Vector2() for cell in field.cells())


def test_region_intersection_and_containment():
    a = Region.from_center_size(Vector2(), Vector2(10.0, 10.0))
    b = Region(0.0, 0.0, 20.0, 20.0)

    overlap = a.intersect(b)
    assert overlap == Region(0.0, 0.0, 5.0, 5.0)
    assert overlap.contains(Vector2(5.0, 5.0))
    assert not overlap.contains(Vector2(-0.1, 1.0))
    assert a.intersect(Region(50.0, 50.0, 60.0, 60.0)).is_empty


def test_vector_cells_follow_writes_through_a_channel():
    field = VectorField(Vector2(1.0, 1.0), Vector2(4.0, 4.0))
    cached = field.cells()

    field.x.set(Vector2(-1.5, -1.5), 3.0)

    refreshed = field.cells()
    assert refreshed is not cached
    assert refreshed[0].value == Vector2(3.0, 0.0)
    assert field.value_at(Vector2(-1.5, -1.5)) == Vector2(3.0, 0.0)

    field.y.step(0.0, 1.0, 1.0)
    assert field.cells()[0].value == Vector2(3.0, 0.0)
    field.x.clear()
    assert field.cells()[0].value == Vector2()


def test_partial_cell_strip_wraps_onto_the_first_cells(caplog):
    with caplog.at_level("WARNING", logger="antfield.sim.core.field"):
        field = ScalarField(Vector2(10.0, 10.0), Vector2(105.0, 100.0))

    assert "edge strip" in caplog.text
    assert field.dimensions.width == 10
    assert field.cell_of(Vector2(51.0, 0.0)) == (0, 5)


def test_whole_cell_domain_logs_nothing(caplog):
    with caplog.at_level("WARNING", logger="antfield.sim.core.field"):
        ScalarField(Vector2(10.0, 10.0), Vector2(1920.0, 1080.0))

    assert caplog.records == []
