import math

import pytest

from neighbor_detection.cells import (
    Cell,
    build_grid_index,
    cell_id,
    cell_of,
    half_stencil,
    max_grid_divisions,
    stencil_pairs,
    validate_grid,
)
from neighbor_detection.errors import InvalidConfiguration
from neighbor_detection.particles import Domain, Particle


def test_cell_assignment_lower_left_origin():
    # row follows y, column follows x
    assert cell_of(0.1, 5.0, 10.0, 5) == Cell(2, 0)
    assert cell_of(9.9, 5.0, 10.0, 5) == Cell(2, 4)
    assert cell_of(3.0, 7.5, 10.0, 5) == Cell(3, 1)


def test_cell_assignment_wraps_upper_border():
    assert cell_of(10.0, 10.0, 10.0, 5) == Cell(0, 0)
    assert cell_of(0.0, 0.0, 10.0, 5) == Cell(0, 0)


def test_cells_are_plain_values():
    assert Cell(1, 2) == Cell(1, 2)
    assert hash(Cell(1, 2)) == hash(Cell(1, 2))
    assert cell_id(Cell(1, 2), 5) == 7


def test_grid_index_holds_particle_indices():
    particles = (
        Particle([0.1, 5.0]),
        Particle([9.9, 5.0]),
        Particle([0.5, 5.5]),
        Particle([10.0, 0.0]),
    )
    grid = build_grid_index(Domain(10.0, particles), 5)
    assert grid == {Cell(2, 0): [0, 2], Cell(2, 4): [1], Cell(0, 0): [3]}


def test_grid_index_covers_every_particle_once():
    particles = tuple(Particle([0.37 * k % 10.0, 0.91 * k % 10.0]) for k in range(100))
    grid = build_grid_index(Domain(10.0, particles), 4)
    flat = sorted(i for idx in grid.values() for i in idx)
    assert flat == list(range(100))
    assert all(0 <= c.row < 4 and 0 <= c.column < 4 for c in grid)


def test_half_stencil_interior():
    assert half_stencil(Cell(2, 2), 5) == [Cell(3, 2), Cell(3, 3), Cell(2, 3), Cell(1, 3)]


def test_half_stencil_wraps_at_corners():
    assert half_stencil(Cell(4, 4), 5) == [Cell(0, 4), Cell(0, 0), Cell(4, 0), Cell(3, 0)]
    assert half_stencil(Cell(0, 4), 5) == [Cell(1, 4), Cell(1, 0), Cell(0, 0), Cell(4, 0)]


def test_south_east_uses_row_coordinate():
    # the SE neighbor of (3, 0) is one row down, not derived from the column
    assert Cell(2, 1) in half_stencil(Cell(3, 0), 5)


def test_half_stencil_single_cell_is_empty():
    assert half_stencil(Cell(0, 0), 1) == []


def test_half_stencil_two_by_two_collapses_duplicates():
    assert half_stencil(Cell(0, 0), 2) == [Cell(1, 0), Cell(1, 1), Cell(0, 1)]


def test_full_stencils_cover_every_adjacent_pair_once():
    m = 5
    grid = {Cell(r, c): [r * m + c] for r in range(m) for c in range(m)}
    related = stencil_pairs(grid, m)
    seen = [frozenset((a, b)) for a, targets in related.items() for b in targets]
    assert len(seen) == len(set(seen)) == 4 * m * m

    for r in range(m):
        for c in range(m):
            for dr in (-1, 0, 1):
                for dc in (-1, 0, 1):
                    if dr == dc == 0:
                        continue
                    other = Cell((r + dr) % m, (c + dc) % m)
                    assert frozenset((Cell(r, c), other)) in set(seen)


def test_stencil_pairs_two_by_two_visits_each_pair_once():
    grid = {Cell(r, c): [2 * r + c] for r in range(2) for c in range(2)}
    related = stencil_pairs(grid, 2)
    seen = [frozenset((a, b)) for a, targets in related.items() for b in targets]
    assert len(seen) == len(set(seen)) == 6


def test_stencil_pairs_skips_empty_cells():
    grid = {Cell(0, 0): [0], Cell(3, 3): [1]}
    assert stencil_pairs(grid, 5) == {Cell(0, 0): [], Cell(3, 3): []}


def test_validate_grid_rejects_small_cells():
    with pytest.raises(InvalidConfiguration, match="L = 10"):
        validate_grid(10.0, 3.0, 5)
    with pytest.raises(InvalidConfiguration):
        validate_grid(10.0, 2.0, 5)


@pytest.mark.parametrize("m", [0, -1, 2.5])
def test_validate_grid_rejects_bad_divisions(m):
    with pytest.raises(InvalidConfiguration):
        validate_grid(10.0, 1.0, m)


@pytest.mark.parametrize("r", [0.0, -1.0])
def test_validate_grid_rejects_bad_radius(r):
    with pytest.raises(InvalidConfiguration):
        validate_grid(10.0, r, 1)


def test_validate_grid_single_cell_ignores_cell_size():
    validate_grid(10.0, 50.0, 1)
    validate_grid(10.0, 1.9, 5)


@pytest.mark.parametrize(
    "side, r, expected",
    [(10.0, 1.0, 9), (10.0, 3.0, 3), (10.0, 2.0, 4), (10.0, 20.0, 1), (10.0, 5.0, 1), (10.0, 4.9, 2)],
)
def test_max_grid_divisions(side, r, expected):
    m = max_grid_divisions(side, r)
    assert m == expected
    validate_grid(side, r, m)


@pytest.mark.parametrize("m", [math.nan, math.inf, "5", None, True])
def test_validate_grid_rejects_non_integer_divisions(m):
    with pytest.raises(InvalidConfiguration):
        validate_grid(10.0, 1.0, m)


@pytest.mark.parametrize("r", [math.nan, math.inf, "1", None])
def test_validate_grid_rejects_non_numeric_radius(r):
    with pytest.raises(InvalidConfiguration):
        validate_grid(10.0, r, 1)
