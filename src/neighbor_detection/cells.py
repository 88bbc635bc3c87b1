from __future__ import annotations

import logging
import math
import numbers
from typing import NamedTuple

import numpy as np

from neighbor_detection.errors import InvalidConfiguration
from neighbor_detection.particles import Domain

logger = logging.getLogger(__name__)


class Cell(NamedTuple):
    row: int
    column: int


# (d_row, d_column) for N, NE, E, SE. The mirrored S, SW, W, NW pairs are
# reached from the neighboring cell.
HALF_STENCIL_OFFSETS: tuple[tuple[int, int], ...] = ((1, 0), (1, 1), (0, 1), (-1, 1))


def validate_grid(side_length: float, interaction_radius: float, grid_divisions: int) -> None:
    """Check the Cell Index Method preconditions for an ``M x M`` grid.

    Raises:
        InvalidConfiguration: if ``M < 1``, ``r <= 0``, or (for ``M > 1``) the
            cell side ``L / M`` does not exceed ``r``.
    """
    if (
        isinstance(grid_divisions, bool)
        or not isinstance(grid_divisions, numbers.Real)
        or not math.isfinite(grid_divisions)
        or int(grid_divisions) != grid_divisions
    ):
        raise InvalidConfiguration(f"The amount of grids per side must be an integer, got {grid_divisions!r}")
    if grid_divisions <= 0:
        raise InvalidConfiguration(f"There must be at least one grid per side, got M = {grid_divisions}")
    if not (
        isinstance(interaction_radius, numbers.Real)
        and math.isfinite(interaction_radius)
        and interaction_radius > 0
    ):
        raise InvalidConfiguration(f"The interaction radius must be positive, got r = {interaction_radius!r}")
    if grid_divisions != 1 and side_length / grid_divisions <= interaction_radius:
        raise InvalidConfiguration(
            "The interaction radius must be lower than the space side length divided by the amount "
            f"of grids per side. Values were: L = {side_length}, M = {grid_divisions}, r = {interaction_radius}."
        )


def max_grid_divisions(side_length: float, interaction_radius: float) -> int:
    """Largest ``M`` for which ``L / M > r`` holds, or 1 when no ``M > 1`` does."""
    if side_length <= 0 or interaction_radius <= 0:
        raise InvalidConfiguration(
            f"Side length and interaction radius must be positive, got L = {side_length}, r = {interaction_radius}"
        )
    m = int(math.floor(side_length / interaction_radius))
    while m > 1 and side_length / m <= interaction_radius:
        m -= 1
    return max(1, m)


def cell_of(x: float, y: float, side_length: float, grid_divisions: int) -> Cell:
    factor = grid_divisions / side_length
    return Cell(int(math.floor(y * factor)) % grid_divisions, int(math.floor(x * factor)) % grid_divisions)


def cell_id(cell: Cell, grid_divisions: int) -> int:
    return cell.row * grid_divisions + cell.column


def build_grid_index(domain: Domain, grid_divisions: int) -> dict[Cell, list[int]]:
    """Map each populated cell to the indices of the particles inside it.

    The grid origin is the lower-left corner: ``row`` follows ``y`` and
    ``column`` follows ``x``. A coordinate equal to the side length wraps to
    index 0.
    """
    factor = grid_divisions / domain.side_length
    pos = domain.positions
    rows = np.floor(pos[:, 1] * factor).astype(np.int64) % grid_divisions
    cols = np.floor(pos[:, 0] * factor).astype(np.int64) % grid_divisions

    cells: dict[Cell, list[int]] = {}
    for idx, (r, c) in enumerate(zip(rows, cols)):
        cells.setdefault(Cell(int(r), int(c)), []).append(idx)
    return cells


def half_stencil(cell: Cell, grid_divisions: int) -> list[Cell]:
    """N, NE, E and SE neighbors of ``cell`` under periodic wraparound.

    Offsets that wrap onto the same cell are reported once, and the cell
    itself is never part of its own stencil (the ``M = 1`` case yields an
    empty list).
    """
    out: list[Cell] = []
    for d_row, d_col in HALF_STENCIL_OFFSETS:
        other = Cell((cell.row + d_row) % grid_divisions, (cell.column + d_col) % grid_divisions)
        if other != cell and other not in out:
            out.append(other)
    return out


def stencil_pairs(grid: dict[Cell, list[int]], grid_divisions: int) -> dict[Cell, list[Cell]]:
    """Populated stencil neighbors per populated cell, each unordered pair once.

    On small grids two cells can sit in each other's half stencils (``M = 2``);
    the pair is then kept only on the side that reaches it first.
    """
    seen: set[frozenset[Cell]] = set()
    out: dict[Cell, list[Cell]] = {}
    for cell in grid:
        targets = []
        for other in half_stencil(cell, grid_divisions):
            if other not in grid:
                continue
            key = frozenset((cell, other))
            if key in seen:
                continue
            seen.add(key)
            targets.append(other)
        out[cell] = targets
    return out
