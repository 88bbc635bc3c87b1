from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from neighbor_detection.cells import Cell, build_grid_index, max_grid_divisions, stencil_pairs, validate_grid
from neighbor_detection.errors import InvalidConfiguration
from neighbor_detection.particles import Domain, Particle, surface_distances

logger = logging.getLogger(__name__)


class NeighborMap(Mapping):
    """Symmetric, irreflexive neighbor relation over the particles of a domain.

    Behaves as a read-only mapping ``Particle -> frozenset[Particle]``; every
    particle of the domain is a key, including those with no neighbors.
    Index-based access goes through :meth:`indices_of` and :meth:`pairs`.
    """

    def __init__(self, particles: tuple[Particle, ...], neighbors: list[set[int]]):
        if len(particles) != len(neighbors):
            raise ValueError("neighbors must hold one set per particle")
        self._particles = particles
        self._neighbors = neighbors
        self._index = {p: i for i, p in enumerate(particles)}

    @classmethod
    def from_pairs(cls, particles: tuple[Particle, ...], i_idx, j_idx) -> NeighborMap:
        neighbors: list[set[int]] = [set() for _ in particles]
        for i, j in zip(i_idx, j_idx):
            i, j = int(i), int(j)
            if i == j:
                continue
            neighbors[i].add(j)
            neighbors[j].add(i)
        return cls(particles, neighbors)

    def __getitem__(self, particle: Particle) -> frozenset[Particle]:
        i = self._index[particle]
        return frozenset(self._particles[j] for j in self._neighbors[i])

    def __iter__(self) -> Iterator[Particle]:
        return iter(self._particles)

    def __len__(self) -> int:
        return len(self._particles)

    def __repr__(self) -> str:
        return f"NeighborMap(particles={len(self._particles)}, pairs={self.pair_count()})"

    def indices_of(self, i: int) -> frozenset[int]:
        return frozenset(self._neighbors[i])

    def pairs(self) -> set[tuple[int, int]]:
        """Unordered neighbor pairs as ``(i, j)`` index tuples with ``i < j``."""
        return {(i, j) for i, js in enumerate(self._neighbors) for j in js if i < j}

    def pair_count(self) -> int:
        return sum(len(js) for js in self._neighbors) // 2

    def counts(self) -> np.ndarray:
        return np.array([len(js) for js in self._neighbors], dtype=np.int64)

    def is_symmetric(self) -> bool:
        return all(i in self._neighbors[j] for i, js in enumerate(self._neighbors) for j in js)

    def is_irreflexive(self) -> bool:
        return all(i not in js for i, js in enumerate(self._neighbors))


def _block_rows(n_cols: int, max_block_pairs: int) -> int:
    return max(1, max_block_pairs // max(1, n_cols))


def _close_pairs(
    domain: Domain,
    rows: np.ndarray,
    cols: np.ndarray,
    interaction_radius: float,
    triangular: bool = False,
    max_block_pairs: int = 1 << 18,
) -> tuple[np.ndarray, np.ndarray]:
    """Index pairs ``(rows[a], cols[b])`` within ``interaction_radius`` of each other.

    With ``triangular`` set, ``rows`` and ``cols`` are the same index array and
    only ``a < b`` is kept, so each unordered pair comes out once. Rows are
    processed in blocks of at most ``max_block_pairs`` candidate pairs so the
    distance temporaries stay bounded however many columns there are.
    """
    pos = domain.positions
    radii = domain.radii
    ii: list[np.ndarray] = []
    jj: list[np.ndarray] = []
    block = _block_rows(cols.size, max_block_pairs)
    for start in range(0, rows.size, block):
        chunk = rows[start:start + block]
        d = surface_distances(pos[chunk], radii[chunk], pos[cols], radii[cols], domain.side_length)
        a, b = np.nonzero(d <= interaction_radius)
        if triangular:
            a = a + start
            upper = a < b
            a, b = a[upper], b[upper]
            ii.append(rows[a])
        else:
            ii.append(chunk[a])
        jj.append(cols[b])

    if not ii:
        empty = np.empty(0, dtype=np.int64)
        return empty, empty
    return np.concatenate(ii), np.concatenate(jj)


def _scan_cell(
    cell: Cell,
    targets: list[Cell],
    grid: dict[Cell, list[int]],
    domain: Domain,
    interaction_radius: float,
) -> list[tuple[np.ndarray, np.ndarray]]:
    own = np.asarray(grid[cell], dtype=np.int64)
    found = [_close_pairs(domain, own, own, interaction_radius, triangular=True)]
    if targets:
        near = np.concatenate([np.asarray(grid[t], dtype=np.int64) for t in targets])
        found.append(_close_pairs(domain, own, near, interaction_radius))
    return found


def compute_neighbors(
    domain: Domain,
    interaction_radius: float,
    grid_divisions: int,
    workers: int = 1,
) -> NeighborMap:
    """Neighbor map of ``domain`` using the Cell Index Method.

    Two particles are neighbors when their periodic surface distance is at
    most ``interaction_radius``. Cells are scanned independently, on
    ``workers`` threads when ``workers > 1``; the map is assembled once every
    cell has finished.

    Raises:
        InvalidConfiguration: if the grid preconditions do not hold or
            ``workers < 1``.
    """
    validate_grid(domain.side_length, interaction_radius, grid_divisions)
    grid_divisions = int(grid_divisions)
    if workers < 1:
        raise InvalidConfiguration(f"workers must be >= 1, got {workers}")

    # Centers of neighboring disks can be up to r + 2 * max radius apart.
    reach = interaction_radius + 2.0 * float(domain.radii.max(initial=0.0))
    if grid_divisions > 1 and domain.side_length / grid_divisions <= reach:
        coarser = max_grid_divisions(domain.side_length, reach)
        logger.warning(
            "Cell side L / M = %g does not cover particle reach %g; using M = %d instead of %d",
            domain.side_length / grid_divisions, reach, coarser, grid_divisions,
        )
        grid_divisions = coarser

    logger.debug("Splitting space into a %dx%d grid", grid_divisions, grid_divisions)
    grid = build_grid_index(domain, grid_divisions)
    related = stencil_pairs(grid, grid_divisions)
    logger.debug("%d populated cells", len(grid))

    def scan(cell: Cell) -> list[tuple[np.ndarray, np.ndarray]]:
        return _scan_cell(cell, related[cell], grid, domain, interaction_radius)

    if workers == 1:
        results = [scan(cell) for cell in grid]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(scan, grid))

    neighbors: list[set[int]] = [set() for _ in domain.particles]
    for found in results:
        for i_idx, j_idx in found:
            for i, j in zip(i_idx.tolist(), j_idx.tolist()):
                neighbors[i].add(j)
                neighbors[j].add(i)

    result = NeighborMap(domain.particles, neighbors)
    logger.debug("Found %d neighbor pairs", result.pair_count())
    return result


def brute_force_neighbors(domain: Domain, interaction_radius: float) -> NeighborMap:
    """Reference all-pairs neighbor map, quadratic in the particle count."""
    if not interaction_radius > 0:
        raise InvalidConfiguration(f"The interaction radius must be positive, got r = {interaction_radius}")
    every = np.arange(len(domain.particles), dtype=np.int64)
    i_idx, j_idx = _close_pairs(domain, every, every, interaction_radius, triangular=True)
    return NeighborMap.from_pairs(domain.particles, i_idx, j_idx)
