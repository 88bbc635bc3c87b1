from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field

import numpy as np

from neighbor_detection.errors import InvalidDomain, InvalidParticle


def _finite_float(value, error: type[Exception], what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise error(f"{what} must be a finite number, got {value!r}")
    return float(value)


@dataclass(frozen=True, eq=False)
class Particle:
    pos: np.ndarray  # shape (2,)
    radius: float = 0.0

    def __post_init__(self):
        try:
            pos = np.array(self.pos, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidParticle(f"pos must be a finite 2-vector, got {self.pos!r}") from e
        if pos.shape != (2,) or not np.all(np.isfinite(pos)):
            raise InvalidParticle(f"pos must be a finite 2-vector, got {pos!r}")
        pos.setflags(write=False)

        radius = _finite_float(self.radius, InvalidParticle, "The radius")
        if radius < 0.0:
            raise InvalidParticle(f"The radius must not be negative, got {radius}")

        object.__setattr__(self, "pos", pos)
        object.__setattr__(self, "radius", radius)

    @property
    def x(self) -> float:
        return float(self.pos[0])

    @property
    def y(self) -> float:
        return float(self.pos[1])

    def is_point_like(self) -> bool:
        return self.radius == 0.0

    def distance_to(self, other: Particle, box_size: float | None = None) -> float:
        """Surface-to-surface distance; negative when the two disks overlap.

        With ``box_size`` set, the center distance follows the minimum-image
        convention of a periodic square box of that side.
        """
        delta = self.pos - other.pos
        if box_size is not None:
            delta = minimum_image(delta, box_size)
        return float(np.sqrt(np.sum(delta * delta))) - (self.radius + other.radius)


def minimum_image(delta: np.ndarray, box_size: float) -> np.ndarray:
    return delta - box_size * np.round(delta / box_size)


def surface_distances(
    pos_i: np.ndarray,
    radius_i: np.ndarray,
    pos_j: np.ndarray,
    radius_j: np.ndarray,
    box_size: float,
) -> np.ndarray:
    """Block of periodic surface distances, shape (len(pos_i), len(pos_j))."""
    delta = minimum_image(pos_i[:, None, :] - pos_j[None, :, :], box_size)
    centers = np.sqrt(np.sum(delta * delta, axis=-1))
    return centers - (radius_i[:, None] + radius_j[None, :])


@dataclass(frozen=True, eq=False)
class Domain:
    """Periodic square box of side ``side_length`` holding a fixed set of particles.

    Particles are kept in the order given; that order defines the particle
    indices used by the grid and by neighbor maps.
    """

    side_length: float
    particles: tuple[Particle, ...]
    positions: np.ndarray = field(init=False, repr=False)
    radii: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        side_length = _finite_float(self.side_length, InvalidDomain, "The side length")
        if side_length <= 0.0:
            raise InvalidDomain(f"The side length must be positive, got {side_length}")

        particles = tuple(self.particles)
        for idx, p in enumerate(particles):
            if not isinstance(p, Particle):
                raise InvalidDomain(f"Item {idx} is not a Particle: {p!r}")

        if len({id(p) for p in particles}) != len(particles):
            raise InvalidDomain("The same particle object is listed more than once")

        if particles:
            positions = np.stack([p.pos for p in particles])
        else:
            positions = np.empty((0, 2), dtype=np.float64)
        radii = np.array([p.radius for p in particles], dtype=np.float64)

        outside = np.flatnonzero(np.any((positions < 0.0) | (positions > side_length), axis=1))
        if outside.size:
            first = int(outside[0])
            raise InvalidDomain(
                f"There are {outside.size} particles that are not part of this space "
                f"(first: index {first} at {tuple(positions[first])}, L = {side_length})"
            )

        positions.setflags(write=False)
        radii.setflags(write=False)
        object.__setattr__(self, "side_length", side_length)
        object.__setattr__(self, "particles", particles)
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "radii", radii)

    def __len__(self) -> int:
        return len(self.particles)

    def distance(self, i: int, j: int) -> float:
        return self.particles[i].distance_to(self.particles[j], box_size=self.side_length)
