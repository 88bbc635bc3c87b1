import logging

import numpy as np

from neighbor_detection.errors import InvalidDomain
from neighbor_detection.particles import Domain, Particle
from neighbor_detection.presets import build_preset

logger = logging.getLogger(__name__)


def resolve_seed(seed: int | None) -> tuple[int, np.random.Generator]:
    if seed is None:
        seed_seq = np.random.SeedSequence()
        seed_used = int(seed_seq.generate_state(1, dtype=np.uint64)[0])
    else:
        seed_used = int(seed)
    return seed_used, np.random.default_rng(seed_used)


def random_domain(
    side_length: float,
    n_particles: int,
    rng: np.random.Generator,
    point_like: bool = False,
    max_radius: float | None = None,
) -> Domain:
    """Domain with ``n_particles`` uniformly scattered in ``[0, L)^2``.

    Radii are zero for ``point_like``, otherwise uniform in ``[0, max_radius)``
    with ``max_radius`` defaulting to the side length.
    """
    if n_particles < 0:
        raise InvalidDomain(f"The amount of particles must not be negative, got {n_particles}")
    if not side_length > 0:
        raise InvalidDomain(f"The side length must be positive, got {side_length}")
    if max_radius is None:
        max_radius = side_length
    if max_radius < 0:
        raise InvalidDomain(f"max_radius must not be negative, got {max_radius}")

    pos = rng.uniform(0.0, side_length, size=(n_particles, 2))
    if point_like:
        radii = np.zeros(n_particles)
    else:
        radii = rng.uniform(0.0, max_radius, size=n_particles)
    logger.debug("Generated %d random particles in a box of side %g", n_particles, side_length)
    return Domain(side_length, tuple(Particle(pos[i], radii[i]) for i in range(n_particles)))


def domain_from_preset(data: dict) -> Domain:
    world = data["world"]
    particles_json = data["particles"]

    if int(world.get("dim", 2)) != 2:
        raise InvalidDomain("Only dim=2 presets are supported")

    parsed: list[Particle] = []
    for idx, p in enumerate(particles_json):
        pos = np.asarray(p["pos"], dtype=np.float64)
        if pos.shape != (2,):
            raise InvalidDomain(f"Particle {idx} position must have dim=2")
        parsed.append(Particle(pos=pos, radius=float(p.get("radius", 0.0))))

    return Domain(float(world["side_length"]), tuple(parsed))


def load_preset_domain(preset_id: str) -> Domain:
    return domain_from_preset(build_preset(preset_id))
