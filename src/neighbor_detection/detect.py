import argparse
import logging
import sys
import time
from dataclasses import asdict, dataclass

import numpy as np

from neighbor_detection.cells import build_grid_index, max_grid_divisions
from neighbor_detection.errors import NeighborDetectionError
from neighbor_detection.initializers import domain_from_preset, random_domain, resolve_seed
from neighbor_detection.logging_config import setup_logging
from neighbor_detection.neighbors import NeighborMap, brute_force_neighbors, compute_neighbors
from neighbor_detection.particles import Domain
from neighbor_detection.presets import build_preset, list_presets

logger = logging.getLogger(__name__)


@dataclass
class DetectionConfig:
    side_length: float | None = None
    n_particles: int | None = None
    interaction_radius: float | None = None
    grid_divisions: int | None = None
    point_like: bool = True
    max_radius: float | None = None
    seed: int | None = None
    preset: str | None = None
    workers: int = 1
    verify: bool = False


def resolve_config(cfg: DetectionConfig, rng: np.random.Generator) -> DetectionConfig:
    """Fill the values left as ``None`` with random draws.

    Side length is an integer in [10, 100) scaled by a fraction in [0.5, 1),
    the particle count is in [1000, 10000), the interaction radius is 1% to 5%
    of the side and ``M`` is uniform over the grid sizes the cell-size rule
    allows.
    """
    out = DetectionConfig(**asdict(cfg))
    if out.side_length is None:
        out.side_length = float(rng.integers(10, 100) * rng.uniform(0.5, 1.0))
    if out.n_particles is None:
        out.n_particles = int(rng.integers(1_000, 10_000))
    if out.interaction_radius is None:
        out.interaction_radius = float(rng.uniform(0.01, 0.05) * out.side_length)
    if out.grid_divisions is None:
        max_m = max_grid_divisions(out.side_length, out.interaction_radius)
        out.grid_divisions = int(rng.integers(1, max_m + 1))
    return out


def build_domain(cfg: DetectionConfig, rng: np.random.Generator) -> tuple[Domain, DetectionConfig]:
    if cfg.preset is None:
        cfg = resolve_config(cfg, rng)
        domain = random_domain(
            cfg.side_length,
            cfg.n_particles,
            rng,
            point_like=cfg.point_like,
            max_radius=cfg.max_radius,
        )
        return domain, cfg

    data = build_preset(cfg.preset)
    domain = domain_from_preset(data)
    cfg = DetectionConfig(**asdict(cfg))
    cfg.side_length = domain.side_length
    cfg.n_particles = len(domain.particles)
    if cfg.interaction_radius is None:
        cfg.interaction_radius = float(data["search"]["interaction_radius"])
    if cfg.grid_divisions is None:
        cfg.grid_divisions = int(data["search"]["grid_divisions"])
    return domain, cfg


def summarize(domain: Domain, result: NeighborMap, grid_divisions: int) -> dict:
    counts = result.counts()
    return {
        "particles": len(domain.particles),
        "pairs": result.pair_count(),
        "mean_neighbors": float(counts.mean()) if counts.size else 0.0,
        "max_neighbors": int(counts.max()) if counts.size else 0,
        "populated_cells": len(build_grid_index(domain, grid_divisions)),
    }


def run(cfg: DetectionConfig) -> NeighborMap:
    seed_used, rng = resolve_seed(cfg.seed)
    domain, cfg = build_domain(cfg, rng)

    logger.info(
        "Starting algorithm with values: L = %g, M = %d, r = %g, n = %d (seed %d).",
        cfg.side_length, cfg.grid_divisions, cfg.interaction_radius, cfg.n_particles, seed_used,
    )
    start = time.perf_counter()
    result = compute_neighbors(domain, cfg.interaction_radius, cfg.grid_divisions, workers=cfg.workers)
    elapsed = time.perf_counter() - start
    logger.info("Finished. Elapsed time: %.3f secs.", elapsed)
    logger.info("Summary: %s", summarize(domain, result, cfg.grid_divisions))

    if cfg.verify:
        start = time.perf_counter()
        reference = brute_force_neighbors(domain, cfg.interaction_radius)
        logger.info("Brute force elapsed time: %.3f secs.", time.perf_counter() - start)
        if reference.pairs() != result.pairs():
            raise RuntimeError(
                f"Cell index result differs from brute force: {result.pair_count()} vs {reference.pair_count()} pairs"
            )
        logger.info("Result matches brute force.")
    return result


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Detect particle neighbors with the Cell Index Method")
    parser.add_argument("--side-length", type=float, default=None, help="Side length L of the square box")
    parser.add_argument("--n", type=int, default=None, help="Number of random particles")
    parser.add_argument("--radius", type=float, default=None, help="Interaction radius r")
    parser.add_argument("--m", type=int, default=None, help="Grid cells per side M")
    parser.add_argument(
        "--max-radius", type=float, default=None, help="Give random particles radii in [0, max-radius); point-like otherwise"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--preset",
        default=None,
        choices=[p["id"] for p in list_presets()],
        help="Use a built-in particle layout instead of random ones",
    )
    parser.add_argument("--workers", type=int, default=1, help="Threads used to scan cells")
    parser.add_argument("--verify", action="store_true", help="Compare against brute force")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)
    cfg = DetectionConfig(
        side_length=args.side_length,
        n_particles=args.n,
        interaction_radius=args.radius,
        grid_divisions=args.m,
        point_like=args.max_radius is None,
        max_radius=args.max_radius,
        seed=args.seed,
        preset=args.preset,
        workers=args.workers,
        verify=args.verify,
    )
    try:
        run(cfg)
    except NeighborDetectionError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
