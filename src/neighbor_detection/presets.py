import math
from copy import deepcopy

BASE_WORLD = {"dim": 2, "side_length": 10.0}
BASE_SEARCH = {"interaction_radius": 1.0, "grid_divisions": 5}


def _particle(pid: int, x: float, y: float, radius: float = 0.0) -> dict:
    return {
        "id": pid,
        "pos": [float(x), float(y)],
        "radius": float(radius),
    }


def _linspace_grid(n_x: int, n_y: int, side: float, margin: float = 0.0):
    for iy in range(n_y):
        y = margin + (side - 2 * margin) * (iy + 0.5) / n_y
        for ix in range(n_x):
            x = margin + (side - 2 * margin) * (ix + 0.5) / n_x
            yield ix, iy, x, y


def _make_preset(
    preset_id: str,
    name: str,
    description: str,
    particles: list[dict],
    side_length: float = 10.0,
    interaction_radius: float = 1.0,
    grid_divisions: int = 5,
) -> dict:
    return {
        "id": preset_id,
        "name": name,
        "description": description,
        "world": {**deepcopy(BASE_WORLD), "side_length": float(side_length)},
        "search": {
            **deepcopy(BASE_SEARCH),
            "interaction_radius": float(interaction_radius),
            "grid_divisions": int(grid_divisions),
        },
        "particles": particles,
    }


def _lattice() -> dict:
    particles = [_particle(pid, x, y) for pid, (_, _, x, y) in enumerate(_linspace_grid(20, 20, 10.0))]
    return _make_preset(
        "lattice",
        "Lattice",
        "Periodic square lattice of spacing 0.5; every point has exactly four neighbors.",
        particles,
        interaction_radius=0.6,
    )


def _two_clusters() -> dict:
    particles = []
    pid = 0
    for cx in (2.5, 7.5):
        for _, _, x, y in _linspace_grid(8, 8, 10.0, margin=0.5):
            particles.append(_particle(pid, cx + (x - 5.0) * 0.2, 5.0 + (y - 5.0) * 0.2, radius=0.05))
            pid += 1
    return _make_preset("two_clusters", "Two Clusters", "Two compact groups of small disks.", particles)


def _concentric_rings() -> dict:
    particles = []
    pid = 0
    rings = [(1.2, 20), (2.2, 36), (3.2, 52), (4.2, 68)]
    for r, count in rings:
        for i in range(count):
            theta = 2.0 * math.pi * i / count
            particles.append(_particle(pid, 5.0 + r * math.cos(theta), 5.0 + r * math.sin(theta), radius=0.1))
            pid += 1
    return _make_preset("concentric_rings", "Concentric Rings", "Rings of disks around the center.", particles)


def _edge_band() -> dict:
    particles = []
    pid = 0
    for i in range(40):
        t = 10.0 * i / 39
        for x, y in ((0.0, t), (10.0, t), (t, 0.05), (t, 9.95)):
            particles.append(_particle(pid, x, y))
            pid += 1
    return _make_preset(
        "edge_band",
        "Edge Band",
        "Points hugging all four borders, including the x = 0 and x = L lines.",
        particles,
    )


def _wraparound_pair() -> dict:
    particles = [_particle(0, 0.1, 5.0), _particle(1, 9.9, 5.0)]
    return _make_preset(
        "wraparound_pair",
        "Wraparound Pair",
        "Two points 0.2 apart across the periodic x boundary.",
        particles,
    )


def _coincident_points() -> dict:
    particles = [_particle(0, 3.0, 3.0), _particle(1, 3.0, 3.0), _particle(2, 7.0, 7.0)]
    return _make_preset(
        "coincident_points",
        "Coincident Points",
        "Two point particles at the same position and one far away.",
        particles,
        interaction_radius=0.1,
    )


_PRESETS = {
    "lattice": _lattice,
    "two_clusters": _two_clusters,
    "concentric_rings": _concentric_rings,
    "edge_band": _edge_band,
    "wraparound_pair": _wraparound_pair,
    "coincident_points": _coincident_points,
}


def list_presets() -> list[dict]:
    items = []
    for preset_id, builder in _PRESETS.items():
        p = builder()
        items.append({"id": preset_id, "name": p["name"], "description": p["description"]})
    return items


def build_preset(preset_id: str) -> dict:
    if preset_id not in _PRESETS:
        raise ValueError(f"Unknown preset: {preset_id}")
    return _PRESETS[preset_id]()
