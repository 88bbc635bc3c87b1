import numpy as np
import pytest

from neighbor_detection.errors import InvalidDomain
from neighbor_detection.initializers import domain_from_preset, load_preset_domain, random_domain, resolve_seed
from neighbor_detection.neighbors import brute_force_neighbors, compute_neighbors
from neighbor_detection.presets import build_preset, list_presets


def test_resolve_seed_is_reproducible():
    seed, rng = resolve_seed(42)
    assert seed == 42
    _, rng2 = resolve_seed(42)
    assert rng.uniform() == rng2.uniform()


def test_resolve_seed_draws_fresh_seed():
    seed, rng = resolve_seed(None)
    assert isinstance(seed, int)
    _, replay = resolve_seed(seed)
    assert rng.uniform() == replay.uniform()


def test_random_domain_point_like():
    domain = random_domain(7.5, 50, np.random.default_rng(0), point_like=True)
    assert len(domain.particles) == 50
    assert all(p.is_point_like() for p in domain.particles)
    assert np.all((domain.positions >= 0.0) & (domain.positions < 7.5))


def test_random_domain_radii_bounded():
    domain = random_domain(10.0, 80, np.random.default_rng(1), max_radius=0.25)
    assert np.all((domain.radii >= 0.0) & (domain.radii < 0.25))


def test_random_domain_default_radius_bound_is_side():
    domain = random_domain(2.0, 40, np.random.default_rng(2))
    assert domain.radii.max() < 2.0


def test_random_domain_rejects_negative_count():
    with pytest.raises(InvalidDomain):
        random_domain(10.0, -1, np.random.default_rng(0))


def test_random_domain_rejects_bad_side():
    with pytest.raises(InvalidDomain):
        random_domain(0.0, 3, np.random.default_rng(0))


def test_every_preset_builds_a_valid_domain():
    ids = [p["id"] for p in list_presets()]
    assert "wraparound_pair" in ids
    for preset_id in ids:
        data = build_preset(preset_id)
        domain = domain_from_preset(data)
        assert len(domain.particles) == len(data["particles"])
        search = data["search"]
        result = compute_neighbors(domain, search["interaction_radius"], search["grid_divisions"])
        assert result.pairs() == brute_force_neighbors(domain, search["interaction_radius"]).pairs()


def test_unknown_preset():
    with pytest.raises(ValueError, match="Unknown preset"):
        build_preset("nope")


def test_lattice_preset_has_four_neighbors_each():
    data = build_preset("lattice")
    domain = domain_from_preset(data)
    result = compute_neighbors(domain, data["search"]["interaction_radius"], data["search"]["grid_divisions"])
    assert result.counts().tolist() == [4] * len(domain.particles)


def test_wraparound_preset():
    domain = load_preset_domain("wraparound_pair")
    result = compute_neighbors(domain, 1.0, 5)
    assert result.pairs() == {(0, 1)}


def test_edge_band_links_opposite_borders():
    domain = load_preset_domain("edge_band")
    result = compute_neighbors(domain, 0.1, 5)
    # (0, t) and (10, t) are the same point of the periodic box
    assert (0, 1) in result.pairs()


def test_preset_rejects_particle_outside():
    data = build_preset("wraparound_pair")
    data["particles"][0]["pos"] = [11.0, 5.0]
    with pytest.raises(InvalidDomain):
        domain_from_preset(data)


def test_preset_rejects_wrong_dimension():
    data = build_preset("wraparound_pair")
    data["particles"][1]["pos"] = [1.0, 2.0, 3.0]
    with pytest.raises(InvalidDomain):
        domain_from_preset(data)
