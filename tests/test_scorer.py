import pytest

from risk_model.engine import zero_observation
from risk_model.scorer import compute_sri, compute_factor_breakdown, dominant_factor, get_band


def obs(**fields):
    return {**zero_observation(), **fields}


def test_zero_observation_scores_zero():
    m = compute_sri(obs())
    assert m["sri"] == 0
    assert m["raw"] == 0
    assert m["soil_fraction"] == 0
    assert get_band(m["sri"]) == "low"


def test_mixed_observation():
    m = compute_sri(obs(rainfall=500, soil=3, sand=1, leak_level=2, excavation=True, load_level=1))
    assert m["rainfall_ratio"] == pytest.approx(0.5)
    assert m["soil_fraction"] == pytest.approx(0.75)
    assert m["soil_term"] == pytest.approx(1.0)
    assert m["leak_term"] == pytest.approx(0.6)
    assert m["excavation_term"] == 1.0
    assert m["load_term"] == 0.5
    assert m["sri"] == pytest.approx(7.2)
    assert get_band(m["sri"]) == "high"


def test_all_factors_maxed_hits_ceiling():
    m = compute_sri(obs(rainfall=5000, soil=10, leak_level=3, excavation=True, load_level=2))
    assert m["rainfall_ratio"] == 1.0
    assert m["raw"] == pytest.approx(10.0)
    assert m["sri"] == pytest.approx(10.0)


@pytest.mark.parametrize("soil,sand,term", [
    (0, 0, 0.0),      # no composition data
    (0, 5, 0.0),      # all sand
    (1, 3, 0.0),      # f = 0.25
    (1, 1, 0.5),      # f = 0.5
    (3, 1, 1.0),      # f = 0.75
    (9, 1, 1.0),      # f = 0.9, clipped
])
def test_soil_term_grading(soil, sand, term):
    assert compute_sri(obs(soil=soil, sand=sand))["soil_term"] == pytest.approx(term)


def test_soil_fraction_with_huge_inputs():
    m = compute_sri(obs(soil=1e308, sand=1e308))
    assert m["soil_fraction"] == pytest.approx(0.5)
    assert m["soil_term"] == pytest.approx(0.5)
    assert m["sri"] == pytest.approx(1.5)

    # ratio overflows to inf; the fraction still tends to 0
    assert compute_sri(obs(soil=1e-308, sand=1e308))["soil_fraction"] == 0.0


def test_band_boundaries():
    assert get_band(0) == "low"
    assert get_band(3) == "low"
    assert get_band(3.0001) == "mid"
    assert get_band(6.9999) == "mid"
    assert get_band(7) == "high"
    assert get_band(10) == "high"


def test_exact_boundary_scores_from_observations():
    # leak 3 (2.0) + excavation (1.0) = 3.0
    low = compute_sri(obs(leak_level=3, excavation=True))["sri"]
    assert low == pytest.approx(3.0)
    assert get_band(low) == "low"

    # rain 3.0 + soil 3.0 + excavation 1.0 = 7.0
    high = compute_sri(obs(rainfall=1000, soil=1, excavation=True))["sri"]
    assert high == 7.0
    assert get_band(high) == "high"


def test_recompute_is_deterministic():
    o = obs(rainfall=321, soil=2, sand=1, leak_level=1, load_level=2)
    assert compute_sri(o) == compute_sri(o)


def test_factor_breakdown():
    breakdown = compute_factor_breakdown(obs(leak_level=3, excavation=True))
    assert breakdown["leak"]["contribution"] == pytest.approx(2.0)
    assert breakdown["leak"]["contribution_pct"] == pytest.approx(66.7)
    assert breakdown["excavation"]["contribution_pct"] == pytest.approx(33.3)
    assert breakdown["rainfall"]["contribution_pct"] == 0
    assert dominant_factor(obs(leak_level=3, excavation=True)) == "leak"


def test_factor_breakdown_of_zero_score():
    breakdown = compute_factor_breakdown(obs())
    assert all(f["contribution_pct"] == 0 for f in breakdown.values())
    assert dominant_factor(obs()) is None
