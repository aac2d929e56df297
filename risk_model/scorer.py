"""
SRI Escape Planner — Risk Scorer
Computes the Structural Risk Index (SRI, 0-10) from a site's observations.
Returns every intermediate term + per-factor breakdown for explainability.

WEIGHT JUSTIFICATION:
  rainfall (3):   Cumulative rain saturates the ground around buried pipes.
                  Capped at 1000mm.
  soil (3):       Fine soil (vs. sand) loses bearing capacity when wet.
                  Only the 0.25-0.75 soil fraction range is graded.
  leak (2):       A leaking line washes out fill from below.
  excavation (1): Open excavation removes lateral support.
  load (1):       Heavy traffic adds dynamic load on a weakened surface.
"""
from config.settings import (
    SRI_WEIGHTS, SRI_MAX,
    RAINFALL_MAX_MM, SOIL_FRACTION_FLOOR, SOIL_FRACTION_SPAN,
    LEAK_TERMS, LOAD_TERMS,
    LOW_MAX, LIMIT_SRI, BAND_COLORS,
)


def _clip01(value):
    return min(1.0, max(0.0, value))


def compute_sri(observation):
    """
    SRI = min(3R + 3T + 2L + 1E + 1D, 10).

    Pure function of the observation bundle. Inputs are assumed to be
    validated already (finite, non-negative, in-range levels).

    Returns:
        dict with rainfall_ratio, soil_fraction, soil_term, leak_term,
        excavation_term, load_term, raw, sri
    """
    rainfall_ratio = min(observation["rainfall"] / RAINFALL_MAX_MM, 1.0)

    # soil / (soil + sand), written so huge inputs cannot overflow the sum.
    # No soil data means no soil contribution.
    soil, sand = observation["soil"], observation["sand"]
    soil_fraction = 1.0 / (1.0 + sand / soil) if soil > 0 else 0.0

    soil_term = _clip01((soil_fraction - SOIL_FRACTION_FLOOR) / SOIL_FRACTION_SPAN)

    leak_term = LEAK_TERMS[observation["leak_level"]]
    excavation_term = 1.0 if observation["excavation"] else 0.0
    load_term = LOAD_TERMS[observation["load_level"]]

    raw = (
        SRI_WEIGHTS["rainfall"]     * rainfall_ratio
        + SRI_WEIGHTS["soil"]       * soil_term
        + SRI_WEIGHTS["leak"]       * leak_term
        + SRI_WEIGHTS["excavation"] * excavation_term
        + SRI_WEIGHTS["load"]       * load_term
    )

    return {
        "rainfall_ratio": rainfall_ratio,
        "soil_fraction": soil_fraction,
        "soil_term": soil_term,
        "leak_term": leak_term,
        "excavation_term": excavation_term,
        "load_term": load_term,
        "raw": raw,
        "sri": min(raw, SRI_MAX),
    }


def get_band(sri):
    """Band label for a score. low = [0,3], mid = (3,7), high = [7,10]."""
    if sri <= LOW_MAX:
        return "low"
    if sri < LIMIT_SRI:
        return "mid"
    return "high"


def get_band_color(band):
    """Get display color for a band label."""
    return BAND_COLORS.get(band, "#94A3B8")


def compute_factor_breakdown(observation):
    """
    Per-factor contribution % for explainability.

    Returns:
        dict of factor_name -> {term, weight, contribution, contribution_pct}
    """
    metrics = compute_sri(observation)
    terms = {
        "rainfall": metrics["rainfall_ratio"],
        "soil": metrics["soil_term"],
        "leak": metrics["leak_term"],
        "excavation": metrics["excavation_term"],
        "load": metrics["load_term"],
    }

    breakdown = {}
    for factor, weight in SRI_WEIGHTS.items():
        contribution = terms[factor] * weight
        breakdown[factor] = {
            "term": round(terms[factor], 3),
            "weight": weight,
            "contribution": round(contribution, 4),
        }

    raw = metrics["raw"]
    for factor in breakdown:
        if raw > 0:
            breakdown[factor]["contribution_pct"] = round(
                terms[factor] * SRI_WEIGHTS[factor] / raw * 100, 1
            )
        else:
            breakdown[factor]["contribution_pct"] = 0

    return breakdown


def dominant_factor(observation):
    """Factor with the largest contribution, or None for a zero score."""
    breakdown = compute_factor_breakdown(observation)
    factor, info = max(breakdown.items(), key=lambda kv: kv[1]["contribution"])
    return factor if info["contribution"] > 0 else None
