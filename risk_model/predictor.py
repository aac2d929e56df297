"""
SRI Escape Planner — External Risk Probability Client
Asks the prediction service for a collapse probability (0-1).
The returned probability can stand in for a site's locally computed SRI;
the SRI formula itself is never changed.
"""
import logging

import requests

from config.settings import (
    RISK_API_URL, RISK_API_TIMEOUT,
    PROBABILITY_HIGH, PROBABILITY_MEDIUM, SRI_MAX,
)

logger = logging.getLogger(__name__)


def fetch_risk_probability(features, url=None, timeout=None):
    """
    POST site features to the prediction service.

    Returns:
        probability clamped to [0, 1], or None if the service is not
        configured, unreachable, or answers with something unusable.
    """
    url = url or RISK_API_URL
    if not url:
        logger.info("[RISK-API] No prediction service configured")
        return None

    try:
        resp = requests.post(url, json=features, timeout=timeout or RISK_API_TIMEOUT)
        resp.raise_for_status()
        body = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"[RISK-API] Request failed: {e}")
        return None

    value = body.get("probability", body.get("risk")) if isinstance(body, dict) else None
    try:
        probability = float(value)
    except (TypeError, ValueError):
        logger.error(f"[RISK-API] Malformed response: {body}")
        return None
    if probability != probability:  # NaN
        logger.error("[RISK-API] Service returned NaN")
        return None

    return min(1.0, max(0.0, probability))


def probability_level(probability):
    """LOW / MEDIUM / HIGH label for a service probability."""
    if probability >= PROBABILITY_HIGH:
        return "HIGH"
    if probability >= PROBABILITY_MEDIUM:
        return "MEDIUM"
    return "LOW"


def probability_to_sri(probability):
    """Map a 0-1 probability onto the 0-10 SRI scale."""
    return min(SRI_MAX, max(0.0, probability * SRI_MAX))
