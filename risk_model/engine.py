"""
SRI Escape Planner — Engine
=============================
Owns site observations and runs the full update cycle:
  validate patch → recompute every SRI → diff bands → plan if triggered

Every public operation runs under one reentrant lock so a cycle is never
observed half-done. Callers that combine several calls into one response hold
`engine.lock` around them.
"""
import logging
import math
import threading
from datetime import datetime

from config.settings import HOME_SITE, ALERT_POLICY, LEAK_TERMS, LOAD_TERMS
from config.sites import SITES
from risk_model.errors import ConfigurationError, ObservationError, UnknownSiteError
from risk_model.graph import SiteGraph
from risk_model.navigator import NavigationTracker
from risk_model.predictor import probability_to_sri, probability_level
from risk_model.scorer import compute_sri, compute_factor_breakdown, dominant_factor, get_band, get_band_color
from risk_model.state_machine import AlertStateMachine
from risk_model.weights import edge_real_weight

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ("rainfall", "soil", "sand")
LEVEL_FIELDS = {"leak_level": LEAK_TERMS, "load_level": LOAD_TERMS}


def zero_observation():
    return {
        "rainfall": 0.0,
        "soil": 0.0,
        "sand": 0.0,
        "leak_level": 0,
        "excavation": False,
        "load_level": 0,
    }


def _finite_number(field, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ObservationError(f"{field} must be a number")
    try:
        number = float(value)
    except OverflowError:
        raise ObservationError(f"{field} is out of range")
    if not math.isfinite(number):
        raise ObservationError(f"{field} must be finite")
    return number


def validate_patch(patch):
    """
    Check an observation patch and return a cleaned copy.
    Numerics must be finite; negatives are clamped to 0.
    Raises ObservationError on the first bad field.
    """
    if not isinstance(patch, dict):
        raise ObservationError("Observation patch must be a mapping")

    cleaned = {}
    for field, value in patch.items():
        if field in NUMERIC_FIELDS:
            cleaned[field] = max(0.0, _finite_number(field, value))
        elif field in LEVEL_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ObservationError(f"{field} must be an integer level")
            if value not in LEVEL_FIELDS[field]:
                raise ObservationError(
                    f"{field} must be one of {sorted(LEVEL_FIELDS[field])}, got {value}"
                )
            cleaned[field] = value
        elif field == "excavation":
            if not isinstance(value, bool):
                raise ObservationError("excavation must be a boolean")
            cleaned[field] = value
        else:
            raise ObservationError(f"Unknown observation field: {field}")
    return cleaned


class EscapeEngine:

    def __init__(self, graph=None, home=HOME_SITE, policy=ALERT_POLICY, site_info=None):
        self.graph = graph or SiteGraph.from_config()
        if home not in self.graph:
            raise ConfigurationError(f"Home site {home} is not in the topology")

        self.site_info = site_info if site_info is not None else SITES
        self._observations = {sid: zero_observation() for sid in self.graph.site_ids}
        self._external = {}  # site_id -> probability from the prediction service
        self._alerts = AlertStateMachine(self.graph.site_ids, policy)
        self._nav = NavigationTracker(home)
        self._lock = threading.RLock()

    # ── reads ───────────────────────────────────────────────────────────────

    def _require_site(self, site_id):
        if site_id not in self.graph:
            raise UnknownSiteError(site_id)

    def _score(self, site_id):
        if site_id in self._external:
            return probability_to_sri(self._external[site_id])
        return compute_sri(self._observations[site_id])["sri"]

    def _score_map(self):
        return {sid: self._score(sid) for sid in self.graph.site_ids}

    def score_map(self):
        with self._lock:
            return self._score_map()

    def get_observation(self, site_id):
        self._require_site(site_id)
        with self._lock:
            return dict(self._observations[site_id])

    @property
    def lock(self):
        return self._lock

    @property
    def alerts(self):
        return self._alerts

    @property
    def navigator(self):
        return self._nav

    # ── update cycle ────────────────────────────────────────────────────────

    def _run_cycle(self):
        scores = self._score_map()
        fired = self._alerts.evaluate(scores, self.graph)
        if fired:
            logger.info(f"[ENGINE] Alert fired for {fired[0]}")
        return fired

    def update_site(self, site_id, patch, replace=False):
        """
        Apply an observation patch (or full replacement) and run one cycle.
        Returns the list of sites that triggered a plan.
        """
        self._require_site(site_id)
        cleaned = validate_patch(patch)

        with self._lock:
            base = zero_observation() if replace else self._observations[site_id]
            self._observations[site_id] = {**base, **cleaned}
            return self._run_cycle()

    def set_external_probability(self, site_id, probability):
        """
        Substitute a site's score with a service probability (None restores
        the local SRI). Runs one cycle.
        """
        self._require_site(site_id)
        if probability is not None:
            probability = min(1.0, max(0.0, _finite_number("probability", probability)))

        with self._lock:
            if probability is None:
                self._external.pop(site_id, None)
            else:
                self._external[site_id] = probability
            return self._run_cycle()

    def confirm_hop(self):
        """
        Move the traveler one hop along the active path. Arrival at the
        destination closes the alert.
        """
        with self._lock:
            plan = self._alerts.plan
            position = self._nav.confirm_hop(plan)
            arrived = plan["destination"] is not None and position == plan["destination"]
            promoted = None
            if arrived:
                logger.info(f"[NAV] Arrived at {position}; alert closed")
                promoted = self._alerts.close(self._score_map(), self.graph)
            return {"position": position, "arrived": arrived, "promoted": promoted}

    def dismiss_alert(self):
        with self._lock:
            return self._alerts.dismiss()

    def reset(self):
        """Zero every site, clear bands/plan/queue, send the traveler home."""
        with self._lock:
            self._observations = {sid: zero_observation() for sid in self.graph.site_ids}
            self._external = {}
            self._alerts.reset()
            self._nav.reset()
        logger.info("[ENGINE] Reset: all sites zeroed")

    # ── output ──────────────────────────────────────────────────────────────

    def _site_view(self, site_id):
        observation = self._observations[site_id]
        metrics = compute_sri(observation)
        score = self._score(site_id)
        band = get_band(score)
        info = self.site_info.get(site_id, {})
        view = {
            "site_id": site_id,
            "name": info.get("name", site_id),
            "lat": info.get("lat"),
            "lng": info.get("lng"),
            "observation": dict(observation),
            "metrics": {k: round(v, 4) for k, v in metrics.items()},
            "score": round(score, 4),
            "band": band,
            "color": get_band_color(band),
            "score_source": "external" if site_id in self._external else "local",
        }
        if site_id in self._external:
            view["external_probability"] = self._external[site_id]
            view["external_level"] = probability_level(self._external[site_id])
        return view

    def site_detail(self, site_id):
        self._require_site(site_id)
        with self._lock:
            view = self._site_view(site_id)
            observation = self._observations[site_id]
            view["factor_breakdown"] = compute_factor_breakdown(observation)
            view["dominant_factor"] = dominant_factor(observation)
            return view

    def edge_weights(self):
        with self._lock:
            scores = self._score_map()
            weights = []
            for edge in self.graph.edges:
                w = edge_real_weight(edge, scores)
                weights.append({
                    "a": edge["a"],
                    "b": edge["b"],
                    "default_weight": w["default_weight"],
                    "real_weight": round(w["real_weight"], 4),
                })
            return weights

    def snapshot(self):
        """Read-only state for the presentation layer."""
        with self._lock:
            plan = self._alerts.plan
            return {
                "sites": [self._site_view(sid) for sid in self.graph.site_ids],
                "alert": {
                    "status": self._alerts.status,
                    "trigger": plan["trigger"] if plan else None,
                    "path": list(plan["path"]) if plan else [],
                    "cost": plan["cost"] if plan else None,
                    "destination": plan["destination"] if plan else None,
                    "acknowledged": self._alerts.acknowledged,
                    "policy": self._alerts.policy,
                    "queued": self._alerts.queued,
                },
                "navigation": {
                    "position": self._nav.position,
                    "next_hop": self._nav.next_hop(plan),
                    "home": self._nav.home,
                },
                "alert_log": self._alerts.alert_log,
                "timestamp": datetime.now().isoformat(),
            }
