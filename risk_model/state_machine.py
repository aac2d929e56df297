"""
SRI Escape Planner — Alert State Machine
Edge-triggered alerting: a site fires only when its band moves from
low/mid into high. Sustained high never re-fires.
States: idle (no plan) → alerting (plan with trigger, path, destination)
"""
import logging
from collections import deque
from datetime import datetime

from config.settings import ALERT_POLICIES, ALERT_POLICY, ALERT_LOG_MAX
from risk_model.errors import ConfigurationError
from risk_model.planner import compute_escape_plan
from risk_model.scorer import get_band

logger = logging.getLogger(__name__)


class AlertStateMachine:
    """
    Holds the previous band snapshot, the single active plan and, under the
    "queue" policy, sites that entered high while another alert was firing.

    Policies for simultaneous high entries:
      first: the first site in enumeration order triggers, the rest are dropped.
      queue: the rest wait; the next one still high is planned when the
             active alert closes.
    """

    def __init__(self, site_ids, policy=ALERT_POLICY):
        if policy not in ALERT_POLICIES:
            raise ConfigurationError(f"Unknown alert policy: {policy}")
        self.policy = policy
        self._site_ids = tuple(site_ids)
        self._bands = {sid: "low" for sid in self._site_ids}
        self._plan = None
        self._queue = []
        self._acknowledged = False
        self._alert_log = deque(maxlen=ALERT_LOG_MAX)

    @property
    def bands(self):
        return dict(self._bands)

    @property
    def plan(self):
        return self._plan

    @property
    def status(self):
        return "alerting" if self._plan is not None else "idle"

    @property
    def queued(self):
        return list(self._queue)

    @property
    def acknowledged(self):
        return self._acknowledged

    @property
    def alert_log(self):
        return list(self._alert_log)

    def get_band(self, site_id):
        return self._bands[site_id]

    def evaluate(self, score_map, graph):
        """
        Diff current bands against the stored snapshot and plan on a new
        high entry. The snapshot is replaced every cycle.
        Returns the list of sites that triggered a plan this cycle.
        """
        now_bands = {sid: get_band(score_map[sid]) for sid in self._site_ids}

        entered = []
        for sid in self._site_ids:
            before, after = self._bands[sid], now_bands[sid]
            if before == after:
                continue
            self._alert_log.append({
                "site_id": sid,
                "from_band": before,
                "to_band": after,
                "score": round(score_map[sid], 3),
                "timestamp": datetime.now().isoformat(),
            })
            if after == "high":
                entered.append(sid)

        self._bands = now_bands

        if not entered:
            return []

        trigger, rest = entered[0], entered[1:]
        if rest:
            if self.policy == "queue":
                for sid in rest:
                    if sid not in self._queue:
                        self._queue.append(sid)
                logger.info(f"[ALERT] Queued simultaneous high entries: {rest}")
            else:
                logger.warning(f"[ALERT] Dropped simultaneous high entries: {rest}")
        if trigger in self._queue:
            self._queue.remove(trigger)

        if self._plan is not None:
            logger.info(
                f"[ALERT] Plan from {self._plan['trigger']} superseded by new alert at {trigger}"
            )
        self._start(trigger, score_map, graph)
        return [trigger]

    def _start(self, trigger, score_map, graph):
        plan = compute_escape_plan(trigger, score_map, graph)
        if plan is None:
            self._plan = {"trigger": trigger, "path": [trigger], "cost": None, "destination": None}
            logger.warning(f"[ALERT] {trigger} entered high band; no route available")
        else:
            self._plan = {"trigger": trigger, **plan}
            logger.warning(
                f"[ALERT] {trigger} entered high band; evacuate to {plan['destination']}"
            )
        self._acknowledged = False

    def close(self, score_map, graph):
        """
        End the active alert. Under the queue policy the next queued site
        that is still high becomes the new alert. Returns that site or None.
        """
        self._plan = None
        self._acknowledged = False

        while self._queue:
            sid = self._queue.pop(0)
            if self._bands[sid] == "high":
                logger.info(f"[ALERT] Promoting queued alert at {sid}")
                self._start(sid, score_map, graph)
                return sid
            logger.info(f"[ALERT] Discarding queued alert at {sid} (no longer high)")
        return None

    def dismiss(self):
        """Hide the alert popup, keeping the plan."""
        if self._plan is None:
            return False
        self._acknowledged = True
        return True

    def reset(self):
        self._bands = {sid: "low" for sid in self._site_ids}
        self._plan = None
        self._queue = []
        self._acknowledged = False
