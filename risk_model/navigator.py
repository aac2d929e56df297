"""
SRI Escape Planner — Navigation Tracker
Traveler position along the active escape path. Moves only on explicit
hop confirmation.
"""
import logging

from risk_model.errors import NavigationError

logger = logging.getLogger(__name__)


class NavigationTracker:

    def __init__(self, home):
        self.home = home
        self.position = home

    def next_hop(self, plan):
        """
        Next site along the plan's path. If the position is not on the path
        (or is already at its end) the traveler is treated as being at the
        trigger site, so the path's second element is returned.
        """
        if not plan or len(plan["path"]) < 2:
            return None

        path = plan["path"]
        if self.position in path:
            idx = path.index(self.position)
            if idx < len(path) - 1:
                return path[idx + 1]
        return path[1]

    def confirm_hop(self, plan):
        """Move to the next hop. Returns the new position."""
        hop = self.next_hop(plan)
        if hop is None:
            raise NavigationError("No next hop available")

        logger.info(f"[NAV] {self.position} -> {hop}")
        self.position = hop
        return hop

    def reset(self):
        self.position = self.home
