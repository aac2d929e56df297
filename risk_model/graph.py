"""
SRI Escape Planner — Site Graph
Immutable site set + undirected connections, adjacency built once.
"""
import math

from config.sites import SITE_IDS, EDGES
from risk_model.errors import ConfigurationError


class SiteGraph:
    """
    Fixed topology. Each edge is {"a", "b", "distance"}; adjacency maps
    site_id -> [(neighbor_id, edge), ...] in edge declaration order.
    """

    def __init__(self, site_ids, edges):
        self._site_ids = tuple(site_ids)
        if len(set(self._site_ids)) != len(self._site_ids):
            raise ConfigurationError("Duplicate site IDs in topology")

        known = set(self._site_ids)
        self._edges = []
        self._adjacency = {sid: [] for sid in self._site_ids}

        for a, b, distance in edges:
            if a not in known or b not in known:
                raise ConfigurationError(f"Edge {a}-{b} references an unknown site")
            if a == b:
                raise ConfigurationError(f"Edge {a}-{b} is a self-loop")
            if not isinstance(distance, (int, float)) or isinstance(distance, bool):
                raise ConfigurationError(f"Edge {a}-{b} has a non-numeric distance")
            if not math.isfinite(distance) or distance <= 0:
                raise ConfigurationError(f"Edge {a}-{b} distance must be positive, got {distance}")

            edge = {"a": a, "b": b, "distance": float(distance)}
            self._edges.append(edge)
            self._adjacency[a].append((b, edge))
            self._adjacency[b].append((a, edge))

    @classmethod
    def from_config(cls):
        return cls(SITE_IDS, EDGES)

    @property
    def site_ids(self):
        return self._site_ids

    @property
    def edges(self):
        return list(self._edges)

    def neighbors(self, site_id):
        return list(self._adjacency[site_id])

    def __contains__(self, site_id):
        return site_id in self._adjacency

    def __len__(self):
        return len(self._site_ids)
