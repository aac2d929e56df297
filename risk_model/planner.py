"""
SRI Escape Planner — Escape Route Planner
Dijkstra from the alerting site to the NEAREST safe site (SRI < limit),
using risk-adjusted edge weights.

Early termination: the first target popped is the cheapest reachable one.
Equal-distance ties go to the site declared first in the topology.
"""
import heapq
import logging

from config.settings import LIMIT_SRI
from risk_model.weights import make_weight_fn

logger = logging.getLogger(__name__)


def dijkstra(start, targets, graph, weight_fn):
    """
    Single-source, multi-target shortest path.

    Returns:
        {"path": [start, ..., target], "cost": float} or None if no
        target is reachable.
    """
    order = {sid: i for i, sid in enumerate(graph.site_ids)}
    dist = {start: 0.0}
    prev = {}
    visited = set()
    open_set = [(0.0, order[start], start)]

    while open_set:
        d, _, current = heapq.heappop(open_set)

        if current in visited:
            continue
        visited.add(current)

        if current in targets:
            path = [current]
            while path[-1] in prev:
                path.append(prev[path[-1]])
            path.reverse()
            return {"path": path, "cost": d}

        for neighbour, edge in graph.neighbors(current):
            if neighbour in visited:
                continue
            alt = d + weight_fn(edge)
            if alt < dist.get(neighbour, float("inf")):
                dist[neighbour] = alt
                prev[neighbour] = current
                heapq.heappush(open_set, (alt, order[neighbour], neighbour))

    return None


def select_targets(start, score_map, site_ids):
    """
    Safe candidates = every other site below the limit.
    If there are none, fall back to every other site so a route is still
    attempted.
    """
    others = [sid for sid in site_ids if sid != start]
    safe = [sid for sid in others if score_map[sid] < LIMIT_SRI]
    return set(safe) if safe else set(others)


def compute_escape_plan(start, score_map, graph):
    """
    Cheapest route from `start` to any target site.

    Returns:
        {"path", "cost", "destination"} or None when every target is
        unreachable.
    """
    targets = select_targets(start, score_map, graph.site_ids)
    if not targets:
        logger.warning(f"[PLAN] {start} has no other sites to escape to")
        return None

    best = dijkstra(start, targets, graph, make_weight_fn(score_map))
    if best is None:
        logger.warning(f"[PLAN] No escape route from {start} to any of {sorted(targets)}")
        return None

    destination = best["path"][-1]
    logger.info(
        f"[PLAN] Escape route {' -> '.join(best['path'])} "
        f"(cost {best['cost']:.2f}, destination {destination})"
    )
    return {**best, "destination": destination}
