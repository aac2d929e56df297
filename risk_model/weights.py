"""
SRI Escape Planner — Adaptive Edge Weights
Real cost = distance * mean(node_factor(a), node_factor(b)).
Low-risk sites make a connection cheaper (down to 0.4x), sites at or above
the limit make it 5x. Never free, never blocked.
"""
from config.settings import LIMIT_SRI, DANGER_NODE_FACTOR, SAFE_NODE_DISCOUNT


def node_factor(score):
    """Traversal multiplier for one endpoint."""
    margin = LIMIT_SRI - score
    if margin <= 0:
        return DANGER_NODE_FACTOR

    ratio = min(1.0, max(0.0, margin / LIMIT_SRI))
    return 1 - SAFE_NODE_DISCOUNT * ratio


def edge_factor(score_a, score_b):
    return (node_factor(score_a) + node_factor(score_b)) / 2


def edge_real_weight(edge, score_map):
    """
    Returns:
        {"default_weight": distance, "real_weight": risk-adjusted cost}
    """
    distance = edge["distance"]
    factor = edge_factor(score_map[edge["a"]], score_map[edge["b"]])
    return {"default_weight": distance, "real_weight": distance * factor}


def make_weight_fn(score_map):
    """Bind a score snapshot into a planner weight function."""
    def weight_fn(edge):
        return edge_real_weight(edge, score_map)["real_weight"]
    return weight_fn
