"""
SRI Escape Planner — Site & Connection Definitions
====================================================
Monitored sites and the undirected connections between them.
Distances are the base (risk-independent) traversal cost.
"""

SITES = {
    "P1": {"name": "Point 1", "lat": 37.5665, "lng": 126.9780},
    "P2": {"name": "Point 2", "lat": 37.5700, "lng": 126.9920},
    "P3": {"name": "Point 3", "lat": 37.5600, "lng": 126.9950},
    "P4": {"name": "Point 4", "lat": 37.5550, "lng": 127.0100},
}

# (site_a, site_b, distance)
EDGES = [
    ("P1", "P2", 6),
    ("P2", "P3", 5),
    ("P3", "P4", 7),
    ("P1", "P3", 9),
    ("P2", "P4", 8),
]

SITE_IDS = list(SITES.keys())
