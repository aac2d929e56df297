"""
SRI Escape Planner — Settings & Thresholds
============================================
Structural Risk Index (SRI) weights, band table and routing constants.
Environment overrides are read once at import time.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# ══════════════════════════════════════════════════════════════════════════════
# SRI WEIGHTS (raw = 3R + 3T + 2L + 1E + 1D)
# ══════════════════════════════════════════════════════════════════════════════
SRI_WEIGHTS = {
    "rainfall":   3.0,   # R: cumulative rainfall ratio
    "soil":       3.0,   # T: normalized soil-fraction term
    "leak":       2.0,   # L: hose / pipe leak severity
    "excavation": 1.0,   # E: active excavation nearby
    "load":       1.0,   # D: traffic load
}

SRI_MAX = 10.0

# ══════════════════════════════════════════════════════════════════════════════
# NORMALIZATION
# ══════════════════════════════════════════════════════════════════════════════
RAINFALL_MAX_MM = 1000.0      # 1000mm cumulative = R of 1.0 (CAPPED)
SOIL_FRACTION_FLOOR = 0.25    # f <= 0.25 contributes nothing
SOIL_FRACTION_SPAN = 0.5      # f >= 0.75 contributes fully

LEAK_TERMS = {0: 0.0, 1: 0.3, 2: 0.6, 3: 1.0}
LOAD_TERMS = {0: 0.0, 1: 0.5, 2: 1.0}

# ══════════════════════════════════════════════════════════════════════════════
# RISK BANDS (low = [0,3], mid = (3,7), high = [7,10])
# ══════════════════════════════════════════════════════════════════════════════
LOW_MAX = 3.0
LIMIT_SRI = 7.0               # high band starts here; also the routing limit

BAND_COLORS = {
    "low":  "#16A34A",
    "mid":  "#D97706",
    "high": "#DC2626",
}

# ══════════════════════════════════════════════════════════════════════════════
# ADAPTIVE EDGE WEIGHTS
# ══════════════════════════════════════════════════════════════════════════════
DANGER_NODE_FACTOR = 5.0      # node at/above LIMIT_SRI
SAFE_NODE_DISCOUNT = 0.6      # factor = 1 - 0.6 * ratio, floor 0.4

# ══════════════════════════════════════════════════════════════════════════════
# ALERTING & NAVIGATION
# ══════════════════════════════════════════════════════════════════════════════
ALERT_POLICIES = ("first", "queue")
ALERT_POLICY = os.getenv("ESCAPE_ALERT_POLICY", "first")
HOME_SITE = os.getenv("ESCAPE_HOME_SITE", "P1")
ALERT_LOG_MAX = 200           # band transitions kept in memory

# ══════════════════════════════════════════════════════════════════════════════
# EXTERNAL RISK-PROBABILITY SERVICE (optional)
# ══════════════════════════════════════════════════════════════════════════════
RISK_API_URL = os.getenv("RISK_API_URL", "")
RISK_API_TIMEOUT = float(os.getenv("RISK_API_TIMEOUT", "8"))

PROBABILITY_HIGH = 0.7
PROBABILITY_MEDIUM = 0.4

# ══════════════════════════════════════════════════════════════════════════════
# SERVER
# ══════════════════════════════════════════════════════════════════════════════
SERVER_HOST = "0.0.0.0"
SERVER_PORT = int(os.getenv("PORT", "8000"))
