"""
SRI Escape Planner — API Server (Transport Layer)
===================================================
FastAPI transport layer. ZERO computation.
  - Validates request shape (pydantic) and forwards to the engine
  - Maps engine errors to HTTP status codes
  - Exposes the read-only snapshot for the map / alert UI
"""
import logging
from datetime import datetime
from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt

from config.settings import (
    SERVER_HOST, SERVER_PORT, LIMIT_SRI, LOW_MAX, BAND_COLORS, ALERT_POLICY, RISK_API_URL,
)
from config.sites import SITES, EDGES
from risk_model.engine import EscapeEngine
from risk_model.errors import NavigationError, ObservationError, UnknownSiteError
from risk_model.predictor import fetch_risk_probability

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="SRI Escape Planner", version="1.0")

engine = EscapeEngine()
SERVER_STARTED_AT = datetime.now().isoformat()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"422 Error! URL: {request.url}")
    logger.error(f"Errors: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(UnknownSiteError)
async def unknown_site_handler(request: Request, exc: UnknownSiteError):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(ObservationError)
async def observation_error_handler(request: Request, exc: ObservationError):
    logger.warning(f"[API] Rejected observation: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(NavigationError)
async def navigation_error_handler(request: Request, exc: NavigationError):
    return JSONResponse(status_code=409, content={"error": str(exc)})


# ═══════════════════════════════════════════════════════════════════════════
# REQUEST MODELS
# ═══════════════════════════════════════════════════════════════════════════
# Strict types: no bool/int/str coercion at the HTTP edge
Number = Union[StrictFloat, StrictInt]


class ObservationPatch(BaseModel):
    rainfall: Optional[Number] = None
    soil: Optional[Number] = None
    sand: Optional[Number] = None
    leak_level: Optional[StrictInt] = None    # 0–3
    excavation: Optional[StrictBool] = None
    load_level: Optional[StrictInt] = None    # 0–2
    replace: StrictBool = False               # true = omitted fields reset to zero


class ExternalRisk(BaseModel):
    probability: Optional[Number] = None  # None restores the local SRI


class PredictRequest(BaseModel):
    region: Optional[str] = None
    sewer_aging_index: Optional[float] = None


def _alert_payload(fired):
    # caller holds engine.lock so the snapshot belongs to the same cycle
    state = engine.snapshot()
    return {
        "fired": fired,
        "alert": state["alert"],
        "navigation": state["navigation"],
    }


# ═══════════════════════════════════════════════════════════════════════════
# READ ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/health")
async def health_check():
    return JSONResponse(content={
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "started_at": SERVER_STARTED_AT,
        "sites": len(engine.graph),
        "alert_status": engine.alerts.status,
    })


@app.get("/api/config")
async def get_config():
    """Static topology + thresholds for the frontend."""
    return JSONResponse(content={
        "sites": SITES,
        "edges": [{"a": a, "b": b, "distance": d} for a, b, d in EDGES],
        "bands": {"low_max": LOW_MAX, "limit": LIMIT_SRI, "colors": BAND_COLORS},
        "alert_policy": ALERT_POLICY,
    })


@app.get("/api/state")
def get_state():
    return JSONResponse(content=engine.snapshot())


@app.get("/api/sites/{site_id}")
def get_site_detail(site_id: str):
    return JSONResponse(content=engine.site_detail(site_id))


@app.get("/api/weights")
def get_weights():
    """Default vs. risk-adjusted weight of every connection."""
    with engine.lock:
        return JSONResponse(content={
            "scores": engine.score_map(),
            "edges": engine.edge_weights(),
        })


# ═══════════════════════════════════════════════════════════════════════════
# UPDATE ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════

@app.post("/api/sites/{site_id}/observation")
def update_observation(site_id: str, patch: ObservationPatch):
    fields = patch.model_dump(exclude_unset=True, exclude_none=True)
    replace = fields.pop("replace", False)
    with engine.lock:
        fired = engine.update_site(site_id, fields, replace=replace)
        return JSONResponse(content={
            "site": engine.site_detail(site_id),
            **_alert_payload(fired),
        })


@app.post("/api/sites/{site_id}/external-risk")
def set_external_risk(site_id: str, body: ExternalRisk):
    with engine.lock:
        fired = engine.set_external_probability(site_id, body.probability)
        return JSONResponse(content={
            "site": engine.site_detail(site_id),
            **_alert_payload(fired),
        })


@app.post("/api/sites/{site_id}/predict")
def predict_site_risk(site_id: str, body: PredictRequest):
    """Ask the prediction service for a probability and apply it to the site."""
    features = {"site_id": site_id, **engine.get_observation(site_id)}
    features.update(body.model_dump(exclude_none=True))

    probability = fetch_risk_probability(features)
    if probability is None:
        return JSONResponse(
            content={"error": "Prediction service unavailable"},
            status_code=503,
        )

    with engine.lock:
        fired = engine.set_external_probability(site_id, probability)
        return JSONResponse(content={
            "probability": probability,
            "site": engine.site_detail(site_id),
            **_alert_payload(fired),
        })


@app.post("/api/navigation/confirm")
def confirm_hop():
    with engine.lock:
        result = engine.confirm_hop()
        return JSONResponse(content={**result, **_alert_payload([])})


@app.post("/api/alert/dismiss")
def dismiss_alert():
    return JSONResponse(content={"dismissed": engine.dismiss_alert()})


@app.post("/api/reset")
def reset():
    with engine.lock:
        engine.reset()
        return JSONResponse(content=engine.snapshot())


# ═══════════════════════════════════════════════════════════════════════════
# STARTUP
# ═══════════════════════════════════════════════════════════════════════════

@app.on_event("startup")
async def startup():
    print("═" * 55)
    print("  SRI Escape Planner — API Server v1.0")
    print("═" * 55)
    print(f"  API             : http://localhost:{SERVER_PORT}/api/state")
    print(f"  Sites loaded    : {len(engine.graph)}")
    print(f"  Connections     : {len(engine.graph.edges)}")
    print(f"  Alert policy    : {engine.alerts.policy}")
    print(f"  Home site       : {engine.navigator.home}")
    print(f"  Risk service    : {'✓ ' + RISK_API_URL if RISK_API_URL else '✗ Local SRI only'}")


# ═══════════════════════════════════════════════════════════════════════════
# RUN
# ═══════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host=SERVER_HOST, port=SERVER_PORT, reload=False)
