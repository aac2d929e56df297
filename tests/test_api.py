import pytest
from fastapi.testclient import TestClient
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from api import server
from api.server import app

client = TestClient(app)

HIGH_PATCH = {"rainfall": 1000, "soil": 1, "sand": 0, "excavation": True}


@pytest.fixture(autouse=True)
def fresh_engine():
    server.engine.reset()
    yield
    server.engine.reset()


def test_health_check():
    """Verify the health endpoint returns 200 OK and expected JSON."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["sites"] == 4
    assert data["alert_status"] == "idle"


def test_config_exposes_topology():
    data = client.get("/api/config").json()
    assert set(data["sites"]) == {"P1", "P2", "P3", "P4"}
    assert len(data["edges"]) == 5
    assert data["bands"]["limit"] == 7


def test_escalation_returns_plan():
    response = client.post("/api/sites/P1/observation", json={"rainfall": 1000, "soil": 1, "sand": 0})
    assert response.status_code == 200
    assert response.json()["fired"] == []
    assert response.json()["site"]["band"] == "mid"

    data = client.post("/api/sites/P1/observation", json={"excavation": True}).json()
    assert data["fired"] == ["P1"]
    assert data["alert"]["trigger"] == data["fired"][0]
    assert data["alert"]["path"] == ["P1", "P2"]
    assert data["alert"]["destination"] == "P2"
    assert data["navigation"]["next_hop"] == "P2"

    again = client.post("/api/sites/P1/observation", json=HIGH_PATCH).json()
    assert again["fired"] == []


def test_invalid_level_is_rejected():
    response = client.post("/api/sites/P1/observation", json={"leak_level": 5})
    assert response.status_code == 400
    assert "leak_level" in response.json()["error"]
    assert client.get("/api/sites/P1").json()["observation"]["leak_level"] == 0


def test_malformed_body_is_422():
    response = client.post("/api/sites/P1/observation", json={"leak_level": "severe"})
    assert response.status_code == 422


@pytest.mark.parametrize("body", [
    {"leak_level": True},
    {"load_level": False},
    {"excavation": 1},
    {"excavation": "yes"},
    {"rainfall": "5"},
    {"rainfall": True},
    {"replace": "true"},
])
def test_coercible_values_are_rejected(body):
    response = client.post("/api/sites/P1/observation", json=body)
    assert response.status_code == 422
    observation = client.get("/api/sites/P1").json()["observation"]
    assert observation["leak_level"] == 0
    assert observation["load_level"] == 0
    assert observation["excavation"] is False
    assert observation["rainfall"] == 0


def test_huge_soil_and_sand_keep_soil_contribution():
    body = {"soil": 1e308, "sand": 1e308}
    data = client.post("/api/sites/P1/observation", json=body).json()
    assert data["site"]["metrics"]["soil_fraction"] == pytest.approx(0.5)
    assert data["site"]["score"] == pytest.approx(1.5)


def test_unknown_site_is_404():
    assert client.get("/api/sites/P9").status_code == 404
    assert client.post("/api/sites/P9/observation", json={"rainfall": 1}).status_code == 404


def test_site_detail_has_breakdown():
    client.post("/api/sites/P2/observation", json={"leak_level": 3, "excavation": True})
    data = client.get("/api/sites/P2").json()
    assert data["score"] == pytest.approx(3.0)
    assert data["band"] == "low"
    assert data["dominant_factor"] == "leak"


def test_confirm_hop_and_arrival():
    assert client.post("/api/navigation/confirm").status_code == 409

    client.post("/api/sites/P1/observation", json=HIGH_PATCH)
    data = client.post("/api/navigation/confirm").json()
    assert data["position"] == "P2"
    assert data["arrived"] is True
    assert data["alert"]["status"] == "idle"


def test_dismiss_alert():
    assert client.post("/api/alert/dismiss").json()["dismissed"] is False
    client.post("/api/sites/P1/observation", json=HIGH_PATCH)
    assert client.post("/api/alert/dismiss").json()["dismissed"] is True
    state = client.get("/api/state").json()
    assert state["alert"]["acknowledged"] is True
    assert state["alert"]["status"] == "alerting"


def test_reset():
    client.post("/api/sites/P1/observation", json=HIGH_PATCH)
    data = client.post("/api/reset").json()
    assert data["alert"]["status"] == "idle"
    assert all(site["band"] == "low" for site in data["sites"])
    assert data["navigation"]["position"] == data["navigation"]["home"]


def test_external_risk_override():
    data = client.post("/api/sites/P3/external-risk", json={"probability": 0.9}).json()
    assert data["fired"] == ["P3"]
    assert data["site"]["score_source"] == "external"

    data = client.post("/api/sites/P3/external-risk", json={}).json()
    assert data["site"]["score_source"] == "local"


def test_predict_applies_service_probability(monkeypatch):
    seen = {}

    def fake_fetch(features):
        seen.update(features)
        return 0.85

    monkeypatch.setattr(server, "fetch_risk_probability", fake_fetch)
    response = client.post("/api/sites/P4/predict", json={"region": "Jongno-gu", "sewer_aging_index": 0.6})
    assert response.status_code == 200
    assert response.json()["probability"] == 0.85
    assert response.json()["fired"] == ["P4"]
    assert seen["site_id"] == "P4"
    assert seen["region"] == "Jongno-gu"
    assert seen["rainfall"] == 0


def test_predict_service_unavailable(monkeypatch):
    monkeypatch.setattr(server, "fetch_risk_probability", lambda features: None)
    response = client.post("/api/sites/P4/predict", json={})
    assert response.status_code == 503
    assert client.get("/api/sites/P4").json()["score_source"] == "local"


def test_weights_endpoint():
    client.post("/api/sites/P1/observation", json=HIGH_PATCH)
    edges = client.get("/api/weights").json()["edges"]
    p1p2 = next(e for e in edges if (e["a"], e["b"]) == ("P1", "P2"))
    assert p1p2["real_weight"] == pytest.approx(16.2)


def test_weights_endpoint_reports_scores():
    client.post("/api/sites/P1/observation", json=HIGH_PATCH)
    scores = client.get("/api/weights").json()["scores"]
    assert scores["P1"] == pytest.approx(7.0)
    assert scores["P2"] == 0
