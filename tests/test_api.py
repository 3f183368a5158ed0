"""
tests/test_api.py
HTTP surface, served from the bundled data/rates.json.
"""
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent))

import api.routes as routes
from api.app import app
from calculation_engine.exceptions import CalculationError
from rate_store.json_store import JSONRateStore

BUNDLED = Path(__file__).parent.parent / "data" / "rates.json"

BODY = {
    "pol": "BUSAN",
    "pod": "QINGDAO",
    "destination_id": "OSH",
    "weight": 5000,
    "reference_date": "2025-06-01",
}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(routes, "_store", JSONRateStore(BUNDLED))
    return TestClient(app)


class TestCalculate:

    def test_ranked_breakdowns(self, client):
        resp = client.post("/api/v1/calculate", json=BODY)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["reference_date"] == "2025-06-01"
        totals = [b["total"] for b in data["breakdowns"]]
        assert totals == sorted(totals)
        assert data["best"]["total"] == totals[0]
        assert data["guardrail_report"]["passed"] is True

    def test_sample_route_prices(self, client):
        data = client.post("/api/v1/calculate", json=BODY).json()
        by_id = {(b["agent"], b["sea_freight_id"]): b["total"] for b in data["breakdowns"]}
        # sea 400 + local 30 + DTHC 100 + combined 300 + surcharge 75
        assert by_id[("A", "sf-1")] == 905.0
        # sea 420 + L.LOCAL 50 + DTHC 100 + combined 300 + surcharge 75
        assert by_id[("A", "asf-1")] == 945.0
        # sea 400 + local 30 + DTHC 120 + rail 200 + truck 140
        assert by_id[("B", "sf-1")] == 890.0
        assert data["best"]["agent"] == "B"

    def test_invalid_request_is_422(self, client):
        resp = client.post("/api/v1/calculate", json={**BODY, "weight": 0})
        assert resp.status_code == 422
        assert "weight must be > 0" in resp.json()["detail"]["errors"]

    def test_invalid_request_body(self, client):
        body = client.post("/api/v1/calculate", json={**BODY, "weight": 0}).json()
        assert body["success"] is False
        assert body["error"] == "INVALID_REQUEST"
        assert body["request_id"]

    def test_calculation_error_is_400(self, client, monkeypatch):
        monkeypatch.setattr(routes, "_store", BrokenStore())
        resp = client.post("/api/v1/calculate", json=BODY)
        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "SNAPSHOT_UNAVAILABLE",
            "detail": "rate snapshot unavailable",
            "request_id": None,
        }

    def test_schema_violation_is_422(self, client):
        resp = client.post("/api/v1/calculate", json={"pol": "BUSAN"})
        assert resp.status_code == 422

    def test_historical_requires_date(self, client):
        body = {k: v for k, v in BODY.items() if k != "reference_date"}
        resp = client.post("/api/v1/calculate", json={**body, "historical": True})
        assert resp.status_code == 422

    def test_historical_uses_reconstructed_rates(self, client):
        body = {**BODY, "reference_date": "2025-05-10", "historical": True}
        data = client.post("/api/v1/calculate", json=body).json()
        assert data["is_historical"] is True
        combined = [b for b in data["breakdowns"] if b["kind"] == "combined"]
        amounts = {c["amount"] for b in combined for c in b["components"] if c["category"] == "combined_freight"}
        assert amounts == {280.0}

    def test_no_route_is_not_an_error(self, client):
        data = client.post("/api/v1/calculate", json={**BODY, "destination_id": "NOWHERE"}).json()
        assert data["breakdowns"] == []
        assert data["best"] is None
        assert any("no_route" in w for w in data["warnings"])


class TestAdmin:

    def test_health(self, client):
        data = client.get("/api/v1/health").json()
        assert data["status"] == "healthy"
        assert data["rate_snapshot"]["tables"]["rail_agents"] == 2
        assert "validity" in data["rate_snapshot"]

    def test_ports(self, client):
        ports = client.get("/api/v1/ports").json()["ports"]
        assert ports["pol"] == ["BUSAN"]
        assert "QINGDAO" in ports["pod"]

    def test_reload(self, client):
        data = client.post("/api/v1/reload").json()
        assert data["success"] is True
        assert data["tables"]["sea_freights"] == 2


# ── Helpers ───────────────────────────────────────────────────────────────────

class BrokenStore:
    @property
    def snapshot(self):
        raise CalculationError("rate snapshot unavailable", "SNAPSHOT_UNAVAILABLE")
