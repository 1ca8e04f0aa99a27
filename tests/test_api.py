import pytest
from fastapi.testclient import TestClient

from agents.orchestrator import EngineConfig, SimulationEngine
from agents.strategist import MitigationStrategy
from models.exceptions import StrategyParseError
from service.api import app, get_engine, get_network, get_strategist

STRATEGY_BODY = {
    "regions": [{"lat": 25.03, "lng": 121.57, "radius": 5}],
    "affectedSuppliers": ["1"],
    "simulationConfig": {"duration": 30, "intensity": 0.75, "recoveryRate": 0.5},
}

TAIWAN_BODY = {
    "name": "Taiwan typhoon",
    "disruptionType": "weather",
    "severity": 75,
    "duration": 30,
    "timeframe": 90,
    "recoveryRate": 0.5,
    "affectedTransportModes": {"sea": True, "air": False, "rail": False, "road": False},
    "affectedRegions": [{"lat": 25.03, "lng": 121.57, "radius": 5}],
    "affectedSuppliers": [],
}


class StubStrategist:
    def __init__(self, configured=True, strategies=None, error=None):
        self.configured = configured
        self.strategies = strategies or [MitigationStrategy(action="Stub action", impact="high")]
        self.error = error
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.strategies


@pytest.fixture
def client(network):
    app.dependency_overrides[get_network] = lambda: network
    app.dependency_overrides[get_engine] = lambda: SimulationEngine(
        network, config=EngineConfig(use_strategy_service=False)
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_strategist(strategist):
    app.dependency_overrides[get_strategist] = lambda: strategist


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


# ─── STRATEGY SERVICE ────────────────────────────────────────────

def test_generate_strategies(client):
    strategist = StubStrategist()
    _use_strategist(strategist)

    resp = client.post("/api/generate-strategies", json=STRATEGY_BODY)

    assert resp.status_code == 200
    assert resp.json() == {"strategies": [{
        "action": "Stub action",
        "impact": "high",
        "difficulty": "medium",
        "timeframe": "1-3 months",
        "description": "",
    }]}
    assert strategist.requests == [STRATEGY_BODY]


def test_missing_api_key_is_500(client):
    _use_strategist(StubStrategist(configured=False))
    resp = client.post("/api/generate-strategies", json=STRATEGY_BODY)
    assert resp.status_code == 500
    assert "API key" in resp.json()["detail"]


def test_generation_failure_is_502(client):
    _use_strategist(StubStrategist(error=StrategyParseError("nothing extractable")))
    resp = client.post("/api/generate-strategies", json=STRATEGY_BODY)
    assert resp.status_code == 502


def test_invalid_strategy_request_is_422(client):
    _use_strategist(StubStrategist())
    body = dict(STRATEGY_BODY, simulationConfig={"duration": 0, "intensity": 2, "recoveryRate": 0.5})
    assert client.post("/api/generate-strategies", json=body).status_code == 422


# ─── SIMULATION ──────────────────────────────────────────────────

def test_simulate_taiwan(client):
    resp = client.post("/simulate", json=TAIWAN_BODY)

    assert resp.status_code == 200
    data = resp.json()
    assert [s["supplierId"] for s in data["affectedSuppliers"]] == ["1"]
    assert data["cascadeDepth"] == 1
    assert data["supplyChainHealth"]["simulated"] < data["supplyChainHealth"]["baseline"]
    assert data["costImpact"]["percentage"] > 0
    assert data["strategySource"] == "fallback"


def test_simulate_unknown_supplier_is_404(client):
    body = dict(TAIWAN_BODY, affectedRegions=[], affectedSuppliers=["404"])
    resp = client.post("/simulate", json=body)
    assert resp.status_code == 404
    assert "404" in resp.json()["detail"]


@pytest.mark.parametrize("override", [
    {"duration": 0},
    {"severity": 250},
    {"recoveryRate": 3},
    {"disruptionType": "meteor"},
])
def test_simulate_invalid_scenario_is_422(client, override):
    resp = client.post("/simulate", json=dict(TAIWAN_BODY, **override))
    assert resp.status_code == 422


def test_simulate_bad_region_is_422(client):
    body = dict(TAIWAN_BODY, affectedRegions=[{"lat": 120, "lng": 0, "radius": 5}])
    assert client.post("/simulate", json=body).status_code == 422


def test_climate_events(client):
    events = client.get("/climate-events", params={"min_severity": 8}).json()
    assert [e["id"] for e in events] == ["ce-001", "ce-003"]
    assert events[0]["region"] == {"lat": 18.2, "lng": -66.5, "radius": 250}


def test_simulate_reads_severity_as_percentage(client):
    resp = client.post("/simulate", json=dict(TAIWAN_BODY, severity=1))
    initial = resp.json()["cascadeEffects"][0]
    assert initial["event"] == "Initial disruption begins"
    assert initial["impact"] == pytest.approx(1.0)
