"""Shared fixtures: reference network, synthetic networks and scenarios."""

import httpx
import pytest

from agents.strategy_client import StrategyClient
from models.network import (
    Location, Project, ReferenceNetwork, Supplier, TransportMode, TransportRoute,
    load_reference_network,
)
from models.scenario import DisruptionRegion, SimulationScenario

TAIWAN_REGION = DisruptionRegion(lat=25.03, lng=121.57, radius_km=5)
LONDON = Location("United Kingdom", (-0.1278, 51.5074))


@pytest.fixture(scope="session")
def network() -> ReferenceNetwork:
    return load_reference_network()


@pytest.fixture
def small_network() -> ReferenceNetwork:
    """One supplier per tier on the equator plus two routes."""
    suppliers = (
        Supplier("a", "Alpha", 1, Location("Ecuador", (0.0, 0.0)), risk=40),
        Supplier("b", "Beta", 2, Location("Ecuador", (1.0, 0.0)), risk=20),
        Supplier("c", "Gamma", 3, Location("Gabon", (10.0, 0.0)), risk=60),
    )
    routes = (
        TransportRoute("r1", Location("Ecuador", (0.0, 0.0)), LONDON, TransportMode.SEA, risk=50),
        TransportRoute("r2", Location("Gabon", (10.0, 0.0)), LONDON, TransportMode.AIR, risk=10),
    )
    projects = (Project("p1", "Bridge", 2.0),)
    return ReferenceNetwork(suppliers=suppliers, routes=routes, projects=projects, name="small")


@pytest.fixture
def taiwan_scenario() -> SimulationScenario:
    return SimulationScenario(
        name="Taiwan typhoon",
        severity=75,
        duration=30,
        timeframe=90,
        recovery_rate=0.5,
        regions=(TAIWAN_REGION,),
    )


@pytest.fixture
def empty_scenario() -> SimulationScenario:
    return SimulationScenario(severity=50, duration=30, timeframe=90)


SERVICE_STRATEGIES = {
    "strategies": [
        {
            "action": "Qualify second foundry",
            "impact": "high",
            "difficulty": "high",
            "timeframe": "6-9 months",
            "description": "Dual-source leading edge wafers.",
        },
        {
            "action": "Air freight buffer",
            "impact": "medium",
            "difficulty": "low",
            "timeframe": "2 weeks",
            "description": "Temporary air lift for critical chips.",
        },
    ]
}


@pytest.fixture
def service_payload() -> dict:
    return SERVICE_STRATEGIES


@pytest.fixture
def make_strategy_client():
    """Factory: StrategyClient whose HTTP traffic is answered by handler(request)."""

    def _make(handler, timeout: float = 1.0) -> StrategyClient:
        return StrategyClient(
            url="http://strategy.test/api/generate-strategies",
            timeout=timeout,
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    return _make
