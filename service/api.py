"""Disruption-Sim HTTP service: strategy generation and simulation runs."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Union

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from agents.climate_risk import ClimateRiskClient
from agents.orchestrator import EngineConfig, SimulationEngine
from agents.strategist import StrategistAgent, build_strategy_request
from models.exceptions import ScenarioValidationError, StrategyServiceError, UnknownComponentError
from models.network import ReferenceNetwork, load_reference_network
from models.scenario import SimulationScenario

logger = logging.getLogger(__name__)

# ────────────────────────────────────────────────────────────────────
# App
# ────────────────────────────────────────────────────────────────────

app = FastAPI(title="Disruption-Sim", version="0.1.0")


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


# ────────────────────────────────────────────────────────────────────
# Pydantic models
# ────────────────────────────────────────────────────────────────────

class Region(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius: float = Field(ge=0)


class SimulationConfig(BaseModel):
    duration: float = Field(gt=0)
    intensity: float = Field(ge=0, le=1)
    recoveryRate: float = Field(ge=0, le=1)


class StrategyReq(BaseModel):
    regions: list[Region] = []
    affectedSuppliers: list[str] = []
    simulationConfig: SimulationConfig


class Strategy(BaseModel):
    action: str
    impact: str
    difficulty: str
    timeframe: str
    description: str


class StrategyResp(BaseModel):
    strategies: list[Strategy]


class ScenarioReq(BaseModel):
    name: str = "New Scenario"
    disruptionType: str = "weather"
    severity: float
    duration: float
    timeframe: float = 90
    recoveryRate: float = 0.5
    affectedTransportModes: Union[dict[str, bool], list[str]] = {}
    affectedRegions: list[Region] = []
    affectedSuppliers: list[str] = []


# ────────────────────────────────────────────────────────────────────
# Dependencies
# ────────────────────────────────────────────────────────────────────

@lru_cache(maxsize=1)
def get_network() -> ReferenceNetwork:
    return load_reference_network()


def get_strategist() -> StrategistAgent:
    return StrategistAgent()


def get_engine(network: ReferenceNetwork = Depends(get_network)) -> SimulationEngine:
    return SimulationEngine(network, config=EngineConfig.from_env())


# ────────────────────────────────────────────────────────────────────
# Endpoints
# ────────────────────────────────────────────────────────────────────

@app.post("/api/generate-strategies", response_model=StrategyResp)
async def generate_strategies(
    req: StrategyReq,
    strategist: StrategistAgent = Depends(get_strategist),
) -> dict:
    if not strategist.configured:
        raise HTTPException(status_code=500, detail="Anthropic API key not configured")

    request = build_strategy_request(
        regions=[r.model_dump() for r in req.regions],
        supplier_ids=req.affectedSuppliers,
        config=req.simulationConfig.model_dump(),
    )
    try:
        strategies = await strategist.generate(request)
    except StrategyServiceError as e:
        logger.error("[API] Strategy generation failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    return {"strategies": [s.to_dict() for s in strategies]}


@app.post("/simulate")
async def simulate(
    req: ScenarioReq,
    engine: SimulationEngine = Depends(get_engine),
) -> dict:
    try:
        scenario = SimulationScenario.from_dict(req.model_dump())
    except ScenarioValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    try:
        result = await engine.run(scenario)
    except UnknownComponentError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    finally:
        await engine.aclose()

    return result.to_dict()


@app.get("/climate-events")
def climate_events(
    min_severity: int = 0,
    network: ReferenceNetwork = Depends(get_network),
) -> list[dict]:
    client = ClimateRiskClient.from_network(network)
    return [
        {
            "id": e.id,
            "name": e.name,
            "type": e.type,
            "severity": e.severity,
            "region": {"lat": e.lat, "lng": e.lng, "radius": e.radius_km},
            "countries": list(e.countries),
            "riskScore": e.risk_score,
        }
        for e in client.fetch_events()
        if e.severity >= min_severity
    ]
