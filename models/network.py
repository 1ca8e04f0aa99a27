"""
Reference Supply Network
=========================

Typed, read-only reference data the simulation engine queries:

- Suppliers (tier 1-3, location, baseline risk)
- Transport routes (origin/destination, mode, baseline risk)
- Infrastructure projects exposed to supply delays
- Climate events usable as disruption regions

Records are frozen dataclasses held in tuples, so a ReferenceNetwork can be
shared across concurrent simulation runs without coordination.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_PATH = Path(__file__).resolve().parent.parent / "data" / "reference_network.json"


class SupplierStatus(Enum):
    CRITICAL = "Critical"
    AT_RISK = "At Risk"
    ON_TRACK = "On Track"


class TransportMode(Enum):
    SEA = "sea"
    AIR = "air"
    RAIL = "rail"
    ROAD = "road"


class RouteStatus(Enum):
    ACTIVE = "Active"
    DELAYED = "Delayed"
    DISRUPTED = "Disrupted"


@dataclass(frozen=True)
class Location:
    """A named point; coordinates are stored as (longitude, latitude)."""
    name: str
    coordinates: tuple[float, float]

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    tier: int                    # 1 = direct supplier, 3 = most indirect
    location: Location           # location.name is the country
    materials: tuple[str, ...] = ()
    risk: float = 0.0            # Baseline risk score 0-100
    status: SupplierStatus = SupplierStatus.ON_TRACK
    impact: str = "Medium"       # Qualitative impact: High / Medium / Low
    trend: str = "stable"        # up / down / stable

    @property
    def country(self) -> str:
        return self.location.name

    @classmethod
    def from_dict(cls, d: dict) -> "Supplier":
        loc = d["location"]
        return cls(
            id=str(d["id"]),
            name=d["name"],
            tier=int(d["tier"]),
            location=Location(loc["country"], tuple(loc["coordinates"])),
            materials=tuple(d.get("materials", [])),
            risk=float(d.get("risk", 0)),
            status=SupplierStatus(d.get("status", "On Track")),
            impact=d.get("impact", "Medium"),
            trend=d.get("trend", "stable"),
        )


@dataclass(frozen=True)
class TransportRoute:
    id: str
    origin: Location
    destination: Location
    mode: TransportMode
    risk: float = 0.0
    status: RouteStatus = RouteStatus.ACTIVE
    materials: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, d: dict) -> "TransportRoute":
        return cls(
            id=str(d["id"]),
            origin=Location(d["from"]["name"], tuple(d["from"]["coordinates"])),
            destination=Location(d["to"]["name"], tuple(d["to"]["coordinates"])),
            mode=TransportMode(d["mode"]),
            risk=float(d.get("risk", 0)),
            status=RouteStatus(d.get("status", "Active")),
            materials=tuple(d.get("materials", [])),
        )


@dataclass(frozen=True)
class Project:
    """Infrastructure project; exposure scales the network-wide average delay."""
    id: str
    name: str
    exposure: float = 1.0

    @classmethod
    def from_dict(cls, d: dict) -> "Project":
        return cls(id=str(d["id"]), name=d["name"], exposure=float(d.get("exposure", 1.0)))


@dataclass(frozen=True)
class ClimateEvent:
    id: str
    name: str
    type: str
    severity: int                # 1-10
    lat: float
    lng: float
    radius_km: float
    countries: tuple[str, ...] = ()
    risk_score: float = 0.0

    @classmethod
    def from_dict(cls, d: dict) -> "ClimateEvent":
        loc = d["location"]
        return cls(
            id=str(d["id"]),
            name=d["name"],
            type=d.get("type", "other"),
            severity=int(d["severity"]),
            lat=float(loc["coordinates"]["lat"]),
            lng=float(loc["coordinates"]["lng"]),
            radius_km=float(loc["radius"]),
            countries=tuple(loc.get("countries", [])),
            risk_score=float(d.get("riskScore", 0)),
        )


@dataclass(frozen=True)
class ReferenceNetwork:
    """Immutable bundle of reference data with ID lookups."""
    suppliers: tuple[Supplier, ...] = ()
    routes: tuple[TransportRoute, ...] = ()
    projects: tuple[Project, ...] = ()
    climate_events: tuple[ClimateEvent, ...] = ()
    name: str = "reference"
    _supplier_index: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _route_index: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        # Frozen dataclass: indexes are filled once via object.__setattr__
        object.__setattr__(self, "_supplier_index", {s.id: s for s in self.suppliers})
        object.__setattr__(self, "_route_index", {r.id: r for r in self.routes})

    def supplier(self, supplier_id: str) -> Optional[Supplier]:
        return self._supplier_index.get(str(supplier_id))

    def route(self, route_id: str) -> Optional[TransportRoute]:
        return self._route_index.get(str(route_id))

    def suppliers_by_tier(self, tier: int) -> list[Supplier]:
        return [s for s in self.suppliers if s.tier == tier]

    @classmethod
    def from_dict(cls, data: dict) -> "ReferenceNetwork":
        return cls(
            suppliers=tuple(Supplier.from_dict(s) for s in data.get("suppliers", [])),
            routes=tuple(TransportRoute.from_dict(r) for r in data.get("routes", [])),
            projects=tuple(Project.from_dict(p) for p in data.get("projects", [])),
            climate_events=tuple(ClimateEvent.from_dict(e) for e in data.get("climate_events", [])),
            name=data.get("network_name", "reference"),
        )


def load_reference_network(path: Optional[str] = None) -> ReferenceNetwork:
    """
    Load the reference network JSON.

    Resolution order: explicit path, REFERENCE_NETWORK_PATH env var,
    then the bundled data/reference_network.json.
    """
    network_path = Path(path or os.getenv("REFERENCE_NETWORK_PATH") or DEFAULT_NETWORK_PATH)
    with open(network_path) as f:
        network = ReferenceNetwork.from_dict(json.load(f))

    logger.info(
        "[Network] Loaded %s: %d suppliers | %d routes | %d projects",
        network.name, len(network.suppliers), len(network.routes), len(network.projects),
    )
    return network
