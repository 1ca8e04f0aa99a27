"""
Disruption Scenario Model
==========================

The simulation's sole input. Invariants are enforced at construction so
the engine itself can assume strictly positive durations and fractions in
[0, 1]:

- severity: stored as a fraction; the constructor infers the scale of its
  argument, from_dict() always reads a 0-100 percentage
- duration, timeframe: days, > 0
- recovery_rate: 0-1 (higher = faster recovery)
- regions and/or supplier_ids: both empty is valid (zero-impact run)
"""

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from models.exceptions import ScenarioValidationError
from models.network import TransportMode


class DisruptionType(Enum):
    WEATHER = "weather"
    GEOPOLITICAL = "geopolitical"
    SUPPLIER = "supplier"
    TRANSPORT = "transport"
    LABOR = "labor"
    CYBER = "cyber"


@dataclass(frozen=True)
class ImpactZone:
    """Suppliers found inside a region for one run, attached for reuse."""
    supplier_ids: tuple[str, ...] = ()
    severity: float = 0.0        # Scenario severity fraction
    recovery_days: int = 0       # Estimated time for the zone to recover


@dataclass(frozen=True)
class DisruptionRegion:
    lat: float
    lng: float
    radius_km: float
    impact_zone: Optional[ImpactZone] = None

    def __post_init__(self):
        if not -90 <= self.lat <= 90 or not -180 <= self.lng <= 180:
            raise ScenarioValidationError(
                f"Region center out of range: lat={self.lat}, lng={self.lng}"
            )
        if not self.radius_km >= 0:
            raise ScenarioValidationError(f"Region radius must be >= 0 km, got {self.radius_km}")

    def to_dict(self) -> dict:
        d = {"lat": self.lat, "lng": self.lng, "radius": self.radius_km}
        if self.impact_zone is not None:
            d["impactZone"] = {
                "supplierIds": list(self.impact_zone.supplier_ids),
                "severity": self.impact_zone.severity,
                "recoveryDays": self.impact_zone.recovery_days,
            }
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "DisruptionRegion":
        return cls(lat=float(d["lat"]), lng=float(d["lng"]),
                   radius_km=float(d.get("radius", d.get("radius_km", 0))))


SEVERITY_PERCENT = "percent"
SEVERITY_FRACTION = "fraction"


def normalize_severity(value: float, scale: Optional[str] = None) -> float:
    """
    Convert a severity to a fraction in [0, 1].

    Args:
        value: Raw severity
        scale: "percent" (0-100), "fraction" (0-1), or None to infer it:
               values above 1 are then read as percentages (75 -> 0.75)
               and values in [0, 1] as fractions already.

    Dashboard, API and CLI inputs are percentages and pass scale="percent",
    so a 1% slider value is never mistaken for 100%.
    """
    if value is None or math.isnan(value):
        raise ScenarioValidationError("Severity is required")
    if scale == SEVERITY_PERCENT:
        if not 0 <= value <= 100:
            raise ScenarioValidationError(f"Severity must be within 0-100%, got {value}")
        return value / 100.0
    if scale == SEVERITY_FRACTION:
        if not 0 <= value <= 1:
            raise ScenarioValidationError(f"Severity fraction must be within 0-1, got {value}")
        return float(value)
    if scale is not None:
        raise ScenarioValidationError(f"Unknown severity scale: {scale}")
    if value < 0 or value > 100:
        raise ScenarioValidationError(f"Severity must be within 0-100 or 0-1, got {value}")
    return value / 100.0 if value > 1 else float(value)


@dataclass(frozen=True)
class SimulationScenario:
    """A geographic what-if disruption."""
    severity: float
    duration: float
    timeframe: float
    recovery_rate: float = 0.5
    disruption_type: DisruptionType = DisruptionType.WEATHER
    affected_transport_modes: frozenset = frozenset()
    regions: tuple[DisruptionRegion, ...] = ()
    supplier_ids: tuple[str, ...] = ()
    name: str = "New Scenario"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        object.__setattr__(self, "severity", normalize_severity(self.severity))

        if not self.duration > 0:
            raise ScenarioValidationError(f"Duration must be > 0 days, got {self.duration}")
        if not self.timeframe > 0:
            raise ScenarioValidationError(f"Timeframe must be > 0 days, got {self.timeframe}")
        if not 0 <= self.recovery_rate <= 1:
            raise ScenarioValidationError(f"Recovery rate must be within 0-1, got {self.recovery_rate}")

        try:
            disruption_type = DisruptionType(self.disruption_type)
            modes = frozenset(TransportMode(m) for m in self.affected_transport_modes)
        except ValueError as e:
            raise ScenarioValidationError(str(e)) from e

        object.__setattr__(self, "disruption_type", disruption_type)
        object.__setattr__(self, "affected_transport_modes", modes)
        object.__setattr__(self, "regions", tuple(self.regions))
        object.__setattr__(self, "supplier_ids", tuple(str(s) for s in self.supplier_ids))

    @property
    def severity_pct(self) -> float:
        """Severity on the 0-100 scale used by cascade event impacts."""
        return self.severity * 100.0

    @property
    def is_empty(self) -> bool:
        return not self.regions and not self.supplier_ids

    def to_config(self) -> dict:
        """Normalized config sent to the mitigation strategy service."""
        return {
            "duration": self.duration,
            "intensity": self.severity,
            "recoveryRate": self.recovery_rate,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "disruptionType": self.disruption_type.value,
            "severity": self.severity_pct,
            "duration": self.duration,
            "timeframe": self.timeframe,
            "recoveryRate": self.recovery_rate,
            "affectedTransportModes": {
                m.value: m in self.affected_transport_modes for m in TransportMode
            },
            "affectedRegions": [r.to_dict() for r in self.regions],
            "affectedSuppliers": list(self.supplier_ids),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SimulationScenario":
        """
        Build from the dashboard's camelCase scenario shape.

        severity is a percentage (0-100), the scale to_dict() writes.
        affectedTransportModes may be a {mode: bool} mapping or a list.
        """
        modes = d.get("affectedTransportModes", {})
        if isinstance(modes, dict):
            modes = [m for m, on in modes.items() if on]

        kwargs = {}
        if d.get("id"):
            kwargs["id"] = str(d["id"])
        try:
            return cls(
                severity=normalize_severity(float(d["severity"]), SEVERITY_PERCENT),
                duration=float(d["duration"]),
                timeframe=float(d.get("timeframe", 90)),
                recovery_rate=float(d.get("recoveryRate", 0.5)),
                disruption_type=d.get("disruptionType", "weather"),
                affected_transport_modes=frozenset(modes),
                regions=tuple(DisruptionRegion.from_dict(r) for r in d.get("affectedRegions", [])),
                supplier_ids=tuple(d.get("affectedSuppliers", [])),
                name=d.get("name", "New Scenario"),
                **kwargs,
            )
        except ScenarioValidationError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ScenarioValidationError(f"Malformed scenario: {e}") from e
