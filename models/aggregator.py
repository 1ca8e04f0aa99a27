"""
Impact Aggregation
===================

Converts a cascade timeline into network-level before/after metrics.

Baseline:
- health       = mean( mean(100 - supplier risk), mean(100 - route risk) )
                 (suppliers and routes weigh equally as groups)
- availability = 85 (typical material availability, no simulation history)

Simulated (m = peak cascade event impact, d = duration, T = timeframe,
s = severity on the 0-100 scale, as for the cascade events):
- health       = baseline × (1 - (m/100) × (d/180)),  floored at 0
- availability = baseline × (1 - (m/100) × (d/90)),   floored at 0
- avg delay    = floor(s × d / (T/30)) days
- cost %       = floor((m/100) × 25 + (d/180) × 10)
- cost value   = floor(24.5M × cost% / 100)

Only the peak event impact feeds the health model, so many moderate hits
score the same as one severe hit. A cascade without any supplier or
transport events (nothing affected) yields a zero-impact result.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np

from models.cascade import COMPONENT_PHASES, CascadeEvent
from models.network import Project, ReferenceNetwork
from models.scenario import SimulationScenario

BASELINE_AVAILABILITY = 85.0
REFERENCE_COST_BASE = 24_500_000
HEALTH_HORIZON_DAYS = 180
AVAILABILITY_HORIZON_DAYS = 90


@dataclass(frozen=True)
class BaselineMetrics:
    health: float
    availability: float = BASELINE_AVAILABILITY


@dataclass(frozen=True)
class ProjectDelay:
    project_id: str
    name: str
    delay: int

    def to_dict(self) -> dict:
        return {"projectId": self.project_id, "name": self.name, "delay": self.delay}


@dataclass
class ImpactMetrics:
    health: float
    availability: float
    average_delay: int
    cost_percentage: int
    cost_value: int
    max_impact: float = 0.0
    health_reduction: float = 0.0
    availability_reduction: float = 0.0
    affected_projects: list[ProjectDelay] = field(default_factory=list)


def compute_baseline(network: ReferenceNetwork) -> BaselineMetrics:
    """Equal-weight group average of supplier and route health."""
    group_health = [
        float(np.mean([100 - item.risk for item in group]))
        for group in (network.suppliers, network.routes)
        if group
    ]
    health = float(np.mean(group_health)) if group_health else 100.0
    return BaselineMetrics(health=health, availability=BASELINE_AVAILABILITY)


def _project_delays(average_delay: int, projects: Iterable[Project]) -> list[ProjectDelay]:
    return [
        ProjectDelay(project_id=p.id, name=p.name, delay=math.floor(average_delay * p.exposure))
        for p in projects
    ]


def aggregate_impact(
    scenario: SimulationScenario,
    events: list[CascadeEvent],
    baseline: BaselineMetrics,
    projects: Iterable[Project] = (),
) -> ImpactMetrics:
    """
    Summarize a cascade into health, availability, delay and cost metrics.

    Scenario validation guarantees duration and timeframe are > 0.
    """
    if not any(e.phase in COMPONENT_PHASES for e in events):
        return ImpactMetrics(
            health=baseline.health,
            availability=baseline.availability,
            average_delay=0,
            cost_percentage=0,
            cost_value=0,
        )

    duration = scenario.duration
    max_impact = max(e.impact for e in events)

    health_reduction = (max_impact / 100) * (duration / HEALTH_HORIZON_DAYS)
    availability_reduction = (max_impact / 100) * (duration / AVAILABILITY_HORIZON_DAYS)

    average_delay = math.floor(scenario.severity_pct * duration / (scenario.timeframe / 30))

    cost_percentage = math.floor((max_impact / 100) * 25 + (duration / HEALTH_HORIZON_DAYS) * 10)
    cost_value = math.floor(REFERENCE_COST_BASE * (cost_percentage / 100))

    return ImpactMetrics(
        health=max(0.0, baseline.health * (1 - health_reduction)),
        availability=max(0.0, baseline.availability * (1 - availability_reduction)),
        average_delay=average_delay,
        cost_percentage=cost_percentage,
        cost_value=cost_value,
        max_impact=max_impact,
        health_reduction=health_reduction,
        availability_reduction=availability_reduction,
        affected_projects=_project_delays(average_delay, projects),
    )
