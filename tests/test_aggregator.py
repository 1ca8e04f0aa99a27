import math

import pytest

from models.aggregator import (
    BASELINE_AVAILABILITY, REFERENCE_COST_BASE, BaselineMetrics, aggregate_impact, compute_baseline,
)
from models.cascade import propagate_cascade
from models.network import ReferenceNetwork
from models.resolver import resolve_affected_components
from models.scenario import SimulationScenario


def _impact(scenario, network):
    affected = resolve_affected_components(scenario, network.suppliers, network.routes)
    cascade = propagate_cascade(scenario, affected, network)
    return aggregate_impact(scenario, cascade.events, compute_baseline(network), network.projects)


# ─── BASELINE ────────────────────────────────────────────────────

def test_baseline_weighs_groups_equally(small_network):
    # suppliers: 100 - mean(40, 20, 60) = 60; routes: 100 - mean(50, 10) = 70
    baseline = compute_baseline(small_network)
    assert baseline.health == pytest.approx(65)
    assert baseline.availability == BASELINE_AVAILABILITY


def test_reference_baseline(network):
    # suppliers 100 - 58.8 = 41.2; routes 100 - 48 = 52
    assert compute_baseline(network).health == pytest.approx(46.6)


def test_empty_network_baseline():
    assert compute_baseline(ReferenceNetwork()).health == 100.0


# ─── TAIWAN EXAMPLE ──────────────────────────────────────────────

def test_taiwan_metrics(network, taiwan_scenario):
    impact = _impact(taiwan_scenario, network)
    baseline = compute_baseline(network)

    assert impact.max_impact == 100
    assert impact.health == pytest.approx(baseline.health * (1 - 30 / 180))
    assert impact.health < baseline.health
    assert impact.availability == pytest.approx(85 * (1 - 30 / 90))
    assert impact.average_delay == 750      # floor(75 × 30 / (90 / 30))
    assert impact.cost_percentage == 26
    assert impact.cost_value == math.floor(REFERENCE_COST_BASE * (26 / 100))


def test_project_delays_scale_with_exposure(network, taiwan_scenario):
    delays = {p.project_id: p.delay for p in _impact(taiwan_scenario, network).affected_projects}
    assert delays == {"p1": 1875, "p2": 1125, "p3": 675}


# ─── EDGE CASES ──────────────────────────────────────────────────

def test_nothing_affected_is_zero_impact(network, empty_scenario):
    impact = _impact(empty_scenario, network)
    baseline = compute_baseline(network)
    assert impact.health == baseline.health
    assert impact.availability == baseline.availability
    assert impact.average_delay == 0
    assert impact.cost_percentage == 0
    assert impact.cost_value == 0
    assert impact.affected_projects == []


def test_region_with_no_overlap_is_zero_impact(network):
    scenario = SimulationScenario.from_dict({
        "severity": 90, "duration": 60,
        "affectedRegions": [{"lat": -75.0, "lng": 0.0, "radius": 100}],   # Antarctica
    })
    impact = _impact(scenario, network)
    assert impact.health == compute_baseline(network).health
    assert impact.cost_percentage == 0


def test_metrics_are_floored_at_zero(network):
    scenario = SimulationScenario(severity=100, duration=400, timeframe=30, supplier_ids=("1",))
    impact = _impact(scenario, network)
    assert impact.health == 0.0
    assert impact.availability == 0.0


def test_aggregate_directly_from_events(small_network):
    scenario = SimulationScenario(severity=50, duration=90, timeframe=90, supplier_ids=("a",))
    affected = resolve_affected_components(scenario, small_network.suppliers, small_network.routes)
    events = propagate_cascade(scenario, affected, small_network).events
    impact = aggregate_impact(scenario, events, BaselineMetrics(health=80.0))
    # peak = 40 + 25 = 65
    assert impact.health == pytest.approx(80 * (1 - 0.65 * 0.5))
    assert impact.availability == pytest.approx(85 * (1 - 0.65))
    assert impact.average_delay == math.floor(50 * 90 / 3)
    assert impact.affected_projects == []


# ─── MONOTONICITY ────────────────────────────────────────────────

@pytest.mark.parametrize("low, high", [(10, 40), (40, 75), (75, 100)])
def test_monotonic_in_severity(network, low, high):
    def run(severity):
        return _impact(SimulationScenario(severity=severity, duration=30, timeframe=90,
                                          supplier_ids=("3",)), network)

    a, b = run(low), run(high)
    assert b.health <= a.health
    assert b.availability <= a.availability
    assert b.average_delay >= a.average_delay
    assert b.cost_percentage >= a.cost_percentage


@pytest.mark.parametrize("short, long", [(5, 15), (15, 60), (60, 120)])
def test_monotonic_in_duration(network, short, long):
    def run(duration):
        return _impact(SimulationScenario(severity=60, duration=duration, timeframe=90,
                                          supplier_ids=("3",)), network)

    a, b = run(short), run(long)
    assert b.health <= a.health
    assert b.availability <= a.availability
    assert b.average_delay >= a.average_delay
    assert b.cost_percentage >= a.cost_percentage
