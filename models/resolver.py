"""
Affected-Component Resolver
============================

Works out which suppliers and transport routes a scenario touches:

1. Seed with the scenario's explicit supplier IDs
2. For each disruption region, add every supplier within the radius
   (and its country) and every route with EITHER endpoint inside
3. Attach an impact zone to each region

Results keep insertion order and contain no duplicates, so downstream
event generation is deterministic.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from models.geo import within_radius
from models.impact import estimate_recovery_days, supplier_impact
from models.network import Supplier, TransportRoute
from models.scenario import DisruptionRegion, ImpactZone, SimulationScenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AffectedComponents:
    supplier_ids: tuple[str, ...] = ()
    route_ids: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    regions: tuple[DisruptionRegion, ...] = ()   # With impact zones attached

    @property
    def is_empty(self) -> bool:
        return not self.supplier_ids and not self.route_ids


def route_in_region(route: TransportRoute, region: DisruptionRegion) -> bool:
    """A route is hit when its origin or its destination is inside."""
    return (
        within_radius(route.origin.lat, route.origin.lng, region.lat, region.lng, region.radius_km)
        or within_radius(route.destination.lat, route.destination.lng,
                         region.lat, region.lng, region.radius_km)
    )


def build_impact_zone(
    region: DisruptionRegion,
    suppliers: Iterable[Supplier],
    scenario: SimulationScenario,
) -> ImpactZone:
    """Summarize the suppliers inside one region for this scenario."""
    inside = [
        s for s in suppliers
        if within_radius(s.location.lat, s.location.lng, region.lat, region.lng, region.radius_km)
    ]
    peak = max((supplier_impact(s, region) for s in inside), default=0.0)
    recovery = (
        estimate_recovery_days(peak, scenario.duration, scenario.recovery_rate) if inside else 0
    )
    return ImpactZone(
        supplier_ids=tuple(s.id for s in inside),
        severity=scenario.severity,
        recovery_days=recovery,
    )


def resolve_affected_components(
    scenario: SimulationScenario,
    suppliers: Iterable[Supplier],
    routes: Iterable[TransportRoute],
) -> AffectedComponents:
    """
    Combine explicit supplier IDs with geographic membership tests.

    Args:
        scenario: Validated scenario
        suppliers: Reference suppliers
        routes: Reference transport routes

    Returns:
        AffectedComponents; empty when the scenario has no regions and no IDs
    """
    suppliers = list(suppliers)
    routes = list(routes)

    # dicts as insertion-ordered sets
    supplier_ids = dict.fromkeys(scenario.supplier_ids)
    route_ids: dict = {}
    countries: dict = {}
    zoned_regions = []
    by_id = {s.id: s for s in suppliers}

    for region in scenario.regions:
        zone = build_impact_zone(region, suppliers, scenario)
        zoned_regions.append(replace(region, impact_zone=zone))

        for supplier_id in zone.supplier_ids:
            supplier_ids[supplier_id] = None
            countries[by_id[supplier_id].country] = None

        for route in routes:
            if route_in_region(route, region):
                route_ids[route.id] = None

    affected = AffectedComponents(
        supplier_ids=tuple(supplier_ids),
        route_ids=tuple(route_ids),
        countries=tuple(countries),
        regions=tuple(zoned_regions),
    )
    logger.debug(
        "[Resolver] %d suppliers | %d routes | countries: %s",
        len(affected.supplier_ids), len(affected.route_ids), ", ".join(affected.countries) or "-",
    )
    return affected
