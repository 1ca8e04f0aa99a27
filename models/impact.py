"""
Regional Impact Calculator
===========================

Scores how hard a disruption region hits a supplier or transport route:

    impact = (1 - distance / radius) × multiplier      (0 outside the radius)

Multipliers:
- Supplier: 1 + 0.2 × (4 - tier)   → tier 1 = 1.6, tier 2 = 1.4, tier 3 = 1.2
- Route:    1 + risk / 200          → 1.0 (risk 0) to 1.5 (risk 100)

Impacts from overlapping regions are summed, so an entity inside two
zones accumulates both contributions (compounding disruption).
"""

import math
from typing import Iterable

from models.geo import distance_km
from models.network import Supplier, TransportRoute
from models.scenario import DisruptionRegion


def tier_multiplier(tier: int) -> float:
    """Direct (tier 1) suppliers weigh more than indirect ones."""
    return 1 + 0.2 * (4 - tier)


def route_multiplier(risk: float) -> float:
    return 1 + risk / 200.0


def _distance_decay(distance: float, radius_km: float) -> float:
    if radius_km <= 0 or distance > radius_km:
        return 0.0
    return 1.0 - distance / radius_km


def supplier_impact(supplier: Supplier, region: DisruptionRegion) -> float:
    distance = distance_km(region.lat, region.lng, supplier.location.lat, supplier.location.lng)
    decay = _distance_decay(distance, region.radius_km)
    if decay == 0.0:
        return 0.0
    return decay * tier_multiplier(supplier.tier)


def route_impact(route: TransportRoute, region: DisruptionRegion) -> float:
    """Scored from whichever endpoint lies nearer the region center."""
    nearest = min(
        distance_km(region.lat, region.lng, route.origin.lat, route.origin.lng),
        distance_km(region.lat, region.lng, route.destination.lat, route.destination.lng),
    )
    decay = _distance_decay(nearest, region.radius_km)
    if decay == 0.0:
        return 0.0
    return decay * route_multiplier(route.risk)


def combined_supplier_impact(supplier: Supplier, regions: Iterable[DisruptionRegion]) -> float:
    """Additive (uncapped) impact across every region."""
    return sum(supplier_impact(supplier, r) for r in regions)


def combined_route_impact(route: TransportRoute, regions: Iterable[DisruptionRegion]) -> float:
    return sum(route_impact(route, r) for r in regions)


def estimate_recovery_days(impact: float, duration: float, recovery_rate: float) -> int:
    """
    Days until an affected component is back to normal.

    Scales the disruption duration up with impact and down with the
    scenario's recovery rate (rate 1 halves the time).
    """
    return math.ceil(duration * (1 + impact) * (1 - 0.5 * recovery_rate))
