"""
Climate Risk Client — Climate Events as Disruption Regions
============================================================

Supplies current climate events (storms, floods, heatwaves...) and turns
them into DisruptionRegion objects a scenario author can drop straight
into a SimulationScenario.

The event source is injected (any zero-argument callable returning
ClimateEvent records) and the cache state is owned by the caller, so
several clients can share one cache or each keep their own.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from models.network import ClimateEvent, ReferenceNetwork
from models.scenario import DisruptionRegion

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0

EventSource = Callable[[], Iterable[ClimateEvent]]


@dataclass
class ClimateRiskCache:
    ttl_seconds: float = DEFAULT_TTL_SECONDS
    fetched_at: Optional[float] = None
    events: list[ClimateEvent] = field(default_factory=list)

    def is_fresh(self, now: float) -> bool:
        return self.fetched_at is not None and now - self.fetched_at < self.ttl_seconds

    def clear(self):
        self.fetched_at = None
        self.events = []


class ClimateRiskClient:

    def __init__(self, source: EventSource, cache: Optional[ClimateRiskCache] = None):
        self.source = source
        self.cache = cache if cache is not None else ClimateRiskCache()

    @classmethod
    def from_network(cls, network: ReferenceNetwork, cache: Optional[ClimateRiskCache] = None):
        return cls(lambda: network.climate_events, cache)

    def fetch_events(self, now: Optional[float] = None) -> list[ClimateEvent]:
        """Cached events, refreshed from the source once the TTL has expired."""
        now = time.monotonic() if now is None else now
        if self.cache.is_fresh(now):
            return list(self.cache.events)

        events = list(self.source())
        self.cache.events = events
        self.cache.fetched_at = now
        logger.info("[ClimateRisk] Refreshed %d climate events", len(events))
        return list(events)

    def events_for_countries(self, countries: Iterable[str], now: Optional[float] = None) -> list[ClimateEvent]:
        wanted = set(countries)
        return [e for e in self.fetch_events(now) if wanted.intersection(e.countries)]

    def regions(
        self,
        min_severity: int = 0,
        radius_km: Optional[float] = None,
        now: Optional[float] = None,
    ) -> list[DisruptionRegion]:
        return regions_from_climate_events(self.fetch_events(now), min_severity, radius_km)


def regions_from_climate_events(
    events: Iterable[ClimateEvent],
    min_severity: int = 0,
    radius_km: Optional[float] = None,
) -> list[DisruptionRegion]:
    """
    Convert climate events to disruption regions.

    Args:
        events: Climate events
        min_severity: Skip events below this severity (1-10 scale)
        radius_km: Override every event's own radius

    Returns:
        One region per qualifying event, in input order
    """
    return [
        DisruptionRegion(
            lat=event.lat,
            lng=event.lng,
            radius_km=event.radius_km if radius_km is None else radius_km,
        )
        for event in events
        if event.severity >= min_severity
    ]
