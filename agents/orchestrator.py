"""
Simulation Engine — Orchestrates a Disruption What-If Run
===========================================================

Pipeline: Resolver → Propagator → Aggregator → Strategist

For one scenario the engine:
1. Resolves directly affected suppliers and routes (explicit IDs + regions)
2. Propagates the disruption through tiers 1-3 into a cascade timeline
3. Aggregates health, availability, delay and cost impact
4. Requests mitigation strategies from the strategy service, falling back
   to deterministic rule-based strategies on any service failure
5. Assembles an immutable SimulationResult

The engine only reads its reference network, so concurrent runs against
one engine need no coordination. The strategy request is the single
suspension point and is bounded by the client's timeout.
"""

import asyncio
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from agents.strategist import (
    MitigationStrategy, build_strategy_request, fallback_strategies
)
from agents.strategy_client import StrategyClient
from models.aggregator import (
    BaselineMetrics, ImpactMetrics, ProjectDelay, aggregate_impact, compute_baseline
)
from models.cascade import CascadeEvent, propagate_cascade
from models.exceptions import StrategyServiceError
from models.impact import (
    combined_route_impact, combined_supplier_impact, estimate_recovery_days, tier_multiplier
)
from models.network import ReferenceNetwork, Supplier, TransportRoute, load_reference_network
from models.resolver import AffectedComponents, resolve_affected_components
from models.scenario import SEVERITY_PERCENT, DisruptionRegion, SimulationScenario, normalize_severity

logger = logging.getLogger(__name__)

STRATEGY_SOURCE_SERVICE = "service"
STRATEGY_SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class EngineConfig:
    """Runtime settings, read from the environment by from_env()."""
    strategy_service_url: Optional[str] = None
    strategy_timeout: float = 15.0
    use_strategy_service: bool = True

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            strategy_service_url=os.getenv("STRATEGY_SERVICE_URL"),
            strategy_timeout=float(os.getenv("STRATEGY_SERVICE_TIMEOUT", 15.0)),
            use_strategy_service=os.getenv("USE_STRATEGY_SERVICE", "1") not in ("0", "false", "no"),
        )


@dataclass(frozen=True)
class AffectedSupplier:
    supplier: Supplier
    impact: float
    recovery_days: int

    def to_dict(self) -> dict:
        return {
            "supplierId": self.supplier.id,
            "name": self.supplier.name,
            "tier": self.supplier.tier,
            "country": self.supplier.country,
            "impact": self.impact,
            "recoveryTime": self.recovery_days,
        }


@dataclass(frozen=True)
class AffectedRoute:
    route: TransportRoute
    impact: float

    def to_dict(self) -> dict:
        return {
            "routeId": self.route.id,
            "from": self.route.origin.name,
            "to": self.route.destination.name,
            "mode": self.route.mode.value,
            "impact": self.impact,
        }


@dataclass(frozen=True)
class SimulationResult:
    """Everything a single run produced; safe to persist verbatim."""
    scenario_id: str
    baseline: BaselineMetrics
    impact: ImpactMetrics
    affected_suppliers: tuple[AffectedSupplier, ...]
    affected_routes: tuple[AffectedRoute, ...]
    affected_countries: tuple[str, ...]
    regions: tuple[DisruptionRegion, ...]
    cascade_effects: tuple[CascadeEvent, ...]
    cascade_depth: int
    total_impact: float
    mitigation_strategies: tuple[MitigationStrategy, ...]
    strategy_source: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def project_delays(self) -> tuple[ProjectDelay, ...]:
        return tuple(self.impact.affected_projects)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "scenarioId": self.scenario_id,
            "affectedSuppliers": [s.to_dict() for s in self.affected_suppliers],
            "affectedRoutes": [r.to_dict() for r in self.affected_routes],
            "affectedCountries": list(self.affected_countries),
            "regions": [r.to_dict() for r in self.regions],
            "cascadeDepth": self.cascade_depth,
            "totalImpact": self.total_impact,
            "supplyChainHealth": {
                "baseline": self.baseline.health,
                "simulated": self.impact.health,
            },
            "materialAvailability": {
                "baseline": self.baseline.availability,
                "simulated": self.impact.availability,
            },
            "projectDelays": {
                "average": self.impact.average_delay,
                "affected": [p.to_dict() for p in self.project_delays],
            },
            "costImpact": {
                "percentage": self.impact.cost_percentage,
                "value": self.impact.cost_value,
            },
            "cascadeEffects": [e.to_dict() for e in self.cascade_effects],
            "mitigationStrategies": [s.to_dict() for s in self.mitigation_strategies],
            "strategySource": self.strategy_source,
        }


class SimulationEngine:
    """
    Runs disruption scenarios against a read-only reference network.
    """

    def __init__(
        self,
        network: ReferenceNetwork,
        strategy_client: Optional[StrategyClient] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.network = network
        self.config = config or EngineConfig()
        if strategy_client is None and self.config.use_strategy_service:
            strategy_client = StrategyClient(
                url=self.config.strategy_service_url,
                timeout=self.config.strategy_timeout,
            )
        self.strategy_client = strategy_client

        # Reference data never changes for the engine's lifetime
        self.baseline = compute_baseline(network)

    @classmethod
    def from_env(cls, network_path: Optional[str] = None) -> "SimulationEngine":
        return cls(load_reference_network(network_path), config=EngineConfig.from_env())

    # ─── STEP 1: AFFECTED COMPONENTS ─────────────────────────────

    def resolve(self, scenario: SimulationScenario) -> AffectedComponents:
        return resolve_affected_components(scenario, self.network.suppliers, self.network.routes)

    def score_suppliers(
        self, scenario: SimulationScenario, affected: AffectedComponents
    ) -> list[AffectedSupplier]:
        """
        Impact and recovery estimate per affected supplier.

        Explicitly listed suppliers outside every region count as direct
        hits (distance 0).
        """
        in_region = {
            supplier_id
            for region in affected.regions
            if region.impact_zone is not None
            for supplier_id in region.impact_zone.supplier_ids
        }
        scored = []
        for supplier_id in affected.supplier_ids:
            supplier = self.network.supplier(supplier_id)
            if supplier is None:
                continue  # Reported by the propagator
            if supplier_id in in_region:
                # On a region edge this is 0, never a direct hit
                impact = combined_supplier_impact(supplier, affected.regions)
            else:
                impact = tier_multiplier(supplier.tier)
            scored.append(AffectedSupplier(
                supplier=supplier,
                impact=impact,
                recovery_days=estimate_recovery_days(impact, scenario.duration, scenario.recovery_rate),
            ))
        return scored

    def score_routes(self, affected: AffectedComponents) -> list[AffectedRoute]:
        scored = []
        for route_id in affected.route_ids:
            route = self.network.route(route_id)
            if route is not None:
                scored.append(AffectedRoute(route, combined_route_impact(route, affected.regions)))
        return scored

    # ─── STEP 4: MITIGATION (STRATEGIST) ────────────────────────

    async def request_strategies(
        self,
        scenario: SimulationScenario,
        affected: AffectedComponents,
        impact: ImpactMetrics,
    ) -> tuple[list[MitigationStrategy], str]:
        """
        Strategies from the service, or the local rules when it fails.

        Returns:
            (strategies, source) where source is "service" or "fallback"
        """
        if self.strategy_client is not None:
            request = build_strategy_request(
                regions=[r.to_dict() for r in scenario.regions],
                supplier_ids=list(affected.supplier_ids),
                config=scenario.to_config(),
            )
            try:
                strategies = await self.strategy_client.fetch(request)
                return strategies, STRATEGY_SOURCE_SERVICE
            except StrategyServiceError as e:
                logger.warning("[Engine] Strategy service failed, using local rules: %s", e)

        return fallback_strategies(impact, scenario.severity), STRATEGY_SOURCE_FALLBACK

    # ─── FULL PIPELINE ───────────────────────────────────────────

    async def run(self, scenario: SimulationScenario) -> SimulationResult:
        """
        Simulate one scenario end to end.

        Raises:
            UnknownComponentError: affected ID missing from the reference network
        """
        logger.info(
            "[Engine] Running '%s' (%s) | severity %.0f%% | %g days | %d regions | %d explicit suppliers",
            scenario.name, scenario.disruption_type.value, scenario.severity_pct,
            scenario.duration, len(scenario.regions), len(scenario.supplier_ids),
        )

        # Step 1: Resolve
        affected = self.resolve(scenario)

        # Step 2: Propagate
        cascade = propagate_cascade(scenario, affected, self.network)

        # Step 3: Aggregate
        impact = aggregate_impact(scenario, cascade.events, self.baseline, self.network.projects)

        # Step 4: Strategies
        strategies, source = await self.request_strategies(scenario, affected, impact)

        # Step 5: Assemble
        suppliers = self.score_suppliers(scenario, affected)
        routes = self.score_routes(affected)
        result = SimulationResult(
            scenario_id=scenario.id,
            baseline=self.baseline,
            impact=impact,
            affected_suppliers=tuple(suppliers),
            affected_routes=tuple(routes),
            affected_countries=affected.countries,
            regions=affected.regions,
            cascade_effects=tuple(cascade.events),
            cascade_depth=cascade.cascade_depth,
            total_impact=sum(s.impact for s in suppliers),
            mitigation_strategies=tuple(strategies),
            strategy_source=source,
        )

        logger.info(
            "[Engine] Done: %d suppliers | %d routes | depth %d | health %.1f → %.1f | cost +%d%%",
            len(suppliers), len(routes), result.cascade_depth,
            self.baseline.health, impact.health, impact.cost_percentage,
        )
        return result

    async def aclose(self):
        if self.strategy_client is not None:
            await self.strategy_client.aclose()


# ─── REPORTING ───────────────────────────────────────────────────

def format_summary(result: SimulationResult) -> str:
    """Plain-text run summary for the CLI."""
    lines = [
        "",
        "DISRUPTION SIMULATION SUMMARY",
        "─────────────────────────────",
        f"Run:                 {result.id} ({result.timestamp})",
        f"Affected suppliers:  {len(result.affected_suppliers)} "
        f"| routes: {len(result.affected_routes)} | cascade depth: {result.cascade_depth}",
        f"Supply chain health: {result.baseline.health:.1f} → {result.impact.health:.1f}",
        f"Availability:        {result.baseline.availability:.1f} → {result.impact.availability:.1f}",
        f"Average delay:       {result.impact.average_delay} days",
        f"Cost impact:         +{result.impact.cost_percentage}% (£{result.impact.cost_value:,})",
        "",
        "CASCADE",
        "───────",
    ]
    for event in result.cascade_effects:
        lines.append(f"  day {event.day:>4}  [{event.type.value:9s}] {event.description} ({event.impact:.0f})")

    lines += ["", f"MITIGATION ({result.strategy_source})", "──────────"]
    for strategy in result.mitigation_strategies:
        lines.append(f"• {strategy.action} [impact {strategy.impact}, difficulty {strategy.difficulty}, "
                     f"{strategy.timeframe}]")
    return "\n".join(lines)


def export_result(result: SimulationResult, output_dir: str = "outputs") -> str:
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"simulation_{result.id}.json")
    with open(output_path, "w") as f:
        json.dump(result.to_dict(), f, indent=2, default=str)
    return output_path


def _parse_region(value: str) -> DisruptionRegion:
    lat, lng, radius = (float(v) for v in value.split(","))
    return DisruptionRegion(lat=lat, lng=lng, radius_km=radius)


async def _main(args) -> SimulationResult:
    network = load_reference_network(args.network)

    regions = [_parse_region(r) for r in args.region]
    for event_id in args.climate_event:
        event = next((e for e in network.climate_events if e.id == event_id), None)
        if event is None:
            raise SystemExit(f"Unknown climate event: {event_id}")
        regions.append(DisruptionRegion(lat=event.lat, lng=event.lng, radius_km=event.radius_km))

    scenario = SimulationScenario(
        name=args.name,
        disruption_type=args.type,
        severity=normalize_severity(args.severity, SEVERITY_PERCENT),
        duration=args.duration,
        timeframe=args.timeframe,
        recovery_rate=args.recovery_rate,
        affected_transport_modes=frozenset(args.mode),
        regions=tuple(regions),
        supplier_ids=tuple(args.supplier),
    )

    config = EngineConfig.from_env()
    if args.no_llm:
        config = EngineConfig(use_strategy_service=False)

    engine = SimulationEngine(network, config=config)
    try:
        return await engine.run(scenario)
    finally:
        await engine.aclose()


# ─── CLI ─────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Run a supply chain disruption simulation")
    parser.add_argument("--name", default="CLI Scenario")
    parser.add_argument("--type", default="weather", help="Disruption type")
    parser.add_argument("--severity", type=float, default=50, help="Severity percentage (0-100)")
    parser.add_argument("--duration", type=float, default=30, help="Disruption duration (days)")
    parser.add_argument("--timeframe", type=float, default=90, help="Simulation horizon (days)")
    parser.add_argument("--recovery-rate", type=float, default=0.5)
    parser.add_argument("--region", action="append", default=[], help="lat,lng,radius_km")
    parser.add_argument("--climate-event", action="append", default=[], help="Climate event ID as region")
    parser.add_argument("--supplier", action="append", default=[], help="Explicit supplier ID")
    parser.add_argument("--mode", action="append", default=[], help="Affected transport mode")
    parser.add_argument("--network", default=None, help="Reference network JSON")
    parser.add_argument("--no-llm", action="store_true", help="Skip the strategy service")
    parser.add_argument("--output", default=None, help="Directory to export the result JSON")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    result = asyncio.run(_main(args))
    print(format_summary(result))

    if args.output:
        path = export_result(result, args.output)
        print(f"\n[Engine] Result saved to {path}")
