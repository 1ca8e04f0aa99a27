"""
Strategist Agent — Mitigation Strategy Generation
===================================================

Produces mitigation strategies for a simulated disruption.

Two paths:
1. LLM path (Claude): the strategy service prompts the model and decodes
   its loosely formatted reply with a best-effort parser. Missing fields
   fall back to defaults; only a reply with nothing extractable fails.
2. Rule-based path: deterministic strategies derived from the aggregated
   impact. Used by the engine whenever the service is unavailable.

Strategy record (service contract):
    {action, impact: high|medium|low, difficulty: high|medium|low,
     timeframe, description}
"""

import logging
import os
import re
from dataclasses import asdict, dataclass
from typing import Optional

from models.aggregator import ImpactMetrics
from models.exceptions import StrategyParseError, StrategyServiceError

logger = logging.getLogger(__name__)

LEVELS = ("high", "medium", "low")
DEFAULT_LEVEL = "medium"
DEFAULT_ACTION = "Unknown action"
DEFAULT_TIMEFRAME = "1-3 months"
DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass(frozen=True)
class MitigationStrategy:
    action: str
    impact: str = DEFAULT_LEVEL
    difficulty: str = DEFAULT_LEVEL
    timeframe: str = DEFAULT_TIMEFRAME
    description: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "MitigationStrategy":
        """Lenient: unknown levels and missing fields take defaults."""
        return cls(
            action=str(d.get("action") or DEFAULT_ACTION),
            impact=_level(d.get("impact")),
            difficulty=_level(d.get("difficulty")),
            timeframe=str(d.get("timeframe") or DEFAULT_TIMEFRAME),
            description=str(d.get("description") or ""),
        )


def _level(value) -> str:
    """First word, lower-cased, if it names a level; otherwise 'medium'."""
    if not value:
        return DEFAULT_LEVEL
    words = re.findall(r"[a-z]+", str(value).lower())
    return words[0] if words and words[0] in LEVELS else DEFAULT_LEVEL


# ─── REQUEST CONTRACT ────────────────────────────────────────────

def build_strategy_request(regions: list[dict], supplier_ids: list[str], config: dict) -> dict:
    """
    Request body for the strategy service.

    config carries the normalized scenario: duration (days),
    intensity (0-1) and recoveryRate (0-1).
    """
    return {
        "regions": regions,
        "affectedSuppliers": list(supplier_ids),
        "simulationConfig": {
            "duration": config["duration"],
            "intensity": config["intensity"],
            "recoveryRate": config["recoveryRate"],
        },
    }


# ─── LLM REPLY PARSING ───────────────────────────────────────────

STRATEGY_SPLIT = re.compile(r"strategy\s*\d+\s*[:.)-]", re.IGNORECASE)
FIELD_PATTERNS = {
    name: re.compile(rf"^[\s*#>\-\d.]*{name}\**\s*:\**\s*(.*)$", re.IGNORECASE)
    for name in ("action", "impact", "difficulty", "timeframe", "description")
}


def _extract_fields(block: str) -> dict:
    fields = {}
    for line in block.splitlines():
        for name, pattern in FIELD_PATTERNS.items():
            if name in fields:
                continue
            match = pattern.match(line)
            if match:
                fields[name] = match.group(1).strip().strip("*").strip()
                break
    return fields


def parse_strategy_text(text: str) -> list[MitigationStrategy]:
    """
    Decode free text of the form "Strategy 1: ... Action: ... Impact: ...".

    Each block becomes one strategy; any field it lacks takes its default.
    Blocks without a single recognizable field are dropped.

    Raises:
        StrategyParseError: nothing could be extracted
    """
    if not text or not text.strip():
        raise StrategyParseError("Empty strategy text")

    strategies = []
    for block in STRATEGY_SPLIT.split(text):
        fields = _extract_fields(block)
        if not fields:
            continue
        strategies.append(MitigationStrategy.from_dict(fields))

    if not strategies:
        raise StrategyParseError("No strategies could be extracted from the generated text")
    return strategies


def parse_strategy_response(payload) -> list[MitigationStrategy]:
    """
    Decode the service's JSON body {"strategies": [...]}.

    Raises:
        StrategyServiceError: wrong shape or zero strategies
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("strategies"), list):
        raise StrategyServiceError("Malformed strategy response: missing 'strategies' list")

    strategies = [
        MitigationStrategy.from_dict(item)
        for item in payload["strategies"]
        if isinstance(item, dict)
    ]
    if not strategies:
        raise StrategyServiceError("Strategy service returned no strategies")
    return strategies


# ─── RULE-BASED FALLBACK ─────────────────────────────────────────

DIVERSIFY_SUPPLIERS = MitigationStrategy(
    action="Diversify Supplier Base",
    impact="high",
    difficulty="high",
    timeframe="3-6 months",
    description="Establish relationships with additional suppliers in different geographical "
                "regions to reduce dependency on affected suppliers.",
)
INCREASE_SAFETY_STOCK = MitigationStrategy(
    action="Increase Safety Stock",
    impact="medium",
    difficulty="low",
    timeframe="1-2 months",
    description="Increase inventory levels of critical materials to provide a buffer against "
                "supply chain disruptions.",
)
ALTERNATIVE_ROUTES = MitigationStrategy(
    action="Alternative Transport Routes",
    impact="high",
    difficulty="high",
    timeframe="2-4 months",
    description="Develop contingency transport routes that bypass affected areas, including "
                "alternative ports and logistics providers.",
)
REVISE_TIMELINES = MitigationStrategy(
    action="Revise Project Timelines",
    impact="medium",
    difficulty="medium",
    timeframe="1-2 months",
    description="Adjust project schedules to prioritize critical path activities and reallocate "
                "resources to minimize overall delays.",
)


def baseline_strategies(severity: float) -> list[MitigationStrategy]:
    """Severity-graded default set (severity as a 0-1 fraction)."""
    return [
        MitigationStrategy(
            action="Diversify Supplier Base",
            impact="high" if severity > 0.7 else "medium",
            difficulty="high",
            timeframe="3-6 months",
            description="Establish relationships with additional suppliers in different "
                        "geographical regions.",
        ),
        MitigationStrategy(
            action="Increase Safety Stock",
            impact="medium" if severity > 0.5 else "low",
            difficulty="low",
            timeframe="1-2 months",
            description="Increase inventory levels of critical materials to provide a buffer.",
        ),
        MitigationStrategy(
            action="Implement Alternative Transport Routes",
            impact="high" if severity > 0.6 else "medium",
            difficulty="medium",
            timeframe="2-4 months",
            description="Develop contingency transport routes and logistics providers.",
        ),
    ]


def fallback_strategies(impact: ImpactMetrics, severity: float) -> list[MitigationStrategy]:
    """
    Deterministic strategies from the aggregated impact.

    Rules:
    - health < 50         → diversify supplier base
    - availability < 60   → increase safety stock
    - average delay > 30  → alternative transport routes
    - cost increase > 15% → revise project timelines
    When no rule fires, the severity-graded baseline set is returned.
    """
    strategies = []
    if impact.health < 50:
        strategies.append(DIVERSIFY_SUPPLIERS)
    if impact.availability < 60:
        strategies.append(INCREASE_SAFETY_STOCK)
    if impact.average_delay > 30:
        strategies.append(ALTERNATIVE_ROUTES)
    if impact.cost_percentage > 15:
        strategies.append(REVISE_TIMELINES)
    return strategies or baseline_strategies(severity)


# ─── LLM PROMPT ──────────────────────────────────────────────────

STRATEGY_SYSTEM_PROMPT = (
    "You are a supply chain risk management expert specializing in infrastructure and "
    "transportation projects. Provide practical, actionable mitigation strategies."
)

STRATEGY_PROMPT = """Analyze this disruption scenario and provide 3 practical mitigation strategies.

Scenario Details:
- Affected Regions: {regions}
- Number of Affected Suppliers: {n_suppliers}
- Disruption Duration: {duration} days
- Impact Intensity: {intensity:.0f}%
- Recovery Rate: {recovery:.0f}%

Format each strategy exactly as:
Strategy N:
Action: <clear, actionable step>
Impact: high | medium | low
Difficulty: high | medium | low
Timeframe: <estimated time to implement>
Description: <brief explanation>
"""


def format_strategy_prompt(request: dict) -> str:
    config = request["simulationConfig"]
    regions = ", ".join(
        f"[{r['lat']:.2f}, {r['lng']:.2f}] with radius {r['radius']}km"
        for r in request["regions"]
    ) or "none"
    return STRATEGY_PROMPT.format(
        regions=regions,
        n_suppliers=len(request["affectedSuppliers"]),
        duration=config["duration"],
        intensity=config["intensity"] * 100,
        recovery=config["recoveryRate"] * 100,
    )


# ─── STRATEGIST AGENT CLASS ──────────────────────────────────────

class StrategistAgent:
    """
    Server side of the strategy service: prompts Claude and decodes the
    reply into strategy records.
    """

    def __init__(
        self,
        anthropic_api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 1500,
    ):
        self.anthropic_api_key = anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")
        self.model = model or os.getenv("STRATEGIST_MODEL", DEFAULT_MODEL)
        self.max_tokens = max_tokens

        # Lazy init API client
        self._anthropic = None

    @property
    def configured(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def anthropic(self):
        if self._anthropic is None:
            from anthropic import AsyncAnthropic
            self._anthropic = AsyncAnthropic(api_key=self.anthropic_api_key)
        return self._anthropic

    async def generate(self, request: dict) -> list[MitigationStrategy]:
        """
        Generate strategies for a service request.

        Raises:
            StrategyServiceError: no API key, API failure, or unparseable reply
        """
        if not self.configured:
            raise StrategyServiceError("Anthropic API key not configured")

        prompt = format_strategy_prompt(request)
        try:
            response = await self.anthropic.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=STRATEGY_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.error("[Strategist] Generation error: %s", e)
            raise StrategyServiceError(f"Strategy generation failed: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in response.content
        ).strip()
        strategies = parse_strategy_text(text)

        logger.info(
            "[Strategist] Generated %d strategies | regions: %d | suppliers: %d | model: %s",
            len(strategies), len(request["regions"]), len(request["affectedSuppliers"]), self.model,
        )
        return strategies
