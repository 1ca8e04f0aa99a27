"""
Simulation Engine Exceptions
=============================

Every error the engine raises derives from SimulationError so callers can
tell a failed run apart from a run that merely produced fallback output.
"""


class SimulationError(Exception):
    """Base class for disruption simulation failures."""


class ScenarioValidationError(SimulationError, ValueError):
    """Scenario configuration violates an invariant (raised at construction)."""


class UnknownComponentError(SimulationError, KeyError):
    """An affected supplier or route ID has no reference record."""

    def __init__(self, kind: str, component_id: str):
        self.kind = kind
        self.component_id = component_id
        super().__init__(f"Unknown {kind} '{component_id}' in reference network")

    def __str__(self):
        return self.args[0]


class StrategyServiceError(SimulationError):
    """The mitigation strategy service could not produce strategies."""


class StrategyParseError(StrategyServiceError):
    """No strategy could be extracted from the generated text."""
