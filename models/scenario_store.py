"""
Scenario Store
===============

Saved scenarios persisted as one JSON file, keyed by scenario id:

    {"<id>": {id, name, timestamp, config, regions, results}, ...}

Each save rewrites the whole file. Intended for a single writer (the CLI
or one service process).
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from models.scenario import SimulationScenario

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = "outputs/saved_scenarios.json"


@dataclass
class SavedScenario:
    id: str
    name: str
    config: dict
    regions: list = field(default_factory=list)
    results: Optional[dict] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_scenario(self) -> SimulationScenario:
        return SimulationScenario.from_dict(self.config)


class ScenarioStore:

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or os.getenv("SCENARIO_STORE_PATH") or DEFAULT_STORE_PATH)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            return json.load(f)

    def _write(self, records: dict):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(records, f, indent=2, default=str)

    def save(self, scenario: SimulationScenario, results: Optional[dict] = None) -> SavedScenario:
        """Insert or replace the record for scenario.id."""
        config = scenario.to_dict()
        saved = SavedScenario(
            id=scenario.id,
            name=scenario.name,
            config=config,
            regions=config["affectedRegions"],
            results=results,
        )
        records = self._read()
        records[saved.id] = asdict(saved)
        self._write(records)
        logger.info("[ScenarioStore] Saved '%s' (%s)", saved.name, saved.id)
        return saved

    def list(self) -> list[SavedScenario]:
        """All saved scenarios, newest first."""
        saved = [SavedScenario(**r) for r in self._read().values()]
        return sorted(saved, key=lambda s: s.timestamp, reverse=True)

    def get(self, scenario_id: str) -> Optional[SavedScenario]:
        record = self._read().get(scenario_id)
        return SavedScenario(**record) if record else None

    def delete(self, scenario_id: str) -> bool:
        records = self._read()
        if records.pop(scenario_id, None) is None:
            return False
        self._write(records)
        return True
