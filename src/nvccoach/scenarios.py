"""Scenario catalog loading and selection."""

from __future__ import annotations

import json
import logging
import random
import re
from pathlib import Path

from .paths import SCENARIOS_FILE
from .practice_mode import PracticeMode, ScenarioFilter, filter_scenarios

logger = logging.getLogger(__name__)


def load_scenarios(path: Path | str | None = None) -> list[dict]:
    """Load a scenario catalog from a JSON list.

    Args:
        path: Catalog file (defaults to the bundled catalog).

    Returns:
        Scenario records. A missing or corrupt file gives an empty list.
    """
    path = Path(path) if path is not None else SCENARIOS_FILE
    if not path.exists():
        return []
    try:
        with open(path, encoding="utf-8-sig") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        logger.warning("Could not read scenario catalog %s: %s", path, e)
        return []
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


def scenario_id(scenario: dict) -> str:
    """Stable id for a scenario: its ``id`` or a slug of its title."""
    if scenario.get("id"):
        return str(scenario["id"])
    slug = re.sub(r"[^a-z0-9]+", "-", str(scenario.get("title", "")).lower()).strip("-")
    return slug or "scenario"


def criteria_for(practice_mode: PracticeMode) -> ScenarioFilter:
    """Scenario filter matching the detected practice settings."""
    return ScenarioFilter(
        difficulty=practice_mode.difficulty,
        focus_component=practice_mode.focus_component,
        conversation_mode=practice_mode.conversation_mode,
    )


def pick_scenario(
    scenarios: list[dict],
    practice_mode: PracticeMode,
    rng: random.Random | None = None,
) -> dict | None:
    """Pick one random scenario matching the practice settings."""
    matches = filter_scenarios(scenarios, criteria_for(practice_mode))
    if not matches:
        return None
    return (rng or random).choice(matches)
