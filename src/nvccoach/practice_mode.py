"""Practice mode detection and scenario filtering.

Detection is plain keyword and pattern matching. It decides whether a chat
message should switch the assistant into a structured practice or
translation exercise before the model is called.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class PracticeModeType(str, Enum):
    PRACTICE = "practice"
    TRANSLATE = "translate"


class NVCComponent(str, Enum):
    OBSERVATIONS = "observations"
    FEELINGS = "feelings"
    NEEDS = "needs"
    REQUESTS = "requests"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ConversationMode(str, Enum):
    SINGLE = "single"
    MULTI = "multi"


PRACTICE_KEYWORDS = ("practice", "scenario")
TRANSLATE_KEYWORDS = ("translate", "transform")

# Checked in order; the first match wins.
COMPONENT_PATTERNS: tuple[tuple[NVCComponent, re.Pattern[str]], ...] = (
    (NVCComponent.OBSERVATIONS, re.compile(r"\bobservation")),
    (NVCComponent.FEELINGS, re.compile(r"\bfeelings?\b")),
    (NVCComponent.NEEDS, re.compile(r"\bneeds?\b")),
    (NVCComponent.REQUESTS, re.compile(r"\brequests?\b")),
)

MULTI_TURN_KEYWORDS = ("multi-turn", "multi turn")
SINGLE_KEYWORDS = ("single", "quick")


@dataclass(frozen=True)
class PracticeMode:
    """Result of detecting practice mode from a user message."""

    is_practice_mode: bool
    mode: PracticeModeType | None = None
    focus_component: NVCComponent | None = None
    difficulty: Difficulty | None = None
    conversation_mode: ConversationMode | None = None

    def to_dict(self) -> dict:
        """Serialize, leaving out fields that were not detected."""
        data: dict[str, Any] = {"isPracticeMode": self.is_practice_mode}
        if self.mode is not None:
            data["mode"] = self.mode.value
        if self.focus_component is not None:
            data["focusComponent"] = self.focus_component.value
        if self.difficulty is not None:
            data["difficulty"] = self.difficulty.value
        if self.conversation_mode is not None:
            data["conversationMode"] = self.conversation_mode.value
        return data


@dataclass(frozen=True)
class ScenarioFilter:
    """Criteria for scenario selection. Unset fields match everything."""

    difficulty: str | None = None
    focus_component: str | None = None
    conversation_mode: str | None = None


def _detect_component(text: str) -> NVCComponent | None:
    for component, pattern in COMPONENT_PATTERNS:
        if pattern.search(text):
            return component
    return None


def _detect_difficulty(text: str) -> Difficulty | None:
    for level in (Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED):
        if level.value in text:
            return level
    return None


def _detect_conversation_mode(text: str) -> ConversationMode | None:
    if any(keyword in text for keyword in MULTI_TURN_KEYWORDS):
        return ConversationMode.MULTI
    if any(keyword in text for keyword in SINGLE_KEYWORDS):
        return ConversationMode.SINGLE
    return None


def detect_practice_mode(message: str | None) -> PracticeMode:
    """Detect whether a message asks for a practice or translation exercise.

    Args:
        message: The user's input message.

    Returns:
        PracticeMode with the detected settings. Non-practice messages get
        ``is_practice_mode=False`` and nothing else.
    """
    text = (message or "").lower()

    is_practice = any(keyword in text for keyword in PRACTICE_KEYWORDS)
    is_translate = any(keyword in text for keyword in TRANSLATE_KEYWORDS)

    if not (is_practice or is_translate):
        return PracticeMode(is_practice_mode=False)

    return PracticeMode(
        is_practice_mode=True,
        mode=PracticeModeType.TRANSLATE if is_translate else PracticeModeType.PRACTICE,
        focus_component=_detect_component(text),
        difficulty=_detect_difficulty(text),
        conversation_mode=_detect_conversation_mode(text),
    )


def _criterion(value: str | Enum | None) -> str | None:
    if isinstance(value, Enum):
        return value.value
    return value or None


def filter_scenarios(
    scenarios: Iterable[dict],
    criteria: ScenarioFilter,
) -> list[dict]:
    """Return the scenarios matching every set criterion, in input order.

    Args:
        scenarios: Scenario records with ``difficulty``, ``focus_component``
            and ``mode`` fields.
        criteria: Filter criteria; comparisons are exact string equality.
    """
    checks = [
        ("difficulty", _criterion(criteria.difficulty)),
        ("focus_component", _criterion(criteria.focus_component)),
        ("mode", _criterion(criteria.conversation_mode)),
    ]
    checks = [(field_name, value) for field_name, value in checks if value is not None]

    return [
        scenario for scenario in scenarios
        if all(scenario.get(field_name) == value for field_name, value in checks)
    ]
