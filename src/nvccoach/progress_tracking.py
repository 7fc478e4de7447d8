"""Opt-in progress tracking for NVC practice: attempts, streaks, statistics.

Nothing is recorded until the user enables tracking. The whole progress
record lives in one slot of a key-value store and is rewritten after every
change.
"""

from __future__ import annotations

import json
import logging
import math
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable

from .paths import PROGRESS_FILE
from .practice_mode import Difficulty, NVCComponent, PracticeModeType
from .storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "nvc_progress"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _generate_id(timestamp: int) -> str:
    """Generate a unique attempt id."""
    return f"attempt-{timestamp}-{uuid.uuid4().hex[:9]}"


def _optional_enum(enum_cls, value):
    if value is None:
        return None
    return enum_cls(value)


def _require_bool(value, name: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be true or false, got {value!r}")
    return value


def _reject_constant(name: str):
    raise ValueError(f"non-finite number {name}")


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PracticeAttempt:
    """A single practice attempt. Never modified after creation."""

    id: str
    scenario_id: str
    timestamp: int  # milliseconds since epoch
    mode: PracticeModeType
    completed: bool
    focus_component: NVCComponent | None = None
    difficulty: Difficulty | None = None
    rating: int | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "scenarioId": self.scenario_id,
            "timestamp": self.timestamp,
            "mode": self.mode.value,
        }
        if self.focus_component is not None:
            data["focusComponent"] = self.focus_component.value
        if self.difficulty is not None:
            data["difficulty"] = self.difficulty.value
        if self.rating is not None:
            data["rating"] = self.rating
        data["completed"] = self.completed
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PracticeAttempt:
        """Build an attempt from its serialized form.

        Raises:
            KeyError: A required field is missing.
            ValueError: An enum field holds an unknown value.
            TypeError: A field has the wrong shape.
        """
        rating = data.get("rating")
        if isinstance(rating, float) and rating.is_integer():
            rating = int(rating)
        if rating is not None and (isinstance(rating, bool) or not isinstance(rating, int)):
            raise TypeError(f"rating must be a whole number, got {rating!r}")
        return cls(
            id=str(data["id"]),
            scenario_id=str(data["scenarioId"]),
            timestamp=int(data["timestamp"]),
            mode=PracticeModeType(data["mode"]),
            completed=_require_bool(data["completed"], "completed"),
            focus_component=_optional_enum(NVCComponent, data.get("focusComponent")),
            difficulty=_optional_enum(Difficulty, data.get("difficulty")),
            rating=rating,
        )


@dataclass
class ProgressData:
    """The complete persisted progress record."""

    enabled: bool = False
    attempts: list[PracticeAttempt] = field(default_factory=list)
    completed_scenarios: list[str] = field(default_factory=list)
    streak_days: int = 0
    last_practice_date: str | None = None  # YYYY-MM-DD, local time
    total_practice_time: int = 0  # reserved, nothing increments it yet

    @classmethod
    def default(cls) -> ProgressData:
        return cls()

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "attempts": [a.to_dict() for a in self.attempts],
            "completedScenarios": list(self.completed_scenarios),
            "streakDays": self.streak_days,
            "lastPracticeDate": self.last_practice_date,
            "totalPracticeTime": self.total_practice_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ProgressData:
        if not isinstance(data, dict):
            raise TypeError("progress data must be an object")

        raw_attempts = data.get("attempts", [])
        if not isinstance(raw_attempts, list):
            raise TypeError("attempts must be a list")
        raw_completed = data.get("completedScenarios", [])
        if not isinstance(raw_completed, list):
            raise TypeError("completedScenarios must be a list")

        for raw in raw_attempts:
            if not isinstance(raw, dict):
                raise TypeError("each attempt must be an object")

        last_date = data.get("lastPracticeDate")
        return cls(
            enabled=_require_bool(data.get("enabled", False), "enabled"),
            attempts=[PracticeAttempt.from_dict(raw) for raw in raw_attempts],
            completed_scenarios=list(dict.fromkeys(str(s) for s in raw_completed)),
            streak_days=int(data.get("streakDays", 0) or 0),
            last_practice_date=str(last_date) if last_date else None,
            total_practice_time=int(data.get("totalPracticeTime", 0) or 0),
        )


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing serialized progress data."""

    ok: bool
    data: ProgressData | None = None
    error: str = ""

    @classmethod
    def success(cls, data: ProgressData) -> ParseResult:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> ParseResult:
        return cls(ok=False, error=error)


@dataclass(frozen=True)
class ProgressStats:
    """Statistics derived from the attempt history."""

    total_attempts: int
    completed_attempts: int
    completion_rate: int
    average_rating: float
    streak_days: int
    by_component: dict[str, int]
    by_difficulty: dict[str, int]
    by_mode: dict[str, int]

    def to_dict(self) -> dict:
        return {
            "totalAttempts": self.total_attempts,
            "completedAttempts": self.completed_attempts,
            "completionRate": self.completion_rate,
            "averageRating": self.average_rating,
            "streakDays": self.streak_days,
            "byComponent": dict(self.by_component),
            "byDifficulty": dict(self.by_difficulty),
            "byMode": dict(self.by_mode),
        }


def serialize_progress_data(data: ProgressData) -> str:
    """Serialize a progress record to JSON text."""
    return json.dumps(data.to_dict(), ensure_ascii=False)


def parse_progress_data(text: str) -> ParseResult:
    """Parse JSON text into a progress record without raising."""
    try:
        raw = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, TypeError, RecursionError) as e:
        return ParseResult.failure(f"invalid JSON: {e}")
    try:
        return ParseResult.success(ProgressData.from_dict(raw))
    except KeyError as e:
        return ParseResult.failure(f"missing field {e}")
    except (TypeError, ValueError, OverflowError) as e:
        return ParseResult.failure(str(e))


# ---------------------------------------------------------------------------
# Streaks and statistics
# ---------------------------------------------------------------------------

def next_streak(streak_days: int, last_practice_date: str | None, today: date) -> tuple[int, str]:
    """Compute the streak after practising on ``today``.

    Args:
        streak_days: Current streak length.
        last_practice_date: Last practice day as YYYY-MM-DD, or None.
        today: The local calendar date of the new attempt.

    Returns:
        (new streak length, new last practice date).
    """
    today_str = today.isoformat()

    if last_practice_date is None:
        return 1, today_str
    if last_practice_date == today_str:
        return streak_days, last_practice_date
    if last_practice_date == (today - timedelta(days=1)).isoformat():
        return streak_days + 1, today_str
    # Missed a day, or the stored date is in the future
    return 1, today_str


def compute_stats(data: ProgressData) -> ProgressStats:
    """Compute statistics over every recorded attempt."""
    attempts = data.attempts
    completed = sum(1 for a in attempts if a.completed)
    ratings = [a.rating for a in attempts if a.rating is not None]

    by_component: dict[str, int] = {}
    by_difficulty: dict[str, int] = {}
    by_mode: dict[str, int] = {}

    for attempt in attempts:
        if attempt.focus_component is not None:
            key = attempt.focus_component.value
            by_component[key] = by_component.get(key, 0) + 1
        if attempt.difficulty is not None:
            key = attempt.difficulty.value
            by_difficulty[key] = by_difficulty.get(key, 0) + 1
        by_mode[attempt.mode.value] = by_mode.get(attempt.mode.value, 0) + 1

    completion_rate = int(_round_half_up(completed / len(attempts) * 100)) if attempts else 0
    average_rating = _round_half_up(sum(ratings) / len(ratings), 1) if ratings else 0.0

    return ProgressStats(
        total_attempts=len(attempts),
        completed_attempts=completed,
        completion_rate=completion_rate,
        average_rating=average_rating,
        streak_days=data.streak_days,
        by_component=by_component,
        by_difficulty=by_difficulty,
        by_mode=by_mode,
    )


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

class ProgressTracker:
    """Owns the progress record and persists it after every change.

    Calls are not synchronized. Two trackers sharing one store each keep
    their own copy of the record, and whichever writes last wins.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        storage_key: str = STORAGE_KEY,
        today: Callable[[], date] | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self._store = store
        self._storage_key = storage_key
        self._today = today or date.today
        self._clock = clock or _now_ms
        self._data = self._load()

    def _load(self) -> ProgressData:
        if self._store is None:
            return ProgressData.default()
        try:
            stored = self._store.get(self._storage_key)
        except OSError as e:
            logger.warning("Progress store unavailable, starting fresh: %s", e)
            return ProgressData.default()
        if not stored:
            return ProgressData.default()

        result = parse_progress_data(stored)
        if not result.ok:
            logger.warning("Ignoring unreadable progress data: %s", result.error)
            return ProgressData.default()
        return result.data

    def _save(self) -> None:
        if self._store is None:
            return
        try:
            self._store.set(self._storage_key, serialize_progress_data(self._data))
        except OSError as e:
            logger.warning("Could not persist progress, keeping it in memory: %s", e)

    def _update_streak(self) -> None:
        self._data.streak_days, self._data.last_practice_date = next_streak(
            self._data.streak_days,
            self._data.last_practice_date,
            self._today(),
        )

    def is_enabled(self) -> bool:
        return self._data.enabled

    def enable(self) -> None:
        """Opt in to progress tracking."""
        self._data.enabled = True
        self._save()

    def disable(self, clear_data: bool = False) -> None:
        """Opt out of progress tracking.

        Args:
            clear_data: Also discard every attempt, completion and streak.
        """
        self._data.enabled = False
        if clear_data:
            self._data = ProgressData.default()
        self._save()

    def record_attempt(
        self,
        scenario_id: str,
        mode: PracticeModeType | str,
        completed: bool,
        *,
        focus_component: NVCComponent | str | None = None,
        difficulty: Difficulty | str | None = None,
        rating: int | None = None,
    ) -> PracticeAttempt | None:
        """Record a practice attempt and update the streak.

        Does nothing while tracking is disabled.

        Returns:
            The recorded attempt, or None when tracking is disabled.
        """
        if not self._data.enabled:
            return None

        timestamp = self._clock()
        attempt = PracticeAttempt(
            id=_generate_id(timestamp),
            scenario_id=scenario_id,
            timestamp=timestamp,
            mode=PracticeModeType(mode),
            completed=completed,
            focus_component=_optional_enum(NVCComponent, focus_component),
            difficulty=_optional_enum(Difficulty, difficulty),
            rating=rating,
        )
        self._data.attempts.append(attempt)

        if completed and scenario_id not in self._data.completed_scenarios:
            self._data.completed_scenarios.append(scenario_id)

        self._update_streak()
        self._save()
        return attempt

    def get_attempts(self) -> list[PracticeAttempt]:
        return list(self._data.attempts)

    def get_completed_scenarios(self) -> list[str]:
        return list(self._data.completed_scenarios)

    def get_streak(self) -> int:
        return self._data.streak_days

    def get_stats(self) -> ProgressStats:
        return compute_stats(self._data)

    def is_scenario_completed(self, scenario_id: str) -> bool:
        return scenario_id in self._data.completed_scenarios

    def get_attempts_for_scenario(self, scenario_id: str) -> list[PracticeAttempt]:
        return [a for a in self._data.attempts if a.scenario_id == scenario_id]

    def export_data(self) -> str:
        """Export the full progress record as JSON text."""
        return serialize_progress_data(self._data)

    def import_data(self, text: str) -> bool:
        """Replace the progress record with previously exported data.

        Invalid data leaves the current record untouched and raises nothing.

        Returns:
            True if the data was imported.
        """
        result = parse_progress_data(text)
        if not result.ok:
            logger.warning("Progress import ignored: %s", result.error)
            return False
        self._data = result.data
        self._save()
        return True


def open_progress_tracker(storage_key: str = STORAGE_KEY) -> ProgressTracker:
    """Open the tracker backed by the progress file in the data directory."""
    return ProgressTracker(JsonFileStore(PROGRESS_FILE), storage_key=storage_key)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def _format_counts(counts: dict[str, int]) -> str:
    if not counts:
        return "none yet"
    return ", ".join(f"{name} {count}" for name, count in counts.items())


def format_stats_text(stats: ProgressStats, enabled: bool = True) -> str:
    """Format progress statistics as plain text."""
    lines = ["NVC Practice Progress", "=" * 40]
    if not enabled:
        lines.append("Tracking is off. Enable it to record your practice.")

    if stats.total_attempts == 0:
        lines.append("No practice recorded yet.")
        return "\n".join(lines)

    lines.append(f"  Attempts:        {stats.total_attempts} ({stats.completed_attempts} completed)")
    lines.append(f"  Completion rate: {stats.completion_rate}%")
    if stats.average_rating:
        lines.append(f"  Average rating:  {stats.average_rating:.1f}")
    day_word = "day" if stats.streak_days == 1 else "days"
    lines.append(f"  Streak:          {stats.streak_days} {day_word}")
    lines.append("")
    lines.append(f"  By component:  {_format_counts(stats.by_component)}")
    lines.append(f"  By difficulty: {_format_counts(stats.by_difficulty)}")
    lines.append(f"  By mode:       {_format_counts(stats.by_mode)}")
    return "\n".join(lines)
