"""
Domain models for study schedules.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from mneme.domain.constants import (
    DEFAULT_MAX_SESSION_MINUTES,
    DEFAULT_MINUTES_PER_CARD,
    DEFAULT_TARGET_RETENTION,
)
from mneme.domain.errors import ValidationError


class TimeWindow(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


def _default_windows() -> frozenset[TimeWindow]:
    return frozenset({TimeWindow.MORNING, TimeWindow.EVENING})


@dataclass(frozen=True)
class StudyPreferences:
    """
    User time preferences for study sessions.

    Attributes:
        available_time_windows: Parts of the day the user can study.
        max_session_minutes: Upper bound for the longest (focus) session.
        target_retention: Retention the user aims to keep cards above (0.0-1.0).
        minutes_per_card: Estimated time cost of reviewing one card.
    """

    available_time_windows: frozenset[TimeWindow] = field(default_factory=_default_windows)
    max_session_minutes: int = DEFAULT_MAX_SESSION_MINUTES
    target_retention: float = DEFAULT_TARGET_RETENTION
    minutes_per_card: int = DEFAULT_MINUTES_PER_CARD

    def __post_init__(self):
        try:
            windows = frozenset(TimeWindow(w) for w in self.available_time_windows)
        except ValueError as e:
            raise ValidationError(f"Unknown time window: {e}") from e
        object.__setattr__(self, "available_time_windows", windows)

        if self.max_session_minutes <= 0:
            raise ValidationError("max_session_minutes must be positive")
        if self.minutes_per_card <= 0:
            raise ValidationError("minutes_per_card must be positive")
        if not 0.0 < self.target_retention <= 1.0:
            raise ValidationError("target_retention must be in (0, 1]")


@dataclass(frozen=True)
class StudyBatch:
    """A time-boxed prefix of the urgency-ranked due cards."""

    name: str
    duration_minutes: int
    description: str
    card_ids: tuple[str, ...]
    priority: str

    @property
    def count(self) -> int:
        return len(self.card_ids)


@dataclass(frozen=True)
class OptimalStudyTime:
    """A suggested study slot."""

    label: str  # e.g. "9:00 AM" or "9:00 AM (tomorrow)"
    starts_at: datetime
    expected_retention: int  # percent
    recommended: bool
    priority: str
    window: TimeWindow


@dataclass(frozen=True)
class TopicRetention:
    topic_id: str
    retention: float


@dataclass
class StudyInsights:
    ideal_interval_hours: int = 24
    recommended_sessions_per_week: int = 3
    focus_topics: list[TopicRetention] = field(default_factory=list)
    cards_below_target: int = 0


@dataclass(frozen=True)
class NotificationPlan:
    """What the reminder scheduler needs: when to notify and which cards to show."""

    owner_id: str
    times: list[str]
    batches: list[list[str]]

    def to_payload(self) -> dict[str, Any]:
        return {"owner_id": self.owner_id, "times": self.times, "batches": self.batches}


@dataclass
class StudySchedule:
    """Optimized study plan: slots, nested batches, insights and notification times."""

    optimal_times: list[OptimalStudyTime] = field(default_factory=list)
    batches: list[StudyBatch] = field(default_factory=list)
    insights: StudyInsights = field(default_factory=StudyInsights)
    notifications: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.batches

    def notification_plan(self, owner_id: str) -> NotificationPlan:
        return NotificationPlan(
            owner_id=owner_id,
            times=list(self.notifications),
            batches=[list(batch.card_ids) for batch in self.batches],
        )
