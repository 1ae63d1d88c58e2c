"""
Study schedule optimizer for time-boxed review sessions.

Builds a study plan by:
1. Scoring due cards by urgency (low retention, long overdue)
2. Cutting nested prefix batches that fit fixed time budgets
3. Suggesting study slots from the user's available time windows
"""

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from mneme.application.retention import RetentionModel, days_between
from mneme.application.scheduling import validate_timestamp
from mneme.domain.constants import (
    MAX_FOCUS_TOPICS,
    OVERDUE_WEIGHT_PER_DAY,
    QUICK_BATCH_MINUTES,
    STANDARD_BATCH_MINUTES,
    TIME_WINDOW_SLOTS,
)
from mneme.domain.models import CardReviewState
from mneme.domain.schedule.models import (
    OptimalStudyTime,
    StudyBatch,
    StudyInsights,
    StudyPreferences,
    StudySchedule,
    TimeWindow,
    TopicRetention,
)

logger = logging.getLogger(__name__)

WINDOW_ORDER = (TimeWindow.MORNING, TimeWindow.AFTERNOON, TimeWindow.EVENING)


@dataclass(frozen=True)
class RankedCard:
    """A due card with its urgency score."""

    card: CardReviewState
    retention: float
    urgency: float


def urgency_score(retention: float, card: CardReviewState, now: datetime) -> float:
    """(1 - retention) * 100 plus a bonus per day overdue."""
    days_overdue = max(0.0, days_between(card.next_review_at, now))
    return (1.0 - retention) * 100.0 + days_overdue * OVERDUE_WEIGHT_PER_DAY


def format_slot_label(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    display = hour % 12 or 12
    return f"{display}:00 {suffix}"


class StudyScheduleOptimizer:
    """
    Turns due cards into ranked, time-boxed study batches and study slots.

    Stateless and side-effect free. Returns an empty-but-valid schedule when
    nothing is due.
    """

    def __init__(self, retention_model: RetentionModel | None = None):
        self._retention = retention_model or RetentionModel()

    def rank(
        self,
        due_cards: Sequence[CardReviewState],
        retention_by_card: Mapping[str, float],
        now: datetime,
    ) -> list[RankedCard]:
        """
        Sort cards by urgency, most urgent first.

        Cards missing from retention_by_card get a fresh estimate.
        Ties break by earlier due date, then card id.
        """
        ranked = []
        for card in due_cards:
            value = retention_by_card.get(card.card_id)
            if value is None:
                value = self._retention.current_retention(card, now)
            ranked.append(RankedCard(card, value, urgency_score(value, card, now)))

        ranked.sort(key=lambda r: (-r.urgency, r.card.next_review_at, r.card.card_id))
        return ranked

    def build_batches(
        self, ranked: Sequence[RankedCard], preferences: StudyPreferences
    ) -> list[StudyBatch]:
        """
        Nested prefix batches: quick, standard and focus.

        A batch is only emitted when it holds more cards than the previous one.
        """
        per_card = preferences.minutes_per_card
        card_ids = [r.card.card_id for r in ranked]
        batches: list[StudyBatch] = []
        previous_size = 0

        specs = [
            ("Quick Review", QUICK_BATCH_MINUTES, "high"),
            ("Standard Session", STANDARD_BATCH_MINUTES, "medium"),
            ("Focus Session", preferences.max_session_minutes, "low"),
        ]
        for name, budget, priority in specs:
            size = min(budget // per_card, len(card_ids))
            if size <= 0 or size <= previous_size:
                continue

            duration = size * per_card
            if name == "Quick Review":
                description = f"Quick {duration}-minute review of the most urgent cards"
            elif name == "Standard Session":
                description = f"Review {size} cards due today"
            else:
                description = "Deep dive on the lowest-retention cards"

            batches.append(
                StudyBatch(
                    name=name,
                    duration_minutes=duration,
                    description=description,
                    card_ids=tuple(card_ids[:size]),
                    priority=priority,
                )
            )
            previous_size = size

        return batches

    def optimal_times(
        self, windows: frozenset[TimeWindow], now: datetime
    ) -> list[OptimalStudyTime]:
        """
        One slot per available window; the next slot not yet passed is recommended.

        If every slot has passed, the earliest window is suggested for tomorrow.
        """
        times: list[OptimalStudyTime] = []
        recommended_taken = False

        for window in WINDOW_ORDER:
            if window not in windows:
                continue
            hour, expected, priority = TIME_WINDOW_SLOTS[window.value]
            starts_at = now.replace(hour=hour, minute=0, second=0, microsecond=0)
            recommended = not recommended_taken and starts_at >= now
            recommended_taken = recommended_taken or recommended
            times.append(
                OptimalStudyTime(
                    label=format_slot_label(hour),
                    starts_at=starts_at,
                    expected_retention=expected,
                    recommended=recommended,
                    priority=priority,
                    window=window,
                )
            )

        if not recommended_taken:
            first = next((w for w in WINDOW_ORDER if w in windows), TimeWindow.MORNING)
            hour, expected, priority = TIME_WINDOW_SLOTS[first.value]
            tomorrow = now.replace(hour=hour, minute=0, second=0, microsecond=0) + timedelta(
                days=1
            )
            times.append(
                OptimalStudyTime(
                    label=f"{format_slot_label(hour)} (tomorrow)",
                    starts_at=tomorrow,
                    expected_retention=expected,
                    recommended=True,
                    priority=priority,
                    window=first,
                )
            )

        return times

    def build_insights(
        self,
        ranked: Sequence[RankedCard],
        retention_by_card: Mapping[str, float],
        preferences: StudyPreferences,
        topic_retention: Mapping[str, float] | None = None,
    ) -> StudyInsights:
        insights = StudyInsights()

        values = list(retention_by_card.values()) or [r.retention for r in ranked]
        if values:
            average = sum(values) / len(values)
            target = preferences.target_retention
            if average >= target:
                insights.ideal_interval_hours = 48
            elif average >= target - 0.2:
                insights.ideal_interval_hours = 24
            else:
                insights.ideal_interval_hours = 12

        due = len(ranked)
        if due > 50:
            insights.recommended_sessions_per_week = 7
        elif due > 20:
            insights.recommended_sessions_per_week = 5
        else:
            insights.recommended_sessions_per_week = 3

        if topic_retention is None:
            grouped: dict[str, list[float]] = defaultdict(list)
            for r in ranked:
                if r.card.topic_id:
                    grouped[r.card.topic_id].append(r.retention)
            topic_retention = {t: sum(v) / len(v) for t, v in grouped.items()}

        insights.focus_topics = [
            TopicRetention(topic_id=topic, retention=value)
            for topic, value in sorted(topic_retention.items(), key=lambda kv: (kv[1], kv[0]))
        ][:MAX_FOCUS_TOPICS]
        insights.cards_below_target = sum(
            1 for r in ranked if r.retention < preferences.target_retention
        )
        return insights

    def build_schedule(
        self,
        due_cards: Sequence[CardReviewState],
        retention_by_card: Mapping[str, float],
        preferences: StudyPreferences | None,
        now: datetime,
        topic_retention: Mapping[str, float] | None = None,
    ) -> StudySchedule:
        """
        Build the full study schedule.

        Args:
            due_cards: Cards currently due.
            retention_by_card: Retention estimates keyed by card id.
            preferences: User time preferences; defaults when None.
            now: Timezone-aware reference time.
            topic_retention: Optional per-topic averages for focus topics.
        """
        validate_timestamp(now, "now")
        prefs = preferences or StudyPreferences()

        optimal_times = self.optimal_times(prefs.available_time_windows, now)
        ranked = self.rank(due_cards, retention_by_card, now)
        insights = self.build_insights(ranked, retention_by_card, prefs, topic_retention)

        batches = self.build_batches(ranked, prefs) if ranked else []
        if not batches:
            # Nothing fits a session, so there is nothing to remind about
            return StudySchedule(optimal_times=optimal_times, batches=[], insights=insights)

        notifications = [slot.label for slot in optimal_times if slot.recommended]
        logger.debug(
            f"Built schedule: {len(ranked)} due, {len(batches)} batches, "
            f"notify at {notifications}"
        )
        return StudySchedule(
            optimal_times=optimal_times,
            batches=batches,
            insights=insights,
            notifications=notifications,
        )
