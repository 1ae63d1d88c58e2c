"""
Stats aggregator for deriving learning metrics from a card collection.

This is a pure computation module with no I/O.
"""

import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime

from mneme.application.retention import RetentionModel
from mneme.domain.constants import (
    ACTIVITY_WINDOW_DAYS,
    DAILY_REVIEW_LOAD_FACTOR,
    MAX_DAILY_REVIEWS,
    MIN_DAILY_REVIEWS,
)
from mneme.domain.models import CardReviewState, ReviewEvent
from mneme.domain.stats.models import (
    CardRetention,
    LearningStats,
    RetentionSnapshot,
    ReviewActivity,
    StatsThresholds,
)


def recommended_daily_reviews(total_cards: int, learning_efficiency: float) -> int:
    load = math.ceil(total_cards * (1 - learning_efficiency) * DAILY_REVIEW_LOAD_FACTOR)
    return max(MIN_DAILY_REVIEWS, min(MAX_DAILY_REVIEWS, load))


def learning_efficiency(mastered: int, struggling: int) -> float:
    """Share of classified cards that are mastered; 0 when nothing is classified."""
    denominator = mastered + struggling
    if denominator == 0:
        return 0.0
    return mastered / denominator


class StatsAggregator:
    """
    Computes summary metrics from card snapshots and the review log.

    Stateless and side-effect free. Never raises on empty input.
    """

    def __init__(
        self,
        thresholds: StatsThresholds | None = None,
        retention_model: RetentionModel | None = None,
    ):
        self.thresholds = thresholds or StatsThresholds()
        self._retention = retention_model or RetentionModel()

    def is_mastered(self, card: CardReviewState) -> bool:
        t = self.thresholds
        return (
            card.repetition_count >= t.mastered_repetitions
            and card.mastery_level >= t.mastered_level
        )

    def is_struggling(self, card: CardReviewState) -> bool:
        t = self.thresholds
        return (
            card.easiness_factor < t.struggling_easiness
            and card.repetition_count >= t.struggling_repetitions
        )

    def compute_stats(
        self,
        cards: Sequence[CardReviewState],
        as_of: datetime,
        reviews: Iterable[ReviewEvent] = (),
    ) -> LearningStats:
        """
        Summarize a card collection as of a point in time.

        Args:
            cards: Snapshot of the owner's cards.
            as_of: Reference time for due counts and retention.
            reviews: The owner's review log, for activity metrics.
        """
        reviews = list(reviews)
        total = len(cards)

        due = mastered = struggling = learning = new = 0
        retention_sum = 0.0
        reviewed = 0
        ef_sum = 0.0

        for card in cards:
            ef_sum += card.easiness_factor
            if card.is_due(as_of):
                due += 1
            if self.is_struggling(card):
                struggling += 1

            if self.is_mastered(card):
                mastered += 1
            elif card.is_new:
                new += 1
            else:
                learning += 1

            # Unreviewed cards are excluded from the average, not counted as zero
            if not card.is_new:
                retention_sum += self._retention.current_retention(card, as_of)
                reviewed += 1

        efficiency = learning_efficiency(mastered, struggling)

        return LearningStats(
            total_cards=total,
            due_count=due,
            mastered_count=mastered,
            struggling_count=struggling,
            learning_count=learning,
            new_count=new,
            average_retention=retention_sum / reviewed if reviewed else 0.0,
            average_easiness_factor=ef_sum / total if total else 0.0,
            learning_efficiency=efficiency,
            recommended_daily_reviews=recommended_daily_reviews(total, efficiency),
            total_reviews=len(reviews),
            activity=self.compute_activity(reviews, as_of),
        )

    def compute_activity(self, reviews: Iterable[ReviewEvent], as_of: datetime) -> ReviewActivity:
        """
        Count reviews per calendar day (in as_of's timezone).

        The streak counts consecutive days with at least one review, ending
        today, or yesterday when nothing has been reviewed yet today.
        """
        today = as_of.date()
        per_day: dict[int, int] = defaultdict(int)

        for review in reviews:
            day = review.reviewed_at.astimezone(as_of.tzinfo).date()
            days_ago = (today - day).days
            if days_ago >= 0:
                per_day[days_ago] += 1

        streak = 0
        start = 0 if per_day.get(0) else 1
        while per_day.get(start + streak):
            streak += 1

        return ReviewActivity(
            reviews_today=per_day.get(0, 0),
            reviews_yesterday=per_day.get(1, 0),
            reviews_last_7_days=[per_day.get(i, 0) for i in range(ACTIVITY_WINDOW_DAYS)],
            streak_days=streak,
        )

    def build_retention_snapshot(
        self, cards: Sequence[CardReviewState], as_of: datetime
    ) -> RetentionSnapshot:
        """
        Per-card retention estimates with overall and per-topic averages.
        """
        if not cards:
            return RetentionSnapshot()

        items: list[CardRetention] = []
        topic_totals: dict[str, list[float]] = defaultdict(list)

        for card in cards:
            value = self._retention.current_retention(card, as_of)
            items.append(
                CardRetention(
                    card_id=card.card_id,
                    retention=value,
                    days_since_review=self._retention.days_since_review(card, as_of),
                    topic_id=card.topic_id,
                    front=card.front or None,
                )
            )
            if card.topic_id:
                topic_totals[card.topic_id].append(value)

        values = [item.retention for item in items]
        return RetentionSnapshot(
            items=items,
            average_retention=sum(values) / len(values),
            lowest_retention=min(values),
            retention_by_topic={
                topic: sum(vals) / len(vals) for topic, vals in topic_totals.items()
            },
        )
