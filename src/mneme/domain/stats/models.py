"""
Domain models for learning statistics.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field

from mneme.domain.constants import (
    MASTERED_MIN_LEVEL,
    MASTERED_MIN_REPETITIONS,
    MIN_DAILY_REVIEWS,
    STRUGGLING_MAX_EASINESS,
    STRUGGLING_MIN_REPETITIONS,
)


@dataclass(frozen=True)
class StatsThresholds:
    """
    Cut-offs used to classify cards as mastered or struggling.

    A card is mastered when repetition_count >= mastered_repetitions and
    mastery_level >= mastered_level. It is struggling when
    easiness_factor < struggling_easiness and repetition_count >= struggling_repetitions.
    """

    mastered_repetitions: int = MASTERED_MIN_REPETITIONS
    mastered_level: float = MASTERED_MIN_LEVEL
    struggling_easiness: float = STRUGGLING_MAX_EASINESS
    struggling_repetitions: int = STRUGGLING_MIN_REPETITIONS


@dataclass(frozen=True)
class CardRetention:
    """Current retention estimate for one card."""

    card_id: str
    retention: float
    days_since_review: float
    topic_id: str | None = None
    front: str | None = None


@dataclass
class RetentionSnapshot:
    """Point-in-time retention view over a card collection."""

    items: list[CardRetention] = field(default_factory=list)
    average_retention: float = 0.0
    lowest_retention: float = 0.0
    retention_by_topic: dict[str, float] = field(default_factory=dict)

    def by_card(self) -> dict[str, float]:
        return {item.card_id: item.retention for item in self.items}


@dataclass
class ReviewActivity:
    """Review counts derived from the review log."""

    reviews_today: int = 0
    reviews_yesterday: int = 0
    reviews_last_7_days: list[int] = field(default_factory=lambda: [0] * 7)  # [0] = today
    streak_days: int = 0


@dataclass
class LearningStats:
    """Summary metrics for one user's card collection."""

    total_cards: int = 0
    due_count: int = 0
    mastered_count: int = 0
    struggling_count: int = 0
    learning_count: int = 0
    new_count: int = 0
    average_retention: float = 0.0
    average_easiness_factor: float = 0.0
    learning_efficiency: float = 0.0
    recommended_daily_reviews: int = MIN_DAILY_REVIEWS
    total_reviews: int = 0
    activity: ReviewActivity = field(default_factory=ReviewActivity)
