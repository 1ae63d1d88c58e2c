"""
Domain models for card scheduling state and the review log.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from .constants import INITIAL_EASINESS_FACTOR
from .errors import MnemeError

T = TypeVar("T")


@dataclass(frozen=True)
class CardReviewState:
    """
    Scheduling state for a single flashcard.

    Attributes:
        card_id: Stable card identifier.
        owner_id: The user who owns the card.
        topic_id: Optional topic grouping.
        repetition_count: Consecutive successful reviews since the last lapse.
        easiness_factor: SM-2 interval multiplier (never below 1.3).
        next_review_at: When the card becomes due.
        last_reviewed_at: Time of the most recent review, None if never reviewed.
        last_retention: Retention estimate recorded at the last review (0.0-1.0).
        mastery_level: Long-term proficiency indicator (0.0-1.0).
        created_at: When the card was authored.
        last_rating: Difficulty rating given at the last review (1-5).
    """

    card_id: str
    owner_id: str
    next_review_at: datetime
    created_at: datetime
    topic_id: str | None = None
    repetition_count: int = 0
    easiness_factor: float = INITIAL_EASINESS_FACTOR
    last_reviewed_at: datetime | None = None
    last_retention: float = 0.0
    mastery_level: float = 0.0
    last_rating: int | None = None

    # Content (opaque to the engine)
    front: str = ""
    back: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        card_id: str,
        owner_id: str,
        now: datetime,
        front: str = "",
        back: str = "",
        topic_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "CardReviewState":
        """A freshly authored card, due immediately."""
        return cls(
            card_id=card_id,
            owner_id=owner_id,
            topic_id=topic_id,
            next_review_at=now,
            created_at=now,
            front=front,
            back=back,
            metadata=dict(metadata or {}),
        )

    @property
    def is_new(self) -> bool:
        return self.last_reviewed_at is None

    def is_due(self, as_of: datetime) -> bool:
        return self.next_review_at <= as_of


@dataclass(frozen=True)
class ReviewEvent:
    """
    A single, immutable review log entry.

    Attributes:
        event_id: Unique id of the log entry.
        card_id: The card that was reviewed.
        owner_id: Owner of the card.
        rating: Difficulty rating (1=forgotten ... 5=perfect recall).
        retention: Estimated retention at the moment of review.
        reviewed_at: When the review happened.
        interval_days: Interval assigned by this review.
    """

    event_id: str
    card_id: str
    owner_id: str
    rating: int
    retention: float
    reviewed_at: datetime
    interval_days: int


@dataclass
class ReviewResult:
    """Outcome of recording a review: either the updated card or the error."""

    ok: bool
    card: CardReviewState | None = None
    event: ReviewEvent | None = None
    error: MnemeError | None = None

    @classmethod
    def success(cls, card: CardReviewState, event: ReviewEvent) -> "ReviewResult":
        return cls(ok=True, card=card, event=event)

    @classmethod
    def failure(cls, error: MnemeError) -> "ReviewResult":
        return cls(ok=False, error=error)


@dataclass
class Result(Generic[T]):
    """Outcome of a fallible read or authoring operation: the value or the error."""

    ok: bool
    value: T | None = None
    error: MnemeError | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: MnemeError) -> "Result[T]":
        return cls(ok=False, error=error)
