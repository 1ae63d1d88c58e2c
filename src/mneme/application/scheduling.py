"""
Modified SM-2 scheduling.

Turns a review outcome into the card's next schedule. Intervals are
1 day after the first successful review, 6 days after the second, and
previous_interval * EF afterwards, where the previous interval is the real
time elapsed since the last review.

This is a pure computation module with no I/O.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta

from mneme.domain.constants import (
    DEFAULT_MAX_INTERVAL_DAYS,
    FIRST_INTERVAL_DAYS,
    INITIAL_EASINESS_FACTOR,
    LAPSE_THRESHOLD,
    MASTERY_EASINESS_WEIGHT,
    MASTERY_REPETITION_TARGET,
    MASTERY_REPETITION_WEIGHT,
    MAX_RATING,
    MIN_EASINESS_FACTOR,
    MIN_RATING,
    SECOND_INTERVAL_DAYS,
)
from mneme.domain.errors import ValidationError
from mneme.domain.models import CardReviewState

from .retention import days_between, memory_strength, reference_time, retention


def validate_rating(rating: int) -> None:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Difficulty rating must be an integer, got {rating!r}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Difficulty rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}"
        )


def validate_timestamp(value: datetime, name: str = "timestamp") -> None:
    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime, got {type(value).__name__}")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{name} must be timezone-aware")


def is_lapse(rating: int) -> bool:
    return rating < LAPSE_THRESHOLD


def update_easiness_factor(easiness_factor: float, rating: int) -> float:
    """EF' = EF + (0.1 - (5 - d) * (0.08 + (5 - d) * 0.02)), floored at 1.3."""
    miss = MAX_RATING - rating
    new_ef = easiness_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(MIN_EASINESS_FACTOR, new_ef)


def next_repetition_count(repetition_count: int, rating: int) -> int:
    if is_lapse(rating):
        return 0
    return repetition_count + 1


def compute_interval_days(
    repetition_count: int,
    easiness_factor: float,
    previous_interval_days: float,
    max_interval_days: int = DEFAULT_MAX_INTERVAL_DAYS,
) -> int:
    """
    Interval for the (already updated) repetition count.

    Args:
        repetition_count: Repetition count after the review.
        easiness_factor: Easiness factor after the review.
        previous_interval_days: Real time elapsed since the prior review.
        max_interval_days: Upper bound on the interval.
    """
    if repetition_count <= 1:
        interval = FIRST_INTERVAL_DAYS
    elif repetition_count == 2:
        interval = SECOND_INTERVAL_DAYS
    else:
        previous = max(1.0, previous_interval_days)
        # Round half up
        interval = int(math.floor(previous * easiness_factor + 0.5))

    return max(1, min(interval, max_interval_days))


def compute_mastery_level(
    current_mastery: float,
    repetition_count: int,
    easiness_factor: float,
    lapse: bool,
) -> float:
    """
    Blend of progress toward the repetition target and normalized easiness.

    Correct answers never lower mastery; lapses never raise it.
    """
    repetition_part = min(repetition_count / MASTERY_REPETITION_TARGET, 1.0)
    ef_span = INITIAL_EASINESS_FACTOR - MIN_EASINESS_FACTOR
    ef_part = min(1.0, max(0.0, (easiness_factor - MIN_EASINESS_FACTOR) / ef_span))
    blend = min(
        1.0, MASTERY_REPETITION_WEIGHT * repetition_part + MASTERY_EASINESS_WEIGHT * ef_part
    )

    current = min(1.0, max(0.0, current_mastery))
    if lapse:
        return min(current, blend)
    return max(current, blend)


class SchedulingAlgorithm:
    """
    Computes the next scheduling state from a review outcome.

    Stateless and side-effect free.
    """

    def __init__(self, max_interval_days: int = DEFAULT_MAX_INTERVAL_DAYS):
        if max_interval_days < 1:
            raise ValidationError("max_interval_days must be at least 1")
        self.max_interval_days = max_interval_days

    def _previous_interval_days(self, state: CardReviewState, reviewed_at: datetime) -> float:
        if state.last_reviewed_at is None:
            return float(FIRST_INTERVAL_DAYS)
        return days_between(state.last_reviewed_at, reviewed_at)

    def _check_inputs(self, state: CardReviewState, rating: int, reviewed_at: datetime) -> None:
        validate_rating(rating)
        validate_timestamp(reviewed_at, "reviewed_at")
        if state.last_reviewed_at is not None and reviewed_at < state.last_reviewed_at:
            raise ValidationError(
                f"reviewed_at {reviewed_at.isoformat()} is earlier than the last review "
                f"{state.last_reviewed_at.isoformat()}"
            )

    def interval_for(self, state: CardReviewState, rating: int, reviewed_at: datetime) -> int:
        self._check_inputs(state, rating, reviewed_at)
        new_ef = update_easiness_factor(state.easiness_factor, rating)
        new_rep = next_repetition_count(state.repetition_count, rating)
        return compute_interval_days(
            new_rep,
            new_ef,
            self._previous_interval_days(state, reviewed_at),
            self.max_interval_days,
        )

    def apply_review(
        self, state: CardReviewState, rating: int, reviewed_at: datetime
    ) -> CardReviewState:
        """
        Apply one review and return the new card state.

        Args:
            state: Current card state.
            rating: Difficulty rating, 1 (forgotten) to 5 (perfect recall).
            reviewed_at: Timezone-aware review time.

        Raises:
            ValidationError: rating out of range or malformed timestamp.
        """
        self._check_inputs(state, rating, reviewed_at)

        # How well the card was remembered just before this review
        elapsed = max(0.0, days_between(reference_time(state), reviewed_at))
        retention_before = retention(
            elapsed, memory_strength(state.repetition_count, state.easiness_factor)
        )

        new_ef = update_easiness_factor(state.easiness_factor, rating)
        new_rep = next_repetition_count(state.repetition_count, rating)
        interval = compute_interval_days(
            new_rep,
            new_ef,
            self._previous_interval_days(state, reviewed_at),
            self.max_interval_days,
        )
        mastery = compute_mastery_level(state.mastery_level, new_rep, new_ef, is_lapse(rating))

        return replace(
            state,
            repetition_count=new_rep,
            easiness_factor=new_ef,
            next_review_at=reviewed_at + timedelta(days=interval),
            last_reviewed_at=reviewed_at,
            last_retention=retention_before,
            mastery_level=mastery,
            last_rating=rating,
        )

    def preview(self, state: CardReviewState, reviewed_at: datetime) -> dict[int, int]:
        """Interval in days each rating would produce if given now."""
        return {
            rating: self.interval_for(state, rating, reviewed_at)
            for rating in range(MIN_RATING, MAX_RATING + 1)
        }
