"""
Retention model: exponential forgetting curve.

R = exp(-t / max(1, S)) where t = days since the reference review and
S = memory strength (repetition_count * easiness_factor).

This is a pure computation module with no I/O.
"""

import math
from datetime import datetime

from mneme.domain.constants import MIN_MEMORY_STRENGTH, SECONDS_PER_DAY
from mneme.domain.models import CardReviewState


def memory_strength(repetition_count: int, easiness_factor: float) -> float:
    """Memory strength grows with successful repetitions and easiness."""
    strength = repetition_count * easiness_factor
    if math.isnan(strength) or strength < 0:
        return 0.0
    return strength


def retention(days_since_review: float, strength: float) -> float:
    """
    Estimated recall probability after `days_since_review` days.

    Negative or NaN elapsed time is treated as 0 (just reviewed). The result
    is always within [0, 1].
    """
    if math.isnan(days_since_review) or days_since_review < 0:
        days_since_review = 0.0
    if math.isnan(strength) or strength < 0:
        strength = 0.0

    value = math.exp(-days_since_review / max(MIN_MEMORY_STRENGTH, strength))
    return min(1.0, max(0.0, value))


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def reference_time(card: CardReviewState) -> datetime:
    """The last review, or authoring time for cards never reviewed."""
    return card.last_reviewed_at or card.created_at


class RetentionModel:
    """
    Applies the forgetting curve to card state.

    Stateless and side-effect free.
    """

    def memory_strength(self, card: CardReviewState) -> float:
        return memory_strength(card.repetition_count, card.easiness_factor)

    def days_since_review(self, card: CardReviewState, as_of: datetime) -> float:
        return max(0.0, days_between(reference_time(card), as_of))

    def current_retention(self, card: CardReviewState, as_of: datetime) -> float:
        """
        Estimate how well the card is remembered at `as_of`.
        """
        return retention(self.days_since_review(card, as_of), self.memory_strength(card))
