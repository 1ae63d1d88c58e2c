"""
Review recorder: the single mutation entry point for card state.

Coordinates fetching the card, applying the scheduling algorithm, persisting
the result and appending the review log entry.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from weakref import WeakValueDictionary

from mneme.domain.errors import MnemeError, NotFoundError, PersistenceError, ValidationError
from mneme.domain.models import CardReviewState, ReviewEvent, ReviewResult
from mneme.domain.ports import CardRepository

from .id_service import generate_event_id
from .scheduling import SchedulingAlgorithm, validate_rating, validate_timestamp

logger = logging.getLogger(__name__)


class CardLockRegistry:
    """
    Hands out one asyncio.Lock per card id.

    Locks are held weakly, so entries disappear once no coroutine holds them.
    """

    def __init__(self):
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def lock_for(self, card_id: str) -> asyncio.Lock:
        lock = self._locks.get(card_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[card_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


class ReviewRecorder:
    """
    Records one review event as an atomic read-modify-write per card.

    Reviews of the same card are serialized through the lock registry;
    reviews of different cards run independently.
    """

    def __init__(
        self,
        repo: CardRepository,
        algorithm: SchedulingAlgorithm | None = None,
        locks: CardLockRegistry | None = None,
    ):
        """
        Args:
            repo: The repository (port) holding cards and the review log.
            algorithm: Optional custom scheduler; uses default if not provided.
            locks: Optional shared lock registry; a private one is created otherwise.
        """
        self._repo = repo
        self._algo = algorithm or SchedulingAlgorithm()
        self._locks = locks or CardLockRegistry()

    async def record_review(self, card_id: str, rating: int, now: datetime) -> ReviewResult:
        """
        Apply a review to a card and log it.

        Returns:
            ReviewResult with the updated card and the log entry, or the error.
        """
        try:
            validate_rating(rating)
            validate_timestamp(now, "now")
        except ValidationError as e:
            logger.info(f"Rejected review for card={card_id}: {e}")
            return ReviewResult.failure(e)

        async with self._locks.lock_for(card_id):
            return await self._record_locked(card_id, rating, now)

    async def _record_locked(self, card_id: str, rating: int, now: datetime) -> ReviewResult:
        try:
            current = await self._repo.get_card(card_id)
        except MnemeError as e:
            return ReviewResult.failure(e)
        except Exception as e:
            logger.error(f"Failed to load card={card_id}: {e}")
            return ReviewResult.failure(PersistenceError(f"Failed to load card {card_id}: {e}"))

        if current is None:
            return ReviewResult.failure(NotFoundError(f"Card {card_id} not found"))

        try:
            updated = self._algo.apply_review(current, rating, now)
        except ValidationError as e:
            logger.info(f"Rejected review for card={card_id}: {e}")
            return ReviewResult.failure(e)

        interval = (updated.next_review_at - now) / timedelta(days=1)
        event = ReviewEvent(
            event_id=generate_event_id(),
            card_id=card_id,
            owner_id=current.owner_id,
            rating=rating,
            retention=updated.last_retention,
            reviewed_at=now,
            interval_days=round(interval),
        )

        # 1. Card state first
        try:
            await self._repo.save_card(updated)
        except Exception as e:
            logger.error(f"Failed to save card={card_id}: {e}")
            return ReviewResult.failure(_as_persistence_error(e, f"save card {card_id}"))

        # 2. Then the log entry
        try:
            await self._repo.append_review_event(event)
        except Exception as e:
            logger.error(f"Failed to append review event for card={card_id}: {e}")
            await self._restore(current)
            return ReviewResult.failure(
                _as_persistence_error(e, f"append review event for card {card_id}")
            )

        logger.debug(
            f"Reviewed card={card_id} rating={rating} reps={updated.repetition_count} "
            f"ef={updated.easiness_factor:.2f} next={updated.next_review_at.isoformat()}"
        )
        return ReviewResult.success(updated, event)

    async def _restore(self, previous: CardReviewState) -> None:
        """Put the pre-review state back after a failed log append."""
        try:
            await self._repo.save_card(previous)
        except Exception as e:
            logger.critical(
                f"Could not restore card={previous.card_id} after failed log append: {e}"
            )


def _as_persistence_error(error: Exception, action: str) -> PersistenceError:
    if isinstance(error, PersistenceError):
        return error
    return PersistenceError(f"Failed to {action}: {error}")
