"""
Learning Service: public API of the engine.

Wires the review recorder, stats service and schedule optimizer to one
repository. Time comes from an injected clock; no per-user state is kept
between calls.

Every public operation returns a result object. Validation, lookup and
storage failures come back as the result's error instead of being raised.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from mneme.domain.errors import MnemeError, NotFoundError, PersistenceError
from mneme.domain.models import CardReviewState, Result, ReviewResult
from mneme.domain.ports import CardRepository, NotificationPublisher
from mneme.domain.schedule.models import StudyPreferences, StudySchedule
from mneme.domain.stats.models import LearningStats, RetentionSnapshot

from .id_service import generate_card_id
from .review_recorder import CardLockRegistry, ReviewRecorder
from .schedule_optimizer import StudyScheduleOptimizer
from .scheduling import SchedulingAlgorithm, validate_timestamp
from .stats import LearningStatsService, StatsAggregator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LearningService:
    """
    Facade over the scheduling engine.

    Only record_review mutates card state; every other operation is a
    read-only view over a repository snapshot.
    """

    def __init__(
        self,
        repo: CardRepository,
        algorithm: SchedulingAlgorithm | None = None,
        aggregator: StatsAggregator | None = None,
        optimizer: StudyScheduleOptimizer | None = None,
        notifier: NotificationPublisher | None = None,
        default_preferences: StudyPreferences | None = None,
        locks: CardLockRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repo = repo
        self._algo = algorithm or SchedulingAlgorithm()
        self._recorder = ReviewRecorder(repo, self._algo, locks)
        self._stats = LearningStatsService(repo, aggregator)
        self._optimizer = optimizer or StudyScheduleOptimizer()
        self._notifier = notifier
        self._preferences = default_preferences or StudyPreferences()
        self._clock = clock

    @property
    def default_preferences(self) -> StudyPreferences:
        return self._preferences

    def _now(self, value: datetime | None, name: str = "now") -> datetime:
        if value is None:
            return self._clock()
        validate_timestamp(value, name)
        return value

    async def _attempt(self, action: str, operation: Callable[[], Awaitable[T]]) -> Result[T]:
        try:
            return Result.success(await operation())
        except MnemeError as e:
            logger.info(f"Could not {action}: {e}")
            return Result.failure(e)
        except Exception as e:
            logger.error(f"Could not {action}: {e}")
            return Result.failure(PersistenceError(f"Failed to {action}: {e}"))

    async def create_card(
        self,
        owner_id: str,
        front: str,
        back: str,
        topic_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Result[CardReviewState]:
        """Author a new card, due immediately."""

        async def create() -> CardReviewState:
            card = CardReviewState.new(
                card_id=generate_card_id(),
                owner_id=owner_id,
                now=self._now(now),
                front=front,
                back=back,
                topic_id=topic_id,
                metadata=metadata,
            )
            await self._repo.save_card(card)
            logger.info(f"Created card={card.card_id} for owner={owner_id}")
            return card

        return await self._attempt(f"create card for owner {owner_id}", create)

    async def _load_card(self, card_id: str) -> CardReviewState:
        card = await self._repo.get_card(card_id)
        if card is None:
            raise NotFoundError(f"Card {card_id} not found")
        return card

    async def get_card(self, card_id: str) -> Result[CardReviewState]:
        return await self._attempt(f"load card {card_id}", lambda: self._load_card(card_id))

    async def record_review(
        self, card_id: str, rating: int, now: datetime | None = None
    ) -> ReviewResult:
        """
        Record a review and reschedule the card.

        Returns:
            ReviewResult carrying the updated card, or a ValidationError,
            NotFoundError or PersistenceError.
        """
        if now is None:
            now = self._clock()
        return await self._recorder.record_review(card_id, rating, now)

    async def get_due_cards(
        self, owner_id: str, as_of: datetime | None = None
    ) -> Result[list[CardReviewState]]:
        return await self._attempt(
            f"list due cards for owner {owner_id}",
            lambda: self._repo.list_due_cards(owner_id, self._now(as_of, "as_of")),
        )

    async def get_learning_stats(
        self, owner_id: str, as_of: datetime | None = None
    ) -> Result[LearningStats]:
        return await self._attempt(
            f"compute stats for owner {owner_id}",
            lambda: self._stats.get_learning_stats(owner_id, self._now(as_of, "as_of")),
        )

    async def get_retention_snapshot(
        self, owner_id: str, as_of: datetime | None = None
    ) -> Result[RetentionSnapshot]:
        return await self._attempt(
            f"build retention snapshot for owner {owner_id}",
            lambda: self._stats.get_retention_snapshot(owner_id, self._now(as_of, "as_of")),
        )

    async def preview_intervals(
        self, card_id: str, now: datetime | None = None
    ) -> Result[dict[int, int]]:
        """Interval in days each rating would give the card right now."""

        async def preview() -> dict[int, int]:
            card = await self._load_card(card_id)
            return self._algo.preview(card, self._now(now))

        return await self._attempt(f"preview card {card_id}", preview)

    async def generate_study_schedule(
        self,
        owner_id: str,
        preferences: StudyPreferences | None = None,
        now: datetime | None = None,
    ) -> Result[StudySchedule]:
        """
        Build the owner's study schedule and hand reminders to the notifier.
        """
        return await self._attempt(
            f"build study schedule for owner {owner_id}",
            lambda: self._build_schedule(owner_id, preferences or self._preferences, now),
        )

    async def _build_schedule(
        self, owner_id: str, prefs: StudyPreferences, now: datetime | None
    ) -> StudySchedule:
        now = self._now(now)
        due_cards = await self._repo.list_due_cards(owner_id, now)
        snapshot = await self._stats.get_retention_snapshot(owner_id, now)
        schedule = self._optimizer.build_schedule(
            due_cards,
            snapshot.by_card(),
            prefs,
            now,
            topic_retention=snapshot.retention_by_topic,
        )

        if self._notifier is not None and schedule.notifications:
            try:
                await self._notifier.publish(schedule.notification_plan(owner_id))
            except Exception as e:
                logger.warning(f"Failed to publish reminders for owner={owner_id}: {e}")

        return schedule
