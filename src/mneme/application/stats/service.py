"""
Learning Stats Service: Application layer orchestrator.

Coordinates fetching card snapshots from the repository and aggregating them.
"""

import logging
from datetime import datetime

from mneme.domain.ports import CardRepository
from mneme.domain.stats.models import LearningStats, RetentionSnapshot

from .aggregator import StatsAggregator

logger = logging.getLogger(__name__)


class LearningStatsService:
    """
    Application service for read-only learning metrics.

    Follows Dependency Inversion: depends on the CardRepository abstraction,
    not concrete adapter implementations. Never mutates card state.
    """

    def __init__(
        self,
        repo: CardRepository,
        aggregator: StatsAggregator | None = None,
    ):
        """
        Args:
            repo: The repository (port) for fetching cards and the review log.
            aggregator: Optional custom aggregator; uses default if not provided.
        """
        self._repo = repo
        self._agg = aggregator or StatsAggregator()

    async def get_learning_stats(self, owner_id: str, as_of: datetime) -> LearningStats:
        """
        Summary metrics for the owner's collection.

        Raises:
            PersistenceError: If the snapshot could not be read.
        """
        cards = await self._repo.list_cards_by_owner(owner_id)
        reviews = await self._repo.list_review_events(owner_id)
        stats = self._agg.compute_stats(cards, as_of, reviews)
        logger.debug(
            f"Stats for owner={owner_id}: total={stats.total_cards} due={stats.due_count} "
            f"mastered={stats.mastered_count}"
        )
        return stats

    async def get_retention_snapshot(self, owner_id: str, as_of: datetime) -> RetentionSnapshot:
        """
        Current retention estimates for every card the owner has.
        """
        cards = await self._repo.list_cards_by_owner(owner_id)
        return self._agg.build_retention_snapshot(cards, as_of)
