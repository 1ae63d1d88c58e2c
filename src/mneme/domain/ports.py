"""
Ports (interfaces) for card persistence and notification hand-off.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import CardReviewState, ReviewEvent
from .schedule.models import NotificationPlan


class CardRepository(ABC):
    """
    Port for reading and writing card review state and the review log.

    Implementations:
        - InMemoryCardRepository: Dict-backed store for tests and ephemeral use.
        - SqliteCardRepository: Persists to a local SQLite database.

    Adapters raise PersistenceError on I/O failure.
    """

    @abstractmethod
    async def get_card(self, card_id: str) -> CardReviewState | None:
        """
        Fetch a single card.

        Returns:
            The card, or None if the id is unknown.
        """
        pass

    @abstractmethod
    async def save_card(self, state: CardReviewState) -> None:
        """Insert or replace the card keyed by its card_id."""
        pass

    @abstractmethod
    async def append_review_event(self, event: ReviewEvent) -> None:
        """Append an entry to the review log. Entries are never updated."""
        pass

    @abstractmethod
    async def list_cards_by_owner(self, owner_id: str) -> list[CardReviewState]:
        """All cards belonging to the owner."""
        pass

    @abstractmethod
    async def list_due_cards(self, owner_id: str, as_of: datetime) -> list[CardReviewState]:
        """
        Cards whose next_review_at is at or before as_of.

        Returns:
            Cards sorted by next_review_at ascending.
        """
        pass

    @abstractmethod
    async def list_review_events(self, owner_id: str) -> list[ReviewEvent]:
        """
        The owner's review log.

        Returns:
            ReviewEvent entries sorted by reviewed_at ascending.
        """
        pass


class NotificationPublisher(ABC):
    """
    Port handing suggested study times and card batches to a reminder scheduler.

    Delivery (push, email, ...) is the collaborator's concern.
    """

    @abstractmethod
    async def publish(self, plan: NotificationPlan) -> bool:
        """Returns True if the plan was accepted."""
        pass
