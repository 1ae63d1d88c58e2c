"""
In-Memory Card Repository: Infrastructure adapter backed by plain dicts.

Useful for tests, demos and ephemeral sessions. Nothing survives the process.
"""

from datetime import datetime

from mneme.domain.models import CardReviewState, ReviewEvent
from mneme.domain.ports import CardRepository


class InMemoryCardRepository(CardRepository):
    """Stores cards by id and keeps the review log as an append-only list."""

    def __init__(self, cards: list[CardReviewState] | None = None):
        self._cards: dict[str, CardReviewState] = {c.card_id: c for c in cards or []}
        self._events: list[ReviewEvent] = []

    async def get_card(self, card_id: str) -> CardReviewState | None:
        return self._cards.get(card_id)

    async def save_card(self, state: CardReviewState) -> None:
        self._cards[state.card_id] = state

    async def append_review_event(self, event: ReviewEvent) -> None:
        self._events.append(event)

    async def list_cards_by_owner(self, owner_id: str) -> list[CardReviewState]:
        return [c for c in self._cards.values() if c.owner_id == owner_id]

    async def list_due_cards(self, owner_id: str, as_of: datetime) -> list[CardReviewState]:
        due = [c for c in self._cards.values() if c.owner_id == owner_id and c.is_due(as_of)]
        return sorted(due, key=lambda c: c.next_review_at)

    async def list_review_events(self, owner_id: str) -> list[ReviewEvent]:
        events = [e for e in self._events if e.owner_id == owner_id]
        return sorted(events, key=lambda e: e.reviewed_at)
