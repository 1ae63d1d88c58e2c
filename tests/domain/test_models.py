from datetime import timedelta

import pytest

from mneme.application.id_service import generate_card_id, generate_event_id
from mneme.domain.errors import MnemeError, NotFoundError, PersistenceError, ValidationError
from mneme.domain.models import CardReviewState, Result, ReviewResult
from mneme.domain.schedule.models import StudySchedule


def test_new_card_defaults(t0):
    card = CardReviewState.new("c1", "u1", t0, front="Q", back="A", metadata={"k": "v"})

    assert card.repetition_count == 0
    assert card.easiness_factor == 2.5
    assert card.next_review_at == t0
    assert card.created_at == t0
    assert card.last_reviewed_at is None
    assert card.is_new
    assert card.metadata == {"k": "v"}


def test_is_due_boundary(make_card, t0):
    card = make_card(next_review_at=t0)
    assert card.is_due(t0)
    assert card.is_due(t0 + timedelta(seconds=1))
    assert not card.is_due(t0 - timedelta(seconds=1))


def test_card_is_immutable(make_card):
    card = make_card()
    with pytest.raises(AttributeError):
        card.repetition_count = 3


def test_review_result_failure():
    error = NotFoundError("gone")
    result = ReviewResult.failure(error)
    assert not result.ok
    assert result.card is None
    assert result.error is error


def test_result_success_and_failure():
    assert Result.success([1, 2]).value == [1, 2]

    error = PersistenceError("db down")
    result = Result.failure(error)
    assert not result.ok
    assert result.value is None
    assert result.error is error


@pytest.mark.parametrize("error_cls", [ValidationError, NotFoundError, PersistenceError])
def test_error_hierarchy(error_cls):
    assert issubclass(error_cls, MnemeError)


def test_ids_are_unique_and_prefixed():
    card_ids = {generate_card_id() for _ in range(50)}
    assert len(card_ids) == 50
    assert all(i.startswith("card_") for i in card_ids)
    assert generate_event_id().startswith("rev_")


def test_empty_schedule_plan():
    plan = StudySchedule().notification_plan("u1")
    assert plan.to_payload() == {"owner_id": "u1", "times": [], "batches": []}
