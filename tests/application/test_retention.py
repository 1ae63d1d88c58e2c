import math
from datetime import timedelta

import pytest

from mneme.application.retention import RetentionModel, memory_strength, retention


@pytest.fixture
def model():
    return RetentionModel()


def test_retention_is_one_right_after_review():
    assert retention(0.0, 5.0) == 1.0


def test_retention_follows_exponential_curve():
    # S = 2 * 2.5 = 5, t = 5 -> e^-1
    assert retention(5.0, memory_strength(2, 2.5)) == pytest.approx(math.exp(-1))


def test_retention_strength_floor_of_one():
    # Never-reviewed strength is 0, treated as 1
    assert retention(1.0, 0.0) == pytest.approx(math.exp(-1))


def test_retention_clamps_bad_inputs():
    assert retention(-3.0, 5.0) == 1.0
    assert retention(float("nan"), 5.0) == 1.0
    assert 0.0 <= retention(10_000.0, 1.0) <= 1.0
    assert 0.0 <= retention(2.0, float("nan")) <= 1.0


def test_retention_never_increases_with_time():
    values = [retention(float(t), 7.5) for t in range(0, 60)]
    assert all(a >= b for a, b in zip(values, values[1:]))


def test_memory_strength_rejects_negative():
    assert memory_strength(-1, 2.5) == 0.0


def test_model_uses_created_at_for_new_cards(model, make_card, t0):
    card = make_card()
    assert card.is_new
    assert model.days_since_review(card, t0 + timedelta(days=2)) == pytest.approx(2.0)
    assert model.current_retention(card, t0 + timedelta(days=2)) == pytest.approx(math.exp(-2))


def test_model_uses_last_review(model, make_card, t0):
    card = make_card(
        repetition_count=2,
        easiness_factor=2.5,
        last_reviewed_at=t0 + timedelta(days=1),
    )
    as_of = t0 + timedelta(days=6)
    assert model.memory_strength(card) == pytest.approx(5.0)
    assert model.current_retention(card, as_of) == pytest.approx(math.exp(-1))


def test_model_future_as_of_is_clamped(model, make_card, t0):
    card = make_card(repetition_count=1, last_reviewed_at=t0)
    assert model.days_since_review(card, t0 - timedelta(days=3)) == 0.0
    assert model.current_retention(card, t0 - timedelta(days=3)) == 1.0
