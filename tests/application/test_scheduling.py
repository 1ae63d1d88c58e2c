from datetime import datetime, timedelta

import pytest

from mneme.application.scheduling import (
    SchedulingAlgorithm,
    compute_interval_days,
    compute_mastery_level,
    next_repetition_count,
    update_easiness_factor,
    validate_rating,
)
from mneme.domain.errors import ValidationError


@pytest.fixture
def algo():
    return SchedulingAlgorithm()


@pytest.mark.parametrize(
    "rating,expected",
    [(5, 2.6), (4, 2.5), (3, 2.36), (2, 2.18), (1, 1.96)],
)
def test_easiness_factor_update(rating, expected):
    assert update_easiness_factor(2.5, rating) == pytest.approx(expected)


def test_easiness_factor_floor():
    assert update_easiness_factor(1.3, 1) == 1.3
    assert update_easiness_factor(1.4, 2) == 1.3


@pytest.mark.parametrize("easiness", [1.3, 1.31, 1.5, 2.0, 2.5, 3.0])
@pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
def test_easiness_factor_never_below_floor(easiness, rating):
    assert update_easiness_factor(easiness, rating) >= 1.3


def test_successful_reviews_keep_growing(algo, make_card):
    card = make_card()
    counts = []
    for rating in [3, 4, 5, 3, 4, 5]:
        card = algo.apply_review(card, rating, card.next_review_at)
        counts.append(card.repetition_count)

    assert counts == sorted(set(counts))
    assert counts == [1, 2, 3, 4, 5, 6]
    assert card.easiness_factor >= 1.3


def test_repetition_count_resets_on_lapse():
    assert next_repetition_count(4, 2) == 0
    assert next_repetition_count(4, 1) == 0
    assert next_repetition_count(4, 3) == 5


def test_interval_sequence():
    assert compute_interval_days(1, 2.5, 0.0) == 1
    assert compute_interval_days(2, 2.5, 1.0) == 6
    assert compute_interval_days(3, 2.5, 6.0) == 15
    # Round half up
    assert compute_interval_days(3, 2.5, 5.0) == 13


def test_interval_previous_floor_and_cap():
    assert compute_interval_days(3, 2.5, 0.1) == 3
    assert compute_interval_days(8, 2.5, 300.0) == 365
    assert compute_interval_days(8, 2.5, 300.0, max_interval_days=30) == 30


def test_scenario_new_card_perfect_recall(algo, make_card, t0):
    card = make_card()

    updated = algo.apply_review(card, 5, t0)

    assert updated.repetition_count == 1
    assert updated.easiness_factor == pytest.approx(2.6)
    assert updated.next_review_at == t0 + timedelta(days=1)
    assert updated.last_reviewed_at == t0
    assert updated.last_rating == 5


def test_scenario_second_perfect_recall(algo, make_card, t0):
    card = algo.apply_review(make_card(), 5, t0)

    updated = algo.apply_review(card, 5, t0 + timedelta(days=1))

    assert updated.repetition_count == 2
    assert updated.next_review_at == t0 + timedelta(days=7)


def test_third_review_uses_elapsed_time(algo, make_card, t0):
    card = algo.apply_review(make_card(), 5, t0)
    card = algo.apply_review(card, 5, t0 + timedelta(days=1))

    updated = algo.apply_review(card, 5, t0 + timedelta(days=7))

    # 6 days elapsed * EF 2.8
    assert updated.repetition_count == 3
    assert updated.next_review_at == t0 + timedelta(days=7 + 17)


def test_scenario_lapse(algo, make_card, t0):
    card = make_card(
        repetition_count=2,
        easiness_factor=2.5,
        last_reviewed_at=t0 - timedelta(days=6),
        mastery_level=0.5,
    )

    updated = algo.apply_review(card, 2, t0)

    assert updated.repetition_count == 0
    assert updated.easiness_factor < card.easiness_factor
    assert updated.next_review_at == t0 + timedelta(days=1)
    assert updated.mastery_level <= card.mastery_level


def test_apply_review_records_retention_before_review(algo, make_card, t0):
    card = make_card(
        repetition_count=2,
        easiness_factor=2.5,
        last_reviewed_at=t0 - timedelta(days=5),
    )
    updated = algo.apply_review(card, 4, t0)
    # S = 5, t = 5
    assert updated.last_retention == pytest.approx(0.36788, abs=1e-4)


def test_apply_review_does_not_mutate_input(algo, make_card, t0):
    card = make_card()
    algo.apply_review(card, 5, t0)
    assert card.repetition_count == 0
    assert card.last_reviewed_at is None


@pytest.mark.parametrize("rating", [0, 6, -1, True, 3.0, "4", None])
def test_invalid_rating_rejected(algo, make_card, t0, rating):
    with pytest.raises(ValidationError):
        algo.apply_review(make_card(), rating, t0)


def test_validate_rating_accepts_range():
    for rating in range(1, 6):
        validate_rating(rating)


def test_naive_timestamp_rejected(algo, make_card):
    with pytest.raises(ValidationError):
        algo.apply_review(make_card(), 4, datetime(2024, 3, 1, 8, 0))


def test_review_before_last_review_rejected(algo, make_card, t0):
    card = make_card(repetition_count=1, last_reviewed_at=t0)
    with pytest.raises(ValidationError):
        algo.apply_review(card, 4, t0 - timedelta(hours=1))


def test_easiness_never_below_floor_over_many_lapses(algo, make_card, t0):
    card = make_card()
    when = t0
    for _ in range(20):
        card = algo.apply_review(card, 1, when)
        assert card.easiness_factor >= 1.3
        assert card.repetition_count == 0
        when += timedelta(days=1)


def test_max_interval_respected(make_card, t0):
    algo = SchedulingAlgorithm(max_interval_days=30)
    card = make_card(
        repetition_count=6,
        easiness_factor=2.5,
        last_reviewed_at=t0 - timedelta(days=100),
    )
    updated = algo.apply_review(card, 5, t0)
    assert updated.next_review_at == t0 + timedelta(days=30)


def test_invalid_max_interval():
    with pytest.raises(ValidationError):
        SchedulingAlgorithm(max_interval_days=0)


def test_preview(algo, make_card, t0):
    card = make_card(
        repetition_count=2,
        easiness_factor=2.5,
        last_reviewed_at=t0 - timedelta(days=10),
    )
    assert algo.preview(card, t0) == {1: 1, 2: 1, 3: 24, 4: 25, 5: 26}


def test_preview_new_card(algo, make_card, t0):
    assert algo.preview(make_card(), t0) == {1: 1, 2: 1, 3: 1, 4: 1, 5: 1}


def test_mastery_blend():
    # rep 1 of 5 -> 0.2 * 0.7, EF at ceiling -> 0.3
    assert compute_mastery_level(0.0, 1, 2.6, lapse=False) == pytest.approx(0.44)
    assert compute_mastery_level(0.0, 5, 2.5, lapse=False) == pytest.approx(1.0)


def test_mastery_monotonic_by_outcome():
    assert compute_mastery_level(0.9, 1, 2.6, lapse=False) == 0.9
    assert compute_mastery_level(0.1, 0, 2.18, lapse=True) == 0.1
    assert compute_mastery_level(0.44, 0, 2.18, lapse=True) == pytest.approx(0.22)


def test_mastery_stays_in_range(algo, make_card, t0):
    card = make_card()
    when = t0
    for rating in [5, 5, 5, 5, 5, 5, 1, 3, 4, 5]:
        card = algo.apply_review(card, rating, when)
        assert 0.0 <= card.mastery_level <= 1.0
        when = card.next_review_at
