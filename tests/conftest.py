import os
from datetime import datetime, timezone

import pytest

from mneme.application.service import LearningService
from mneme.domain.models import CardReviewState
from mneme.infrastructure.adapters.memory_repository import InMemoryCardRepository

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep the developer's own config file and MNEME_* env out of tests."""
    monkeypatch.setattr("mneme.application.config.CONFIG_FILES", [])
    for key in list(os.environ):
        if key.startswith("MNEME_"):
            monkeypatch.delenv(key)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def make_card(t0):
    def _make(card_id="c1", owner_id="u1", **kwargs):
        kwargs.setdefault("next_review_at", t0)
        kwargs.setdefault("created_at", t0)
        return CardReviewState(card_id=card_id, owner_id=owner_id, **kwargs)

    return _make


@pytest.fixture
def repo():
    return InMemoryCardRepository()


@pytest.fixture
def service(repo, t0):
    return LearningService(repo, clock=lambda: t0)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home
