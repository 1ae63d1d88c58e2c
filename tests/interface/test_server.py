from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from mneme.application.service import LearningService
from mneme.consts import VERSION
from mneme.domain.errors import PersistenceError
from mneme.domain.schedule.models import StudyPreferences, TimeWindow
from mneme.infrastructure.adapters.memory_repository import InMemoryCardRepository
from mneme.server import app, get_service


@pytest.fixture
def service(t0):
    return LearningService(InMemoryCardRepository(), clock=lambda: t0)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def create(client, owner="u1", **extra):
    response = client.post("/cards", json={"owner_id": owner, "front": "Q", "back": "A", **extra})
    assert response.status_code == 201
    return response.json()


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version(client):
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_create_card(client):
    card = create(client, topic_id="bio", metadata={"deck": "Biology"})

    assert card["card_id"].startswith("card_")
    assert card["topic_id"] == "bio"
    assert card["metadata"] == {"deck": "Biology"}


def test_review_card(client, t0):
    card = create(client)

    response = client.post(f"/cards/{card['card_id']}/review", json={"rating": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["card"]["repetition_count"] == 1
    assert data["event"]["interval_days"] == 1


def test_review_with_explicit_time(client, t0):
    card = create(client)
    when = (t0 + timedelta(hours=3)).isoformat()

    response = client.post(
        f"/cards/{card['card_id']}/review", json={"rating": 4, "reviewed_at": when}
    )

    assert response.status_code == 200
    assert response.json()["event"]["reviewed_at"] == when


def test_review_invalid_rating(client):
    card = create(client)
    response = client.post(f"/cards/{card['card_id']}/review", json={"rating": 0})
    assert response.status_code == 400


def test_review_naive_time(client):
    card = create(client)
    response = client.post(
        f"/cards/{card['card_id']}/review",
        json={"rating": 4, "reviewed_at": "2024-03-01T10:00:00"},
    )
    assert response.status_code == 400


def test_review_missing_card(client):
    response = client.post("/cards/card_missing/review", json={"rating": 4})
    assert response.status_code == 404


def test_preview(client):
    card = create(client)
    response = client.get(f"/cards/{card['card_id']}/preview")
    assert response.status_code == 200
    assert response.json() == {"intervals": {"1": 1, "2": 1, "3": 1, "4": 1, "5": 1}}


def test_preview_missing_card(client):
    assert client.get("/cards/card_missing/preview").status_code == 404


def test_due_and_stats(client):
    card = create(client)
    assert [c["card_id"] for c in client.get("/owners/u1/due").json()] == [card["card_id"]]

    client.post(f"/cards/{card['card_id']}/review", json={"rating": 5})

    assert client.get("/owners/u1/due").json() == []
    stats = client.get("/owners/u1/stats").json()
    assert stats["total_cards"] == 1
    assert stats["total_reviews"] == 1


def test_retention(client):
    create(client, topic_id="bio")
    data = client.get("/owners/u1/retention").json()
    assert data["retention_by_topic"] == {"bio": 1.0}


def test_schedule_defaults(client):
    card = create(client)

    response = client.post("/owners/u1/schedule")

    assert response.status_code == 200
    data = response.json()
    assert data["batches"][0]["card_ids"] == [card["card_id"]]
    assert data["notifications"] == ["9:00 AM"]


def test_schedule_with_preferences(client):
    create(client)

    response = client.post(
        "/owners/u1/schedule", json={"available_time_windows": ["afternoon"]}
    )

    assert response.status_code == 200
    assert response.json()["notifications"] == ["2:00 PM"]


def test_schedule_invalid_preferences(client):
    response = client.post("/owners/u1/schedule", json={"max_session_minutes": -5})
    assert response.status_code == 400


def test_persistence_error_maps_to_503(client, service):
    service._repo.list_due_cards = AsyncMock(side_effect=PersistenceError("locked"))
    response = client.get("/owners/u1/due")
    assert response.status_code == 503
    assert "locked" in response.json()["detail"]


def test_schedule_fills_omitted_fields_from_service_defaults(t0):
    prefs = StudyPreferences(available_time_windows=frozenset({TimeWindow.AFTERNOON}))
    service = LearningService(InMemoryCardRepository(), default_preferences=prefs, clock=lambda: t0)
    app.dependency_overrides[get_service] = lambda: service
    try:
        client = TestClient(app)
        create(client)

        response = client.post("/owners/u1/schedule", json={"max_session_minutes": 20})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["notifications"] == ["2:00 PM"]


def test_schedule_storage_failure_maps_to_503(client, service):
    service._repo.list_due_cards = AsyncMock(side_effect=PersistenceError("locked"))
    response = client.post("/owners/u1/schedule")
    assert response.status_code == 503
