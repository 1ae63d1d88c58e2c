from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from mneme.application.config import AppConfig, resolve_config
from mneme.application.factory import (
    build_learning_service,
    get_card_repository,
    get_notification_publisher,
)
from mneme.domain.schedule.models import TimeWindow
from mneme.infrastructure.adapters import (
    InMemoryCardRepository,
    LoggingNotificationPublisher,
    SqliteCardRepository,
    WebhookNotificationPublisher,
)


def test_defaults():
    config = resolve_config()

    assert config.backend == "sqlite"
    assert config.max_interval_days == 365
    assert config.time_windows == [TimeWindow.MORNING, TimeWindow.EVENING]
    assert config.notification_webhook_url is None
    assert "log_dir" not in config.model_dump()


def test_overrides_ignore_none():
    config = resolve_config({"backend": "memory", "database_path": None})
    assert config.backend == "memory"
    assert config.database_path.name == "mneme.db"


def test_env_vars(monkeypatch):
    monkeypatch.setenv("MNEME_BACKEND", "memory")
    monkeypatch.setenv("MNEME_MAX_INTERVAL_DAYS", "90")
    monkeypatch.setenv("MNEME_TARGET_RETENTION", "0.9")

    config = resolve_config()

    assert config.backend == "memory"
    assert config.max_interval_days == 90
    assert config.study_preferences().target_retention == 0.9


def test_cli_overrides_beat_env(monkeypatch):
    monkeypatch.setenv("MNEME_BACKEND", "sqlite")
    assert resolve_config({"backend": "memory"}).backend == "memory"


def test_toml_file(tmp_path, monkeypatch):
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        'backend = "memory"\n'
        'time_windows = ["afternoon"]\n'
        "mastered_repetitions = 8\n"
    )
    monkeypatch.setattr("mneme.application.config.CONFIG_FILES", [config_file])

    config = resolve_config()

    assert config.backend == "memory"
    assert config.time_windows == [TimeWindow.AFTERNOON]
    assert config.stats_thresholds().mastered_repetitions == 8


def test_env_beats_toml_file(tmp_path, monkeypatch):
    config_file = tmp_path / "config.toml"
    config_file.write_text('backend = "memory"\n')
    monkeypatch.setattr("mneme.application.config.CONFIG_FILES", [config_file])
    monkeypatch.setenv("MNEME_BACKEND", "sqlite")

    assert resolve_config().backend == "sqlite"


def test_path_expansion(mock_home):
    config = resolve_config({"database_path": "~/cards.db"})
    assert config.database_path == Path(mock_home) / "cards.db"


@pytest.mark.parametrize(
    "overrides",
    [
        {"backend": "postgres"},
        {"max_interval_days": 0},
        {"target_retention": 1.5},
        {"time_windows": ["midnight"]},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(PydanticValidationError):
        AppConfig(**overrides)


def test_factory_selects_memory_backend():
    config = resolve_config({"backend": "memory"})
    assert isinstance(get_card_repository(config), InMemoryCardRepository)


def test_factory_selects_sqlite_backend(tmp_path):
    config = resolve_config({"database_path": tmp_path / "mneme.db"})
    repo = get_card_repository(config)
    assert isinstance(repo, SqliteCardRepository)
    assert repo.db_path == tmp_path / "mneme.db"


def test_factory_notification_publisher():
    assert isinstance(get_notification_publisher(resolve_config()), LoggingNotificationPublisher)
    config = resolve_config({"notification_webhook_url": "http://localhost:9000/hook"})
    assert isinstance(get_notification_publisher(config), WebhookNotificationPublisher)


@pytest.mark.asyncio
async def test_build_learning_service_uses_config(t0):
    config = resolve_config({"backend": "memory", "max_interval_days": 10})
    service = build_learning_service(config)

    card = (await service.create_card("u1", "front", "back", now=t0)).value
    assert (await service.get_card(card.card_id)).value.owner_id == "u1"
    assert service._algo.max_interval_days == 10
