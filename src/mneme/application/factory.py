"""
Adapter Factory
Centralizes the logic for selecting repository and notifier implementations.
"""

import logging

from mneme.application.config import AppConfig
from mneme.application.scheduling import SchedulingAlgorithm
from mneme.application.service import LearningService
from mneme.application.stats import StatsAggregator
from mneme.domain.errors import ConfigurationError
from mneme.domain.ports import CardRepository, NotificationPublisher
from mneme.infrastructure.adapters.memory_repository import InMemoryCardRepository
from mneme.infrastructure.adapters.notifications import (
    LoggingNotificationPublisher,
    WebhookNotificationPublisher,
)
from mneme.infrastructure.adapters.sqlite_repository import SqliteCardRepository

logger = logging.getLogger(__name__)


def get_card_repository(config: AppConfig) -> CardRepository:
    """
    Returns the CardRepository implementation selected by config.backend.
    """
    if config.backend == "memory":
        return InMemoryCardRepository()

    if config.backend == "sqlite":
        logger.debug(f"Backend: SQLite ({config.database_path})")
        return SqliteCardRepository(config.database_path)

    raise ConfigurationError(f"Unknown backend: {config.backend}")


def get_notification_publisher(config: AppConfig) -> NotificationPublisher:
    """
    Webhook publisher when a URL is configured, log-only otherwise.
    """
    if config.notification_webhook_url:
        return WebhookNotificationPublisher(config.notification_webhook_url)
    return LoggingNotificationPublisher()


def build_learning_service(
    config: AppConfig, repo: CardRepository | None = None
) -> LearningService:
    """
    Assemble a LearningService from config.
    """
    return LearningService(
        repo or get_card_repository(config),
        algorithm=SchedulingAlgorithm(max_interval_days=config.max_interval_days),
        aggregator=StatsAggregator(thresholds=config.stats_thresholds()),
        notifier=get_notification_publisher(config),
        default_preferences=config.study_preferences(),
    )
