# Infrastructure Adapters Package
from .memory_repository import InMemoryCardRepository
from .notifications import LoggingNotificationPublisher, WebhookNotificationPublisher
from .sqlite_repository import SqliteCardRepository

__all__ = [
    "InMemoryCardRepository",
    "SqliteCardRepository",
    "LoggingNotificationPublisher",
    "WebhookNotificationPublisher",
]
