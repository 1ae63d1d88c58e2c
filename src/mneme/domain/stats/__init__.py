# Domain Stats Package
from .models import CardRetention, LearningStats, RetentionSnapshot, ReviewActivity, StatsThresholds

__all__ = [
    "CardRetention",
    "LearningStats",
    "RetentionSnapshot",
    "ReviewActivity",
    "StatsThresholds",
]
