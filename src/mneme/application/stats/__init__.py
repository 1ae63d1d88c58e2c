# Application Stats Package
from .aggregator import StatsAggregator
from .service import LearningStatsService

__all__ = ["StatsAggregator", "LearningStatsService"]
