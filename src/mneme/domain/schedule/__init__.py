# Domain Schedule Package
from .models import (
    NotificationPlan,
    OptimalStudyTime,
    StudyBatch,
    StudyInsights,
    StudyPreferences,
    StudySchedule,
    TimeWindow,
    TopicRetention,
)

__all__ = [
    "NotificationPlan",
    "OptimalStudyTime",
    "StudyBatch",
    "StudyInsights",
    "StudyPreferences",
    "StudySchedule",
    "TimeWindow",
    "TopicRetention",
]
