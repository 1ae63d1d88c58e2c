"""Centralized constants for the mneme engine.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Easiness Factor ----------
INITIAL_EASINESS_FACTOR = 2.5
MIN_EASINESS_FACTOR = 1.3

# ---------- Ratings ----------
MIN_RATING = 1
MAX_RATING = 5
LAPSE_THRESHOLD = 3  # ratings below this reset the repetition count

# ---------- Intervals ----------
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
DEFAULT_MAX_INTERVAL_DAYS = 365
SECONDS_PER_DAY = 86400.0

# ---------- Retention ----------
MIN_MEMORY_STRENGTH = 1.0  # divisor floor in exp(-t / S)

# ---------- Mastery ----------
MASTERY_REPETITION_TARGET = 5
MASTERY_REPETITION_WEIGHT = 0.7
MASTERY_EASINESS_WEIGHT = 0.3

# ---------- Stats ----------
MASTERED_MIN_REPETITIONS = 5
MASTERED_MIN_LEVEL = 0.7
STRUGGLING_MAX_EASINESS = 2.0
STRUGGLING_MIN_REPETITIONS = 3
DAILY_REVIEW_LOAD_FACTOR = 0.2
MIN_DAILY_REVIEWS = 5
MAX_DAILY_REVIEWS = 20
ACTIVITY_WINDOW_DAYS = 7

# ---------- Study Schedule ----------
DEFAULT_MINUTES_PER_CARD = 2
QUICK_BATCH_MINUTES = 5
STANDARD_BATCH_MINUTES = 15
DEFAULT_MAX_SESSION_MINUTES = 30
DEFAULT_TARGET_RETENTION = 0.85
OVERDUE_WEIGHT_PER_DAY = 1.0
MAX_FOCUS_TOPICS = 3

# window -> (hour, expected retention %, priority)
TIME_WINDOW_SLOTS = {
    "morning": (9, 95, "high"),
    "afternoon": (14, 90, "medium"),
    "evening": (19, 85, "low"),
}

# ---------- Notifications / HTTP ----------
WEBHOOK_TIMEOUT = 10.0
