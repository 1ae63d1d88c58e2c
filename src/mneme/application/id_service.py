"""Stable identifiers for cards and review log entries."""

from ulid import ULID


def generate_card_id() -> str:
    """Generate a sortable card ID using ULID."""
    return f"card_{ULID()}"


def generate_event_id() -> str:
    """Generate a sortable review event ID using ULID."""
    return f"rev_{ULID()}"
