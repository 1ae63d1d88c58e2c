"""
SQLite Card Repository: Infrastructure adapter for a local SQLite database.

Implements CardRepository with two tables: `cards` (one row per card, replaced
on save) and `review_events` (append-only). Timestamps are stored as UTC epoch
seconds.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from mneme.domain.errors import PersistenceError
from mneme.domain.models import CardReviewState, ReviewEvent
from mneme.domain.ports import CardRepository

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS cards (
    card_id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    topic_id TEXT,
    repetition_count INTEGER NOT NULL,
    easiness_factor REAL NOT NULL,
    next_review_at REAL NOT NULL,
    last_reviewed_at REAL,
    last_retention REAL NOT NULL,
    mastery_level REAL NOT NULL,
    last_rating INTEGER,
    created_at REAL NOT NULL,
    front TEXT NOT NULL DEFAULT '',
    back TEXT NOT NULL DEFAULT '',
    metadata TEXT NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_cards_owner_due ON cards (owner_id, next_review_at);
CREATE TABLE IF NOT EXISTS review_events (
    event_id TEXT PRIMARY KEY,
    card_id TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    rating INTEGER NOT NULL,
    retention REAL NOT NULL,
    reviewed_at REAL NOT NULL,
    interval_days INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_owner_time ON review_events (owner_id, reviewed_at);
"""

CARD_COLUMNS = (
    "card_id, owner_id, topic_id, repetition_count, easiness_factor, next_review_at, "
    "last_reviewed_at, last_retention, mastery_level, last_rating, created_at, "
    "front, back, metadata"
)


def _to_epoch(value: datetime | None) -> float | None:
    if value is None:
        return None
    return value.timestamp()


def _from_epoch(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class SqliteCardRepository(CardRepository):
    """
    Persists cards and the review log to SQLite.

    The connection is opened lazily and reused; call close() when done.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                if str(self.db_path) != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.executescript(SCHEMA)
            except (sqlite3.Error, OSError) as e:
                raise PersistenceError(f"Could not open database {self.db_path}: {e}") from e
            self._conn = conn
            logger.debug(f"Opened card database at {self.db_path}")
        return self._conn

    def _execute(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        conn = self._connection()
        try:
            with conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.warning(f"SQLite query failed: {e}")
            raise PersistenceError(str(e)) from e

    async def get_card(self, card_id: str) -> CardReviewState | None:
        rows = self._execute(f"SELECT {CARD_COLUMNS} FROM cards WHERE card_id = ?", (card_id,))
        return self._row_to_card(rows[0]) if rows else None

    async def save_card(self, state: CardReviewState) -> None:
        self._execute(
            f"INSERT OR REPLACE INTO cards ({CARD_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                state.card_id,
                state.owner_id,
                state.topic_id,
                state.repetition_count,
                state.easiness_factor,
                _to_epoch(state.next_review_at),
                _to_epoch(state.last_reviewed_at),
                state.last_retention,
                state.mastery_level,
                state.last_rating,
                _to_epoch(state.created_at),
                state.front,
                state.back,
                json.dumps(state.metadata),
            ),
        )

    async def append_review_event(self, event: ReviewEvent) -> None:
        self._execute(
            "INSERT INTO review_events "
            "(event_id, card_id, owner_id, rating, retention, reviewed_at, interval_days) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                event.event_id,
                event.card_id,
                event.owner_id,
                event.rating,
                event.retention,
                _to_epoch(event.reviewed_at),
                event.interval_days,
            ),
        )

    async def list_cards_by_owner(self, owner_id: str) -> list[CardReviewState]:
        rows = self._execute(
            f"SELECT {CARD_COLUMNS} FROM cards WHERE owner_id = ? ORDER BY created_at ASC",
            (owner_id,),
        )
        return [self._row_to_card(row) for row in rows]

    async def list_due_cards(self, owner_id: str, as_of: datetime) -> list[CardReviewState]:
        rows = self._execute(
            f"SELECT {CARD_COLUMNS} FROM cards "
            "WHERE owner_id = ? AND next_review_at <= ? ORDER BY next_review_at ASC",
            (owner_id, _to_epoch(as_of)),
        )
        return [self._row_to_card(row) for row in rows]

    async def list_review_events(self, owner_id: str) -> list[ReviewEvent]:
        rows = self._execute(
            "SELECT event_id, card_id, owner_id, rating, retention, reviewed_at, interval_days "
            "FROM review_events WHERE owner_id = ? ORDER BY reviewed_at ASC",
            (owner_id,),
        )
        return [
            ReviewEvent(
                event_id=row["event_id"],
                card_id=row["card_id"],
                owner_id=row["owner_id"],
                rating=row["rating"],
                retention=row["retention"],
                reviewed_at=_from_epoch(row["reviewed_at"]),
                interval_days=row["interval_days"],
            )
            for row in rows
        ]

    def _row_to_card(self, row: sqlite3.Row) -> CardReviewState:
        try:
            metadata = json.loads(row["metadata"] or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Invalid metadata JSON for card={row['card_id']}, ignoring")
            metadata = {}

        return CardReviewState(
            card_id=row["card_id"],
            owner_id=row["owner_id"],
            topic_id=row["topic_id"],
            repetition_count=row["repetition_count"],
            easiness_factor=row["easiness_factor"],
            next_review_at=_from_epoch(row["next_review_at"]),
            last_reviewed_at=_from_epoch(row["last_reviewed_at"]),
            last_retention=row["last_retention"],
            mastery_level=row["mastery_level"],
            last_rating=row["last_rating"],
            created_at=_from_epoch(row["created_at"]),
            front=row["front"],
            back=row["back"],
            metadata=metadata,
        )
