"""
Evidence Store for the Warm Intro Graph.

SQLite-backed storage boundary for people, evidence events and derived edge
snapshots. Every read is scoped to one user, except the full-table scan used
by deduplication sweeps (whose identity key includes the user id).

All sqlite3 failures surface as StorageError. Mutating batch operations
report exact affected-row counts.
"""
import sqlite3
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from api.services.errors import InvalidInputError, StorageError
from api.services.evidence import EvidenceEvent, STATUS_ACTIVE, dump_metadata
from api.services.graph_builder import Edge
from api.services.person_catalog import Person
from api.utils.datetime_utils import to_utc_iso
from api.utils.db_paths import get_db_path

logger = logging.getLogger(__name__)

# SQLite caps bound parameters per statement; batches must stay below it
MAX_IDS_PER_STATEMENT = 900

_EVENT_COLUMNS = (
    "id, user_id, subject_person_id, object_person_id, type, source, "
    "timestamp, metadata, created_at, status"
)


def validate_id_list(ids) -> list[str]:
    """
    Validate a list of record ids for a batch operation.

    Raises:
        InvalidInputError: If ids is not a list of non-empty strings or is too long
    """
    if isinstance(ids, (str, bytes)) or not isinstance(ids, (list, tuple, set, frozenset)):
        raise InvalidInputError("ids must be a list of strings", field="ids")
    cleaned = list(ids)
    for record_id in cleaned:
        if not isinstance(record_id, str) or not record_id.strip():
            raise InvalidInputError(f"Malformed id in batch: {record_id!r}", field="ids")
    if len(cleaned) > MAX_IDS_PER_STATEMENT:
        raise InvalidInputError(
            f"Batch of {len(cleaned)} ids exceeds limit of {MAX_IDS_PER_STATEMENT}", field="ids"
        )
    return cleaned


class EvidenceStore:
    """
    SQLite-backed evidence storage.

    Opens one connection per operation so independent requests never share
    connection state.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize evidence store.

        Args:
            db_path: Path to SQLite database (default from settings)
        """
        self.db_path = db_path or get_db_path()
        self._init_db()

    @contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Open a connection, wrapping sqlite3 failures as StorageError."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Failed to open evidence database for {operation}: {e}")
            raise StorageError(operation, str(e), cause=e) from e
        try:
            yield conn
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Evidence store {operation} failed: {e}")
            raise StorageError(operation, str(e), cause=e) from e
        finally:
            conn.close()

    def _init_db(self):
        """Create database tables if they don't exist."""
        with self._connection("init") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    person_id TEXT,
                    created_at TIMESTAMP NOT NULL
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS people (
                    id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    names TEXT NOT NULL,
                    emails TEXT NOT NULL,
                    title TEXT,
                    organization TEXT,
                    is_me INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (user_id, id)
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS evidence_events (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    subject_person_id TEXT NOT NULL,
                    object_person_id TEXT,
                    type TEXT NOT NULL,
                    source TEXT NOT NULL,
                    timestamp TIMESTAMP NOT NULL,
                    metadata TEXT,
                    created_at TIMESTAMP NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active'
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS edges (
                    user_id TEXT NOT NULL,
                    from_person_id TEXT NOT NULL,
                    to_person_id TEXT NOT NULL,
                    strength REAL NOT NULL,
                    interaction_count INTEGER NOT NULL,
                    sources TEXT NOT NULL,
                    event_types TEXT NOT NULL,
                    first_interaction_at TIMESTAMP,
                    last_interaction_at TIMESTAMP,
                    factors TEXT NOT NULL DEFAULT '{}',
                    confidence REAL NOT NULL DEFAULT 0,
                    computed_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (user_id, from_person_id, to_person_id)
                )
            """
            )

            # Index for per-user reads
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_evidence_user_status
                ON evidence_events(user_id, status, created_at)
            """
            )

            # Index matching the deduplication identity key
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_evidence_identity
                ON evidence_events(user_id, subject_person_id, object_person_id, type, source, timestamp)
            """
            )

            conn.commit()
            logger.info(f"Initialized evidence database at {self.db_path}")

    # ------------------------------------------------------------------
    # Users and people
    # ------------------------------------------------------------------

    def add_user(self, user_id: str, person_id: Optional[str] = None) -> None:
        """Register a user, optionally linked to their own person record."""
        with self._connection("add_user") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO users (id, person_id, created_at) VALUES (?, ?, ?)",
                (user_id, person_id, to_utc_iso(datetime.now(timezone.utc))),
            )
            conn.commit()

    def user_exists(self, user_id: str) -> bool:
        with self._connection("user_exists") as conn:
            row = conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone()
            return row is not None

    def get_user_person_id(self, user_id: str) -> Optional[str]:
        """Get the person id linked to a user (None if unlinked or unknown)."""
        with self._connection("get_user_person_id") as conn:
            row = conn.execute("SELECT person_id FROM users WHERE id = ?", (user_id,)).fetchone()
            return row[0] if row else None

    def add_person(self, person: Person) -> Person:
        """Insert or replace a person record within its owning user."""
        with self._connection("add_person") as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO people
                (id, user_id, names, emails, title, organization, is_me)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    person.id,
                    person.user_id,
                    json.dumps(person.names),
                    json.dumps(person.emails),
                    person.title,
                    person.organization,
                    1 if person.is_me else 0,
                ),
            )
            conn.commit()
            return person

    def get_people(self, user_id: str) -> list[Person]:
        """Get the person catalog for one user."""
        with self._connection("get_people") as conn:
            cursor = conn.execute(
                """
                SELECT id, user_id, names, emails, title, organization, is_me
                FROM people WHERE user_id = ? ORDER BY id
            """,
                (user_id,),
            )
            return [Person.from_row(row) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def add_event(self, event: EvidenceEvent) -> EvidenceEvent:
        """Add a single evidence event."""
        self.add_events([event])
        return event

    def add_events(self, events: Iterable[EvidenceEvent]) -> int:
        """
        Add evidence events in one transaction.

        Returns:
            Number of events inserted
        """
        rows = [
            (
                e.id,
                e.user_id,
                e.subject_person_id,
                e.object_person_id,
                e.type.value,
                e.source.value,
                to_utc_iso(e.timestamp),
                json.dumps(dump_metadata(e.metadata), sort_keys=True),
                to_utc_iso(e.created_at),
                e.status,
            )
            for e in events
        ]
        with self._connection("add_events") as conn:
            conn.executemany(
                f"INSERT INTO evidence_events ({_EVENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
            conn.commit()
        return len(rows)

    def get_events_for_user(
        self, user_id: str, since: Optional[datetime] = None
    ) -> list[EvidenceEvent]:
        """
        Get active evidence for one user.

        Args:
            user_id: Owning user
            since: Only return events created after this instant (incremental delta)

        Returns:
            Events ordered by creation time, then id
        """
        with self._connection("get_events_for_user") as conn:
            if since is not None:
                cursor = conn.execute(
                    f"""
                    SELECT {_EVENT_COLUMNS} FROM evidence_events
                    WHERE user_id = ? AND status = ? AND created_at > ?
                    ORDER BY created_at, id
                    """,
                    (user_id, STATUS_ACTIVE, to_utc_iso(since)),
                )
            else:
                cursor = conn.execute(
                    f"""
                    SELECT {_EVENT_COLUMNS} FROM evidence_events
                    WHERE user_id = ? AND status = ?
                    ORDER BY created_at, id
                    """,
                    (user_id, STATUS_ACTIVE),
                )
            return [EvidenceEvent.from_row(row) for row in cursor.fetchall()]

    def get_all_events(self) -> list[EvidenceEvent]:
        """Get every active event across users (deduplication scans only)."""
        with self._connection("get_all_events") as conn:
            cursor = conn.execute(
                f"""
                SELECT {_EVENT_COLUMNS} FROM evidence_events
                WHERE status = ?
                ORDER BY created_at, id
                """,
                (STATUS_ACTIVE,),
            )
            return [EvidenceEvent.from_row(row) for row in cursor.fetchall()]

    def delete_by_ids(self, ids: list[str]) -> int:
        """
        Delete evidence events by id.

        Returns:
            Exact number of rows deleted (ids already gone are not counted)
        """
        ids = validate_id_list(ids)
        if not ids:
            return 0
        placeholders = ",".join("?" * len(ids))
        with self._connection("delete_by_ids") as conn:
            cursor = conn.execute(
                f"DELETE FROM evidence_events WHERE id IN ({placeholders})", ids
            )
            conn.commit()
            return cursor.rowcount

    def update_status(self, ids: list[str], status: str) -> int:
        """
        Set the status of evidence events by id.

        Returns:
            Exact number of rows whose status changed
        """
        ids = validate_id_list(ids)
        if not status or not isinstance(status, str):
            raise InvalidInputError("status must be a non-empty string", field="status")
        if not ids:
            return 0
        placeholders = ",".join("?" * len(ids))
        with self._connection("update_status") as conn:
            cursor = conn.execute(
                f"""
                UPDATE evidence_events SET status = ?
                WHERE id IN ({placeholders}) AND status != ?
                """,
                (status, *ids, status),
            )
            conn.commit()
            return cursor.rowcount

    def count(self, user_id: Optional[str] = None) -> int:
        """Count active evidence events, optionally for one user."""
        with self._connection("count") as conn:
            if user_id is None:
                row = conn.execute(
                    "SELECT COUNT(*) FROM evidence_events WHERE status = ?", (STATUS_ACTIVE,)
                ).fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM evidence_events WHERE user_id = ? AND status = ?",
                    (user_id, STATUS_ACTIVE),
                ).fetchone()
            return row[0]

    # ------------------------------------------------------------------
    # Edge snapshots
    # ------------------------------------------------------------------

    def replace_edges(self, user_id: str, edges: list[Edge]) -> int:
        """
        Atomically replace a user's persisted edge snapshot.

        Returns:
            Number of edges written
        """
        computed_at = to_utc_iso(datetime.now(timezone.utc))
        rows = [
            (
                user_id,
                edge.from_id,
                edge.to_id,
                edge.strength,
                edge.interaction_count,
                json.dumps(list(edge.sources)),
                json.dumps(list(edge.event_types)),
                to_utc_iso(edge.first_interaction_at) if edge.first_interaction_at else None,
                to_utc_iso(edge.last_interaction_at) if edge.last_interaction_at else None,
                json.dumps(edge.factors, sort_keys=True),
                edge.confidence,
                computed_at,
            )
            for edge in edges
        ]
        with self._connection("replace_edges") as conn:
            conn.execute("DELETE FROM edges WHERE user_id = ?", (user_id,))
            conn.executemany(
                """
                INSERT INTO edges
                (user_id, from_person_id, to_person_id, strength, interaction_count,
                 sources, event_types, first_interaction_at, last_interaction_at, factors, confidence,
                 computed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                rows,
            )
            conn.commit()
        logger.info(f"Stored {len(rows)} edges for user {user_id}")
        return len(rows)

    def get_edges(self, user_id: str) -> list[Edge]:
        """Get a user's persisted edge snapshot."""
        with self._connection("get_edges") as conn:
            cursor = conn.execute(
                """
                SELECT from_person_id, to_person_id, strength, interaction_count,
                       sources, event_types, first_interaction_at, last_interaction_at,
                       factors, confidence
                FROM edges WHERE user_id = ?
                ORDER BY from_person_id, to_person_id
            """,
                (user_id,),
            )
            return [Edge.from_row(row) for row in cursor.fetchall()]


# Singleton instance
_evidence_store: Optional[EvidenceStore] = None


def get_evidence_store(db_path: Optional[str] = None) -> EvidenceStore:
    """
    Get or create the singleton EvidenceStore.

    Args:
        db_path: Path to SQLite database

    Returns:
        EvidenceStore instance
    """
    global _evidence_store
    if _evidence_store is None:
        _evidence_store = EvidenceStore(db_path)
    return _evidence_store


def reset_evidence_store() -> None:
    """Drop the singleton (tests and settings reloads)."""
    global _evidence_store
    _evidence_store = None
