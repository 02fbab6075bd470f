"""SQLite storage for facts, summaries and embeddings."""

import json
import sqlite3
import threading
import uuid
from pathlib import Path
from typing import Any

from .models import (
    Embedding,
    Fact,
    FactCategory,
    SourceType,
    Summary,
    clamp_confidence,
)

_NOW = "(strftime('%Y-%m-%dT%H:%M:%f', 'now'))"

_CATEGORIES = ", ".join(f"'{c.value}'" for c in FactCategory)
_SOURCE_TYPES = ", ".join(f"'{s.value}'" for s in SourceType)

_FACT_COLUMNS = (
    "id, user_id, category, key, value, confidence, source_message_id, "
    "created_at, updated_at"
)
_SUMMARY_COLUMNS = (
    "id, user_id, content, period_start, period_end, message_count, created_at"
)
_EMBEDDING_COLUMNS = (
    "id, user_id, content, vector, source_type, source_id, version, created_at"
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _decode_vector(raw: Any) -> tuple[float, ...]:
    """Decode a stored vector; anything malformed becomes an empty vector."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return ()
    if not isinstance(data, list):
        return ()
    try:
        return tuple(float(x) for x in data)
    except (TypeError, ValueError):
        return ()


class MemoryStore:
    """Persistent storage for one deployment's memory using SQLite.

    Every read and every destructive write takes a mandatory ``user_id``
    and filters on it; rows of one user are never visible to another.
    The connection is shared across threads (the retriever reads through
    ``asyncio.to_thread``), so access to it is serialized with a lock.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create the memory tables if they don't exist."""
        with self._lock:
            conn = self._get_connection()
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS memory_facts (
                    id                 TEXT PRIMARY KEY,
                    user_id            TEXT NOT NULL,
                    category           TEXT NOT NULL CHECK (category IN ({_CATEGORIES})),
                    key                TEXT NOT NULL,
                    value              TEXT NOT NULL,
                    confidence         REAL NOT NULL DEFAULT 1.0,
                    source_message_id  TEXT,
                    created_at         TEXT NOT NULL DEFAULT {_NOW},
                    updated_at         TEXT NOT NULL DEFAULT {_NOW}
                )
            """)
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS memory_summaries (
                    id             TEXT PRIMARY KEY,
                    user_id        TEXT NOT NULL,
                    content        TEXT NOT NULL,
                    period_start   TEXT NOT NULL,
                    period_end     TEXT NOT NULL,
                    message_count  INTEGER NOT NULL DEFAULT 0 CHECK (message_count >= 0),
                    created_at     TEXT NOT NULL DEFAULT {_NOW}
                )
            """)
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS memory_embeddings (
                    id           TEXT PRIMARY KEY,
                    user_id      TEXT NOT NULL,
                    content      TEXT NOT NULL,
                    vector       TEXT NOT NULL,
                    source_type  TEXT NOT NULL CHECK (source_type IN ({_SOURCE_TYPES})),
                    source_id    TEXT,
                    version      INTEGER NOT NULL,
                    created_at   TEXT NOT NULL DEFAULT {_NOW}
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memory_facts_user ON memory_facts(user_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memory_facts_category "
                "ON memory_facts(user_id, category)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memory_summaries_user "
                "ON memory_summaries(user_id, period_end)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memory_embeddings_user "
                "ON memory_embeddings(user_id)"
            )
            conn.commit()

    # Facts

    def save_fact(self, fact: Fact) -> Fact:
        """Insert a new fact row.

        Facts are never deduplicated: saving a fact with an existing key
        adds another row. Confidence is clamped into [0, 1].

        Args:
            fact: The fact to save.

        Returns:
            The stored fact with its id and timestamps.
        """
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                f"""
                INSERT INTO memory_facts
                    (id, user_id, category, key, value, confidence, source_message_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                RETURNING {_FACT_COLUMNS}
                """,
                (
                    fact.id or _new_id(),
                    fact.user_id,
                    FactCategory(fact.category).value,
                    fact.key,
                    fact.value,
                    clamp_confidence(fact.confidence),
                    fact.source_message_id,
                ),
            )
            row = cursor.fetchone()
            conn.commit()
        return self._row_to_fact(row)

    def get_facts(self, user_id: str) -> list[Fact]:
        """Get a user's facts, most recently updated first."""
        with self._lock:
            cursor = self._get_connection().execute(
                f"SELECT {_FACT_COLUMNS} FROM memory_facts WHERE user_id = ? "
                "ORDER BY updated_at DESC, rowid DESC",
                (user_id,),
            )
            rows = cursor.fetchall()
        return [self._row_to_fact(row) for row in rows]

    def get_facts_by_category(self, user_id: str, category: FactCategory) -> list[Fact]:
        """Get a user's facts in one category, most recently updated first."""
        with self._lock:
            cursor = self._get_connection().execute(
                f"SELECT {_FACT_COLUMNS} FROM memory_facts "
                "WHERE user_id = ? AND category = ? "
                "ORDER BY updated_at DESC, rowid DESC",
                (user_id, FactCategory(category).value),
            )
            rows = cursor.fetchall()
        return [self._row_to_fact(row) for row in rows]

    def count_facts(self, user_id: str) -> int:
        """Count a user's facts."""
        return self._count("memory_facts", user_id)

    def update_fact(
        self,
        user_id: str,
        fact_id: str,
        *,
        category: FactCategory | None = None,
        key: str | None = None,
        value: str | None = None,
        confidence: float | None = None,
    ) -> Fact | None:
        """Update fields of one of a user's facts and bump updated_at.

        Changing the key or value drops the embeddings made from the fact.

        Returns:
            The updated fact, or None if the user has no fact with that id.
        """
        assignments = [f"updated_at = {_NOW}"]
        params: list[Any] = []
        if category is not None:
            assignments.append("category = ?")
            params.append(FactCategory(category).value)
        if key is not None:
            assignments.append("key = ?")
            params.append(key)
        if value is not None:
            assignments.append("value = ?")
            params.append(value)
        if confidence is not None:
            assignments.append("confidence = ?")
            params.append(clamp_confidence(confidence))

        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                f"UPDATE memory_facts SET {', '.join(assignments)} "
                f"WHERE id = ? AND user_id = ? RETURNING {_FACT_COLUMNS}",
                (*params, fact_id, user_id),
            )
            row = cursor.fetchone()
            if row is not None and (key is not None or value is not None):
                # the stored vector was computed from the old text
                conn.execute(
                    "DELETE FROM memory_embeddings "
                    "WHERE user_id = ? AND source_type = ? AND source_id = ?",
                    (user_id, SourceType.FACT.value, fact_id),
                )
            conn.commit()
        return self._row_to_fact(row) if row is not None else None

    def delete_fact(self, user_id: str, fact_id: str) -> bool:
        """Delete one of a user's facts by id, with the fact's embeddings.

        Returns:
            True if a fact was deleted, False otherwise.
        """
        return self._delete_facts(user_id, "id = ?", (fact_id,)) > 0

    def delete_facts_by_key(self, user_id: str, key: str) -> int:
        """Delete all of a user's facts with a given key, with their embeddings.

        Returns:
            Number of facts deleted.
        """
        return self._delete_facts(user_id, "key = ?", (key,))

    def clear_facts(self, user_id: str) -> int:
        """Delete all of a user's facts and the embeddings made from them."""
        return self._delete_facts(user_id, "1 = 1", ())

    def _delete_facts(self, user_id: str, condition: str, params: tuple[Any, ...]) -> int:
        """Delete matching facts of a user in one transaction.

        Embedding rows made from the deleted facts are removed with them.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    "DELETE FROM memory_embeddings "
                    "WHERE user_id = ? AND source_type = ? AND source_id IN "
                    f"(SELECT id FROM memory_facts WHERE user_id = ? AND {condition})",
                    (user_id, SourceType.FACT.value, user_id, *params),
                )
                cursor = conn.execute(
                    f"DELETE FROM memory_facts WHERE user_id = ? AND {condition}",
                    (user_id, *params),
                )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
        return cursor.rowcount

    # Summaries

    def save_summary(self, summary: Summary) -> Summary:
        """Insert a new summary row."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                f"""
                INSERT INTO memory_summaries
                    (id, user_id, content, period_start, period_end, message_count)
                VALUES (?, ?, ?, ?, ?, ?)
                RETURNING {_SUMMARY_COLUMNS}
                """,
                (
                    summary.id or _new_id(),
                    summary.user_id,
                    summary.content,
                    summary.period_start,
                    summary.period_end,
                    summary.message_count,
                ),
            )
            row = cursor.fetchone()
            conn.commit()
        return self._row_to_summary(row)

    def get_summaries(self, user_id: str) -> list[Summary]:
        """Get a user's summaries, latest period first."""
        with self._lock:
            cursor = self._get_connection().execute(
                f"SELECT {_SUMMARY_COLUMNS} FROM memory_summaries WHERE user_id = ? "
                "ORDER BY period_end DESC, rowid DESC",
                (user_id,),
            )
            rows = cursor.fetchall()
        return [self._row_to_summary(row) for row in rows]

    def count_summaries(self, user_id: str) -> int:
        """Count a user's summaries."""
        return self._count("memory_summaries", user_id)

    def clear_summaries(self, user_id: str) -> int:
        """Delete all of a user's summaries."""
        return self._clear("memory_summaries", user_id)

    # Embeddings

    def save_embedding(self, embedding: Embedding) -> Embedding:
        """Insert a new embedding row; the vector is stored as JSON."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                f"""
                INSERT INTO memory_embeddings
                    (id, user_id, content, vector, source_type, source_id, version)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                RETURNING {_EMBEDDING_COLUMNS}
                """,
                (
                    embedding.id or _new_id(),
                    embedding.user_id,
                    embedding.content,
                    json.dumps(list(embedding.vector)),
                    SourceType(embedding.source_type).value,
                    embedding.source_id,
                    embedding.version,
                ),
            )
            row = cursor.fetchone()
            conn.commit()
        return self._row_to_embedding(row)

    def get_embeddings(self, user_id: str) -> list[Embedding]:
        """Get a user's embeddings in insertion order."""
        with self._lock:
            cursor = self._get_connection().execute(
                f"SELECT {_EMBEDDING_COLUMNS} FROM memory_embeddings WHERE user_id = ? "
                "ORDER BY rowid",
                (user_id,),
            )
            rows = cursor.fetchall()
        return [self._row_to_embedding(row) for row in rows]

    def count_embeddings(self, user_id: str) -> int:
        """Count a user's embeddings."""
        return self._count("memory_embeddings", user_id)

    def clear_embeddings(self, user_id: str) -> int:
        """Delete all of a user's embeddings."""
        return self._clear("memory_embeddings", user_id)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _count(self, table: str, user_id: str) -> int:
        with self._lock:
            cursor = self._get_connection().execute(
                f"SELECT COUNT(*) FROM {table} WHERE user_id = ?", (user_id,)
            )
            return cursor.fetchone()[0]

    def _clear(self, table: str, user_id: str) -> int:
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
            conn.commit()
        return cursor.rowcount

    def _row_to_fact(self, row: sqlite3.Row) -> Fact:
        """Convert a database row to a Fact."""
        return Fact(
            id=row["id"],
            user_id=row["user_id"],
            category=FactCategory(row["category"]),
            key=row["key"],
            value=row["value"],
            confidence=row["confidence"],
            source_message_id=row["source_message_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_summary(self, row: sqlite3.Row) -> Summary:
        """Convert a database row to a Summary."""
        return Summary(
            id=row["id"],
            user_id=row["user_id"],
            content=row["content"],
            period_start=row["period_start"],
            period_end=row["period_end"],
            message_count=row["message_count"],
            created_at=row["created_at"],
        )

    def _row_to_embedding(self, row: sqlite3.Row) -> Embedding:
        """Convert a database row to an Embedding."""
        return Embedding(
            id=row["id"],
            user_id=row["user_id"],
            content=row["content"],
            vector=_decode_vector(row["vector"]),
            source_type=SourceType(row["source_type"]),
            source_id=row["source_id"],
            version=row["version"],
            created_at=row["created_at"],
        )
