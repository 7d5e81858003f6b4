"""Repository pattern for all metamind database operations.

Single interface for: documents, chunks (with vectors), the conversation log,
and key/value settings. Every public method runs under one exclusive lock and
commits before returning, so each call is atomic on its own.
"""

from __future__ import annotations

import contextlib
import functools
import sqlite3
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from metamind.db.models import Chunk, ConversationTurn, Document
from metamind.db.vectors import decode_vector, encode_vector
from metamind.errors import StorageError

_T = TypeVar("_T")


def _locked(method: Callable[..., _T]) -> Callable[..., _T]:
    """Serialize *method* through the repository lock; wrap sqlite errors."""

    @functools.wraps(method)
    def wrapper(self: Repository, *args: Any, **kwargs: Any) -> _T:
        with self._lock:
            try:
                return method(self, *args, **kwargs)
            except sqlite3.Error as exc:
                with contextlib.suppress(sqlite3.Error):
                    self._conn.rollback()
                raise StorageError(f"{method.__name__} failed: {exc}") from exc

    return wrapper


class Repository:
    """Data access layer for all metamind database entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see metamind.db.schema.initialize).
        """
        self._conn = conn
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @_locked
    def upsert_document(self, document: Document) -> None:
        """Insert *document* or replace the fields of the row with the same id.

        Args:
            document: Document dataclass instance to persist.
        """
        self._conn.execute(
            """
            INSERT INTO documents (id, path, last_modified, content_hash, indexed_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                path = excluded.path,
                last_modified = excluded.last_modified,
                content_hash = excluded.content_hash,
                indexed_at = excluded.indexed_at
            """,
            (
                document.id,
                document.path,
                document.last_modified,
                document.content_hash,
                document.indexed_at,
            ),
        )
        self._conn.commit()

    @_locked
    def get_document(self, document_id: str) -> Document | None:
        """Return a document by id, or None if not found."""
        row = self._conn.execute(
            "SELECT id, path, last_modified, content_hash, indexed_at FROM documents WHERE id = ?",
            (document_id,),
        ).fetchone()
        return _row_to_document(row) if row else None

    @_locked
    def get_document_by_path(self, path: str) -> Document | None:
        """Return a document by its logical path, or None if not found.

        Args:
            path: Filesystem path or scheme-qualified identifier (``outline://<id>``).

        Returns:
            Document instance or None.
        """
        row = self._conn.execute(
            "SELECT id, path, last_modified, content_hash, indexed_at FROM documents WHERE path = ?",
            (path,),
        ).fetchone()
        return _row_to_document(row) if row else None

    @_locked
    def list_documents(self) -> list[Document]:
        """Return all documents ordered by path."""
        rows = self._conn.execute(
            "SELECT id, path, last_modified, content_hash, indexed_at FROM documents ORDER BY path"
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    @_locked
    def delete_document(self, document_id: str) -> bool:
        """Delete a document by id; its chunks cascade. Returns True if a row was removed."""
        cur = self._conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        self._conn.commit()
        return cur.rowcount > 0

    @_locked
    def delete_document_by_path(self, path: str) -> bool:
        """Delete the document stored under *path*; its chunks cascade."""
        cur = self._conn.execute("DELETE FROM documents WHERE path = ?", (path,))
        self._conn.commit()
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    @_locked
    def add_chunk(self, chunk: Chunk) -> None:
        """Insert *chunk* with its vector encoded as float32 little-endian."""
        self._conn.execute(
            """
            INSERT INTO chunks (id, document_id, position, text, vector)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                chunk.id,
                chunk.document_id,
                chunk.position,
                chunk.text,
                encode_vector(chunk.vector),
            ),
        )
        self._conn.commit()

    @_locked
    def delete_chunks_by_document(self, document_id: str) -> int:
        """Delete every chunk of *document_id*. Returns the number of rows removed."""
        cur = self._conn.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
        self._conn.commit()
        return cur.rowcount

    @_locked
    def list_chunks(self) -> list[Chunk]:
        """Return the full chunk set with decoded vectors.

        Unindexed by design of the vector index: every search scans everything.
        """
        rows = self._conn.execute(
            "SELECT document_id, position, text, vector FROM chunks ORDER BY document_id, position"
        ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    @_locked
    def count_chunks(self, document_id: str | None = None) -> int:
        """Return the number of chunks, optionally restricted to one document."""
        if document_id is None:
            return self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
        return self._conn.execute(
            "SELECT COUNT(*) FROM chunks WHERE document_id = ?", (document_id,)
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    @_locked
    def add_turn(self, turn: ConversationTurn) -> int:
        """Append a conversation turn. Returns the new id."""
        cur = self._conn.execute(
            "INSERT INTO conversation (role, text, timestamp) VALUES (?, ?, ?)",
            (turn.role, turn.text, turn.timestamp),
        )
        self._conn.commit()
        turn.id = cur.lastrowid
        return cur.lastrowid

    @_locked
    def list_conversation(self, limit: int | None = None) -> list[ConversationTurn]:
        """Return turns in conversation order (timestamp, then id).

        Args:
            limit: When set, only the most recent *limit* turns are returned,
                still oldest first.
        """
        if limit is None:
            rows = self._conn.execute(
                "SELECT id, role, text, timestamp FROM conversation ORDER BY timestamp, id"
            ).fetchall()
        else:
            rows = self._conn.execute(
                """
                SELECT id, role, text, timestamp FROM (
                    SELECT id, role, text, timestamp FROM conversation
                    ORDER BY timestamp DESC, id DESC LIMIT ?
                ) ORDER BY timestamp, id
                """,
                (limit,),
            ).fetchall()
        return [_row_to_turn(r) for r in rows]

    @_locked
    def clear_conversation(self) -> None:
        """Delete every conversation turn."""
        self._conn.execute("DELETE FROM conversation")
        self._conn.commit()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @_locked
    def get_settings(self) -> dict[str, str]:
        """Return all stored settings as a dict."""
        rows = self._conn.execute("SELECT key, value FROM settings").fetchall()
        return {r["key"]: r["value"] for r in rows}

    @_locked
    def save_settings(self, settings: dict[str, str]) -> None:
        """Upsert every key/value pair of *settings* in one transaction."""
        self._conn.executemany(
            """
            INSERT INTO settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            list(settings.items()),
        )
        self._conn.commit()


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        path=row["path"],
        last_modified=row["last_modified"],
        content_hash=row["content_hash"],
        indexed_at=row["indexed_at"],
    )


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    return Chunk(
        document_id=row["document_id"],
        position=row["position"],
        text=row["text"],
        vector=decode_vector(row["vector"]),
    )


def _row_to_turn(row: sqlite3.Row) -> ConversationTurn:
    return ConversationTurn(
        id=row["id"],
        role=row["role"],
        text=row["text"],
        timestamp=row["timestamp"],
    )
