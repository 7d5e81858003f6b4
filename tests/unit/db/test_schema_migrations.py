"""Tests for the connection layer and forward-only migrations."""

from __future__ import annotations

from metamind.db.connection import Database
from metamind.db.migrations import MIGRATIONS, current_version, run_migrations
from metamind.db.schema import CURRENT_VERSION, initialize


def _tables(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {r[0] for r in rows}


def test_initialize_creates_tables(tmp_db):
    assert {"documents", "chunks", "conversation", "settings", "schema_version"} <= _tables(tmp_db)


def test_migrations_are_idempotent(tmp_db):
    run_migrations(tmp_db)
    run_migrations(tmp_db)
    count = tmp_db.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    assert current_version(tmp_db) == CURRENT_VERSION


def test_foreign_keys_enabled(tmp_db):
    assert tmp_db.execute("PRAGMA foreign_keys").fetchone()[0] == 1


def test_rows_are_addressable_by_name(tmp_db):
    tmp_db.execute("INSERT INTO settings (key, value) VALUES ('k', 'v')")
    row = tmp_db.execute("SELECT key, value FROM settings").fetchone()
    assert row["key"] == "k"


def test_context_manager_closes(tmp_path):
    db = Database(tmp_path / "x.db")
    with db as conn:
        initialize(conn)
    assert db._conn is None
    assert (tmp_path / "x.db").exists()
