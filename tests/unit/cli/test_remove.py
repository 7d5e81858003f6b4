"""Tests for metamind remove."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from metamind.cli.main import app
from metamind.db.connection import Database
from metamind.db.models import Chunk, Document
from metamind.db.repository import Repository

runner = CliRunner()


def _add_document(db: Path, path: str = "outline://abc") -> None:
    with Database(db) as conn:
        repo = Repository(conn)
        repo.upsert_document(Document("doc-1", path, 1, "hash", 1))
        repo.add_chunk(Chunk("doc-1", 0, "text", [1.0, 0.0]))
        repo.add_chunk(Chunk("doc-1", 1, "more", [0.0, 1.0]))


def _documents(db: Path) -> int:
    with Database(db) as conn:
        return len(Repository(conn).list_documents())


def test_remove_with_yes(kb: Path) -> None:
    _add_document(kb)
    result = runner.invoke(app, ["remove", "outline://abc", "--yes", "--db", str(kb)])
    assert result.exit_code == 0, result.output
    assert "Chunks: 2" in result.output
    assert _documents(kb) == 0
    with Database(kb) as conn:
        assert Repository(conn).count_chunks() == 0


def test_remove_confirm_declined(kb: Path) -> None:
    _add_document(kb)
    result = runner.invoke(app, ["remove", "outline://abc", "--db", str(kb)], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert _documents(kb) == 1


def test_remove_local_path_is_resolved(kb: Path, tmp_path: Path, monkeypatch) -> None:
    note = tmp_path / "note.md"
    _add_document(kb, str(note.resolve()))
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["remove", "note.md", "-y", "--db", str(kb)])
    assert result.exit_code == 0, result.output
    assert _documents(kb) == 0


def test_remove_unknown_document(kb: Path) -> None:
    result = runner.invoke(app, ["remove", "nope.md", "--db", str(kb)])
    assert result.exit_code == 0
    assert "Document not found" in result.output
