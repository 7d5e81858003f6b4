"""Fixtures for CLI tests: an initialized knowledge base and a fake provider."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from metamind.cli.main import app

runner = CliRunner()


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    (root / "sqlite.md").write_text(
        "---\ntitle: SQLite\ntags: [db]\n---\n# SQLite\n\nSQLite stores a whole database in one file.\n",
        encoding="utf-8",
    )
    (root / "garden.md").write_text("# Garden\n\nTomatoes need sun and water.\n", encoding="utf-8")
    return root


@pytest.fixture
def kb(tmp_path: Path, vault: Path) -> Path:
    """Run `metamind init` and return the database path."""
    project = tmp_path / "kb"
    result = runner.invoke(app, ["init", str(project), "--vault", str(vault)])
    assert result.exit_code == 0, result.output
    return project / ".metamind.db"


@pytest.fixture
def fake_provider(provider):
    with patch("metamind.context.create_provider", return_value=provider):
        yield provider
