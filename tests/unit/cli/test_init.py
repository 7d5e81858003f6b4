"""Tests for metamind init."""

from __future__ import annotations

from pathlib import Path

import yaml
from typer.testing import CliRunner

from metamind.cli.main import app
from metamind.db.connection import Database
from metamind.db.repository import Repository

runner = CliRunner()


def test_init_creates_db_and_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / ".metamind.db").exists()
    assert (tmp_path / "metamind.yaml").exists()
    assert "Knowledge base initialized" in result.output


def test_init_with_vault_stores_setting(tmp_path: Path, vault: Path) -> None:
    project = tmp_path / "kb"
    result = runner.invoke(app, ["init", str(project), "--vault", str(vault)])
    assert result.exit_code == 0, result.output

    data = yaml.safe_load((project / "metamind.yaml").read_text(encoding="utf-8"))
    assert data["vault"]["path"] == str(vault.resolve())

    with Database(project / ".metamind.db") as conn:
        assert Repository(conn).get_settings()["vault_path"] == str(vault.resolve())


def test_init_twice_preserves_data(tmp_path: Path) -> None:
    runner.invoke(app, ["init", str(tmp_path)])
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0
    assert "already" in result.output
