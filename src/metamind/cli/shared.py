"""Helpers shared by the metamind commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from metamind.cli.errors import err_config, err_no_db, err_storage
from metamind.config import ConfigError
from metamind.context import AppContext
from metamind.errors import StorageError
from metamind.observer import Observer

DEFAULT_DB = Path(".metamind.db")


def open_context(
    db: Path, console: Console, observer: Observer | None = None, *, create: bool = False
) -> AppContext:
    """Open the application context for *db*, exiting with a message on failure."""
    if not create and not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)
    try:
        return AppContext(db.resolve().parent, db_path=db, observer=observer)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    except StorageError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1) from exc
