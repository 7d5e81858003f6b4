"""metamind settings: show or change persisted settings.

Settings live in the database and override metamind.yaml; METAMIND_*
environment variables still win over them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from metamind.cli.errors import err_unknown_setting
from metamind.cli.shared import DEFAULT_DB, open_context
from metamind.config import SETTINGS_KEYS

console = Console()

settings_app = typer.Typer(help="Show or change persisted settings.", no_args_is_help=True)


@settings_app.command("show")
def show_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
) -> None:
    """Show the effective value of every setting."""
    ctx = open_context(db, console)
    try:
        effective = ctx.config.to_settings()
        stored = ctx.repo.get_settings()
    finally:
        ctx.close()

    table = Table(title="Settings")
    table.add_column("Key")
    table.add_column("Value")
    table.add_column("Stored", justify="center")
    for key in SETTINGS_KEYS:
        table.add_row(key, effective[key] or "[dim](empty)[/]", "✓" if key in stored else "")
    console.print(table)


@settings_app.command("set")
def set_cmd(
    key: Annotated[str, typer.Argument(help="Setting name.")],
    value: Annotated[str, typer.Argument(help="New value.")],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
) -> None:
    """Persist one setting; later commands use the new value."""
    if key not in SETTINGS_KEYS:
        console.print(err_unknown_setting(key, SETTINGS_KEYS))
        raise typer.Exit(1)

    ctx = open_context(db, console)
    try:
        ctx.update_settings({key: value})
    finally:
        ctx.close()
    console.print(f"[green]✓[/] {key} = {value}")
