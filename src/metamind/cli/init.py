"""metamind init: create the knowledge base and project config.

Creates:
  .metamind.db     empty knowledge base with schema
  metamind.yaml    project config (provider, models, retrieval tuning)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from metamind.cli.shared import open_context
from metamind.config import write_project_config
from metamind.context import DB_NAME

console = Console()


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = Path("."),
    vault: Annotated[
        Path | None,
        typer.Option("--vault", help="Markdown vault to index."),
    ] = None,
) -> None:
    """Initialize a metamind knowledge base."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)
    db_path = project_dir / DB_NAME

    if db_path.exists():
        console.print(f"[yellow]⚠[/]  {db_path} already exists. Existing data is preserved.")

    vault_path = str(vault.resolve()) if vault else ""
    cfg_path = write_project_config(project_dir, vault_path)
    console.print(f"  [green]✓[/] {cfg_path.name}")

    ctx = open_context(db_path, console, create=True)
    try:
        if vault_path:
            ctx.update_settings({"vault_path": vault_path})
    finally:
        ctx.close()
    console.print(f"  [green]✓[/] {DB_NAME}")

    console.print("\n[bold green]✓ Knowledge base initialized.[/]")
    console.print("\nNext steps:")
    console.print("  1. metamind sync --vault <dir>     (index your notes)")
    console.print("  2. metamind ask \"<question>\"       (ask your knowledge base)")
