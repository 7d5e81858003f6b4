"""metamind remove: drop a document and its chunks from the knowledge base.

Usage:
  metamind remove notes/old-idea.md
  metamind remove outline://3f2a... --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from metamind.cli.errors import err_document_not_found, err_storage
from metamind.cli.shared import DEFAULT_DB, open_context
from metamind.errors import StorageError

console = Console()


def remove_cmd(
    path: Annotated[str, typer.Argument(help="Document path or outline://<id> to remove.")],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a document and all its chunks from the knowledge base."""
    ctx = open_context(db, console)
    try:
        document = ctx.repo.get_document_by_path(path)
        if document is None and "://" not in path:
            document = ctx.repo.get_document_by_path(str(Path(path).resolve()))
        if document is None:
            console.print(err_document_not_found(path))
            raise typer.Exit(0)

        chunk_count = ctx.repo.count_chunks(document.id)
        console.print(f"\nRemove document: [bold]{document.path}[/]")
        console.print(f"  Chunks: {chunk_count}")

        if not yes and not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

        ctx.repo.delete_document(document.id)
        console.print(f"[green]✓[/] Removed {document.path}")
    except StorageError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1) from exc
    finally:
        ctx.close()
