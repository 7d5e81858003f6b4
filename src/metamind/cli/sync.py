"""metamind sync: index the markdown vault or the remote wiki.

Unchanged documents are skipped without any embedding call. A document that
fails is reported and skipped; the rest of the batch still runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from metamind.cli.errors import err_config, err_invalid_vault, err_no_vault, err_provider
from metamind.cli.shared import DEFAULT_DB, open_context
from metamind.config import ConfigError
from metamind.errors import MetamindError
from metamind.ingest.outline import OutlineClient
from metamind.ingest.pipeline import INVALID_VAULT_PATH, SyncStatus
from metamind.observer import NullObserver
from metamind.observer import Progress as SyncProgress

console = Console()


class _ProgressObserver(NullObserver):
    """Mirror pipeline progress onto a rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task = progress.add_task("Syncing", total=None)

    def on_progress(self, progress: SyncProgress) -> None:
        self._progress.update(
            self._task,
            total=progress.total,
            completed=progress.processed,
            description=f"[dim]{progress.current}[/]",
        )


def sync_cmd(
    vault: Annotated[
        Path | None,
        typer.Option("--vault", help="Vault directory (overrides the configured vault_path)."),
    ] = None,
    outline: Annotated[
        bool,
        typer.Option("--outline", help="Sync the remote Outline wiki instead of the vault."),
    ] = False,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
) -> None:
    """Index new and changed documents into the knowledge base."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        ctx = open_context(db, console, observer=_ProgressObserver(progress))
        try:
            cfg = ctx.config
            pipeline = ctx.pipeline()
            if outline:
                client = OutlineClient(cfg.outline.base_url, timeout=cfg.provider.timeout)
                status = pipeline.sync(client.items())
            else:
                vault_path = vault or (Path(cfg.vault.path) if cfg.vault.path else None)
                if vault_path is None:
                    console.print(err_no_vault())
                    raise typer.Exit(1)
                status = pipeline.sync_directory(vault_path.resolve())
                if status.last_error == INVALID_VAULT_PATH:
                    console.print(err_invalid_vault(str(vault_path)))
                    raise typer.Exit(1)
        except ConfigError as exc:
            console.print(err_config(str(exc)))
            raise typer.Exit(1) from exc
        except MetamindError as exc:
            console.print(err_provider(str(exc), cfg.provider.endpoint))
            raise typer.Exit(1) from exc
        finally:
            ctx.close()

    _print_summary(status)


def _print_summary(status: SyncStatus) -> None:
    console.print(
        f"[green]✓[/] {status.processed}/{status.total} documents  |  "
        f"indexed: [bold]{status.indexed}[/]  |  "
        f"unchanged: {status.skipped}  |  removed: {status.removed}"
    )
    if status.last_error:
        console.print("[yellow]Some documents failed:[/]")
        for failure in status.last_error.split("; "):
            console.print(f"  [red]✗[/] {failure}")
