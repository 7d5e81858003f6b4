"""metamind status: knowledge base overview and active configuration."""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from metamind.cli.shared import DEFAULT_DB, open_context
from metamind.config import MetamindConfig
from metamind.db.models import Document

console = Console()


def status_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
) -> None:
    """Show indexed documents, chunk counts and the configured models."""
    if not db.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  metamind init",
                title="[bold]Knowledge Base[/]",
                expand=False,
            )
        )
        raise typer.Exit(0)

    ctx = open_context(db, console)
    try:
        documents = ctx.repo.list_documents()
        total_chunks = ctx.repo.count_chunks()
        turns = len(ctx.repo.list_conversation())
        cfg = ctx.config
    finally:
        ctx.close()

    _show_knowledge_panel(db, documents, total_chunks, turns)
    _show_config_panel(cfg)


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_knowledge_panel(db: Path, documents: list[Document], total_chunks: int, turns: int) -> None:
    size_mb = db.stat().st_size / (1024 * 1024)
    local = sum(1 for d in documents if not d.path.startswith("outline://"))
    lines = [
        f"Database:   {db} ({size_mb:.1f} MB)",
        f"Documents:  [bold]{len(documents)}[/]  (local: {local}, wiki: {len(documents) - local})",
        f"Chunks:     [bold]{total_chunks:,}[/]",
        f"Chat turns: {turns}",
    ]
    if documents:
        last = max(d.indexed_at for d in documents)
        when = datetime.datetime.fromtimestamp(last).strftime("%Y-%m-%d %H:%M")
        lines.append(f"Last index: {when}")
    console.print(Panel("\n".join(lines), title="[bold]Knowledge Base[/]", expand=False))


def _show_config_panel(cfg: MetamindConfig) -> None:
    lines = [
        f"Vault:      {cfg.vault.path or '[yellow](not set)[/]'}",
        f"Provider:   {cfg.provider.name} @ {cfg.provider.endpoint}",
        f"Generation: {cfg.generation.model}",
        f"Embedding:  {cfg.embedding.model}",
        f"Retrieval:  top {cfg.retrieval.top_k}, min similarity {cfg.retrieval.min_similarity:.2f}",
    ]
    if cfg.outline.base_url:
        lines.append(f"Outline:    {cfg.outline.base_url}")
    console.print(Panel("\n".join(lines), title="[bold]Configuration[/]", expand=False))
