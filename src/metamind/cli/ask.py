"""metamind ask: answer a question from the knowledge base, streamed."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from metamind.cli.errors import err_config, err_provider
from metamind.cli.shared import DEFAULT_DB, open_context
from metamind.config import ConfigError
from metamind.context import AppContext
from metamind.errors import MetamindError
from metamind.rag.retriever import RetrievalResult

console = Console()


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question to ask.")],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
    show_sources: Annotated[
        bool,
        typer.Option("--sources/--no-sources", help="List the notes the answer is grounded on."),
    ] = True,
) -> None:
    """Ask a question; the answer is printed as it is generated."""
    ctx = open_context(db, console)
    try:
        chat = ctx.chat()
        sources: tuple[RetrievalResult, ...] = ()
        for event in chat.ask_stream(question):
            if event.done:
                sources = event.sources
            else:
                console.print(event.text, end="", markup=False, highlight=False)
        console.print()

        if show_sources:
            _print_sources(ctx, sources)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    except MetamindError as exc:
        console.print()
        console.print(err_provider(str(exc), ctx.config.provider.endpoint))
        raise typer.Exit(1) from exc
    finally:
        ctx.close()


def _print_sources(ctx: AppContext, sources: tuple[RetrievalResult, ...]) -> None:
    if not sources:
        console.print("[dim]No relevant notes found.[/]")
        return
    console.print("\n[bold]Sources[/]")
    for i, result in enumerate(sources, start=1):
        document = ctx.repo.get_document(result.chunk.document_id)
        label = document.path if document else result.chunk.document_id
        console.print(f"  {i}. {label}  [dim]({result.similarity * 100:.0f}%)[/]")
