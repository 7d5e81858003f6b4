"""metamind chat: inspect or clear the conversation log."""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from metamind.cli.shared import DEFAULT_DB, open_context

console = Console()

chat_app = typer.Typer(help="Inspect or clear the conversation history.", no_args_is_help=True)


@chat_app.command("history")
def history_cmd(
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", help="Only show the most recent N turns."),
    ] = None,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
) -> None:
    """Show the conversation, oldest turn first."""
    ctx = open_context(db, console)
    try:
        turns = ctx.repo.list_conversation(limit=limit)
    finally:
        ctx.close()

    if not turns:
        console.print("[dim]No conversation yet.[/]")
        return
    for turn in turns:
        when = datetime.datetime.fromtimestamp(turn.timestamp).strftime("%Y-%m-%d %H:%M")
        style = "cyan" if turn.role == "user" else "green"
        console.print(f"[{style}]{turn.role}[/] [dim]{when}[/]")
        console.print(turn.text, markup=False, highlight=False)
        console.print()


@chat_app.command("clear")
def clear_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .metamind.db."),
    ] = DEFAULT_DB,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Delete every conversation turn."""
    if not yes and not typer.confirm("Clear the whole conversation?", default=False):
        console.print("[dim]Cancelled.[/]")
        raise typer.Exit(0)

    ctx = open_context(db, console)
    try:
        ctx.repo.clear_conversation()
    finally:
        ctx.close()
    console.print("[green]✓[/] Conversation cleared")
