"""metamind CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer

from metamind.cli.ask import ask_cmd
from metamind.cli.chat import chat_app
from metamind.cli.init import init_cmd
from metamind.cli.remove import remove_cmd
from metamind.cli.settings import settings_app
from metamind.cli.status import status_cmd
from metamind.cli.sync import sync_cmd
from metamind.log import setup_logging


def _version() -> str:
    try:
        return importlib.metadata.version("metamind")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"metamind {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="metamind",
    help=(
        "metamind: ask questions of your personal notes.\n\n"
        "  metamind sync   Index the markdown vault (or the Outline wiki).\n"
        "  metamind ask    Answer a question grounded in the indexed notes."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """metamind: ask questions of your personal notes."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING)


app.command("init")(init_cmd)
app.command("sync")(sync_cmd)
app.command("remove")(remove_cmd)
app.command("ask")(ask_cmd)
app.command("status")(status_cmd)
app.add_typer(chat_app, name="chat")
app.add_typer(settings_app, name="settings")


@app.command("version")
def version_cmd() -> None:
    """Show the installed metamind version."""
    typer.echo(f"metamind {_version()}")


if __name__ == "__main__":
    app()
