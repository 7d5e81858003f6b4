"""metamind rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from metamind.cli.errors import err_no_db
    console.print(err_no_db(".metamind.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".metamind.db") -> str:
    """No database found at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  metamind init"
    )


def err_no_vault() -> str:
    """No vault configured and none given on the command line."""
    return (
        "[red]Error:[/] No vault path configured.\n"
        "  Run:  metamind settings set vault_path <dir>\n"
        "  Or:   metamind sync --vault <dir>"
    )


def err_invalid_vault(path: str) -> str:
    return (
        f"[red]Error:[/] Invalid vault path '{path}' (not a directory).\n"
        "  Run:  metamind settings set vault_path <existing-dir>"
    )


def err_config(message: str) -> str:
    """Configuration rejected (bad YAML value, unknown provider, missing key)."""
    return (
        f"[red]Error:[/] {message}\n"
        "  Check metamind.yaml, ~/.metamind/config.yaml and:  metamind settings show"
    )


def err_provider(message: str, endpoint: str) -> str:
    """Embedding or generation backend failed."""
    return (
        f"[red]Error:[/] Model provider failed: {message}\n"
        f"  Check that the backend at {endpoint} is running and the model is pulled.\n"
        "  Run:  metamind settings show"
    )


def err_storage(message: str) -> str:
    return (
        f"[red]Error:[/] Database operation failed: {message}\n"
        "  Check disk space and file permissions for the database."
    )


def err_document_not_found(path: str) -> str:
    """Document path not present in the knowledge base."""
    return (
        f"[yellow]Document not found:[/] '{path}'\n"
        "  Run:  metamind status   to see indexed documents."
    )


def err_unknown_setting(key: str, known: tuple[str, ...]) -> str:
    return (
        f"[red]Error:[/] Unknown setting '{key}'.\n"
        f"  Known settings: {', '.join(known)}"
    )
