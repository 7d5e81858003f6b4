"""Logging setup for the metamind command line.

Library modules only call ``logging.getLogger(__name__)``; handlers are attached
once here, at application startup.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore", "urllib3")


def setup_logging(level: int = logging.WARNING, console: Console | None = None) -> None:
    """Configure root logging with a rich handler writing to stderr.

    Args:
        level: Level for metamind's own loggers.
        console: Optional console to render into (defaults to a stderr console).
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=level <= logging.DEBUG,
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party chatter stays at WARNING even in verbose mode.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    import litellm

    litellm.suppress_debug_info = True
