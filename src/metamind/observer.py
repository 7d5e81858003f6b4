"""Outward notification surface: ingest progress, sync completion, answer stream.

Notifications are fire-and-forget. A failing observer is logged and ignored so
it can never abort the operation that is reporting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from metamind.ingest.pipeline import SyncStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Progress:
    processed: int
    total: int
    current: str


class Observer(Protocol):
    def on_progress(self, progress: Progress) -> None: ...

    def on_complete(self, status: SyncStatus) -> None: ...

    def on_stream_chunk(self, text: str) -> None: ...

    def on_stream_done(self) -> None: ...


class NullObserver:
    """Observer that ignores every notification."""

    def on_progress(self, progress: Progress) -> None:
        pass

    def on_complete(self, status: SyncStatus) -> None:
        pass

    def on_stream_chunk(self, text: str) -> None:
        pass

    def on_stream_done(self) -> None:
        pass


def notify(observer: Observer | None, event: str, *args: Any) -> None:
    """Deliver *event* to *observer* on a best-effort basis."""
    if observer is None:
        return
    handler = getattr(observer, event, None)
    if handler is None:
        return
    try:
        handler(*args)
    except Exception:  # noqa: BLE001
        logger.warning("Observer %s.%s failed", type(observer).__name__, event, exc_info=True)
