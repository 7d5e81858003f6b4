"""Ingestion pipeline: parse → fingerprint compare → embed → store.

Documents in a batch are processed one at a time. A failure in one document
is logged, recorded in the status and skipped; the batch always continues.
Unchanged content (same fingerprint) never triggers re-embedding.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol

from metamind.db.models import Chunk, Document
from metamind.db.repository import Repository
from metamind.errors import MetamindError
from metamind.ingest.markdown import MarkdownParser
from metamind.ingest.scanner import FileEvent, LocalFile, is_markdown_file, scan_directory
from metamind.observer import Observer, Progress, notify

logger = logging.getLogger(__name__)

INVALID_VAULT_PATH = "Invalid vault path"


class SourceItem(Protocol):
    """One document to ingest, from any source."""

    @property
    def path(self) -> str: ...

    @property
    def label(self) -> str: ...

    def last_modified(self) -> int: ...

    def load(self) -> bytes: ...


class Embedder(Protocol):
    def embed(self, text: str) -> list[float]: ...


@dataclass(frozen=True)
class SyncStatus:
    """Poll-able snapshot of the pipeline's progress."""

    is_running: bool = False
    total: int = 0
    processed: int = 0
    indexed: int = 0
    skipped: int = 0
    removed: int = 0
    last_completed_at: int | None = None
    last_error: str | None = None


class IngestPipeline:
    """Orchestrates per-document ingestion for one store and one embedding provider."""

    def __init__(
        self,
        repo: Repository,
        embedder: Embedder,
        parser: MarkdownParser | None = None,
        observer: Observer | None = None,
    ) -> None:
        self.repo = repo
        self.embedder = embedder
        self.parser = parser or MarkdownParser()
        self.observer = observer
        self._status = SyncStatus()
        self._status_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> SyncStatus:
        """Return the current status snapshot."""
        with self._status_lock:
            return self._status

    def _update(self, **changes: object) -> SyncStatus:
        with self._status_lock:
            self._status = replace(self._status, **changes)
            return self._status

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def sync(self, items: Sequence[SourceItem]) -> SyncStatus:
        """Ingest every item in *items* and return the final status."""
        return self._finish(self._ingest(items))

    def _ingest(self, items: Sequence[SourceItem]) -> list[str]:
        """Run one batch; returns the per-document failure messages."""
        self._update(
            is_running=True,
            total=len(items),
            processed=0,
            indexed=0,
            skipped=0,
            removed=0,
            last_error=None,
        )
        errors: list[str] = []
        indexed = skipped = 0

        for processed, item in enumerate(items, start=1):
            try:
                if self.process_item(item):
                    indexed += 1
                else:
                    skipped += 1
            except MetamindError as exc:
                logger.warning("Skipping %s: %s", item.label, exc)
                errors.append(f"{item.label}: {exc}")

            self._update(processed=processed, indexed=indexed, skipped=skipped)
            notify(self.observer, "on_progress", Progress(processed, len(items), item.label))

        return errors

    def sync_directory(self, root: Path) -> SyncStatus:
        """Ingest every markdown file under *root* and drop documents no longer present."""
        if not root.is_dir():
            self._update(is_running=False, last_error=INVALID_VAULT_PATH)
            status = self.status()
            notify(self.observer, "on_complete", status)
            return status

        files = scan_directory(root)
        errors = self._ingest([LocalFile(f) for f in files])
        self._update(removed=self._prune(root, {str(f) for f in files}))
        return self._finish(errors)

    def handle_events(self, events: Iterable[FileEvent]) -> SyncStatus:
        """Apply file change events: modified files are ingested, deleted ones removed."""
        modified: list[LocalFile] = []
        removed = 0
        for event in events:
            if not is_markdown_file(event.path):
                continue
            if event.kind == "deleted":
                removed += int(self.remove_path(str(event.path)))
            else:
                modified.append(LocalFile(event.path))

        errors = self._ingest(modified)
        self._update(removed=removed)
        return self._finish(errors)

    def _finish(self, errors: list[str]) -> SyncStatus:
        status = self._update(
            is_running=False,
            last_completed_at=int(time.time()),
            last_error="; ".join(errors) if errors else None,
        )
        logger.info(
            "Sync finished: %d indexed, %d unchanged, %d removed, %d failed",
            status.indexed,
            status.skipped,
            status.removed,
            len(errors),
        )
        notify(self.observer, "on_complete", status)
        return status

    def _prune(self, root: Path, present: set[str]) -> int:
        removed = 0
        for document in self.repo.list_documents():
            if Path(document.path).is_relative_to(root) and document.path not in present:
                removed += int(self.remove_path(document.path))
        return removed

    # ------------------------------------------------------------------
    # Single documents
    # ------------------------------------------------------------------

    def process_item(self, item: SourceItem) -> bool:
        """Ingest one document. Returns False when its content is unchanged.

        All chunk vectors are computed before the store is touched, so a
        failed embedding leaves the previous chunk set in place. The new
        fingerprint is written only after every chunk is stored, so a storage
        failure partway through leaves a stale fingerprint and the next sync
        re-indexes the document.

        Raises:
            ParseError, ProviderError, TransportError, StorageError.
        """
        parsed = self.parser.parse(item.load())
        existing = self.repo.get_document_by_path(item.path)
        if existing is not None and existing.content_hash == parsed.fingerprint:
            logger.debug("Unchanged: %s", item.label)
            return False

        document_id = existing.id if existing is not None else str(uuid.uuid4())
        chunks = [
            Chunk(document_id=document_id, position=i, text=text, vector=self.embedder.embed(text))
            for i, text in enumerate(parsed.chunks)
        ]

        document = Document(
            id=document_id,
            path=item.path,
            last_modified=item.last_modified(),
            content_hash=existing.content_hash if existing is not None else "",
            indexed_at=int(time.time()),
        )
        if existing is not None:
            self.repo.delete_chunks_by_document(existing.id)
        self.repo.upsert_document(document)
        for chunk in chunks:
            self.repo.add_chunk(chunk)
        self.repo.upsert_document(replace(document, content_hash=parsed.fingerprint))

        logger.info("Indexed %s (%d chunks)", item.label, len(chunks))
        return True

    def remove_path(self, path: str) -> bool:
        """Delete the document stored under *path* (chunks cascade)."""
        removed = self.repo.delete_document_by_path(path)
        if removed:
            logger.info("Removed %s", path)
        return removed
