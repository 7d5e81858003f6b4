"""Application context: the store plus the components built from one config snapshot.

Each component (ingest pipeline, chat service) is built lazily from the current
configuration and guarded by its own lock, so a sync never waits on a question
and vice versa. Changing settings swaps in a new snapshot; components already
handed out keep the configuration they were built with.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path

from metamind.config import MetamindConfig, load_config, with_settings
from metamind.db.connection import Database
from metamind.db.repository import Repository
from metamind.db.schema import initialize
from metamind.errors import StorageError
from metamind.ingest.base import WordChunker
from metamind.ingest.markdown import MarkdownParser
from metamind.ingest.pipeline import IngestPipeline
from metamind.observer import Observer
from metamind.rag.engine import ChatService, QueryEngine
from metamind.rag.llm_client import LLMProvider, create_provider

logger = logging.getLogger(__name__)

DB_NAME = ".metamind.db"


class AppContext:
    """Owns the database connection and the per-snapshot components."""

    def __init__(
        self,
        project_dir: Path,
        *,
        db_path: Path | None = None,
        global_config_path: Path | None = None,
        provider_factory: Callable[[MetamindConfig], LLMProvider] | None = None,
        observer: Observer | None = None,
    ) -> None:
        self.project_dir = project_dir
        self.db_path = db_path or project_dir / DB_NAME
        self._global_config_path = global_config_path
        self._provider_factory = provider_factory or create_provider
        self.observer = observer

        try:
            self._conn = Database(self.db_path).connect()
            initialize(self._conn)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database {self.db_path}: {exc}") from exc
        self.repo = Repository(self._conn)

        self._config_lock = threading.Lock()
        self._ingest_lock = threading.Lock()
        self._chat_lock = threading.Lock()
        self._config = self._load()
        self._pipeline: IngestPipeline | None = None
        self._chat: ChatService | None = None

    def _load(self) -> MetamindConfig:
        return load_config(
            self.project_dir,
            global_config_path=self._global_config_path,
            settings=self.repo.get_settings(),
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> MetamindConfig:
        with self._config_lock:
            return self._config

    def update_settings(self, changes: dict[str, str]) -> MetamindConfig:
        """Persist *changes* and swap in a fresh snapshot for later operations.

        Raises:
            ConfigError: If a key is not a known setting.
        """
        with_settings(self.config, changes)
        self.repo.save_settings(changes)
        fresh = self._load()
        with self._config_lock:
            self._config = fresh
        with self._ingest_lock:
            self._pipeline = None
        with self._chat_lock:
            self._chat = None
        logger.debug("Settings updated: %s", ", ".join(sorted(changes)))
        return fresh

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def pipeline(self) -> IngestPipeline:
        """Return the ingest pipeline for the current snapshot."""
        with self._ingest_lock:
            if self._pipeline is None:
                cfg = self.config
                chunker = WordChunker(cfg.chunking.chunk_size, cfg.chunking.overlap)
                self._pipeline = IngestPipeline(
                    self.repo,
                    self._provider_factory(cfg),
                    parser=MarkdownParser(chunker),
                    observer=self.observer,
                )
            return self._pipeline

    def chat(self) -> ChatService:
        """Return the chat service for the current snapshot."""
        with self._chat_lock:
            if self._chat is None:
                cfg = self.config
                engine = QueryEngine(
                    self.repo,
                    self._provider_factory(cfg),
                    retrieval=cfg.retrieval,
                    observer=self.observer,
                )
                self._chat = ChatService(self.repo, engine)
            return self._chat

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> AppContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
