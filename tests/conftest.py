"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from metamind.db.connection import Database
from metamind.db.repository import Repository
from metamind.db.schema import initialize
from metamind.errors import ProviderError


class FakeProvider:
    """In-memory provider: letter-frequency embeddings and scripted generation.

    Attributes:
        vectors: Exact text → vector overrides for ``embed``.
        expansion: Response returned by ``generate`` (query expansion).
        fragments: Pieces yielded by ``generate_stream``.
        generate_error / stream_error / embed_error: Raised when set.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        expansion: str = "",
        fragments: list[str] | None = None,
    ) -> None:
        self.vectors = vectors or {}
        self.expansion = expansion
        self.fragments = ["Hello", " world"] if fragments is None else fragments
        self.generate_error: Exception | None = None
        self.stream_error: Exception | None = None
        self.embed_error: Exception | None = None
        self.embed_calls: list[str] = []
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.generate_error is not None:
            raise self.generate_error
        return self.expansion

    def generate_stream(self, prompt: str) -> Iterator[str]:
        self.prompts.append(prompt)
        if self.stream_error is not None:
            raise self.stream_error
        yield from self.fragments

    def embed(self, text: str) -> list[float]:
        self.embed_calls.append(text)
        if self.embed_error is not None:
            raise self.embed_error
        if text in self.vectors:
            return self.vectors[text]
        counts = [0.0] * 26
        for ch in text.lower():
            if "a" <= ch <= "z":
                counts[ord(ch) - ord("a")] += 1.0
        return counts


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".metamind.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def failing_provider():
    p = FakeProvider()
    p.embed_error = ProviderError("embedding backend down")
    return p
