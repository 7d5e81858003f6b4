"""Domain models for the metamind database layer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Document:
    id: str
    path: str
    last_modified: int
    content_hash: str
    indexed_at: int


@dataclass
class Chunk:
    document_id: str
    position: int
    text: str
    vector: list[float] = field(default_factory=list)

    @property
    def id(self) -> str:
        """Composite identity: ``<document id>#<position>``."""
        return chunk_id(self.document_id, self.position)


@dataclass
class ConversationTurn:
    role: str  # "user" | "assistant"
    text: str
    timestamp: int
    id: int | None = None  # set after insert


def chunk_id(document_id: str, position: int) -> str:
    return f"{document_id}#{position}"
