"""Word-window chunker shared by every document source."""

from __future__ import annotations

from metamind.db.models import Chunk


class WordChunker:
    """Group whitespace-delimited words into overlapping fixed-size windows.

    Consecutive windows share ``overlap`` words, so each step advances by
    ``chunk_size - overlap`` words. Text with at most ``chunk_size`` words
    yields exactly one window holding the whole text.
    """

    def __init__(self, chunk_size: int = 500, overlap: int = 50) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def split(self, text: str) -> list[str]:
        """Split *text* into window strings (words re-joined by single spaces).

        Whitespace-only text yields one empty window.
        """
        words = text.split()
        if len(words) <= self.chunk_size:
            return [" ".join(words)]

        windows: list[str] = []
        start = 0
        total = len(words)
        while start < total:
            end = min(start + self.chunk_size, total)
            windows.append(" ".join(words[start:end]))
            if end >= total:
                break
            start = end - self.overlap

        return windows

    def chunk(self, document_id: str, text: str) -> list[Chunk]:
        """Split *text* into Chunks for *document_id* with contiguous positions from 0.

        Vectors are left empty; the ingestion pipeline fills them in.
        """
        return [
            Chunk(document_id=document_id, position=i, text=t)
            for i, t in enumerate(self.split(text))
        ]
