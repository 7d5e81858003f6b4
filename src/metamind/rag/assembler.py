"""Context assembler: relevance cutoff and numbered source blocks."""

from __future__ import annotations

from collections.abc import Sequence

from metamind.rag.retriever import RetrievalResult

NO_CONTEXT = "No relevant context found in your knowledge base."
SOURCE_SEPARATOR = "\n\n---\n\n"


def filter_relevant(
    results: Sequence[RetrievalResult], min_similarity: float = 0.25
) -> list[RetrievalResult]:
    """Drop results below *min_similarity* (hard cutoff)."""
    return [r for r in results if r.similarity >= min_similarity]


def build_context(results: Sequence[RetrievalResult]) -> str:
    """Format *results* as numbered source blocks, or the no-context placeholder."""
    if not results:
        return NO_CONTEXT
    return SOURCE_SEPARATOR.join(
        f"[Source {i}: {r.chunk.document_id} (relevance: {r.similarity * 100:.0f}%)]\n"
        f"{r.chunk.text}"
        for i, r in enumerate(results, start=1)
    )
