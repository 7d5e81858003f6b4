"""Tests for the relevance filter and context formatting."""

from __future__ import annotations

from metamind.db.models import Chunk
from metamind.rag.assembler import NO_CONTEXT, build_context, filter_relevant
from metamind.rag.retriever import RetrievalResult


def _result(doc: str, text: str, sim: float) -> RetrievalResult:
    return RetrievalResult(Chunk(doc, 0, text, [1.0]), sim)


def test_filter_relevant_default_threshold():
    results = [_result(f"d{i}", "t", s) for i, s in enumerate([0.9, 0.5, 0.2, 0.1])]
    kept = filter_relevant(results)
    assert [r.similarity for r in kept] == [0.9, 0.5]


def test_filter_relevant_threshold_is_inclusive():
    assert len(filter_relevant([_result("d", "t", 0.25)], 0.25)) == 1


def test_build_context_numbers_sources():
    context = build_context([_result("doc-1", "First text", 0.91), _result("doc-2", "Second", 0.5)])
    assert context == (
        "[Source 1: doc-1 (relevance: 91%)]\nFirst text"
        "\n\n---\n\n"
        "[Source 2: doc-2 (relevance: 50%)]\nSecond"
    )


def test_build_context_empty_placeholder():
    assert build_context([]) == NO_CONTEXT
