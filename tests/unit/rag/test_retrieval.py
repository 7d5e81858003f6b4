"""Tests for vector search, query expansion and multi-query fusion."""

from __future__ import annotations

import pytest

from metamind.db.models import Chunk, ConversationTurn, Document
from metamind.errors import ProviderError, TransportError
from metamind.rag.retriever import (
    RetrievalResult,
    VectorIndex,
    expand_query,
    fuse,
    parse_expansions,
    retrieve_multi,
)


def _store(repo, doc_id: str, vectors: list[list[float]]) -> None:
    repo.upsert_document(Document(doc_id, f"/vault/{doc_id}.md", 1, "h", 1))
    for pos, vec in enumerate(vectors):
        repo.add_chunk(Chunk(doc_id, pos, f"{doc_id} chunk {pos}", vec))


def _result(doc: str, pos: int, sim: float) -> RetrievalResult:
    return RetrievalResult(Chunk(doc, pos, "t", [1.0]), sim)


# ------------------------------------------------------------------
# VectorIndex
# ------------------------------------------------------------------


def test_search_orders_by_similarity(repo):
    _store(repo, "a", [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    results = VectorIndex(repo).search([1.0, 0.0], k=3)
    assert [r.chunk.id for r in results] == ["a#0", "a#2", "a#1"]
    assert results[0].similarity == pytest.approx(1.0)
    assert results[2].similarity == pytest.approx(0.0)


def test_search_truncates_to_k(repo):
    _store(repo, "a", [[1.0, 0.0], [0.5, 0.5], [0.0, 1.0]])
    assert len(VectorIndex(repo).search([1.0, 0.0], k=2)) == 2


def test_search_empty_store(repo):
    assert VectorIndex(repo).search([1.0, 0.0], k=5) == []


def test_search_zero_k(repo):
    _store(repo, "a", [[1.0, 0.0]])
    assert VectorIndex(repo).search([1.0, 0.0], k=0) == []


def test_search_dimension_mismatch_scores_zero(repo):
    _store(repo, "a", [[1.0, 0.0, 0.0]])
    results = VectorIndex(repo).search([1.0, 0.0], k=1)
    assert results[0].similarity == 0.0


# ------------------------------------------------------------------
# Expansion
# ------------------------------------------------------------------


def test_parse_expansions_drops_bullets_and_short_lines():
    response = "machine learning basics\n- bulleted\nneural networks\n\nok\ndeep learning intro\n"
    assert parse_expansions(response) == [
        "machine learning basics",
        "neural networks",
        "deep learning intro",
    ]


def test_parse_expansions_strips_numbering():
    assert parse_expansions("1. first query\n2) second query") == ["first query", "second query"]


def test_parse_expansions_drops_overlong_lines():
    assert parse_expansions("x" * 501 + "\nfine query") == ["fine query"]


def test_expand_query_original_first_and_capped(provider):
    provider.expansion = "alpha query\nbeta query\ngamma query\ndelta query"
    queries = expand_query("what is rag", [], provider, max_queries=3)
    assert queries == ["what is rag", "alpha query", "beta query"]


def test_expand_query_includes_history_in_prompt(provider):
    history = [ConversationTurn("user", "tell me about sqlite", 1)]
    expand_query("and wal mode?", history, provider)
    assert "user: tell me about sqlite" in provider.prompts[0]
    assert "Latest Query: and wal mode?" in provider.prompts[0]


@pytest.mark.parametrize("error", [ProviderError("500"), TransportError("refused")])
def test_expand_query_falls_back_on_failure(provider, error):
    provider.generate_error = error
    assert expand_query("original", [], provider) == ["original"]


# ------------------------------------------------------------------
# Fusion
# ------------------------------------------------------------------


def test_fuse_keeps_first_occurrence():
    first = [_result("a", 0, 0.4)]
    second = [_result("a", 0, 0.9), _result("b", 0, 0.5)]
    fused = fuse([first, second], top_k=5)
    assert [(r.chunk.id, r.similarity) for r in fused] == [("b#0", 0.5), ("a#0", 0.4)]


def test_fuse_truncates_to_top_k():
    results = [_result("a", i, 0.1 * i) for i in range(6)]
    fused = fuse([results], top_k=3)
    assert [r.chunk.position for r in fused] == [5, 4, 3]


def test_retrieve_multi_dedupes_across_queries(repo, provider):
    _store(repo, "a", [[1.0, 0.0], [0.0, 1.0]])
    provider.vectors = {"q1": [1.0, 0.0], "q2": [1.0, 0.1]}
    results = retrieve_multi(["q1", "q2"], VectorIndex(repo), provider, top_k=5)
    ids = [r.chunk.id for r in results]
    assert sorted(ids) == ["a#0", "a#1"]
    assert provider.embed_calls == ["q1", "q2"]


def test_retrieve_multi_propagates_embed_failure(repo, failing_provider):
    with pytest.raises(ProviderError):
        retrieve_multi(["q"], VectorIndex(repo), failing_provider)
