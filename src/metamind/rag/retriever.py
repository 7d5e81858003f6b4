"""Exact vector search, query expansion and multi-query fusion.

Search is brute force: every call loads the full chunk set and scores it with
cosine similarity. There is no index state to go stale, at O(n) per query.
A search running during a sync may see some documents re-embedded and others
not yet.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from metamind.db.models import Chunk, ConversationTurn
from metamind.db.repository import Repository
from metamind.db.vectors import cosine_similarity
from metamind.errors import ProviderError, TransportError
from metamind.rag.llm_client import LLMProvider
from metamind.rag.prompts import build_expansion_prompt

logger = logging.getLogger(__name__)

MIN_QUERY_CHARS = 4
MAX_QUERY_CHARS = 500
_LIST_MARKER_RE = re.compile(r"^[\d.) ]+")


@dataclass
class RetrievalResult:
    """A chunk paired with its similarity to one query."""

    chunk: Chunk
    similarity: float


class VectorIndex:
    """Exact nearest-neighbour search over every stored chunk."""

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def search(self, query_vector: Sequence[float], k: int) -> list[RetrievalResult]:
        """Return at most *k* results, highest similarity first.

        Ties are returned in no particular order.
        """
        if k <= 0:
            return []
        results = [
            RetrievalResult(chunk=chunk, similarity=cosine_similarity(query_vector, chunk.vector))
            for chunk in self.repo.list_chunks()
        ]
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[:k]


# ------------------------------------------------------------------
# Query expansion
# ------------------------------------------------------------------


def parse_expansions(response: str) -> list[str]:
    """Extract alternative queries from an expansion response, one per line.

    Blank, too short, too long and bulleted lines are dropped; leading
    numbering such as ``1.`` or ``2)`` is stripped.
    """
    queries: list[str] = []
    for line in response.splitlines():
        line = line.strip()
        if not MIN_QUERY_CHARS <= len(line) <= MAX_QUERY_CHARS:
            continue
        if line.startswith(("-", "*")):
            continue
        cleaned = _LIST_MARKER_RE.sub("", line)
        if cleaned:
            queries.append(cleaned)
    return queries


def expand_query(
    query: str,
    history: Sequence[ConversationTurn],
    provider: LLMProvider,
    *,
    max_queries: int = 4,
    history_window: int = 10,
) -> list[str]:
    """Return the original query followed by provider-suggested alternatives.

    A provider failure leaves only the original query.
    """
    queries = [query]
    try:
        response = provider.generate(build_expansion_prompt(query, history, history_window))
    except (ProviderError, TransportError) as exc:
        logger.warning("Query expansion failed, using original query only: %s", exc)
    else:
        queries.extend(parse_expansions(response))
    return queries[:max_queries]


# ------------------------------------------------------------------
# Multi-query retrieval
# ------------------------------------------------------------------


def fuse(result_sets: Iterable[Sequence[RetrievalResult]], top_k: int) -> list[RetrievalResult]:
    """Merge per-query results, keeping the first occurrence of each chunk."""
    seen: set[str] = set()
    merged: list[RetrievalResult] = []
    for results in result_sets:
        for result in results:
            if result.chunk.id in seen:
                continue
            seen.add(result.chunk.id)
            merged.append(result)
    merged.sort(key=lambda r: r.similarity, reverse=True)
    return merged[:top_k]


def retrieve_multi(
    queries: Sequence[str],
    index: VectorIndex,
    provider: LLMProvider,
    top_k: int = 5,
) -> list[RetrievalResult]:
    """Embed each query, search top-*top_k* for each, and fuse the results.

    Raises:
        ProviderError, TransportError: If a query cannot be embedded.
    """
    result_sets = []
    for query in queries:
        vector = provider.embed(query)
        result_sets.append(index.search(vector, top_k))
    return fuse(result_sets, top_k)
