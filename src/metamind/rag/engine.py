"""Query engine: expansion → multi-query retrieval → context → streamed answer.

The answer is produced as a generator of StreamEvent values: one event per
generated fragment, then exactly one ``done`` event carrying the full text
and the sources that grounded it. Closing the generator early stops
consumption of the provider stream.

ChatService wraps the engine with conversation persistence: the question is
stored before retrieval starts and the answer (or an ``Error:`` placeholder)
after generation ends.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from metamind.config import RetrievalCfg
from metamind.db.models import ConversationTurn
from metamind.db.repository import Repository
from metamind.errors import MetamindError
from metamind.observer import Observer, notify
from metamind.rag.assembler import build_context, filter_relevant
from metamind.rag.llm_client import LLMProvider
from metamind.rag.prompts import build_prompt
from metamind.rag.retriever import RetrievalResult, VectorIndex, expand_query, retrieve_multi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamEvent:
    """One step of a streamed answer.

    Fragment events carry ``text``. The final event has ``done=True``, the
    accumulated answer in ``text`` and the grounding ``sources``.
    """

    text: str = ""
    done: bool = False
    sources: tuple[RetrievalResult, ...] = ()


@dataclass
class Answer:
    text: str
    sources: list[RetrievalResult] = field(default_factory=list)
    error: str | None = None


@dataclass
class PreparedQuery:
    queries: list[str]
    sources: list[RetrievalResult]
    prompt: str


class QueryEngine:
    """Answers questions from the chunk store with one generation provider."""

    def __init__(
        self,
        repo: Repository,
        provider: LLMProvider,
        retrieval: RetrievalCfg | None = None,
        observer: Observer | None = None,
    ) -> None:
        self.provider = provider
        self.index = VectorIndex(repo)
        self.retrieval = retrieval or RetrievalCfg()
        self.observer = observer

    def prepare(self, question: str, history: Sequence[ConversationTurn]) -> PreparedQuery:
        """Run expansion, retrieval, filtering and prompt assembly.

        Raises:
            ProviderError, TransportError: If a query cannot be embedded.
            StorageError: If the chunk set cannot be read.
        """
        cfg = self.retrieval
        queries = expand_query(
            question,
            history,
            self.provider,
            max_queries=cfg.max_queries,
            history_window=cfg.history_window,
        )
        logger.debug("Searching with %d queries: %s", len(queries), queries)

        fused = retrieve_multi(queries, self.index, self.provider, top_k=cfg.top_k)
        sources = filter_relevant(fused, cfg.min_similarity)
        logger.debug("%d of %d results above %.2f", len(sources), len(fused), cfg.min_similarity)

        prompt = build_prompt(question, build_context(sources), history, cfg.history_window)
        return PreparedQuery(queries=queries, sources=sources, prompt=prompt)

    def answer_stream(
        self, question: str, history: Sequence[ConversationTurn]
    ) -> Iterator[StreamEvent]:
        """Yield answer fragments, then one ``done`` event.

        Raises:
            ProviderError, TransportError, StorageError: Propagated from
                retrieval or generation; no ``done`` event follows.
        """
        prepared = self.prepare(question, history)
        parts: list[str] = []
        for fragment in self.provider.generate_stream(prepared.prompt):
            parts.append(fragment)
            notify(self.observer, "on_stream_chunk", fragment)
            yield StreamEvent(text=fragment)

        notify(self.observer, "on_stream_done")
        yield StreamEvent(text="".join(parts), done=True, sources=tuple(prepared.sources))

    def answer(self, question: str, history: Sequence[ConversationTurn]) -> Answer:
        """Consume :meth:`answer_stream` and return the complete answer."""
        for event in self.answer_stream(question, history):
            if event.done:
                return Answer(text=event.text, sources=list(event.sources))
        return Answer(text="")


class ChatService:
    """Conversation-aware front end to a QueryEngine."""

    def __init__(self, repo: Repository, engine: QueryEngine) -> None:
        self.repo = repo
        self.engine = engine

    def _record(self, role: str, text: str) -> None:
        self.repo.add_turn(ConversationTurn(role=role, text=text, timestamp=int(time.time())))

    def ask_stream(self, question: str) -> Iterator[StreamEvent]:
        """Stream an answer to *question*, persisting both sides of the exchange.

        The history window is read before the question is stored. On failure
        an ``Error: ...`` assistant turn is stored and the error re-raised. If
        the caller closes the stream early, the partial answer is stored.
        """
        history = self.repo.list_conversation(limit=self.engine.retrieval.history_window)
        self._record("user", question)

        parts: list[str] = []
        finished = False
        try:
            for event in self.engine.answer_stream(question, history):
                if event.done:
                    self._record("assistant", event.text)
                    finished = True
                else:
                    parts.append(event.text)
                yield event
        except MetamindError as exc:
            logger.warning("Answer generation failed: %s", exc)
            self._record("assistant", f"Error: {exc}")
            raise
        except GeneratorExit:
            if parts and not finished:
                self._record("assistant", "".join(parts))
            raise

    def ask(self, question: str) -> Answer:
        """Answer *question*; failures are returned in ``Answer.error``, not raised."""
        try:
            for event in self.ask_stream(question):
                if event.done:
                    return Answer(text=event.text, sources=list(event.sources))
        except MetamindError as exc:
            message = f"Error: {exc}"
            return Answer(text=message, error=str(exc))
        return Answer(text="")

    def history(self, limit: int | None = None) -> list[ConversationTurn]:
        return self.repo.list_conversation(limit=limit)

    def clear(self) -> None:
        self.repo.clear_conversation()
