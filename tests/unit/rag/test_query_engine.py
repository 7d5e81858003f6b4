"""Tests for QueryEngine streaming and ChatService persistence."""

from __future__ import annotations

import pytest

from metamind.config import RetrievalCfg
from metamind.db.models import Chunk, ConversationTurn, Document
from metamind.errors import ProviderError, TransportError
from metamind.observer import NullObserver
from metamind.rag.assembler import NO_CONTEXT
from metamind.rag.engine import ChatService, QueryEngine


class RecordingObserver(NullObserver):
    def __init__(self):
        self.events = []

    def on_stream_chunk(self, text):
        self.events.append(("chunk", text))

    def on_stream_done(self):
        self.events.append(("done",))


@pytest.fixture
def stored(repo):
    repo.upsert_document(Document("doc-1", "/vault/sqlite.md", 1, "h", 1))
    repo.add_chunk(Chunk("doc-1", 0, "sqlite stores data in one file", [1.0, 0.0]))
    repo.add_chunk(Chunk("doc-1", 1, "unrelated gardening note", [0.0, 1.0]))
    return repo


@pytest.fixture
def engine(stored, provider):
    provider.vectors = {"what is sqlite": [1.0, 0.0]}
    return QueryEngine(stored, provider)


# ------------------------------------------------------------------
# QueryEngine
# ------------------------------------------------------------------


def test_stream_fragments_then_single_done(engine):
    events = list(engine.answer_stream("what is sqlite", []))
    assert [e.text for e in events[:-1]] == ["Hello", " world"]
    assert not any(e.done for e in events[:-1])
    assert events[-1].done
    assert events[-1].text == "Hello world"


def test_done_event_carries_relevant_sources_only(engine):
    done = list(engine.answer_stream("what is sqlite", []))[-1]
    assert [s.chunk.id for s in done.sources] == ["doc-1#0"]


def test_prompt_contains_context(engine, provider):
    list(engine.answer_stream("what is sqlite", []))
    prompt = provider.prompts[-1]
    assert "[Source 1: doc-1 (relevance: 100%)]" in prompt
    assert "sqlite stores data in one file" in prompt
    assert "gardening" not in prompt


def test_zero_fragments_still_done(engine, provider):
    provider.fragments = []
    events = list(engine.answer_stream("what is sqlite", []))
    assert len(events) == 1
    assert events[0].done and events[0].text == ""


def test_no_relevant_chunks_uses_placeholder(repo, provider):
    engine = QueryEngine(repo, provider)
    list(engine.answer_stream("anything at all", []))
    assert NO_CONTEXT in provider.prompts[-1]


def test_observer_notified(stored, provider):
    provider.vectors = {"what is sqlite": [1.0, 0.0]}
    observer = RecordingObserver()
    engine = QueryEngine(stored, provider, observer=observer)
    list(engine.answer_stream("what is sqlite", []))
    assert observer.events == [("chunk", "Hello"), ("chunk", " world"), ("done",)]


def test_generation_failure_has_no_done_event(engine, provider):
    provider.stream_error = TransportError("connection reset")
    events = []
    with pytest.raises(TransportError):
        for event in engine.answer_stream("what is sqlite", []):
            events.append(event)
    assert not any(e.done for e in events)


def test_max_queries_respected(stored, provider):
    provider.expansion = "alpha query\nbeta query\ngamma query"
    engine = QueryEngine(stored, provider, retrieval=RetrievalCfg(max_queries=2))
    prepared = engine.prepare("what is sqlite", [])
    assert prepared.queries == ["what is sqlite", "alpha query"]


def test_answer_collects_stream(engine):
    answer = engine.answer("what is sqlite", [])
    assert answer.text == "Hello world"
    assert answer.error is None


# ------------------------------------------------------------------
# ChatService
# ------------------------------------------------------------------


def test_ask_records_both_turns(stored, engine):
    chat = ChatService(stored, engine)
    answer = chat.ask("what is sqlite")
    assert answer.text == "Hello world"
    turns = chat.history()
    assert [(t.role, t.text) for t in turns] == [
        ("user", "what is sqlite"),
        ("assistant", "Hello world"),
    ]


def test_question_persisted_before_answer(stored, engine):
    chat = ChatService(stored, engine)
    stream = chat.ask_stream("what is sqlite")
    next(stream)
    assert [t.role for t in chat.history()] == ["user"]
    list(stream)
    assert [t.role for t in chat.history()] == ["user", "assistant"]


def test_history_excludes_current_question(stored, engine, provider):
    stored.add_turn(ConversationTurn("user", "earlier question", 1))
    stored.add_turn(ConversationTurn("assistant", "earlier answer", 2))
    ChatService(stored, engine).ask("what is sqlite")
    prompt = provider.prompts[-1]
    assert "User: earlier question" in prompt
    assert "User: what is sqlite" not in prompt


def test_failure_records_error_turn(stored, engine, provider):
    provider.stream_error = ProviderError("model not found")
    chat = ChatService(stored, engine)
    answer = chat.ask("what is sqlite")
    assert answer.error == "model not found"
    assert answer.text == "Error: model not found"
    assert chat.history()[-1].text == "Error: model not found"


def test_stream_failure_reraises(stored, engine, provider):
    provider.stream_error = ProviderError("boom")
    chat = ChatService(stored, engine)
    with pytest.raises(ProviderError):
        list(chat.ask_stream("what is sqlite"))
    assert [t.role for t in chat.history()] == ["user", "assistant"]


def test_early_close_keeps_partial_answer(stored, engine):
    chat = ChatService(stored, engine)
    stream = chat.ask_stream("what is sqlite")
    assert next(stream).text == "Hello"
    stream.close()
    assert chat.history()[-1].text == "Hello"


def test_close_after_done_records_once(stored, engine):
    chat = ChatService(stored, engine)
    stream = chat.ask_stream("what is sqlite")
    for event in stream:
        if event.done:
            break
    stream.close()
    assert len(chat.history()) == 2


def test_clear(stored, engine):
    chat = ChatService(stored, engine)
    chat.ask("what is sqlite")
    chat.clear()
    assert chat.history() == []
