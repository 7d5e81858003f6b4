"""Prompt templates for query expansion and grounded answering."""

from __future__ import annotations

from collections.abc import Sequence

from metamind.db.models import ConversationTurn

SYSTEM_PROMPT = """\
You are Metamind, a helpful AI assistant that answers questions based on the user's personal knowledge base.

Use MAINLY the provided context to answer questions. If the context doesn't contain relevant information, say so clearly but attempt to answer the user's question.

When citing information, mention which note it comes from if possible.

Be concise but thorough in your answers."""

QUERY_EXPANSION_PROMPT = """\
Given the following conversation and the latest user query, generate 2-3 alternative search queries that would help find relevant information in a knowledge base. The queries should:
1. Capture the core intent of the question
2. Include relevant synonyms or related terms
3. Consider context from the conversation

Return ONLY the queries, one per line, without numbering or explanations.

Conversation:
{conversation}

Latest Query: {query}

Alternative search queries:"""

NO_CONVERSATION = "No previous conversation."


def recent_turns(history: Sequence[ConversationTurn], window: int) -> list[ConversationTurn]:
    """Return the last *window* turns of *history*, oldest first."""
    if window <= 0:
        return []
    return list(history[-window:])


def format_expansion_history(history: Sequence[ConversationTurn], window: int) -> str:
    turns = recent_turns(history, window)
    if not turns:
        return NO_CONVERSATION
    return "\n".join(f"{t.role}: {t.text}" for t in turns)


def build_expansion_prompt(query: str, history: Sequence[ConversationTurn], window: int) -> str:
    # str.replace, not str.format: user text may contain braces.
    return QUERY_EXPANSION_PROMPT.replace(
        "{conversation}", format_expansion_history(history, window)
    ).replace("{query}", query)


def format_chat_history(history: Sequence[ConversationTurn], window: int) -> str:
    """Render the recent conversation as a prompt section, or "" when empty."""
    turns = recent_turns(history, window)
    if not turns:
        return ""
    body = "\n\n".join(
        f"{'User' if t.role == 'user' else 'Assistant'}: {t.text}" for t in turns
    )
    return f"\n\n## Previous Conversation:\n\n{body}"


def build_prompt(
    question: str,
    context: str,
    history: Sequence[ConversationTurn],
    window: int,
) -> str:
    """Assemble the final generation prompt.

    Layout: system instruction, knowledge-base context, recent conversation,
    then the current question.
    """
    return (
        f"{SYSTEM_PROMPT}\n\n"
        f"## Context from your knowledge base:\n\n{context}"
        f"{format_chat_history(history, window)}\n\n"
        f"## Current User Question:\n\n{question}\n\n"
        f"## Your Answer:"
    )
