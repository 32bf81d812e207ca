"""Prompt templates for retrieval-augmented chat.

Keeping prompts in one place makes them easy to audit and version.
"""

from __future__ import annotations

from collections.abc import Sequence

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from knowledge_hub.retrieval.context import format_context, format_sources
from knowledge_hub.retrieval.models import SearchResult

SYSTEM_TEMPLATE = """\
You are an AI assistant for an internal Knowledge Hub.
Use the provided context to answer accurately and concisely.
Always cite sources inline like [1], [2]. If unsure, say you don't know.

Sources:
{sources}"""

USER_TEMPLATE = '''\
User question: """{query}"""

Context snippets:
{context}

Instructions:
- Answer clearly, with bullet points if helpful.
- Include inline citations [n] that refer to the sources list above.
- Add a brief "Sources:" section at the end with the cited numbers.'''


def build_system_prompt(results: Sequence[SearchResult]) -> SystemMessage:
    return SystemMessage(content=SYSTEM_TEMPLATE.format(sources=format_sources(results)))


def build_user_prompt(query: str, results: Sequence[SearchResult]) -> HumanMessage:
    return HumanMessage(content=USER_TEMPLATE.format(query=query, context=format_context(results)))


def build_chat_messages(
    history: Sequence[BaseMessage],
    results: Sequence[SearchResult],
    query: str,
) -> list[BaseMessage]:
    """Assemble the messages for one retrieval-augmented chat call.

    Parameters
    ----------
    history:
        The conversation as sent by the caller.  Assistant and system turns
        are kept verbatim, in order; the caller's own user turns are not
        replayed.
    results:
        Ranked search results for *query*, numbered ``[1]..[n]`` in both
        the source list and the context block.
    query:
        The (already truncated) latest user question.

    Returns
    -------
    list[BaseMessage]
        ``[system, *prior non-user turns, augmented user turn]``.
    """
    prior = [m for m in history if not isinstance(m, HumanMessage)]
    return [build_system_prompt(results), *prior, build_user_prompt(query, results)]
