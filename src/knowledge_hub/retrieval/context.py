"""Turn ranked search results into citation-numbered prompt fragments."""

from __future__ import annotations

from collections.abc import Sequence

from langchain_core.messages import BaseMessage, HumanMessage

from knowledge_hub.retrieval.models import SearchResult

NO_SOURCES = "No sources available."
NO_CONTEXT = "No relevant context found."
QUERY_MAX_CHARS = 4000


def format_sources(results: Sequence[SearchResult]) -> str:
    """Numbered source list, e.g. ``[1] Handbook (pdf) — hr``."""
    lines: list[str] = []
    for i, r in enumerate(results, 1):
        type_part = f" ({r.type})" if r.type else ""
        collection_part = f" — {r.collection}" if r.collection else ""
        lines.append(f"[{i}] {r.title}{type_part}{collection_part}")
    return "\n".join(lines) or NO_SOURCES


def format_context(results: Sequence[SearchResult]) -> str:
    """Chunk texts tagged ``[#i]`` in rank order, separated by blank lines."""
    blocks = [f"[#{i}] {r.text}" for i, r in enumerate(results, 1)]
    return "\n\n".join(blocks) or NO_CONTEXT


def latest_user_query(messages: Sequence[BaseMessage], max_chars: int = QUERY_MAX_CHARS) -> str:
    """Content of the most recent user turn, capped at *max_chars*."""
    for message in reversed(messages):
        if isinstance(message, HumanMessage):
            return message_text(message)[:max_chars]
    return ""


def message_text(message: BaseMessage) -> str:
    """Plain-text content of *message*, flattening content-block lists."""
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)
