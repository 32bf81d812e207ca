"""Cancellable streaming of chat completions as plain-text deltas."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import TYPE_CHECKING

from knowledge_hub.retrieval.context import message_text

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)

STREAM_ERROR_MARKER = "\n[Stream error]\n"


async def stream_completion(
    llm: BaseChatModel,
    messages: Sequence[BaseMessage],
) -> AsyncIterator[str]:
    """Yield text deltas from *llm* in the order the provider emits them.

    When the consumer stops early (``aclose()`` or task cancellation on
    client disconnect) the provider stream is closed and nothing further
    is delivered.  A provider failure after streaming has begun yields
    :data:`STREAM_ERROR_MARKER` once, after the content already delivered.
    """
    try:
        async with aclosing(llm.astream(list(messages))) as chunks:
            async for chunk in chunks:
                delta = message_text(chunk)
                if delta:
                    yield delta
    except (asyncio.CancelledError, GeneratorExit):
        logger.info("Generation stream cancelled by consumer")
        raise
    except Exception:
        logger.exception("Generation stream failed")
        yield STREAM_ERROR_MARKER
