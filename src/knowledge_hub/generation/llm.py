"""Chat model factory for answer generation.

``ChatOpenAI`` talks to the OpenAI API by default.  Setting ``LLM_BASE_URL``
points it at any OpenAI-compatible server instead (vLLM, Ollama's ``/v1``
API and similar), with no other code changes.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_openai import ChatOpenAI

from knowledge_hub.config import settings

logger = logging.getLogger(__name__)

# Self-hosted endpoints ignore the key, but the client refuses an empty one.
PLACEHOLDER_API_KEY = "EMPTY"


def _endpoint() -> dict[str, Any]:
    if not settings.llm_base_url:
        return {"api_key": settings.openai_api_key}
    return {
        "base_url": settings.llm_base_url,
        "api_key": settings.openai_api_key or PLACEHOLDER_API_KEY,
    }


def get_llm(temperature: float | None = None) -> ChatOpenAI:
    """Build the streaming chat model used for cited answers.

    Parameters
    ----------
    temperature:
        Sampling temperature.  Falls back to ``settings.llm_temperature``;
        when both are unset the provider default applies.

    Returns
    -------
    ChatOpenAI
        A client with ``streaming=True`` so ``astream`` yields token deltas.
    """
    options: dict[str, Any] = {
        "model": settings.llm_model_name,
        "streaming": True,
        "timeout": settings.llm_timeout,
        "max_retries": settings.llm_max_retries,
        **_endpoint(),
    }
    chosen = settings.llm_temperature if temperature is None else temperature
    if chosen is not None:
        options["temperature"] = chosen

    logger.info(
        "Chat model %s via %s",
        settings.llm_model_name,
        settings.llm_base_url or "OpenAI API",
    )
    return ChatOpenAI(**options)
