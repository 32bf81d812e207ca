"""Embedding provider adapter.

Any LangChain :class:`~langchain_core.embeddings.Embeddings` implementation
can back the :class:`Embedder`; provider failures surface as
:class:`~knowledge_hub.exceptions.EmbeddingProviderError` so callers can
abort an ingest or search before the store is touched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from knowledge_hub.config import settings
from knowledge_hub.exceptions import EmbeddingProviderError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embeddings() -> Embeddings:
    """Return the configured LangChain embedding model.

    ``settings.embedding_provider`` selects between the OpenAI API (default)
    and a local sentence-transformer through ``langchain-huggingface``.
    """
    if settings.embedding_provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        logger.info("Using HuggingFace embeddings: %s", settings.embedding_model)
        return HuggingFaceEmbeddings(model_name=settings.embedding_model)

    from langchain_openai import OpenAIEmbeddings

    logger.info("Using OpenAI embeddings: %s", settings.embedding_model)
    return OpenAIEmbeddings(model=settings.embedding_model, api_key=settings.openai_api_key or None)


class Embedder:
    """Single and batched text embedding with a uniform error type.

    Parameters
    ----------
    embeddings:
        The LangChain embedding model.  When *None*, :func:`get_embeddings`
        builds one from the global settings.
    """

    def __init__(self, embeddings: Embeddings | None = None) -> None:
        self._embeddings = embeddings if embeddings is not None else get_embeddings()

    def embed(self, text: str) -> list[float]:
        """Embed a single query string."""
        try:
            return list(self._embeddings.embed_query(text))
        except Exception as exc:
            logger.error("Embedding provider failed for query (%d chars): %s", len(text), exc)
            raise EmbeddingProviderError(f"Embedding provider failed: {exc}") from exc

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, returning one vector per input in the same order."""
        if not texts:
            return []
        try:
            vectors = self._embeddings.embed_documents(texts)
        except Exception as exc:
            logger.error("Embedding provider failed for batch of %d: %s", len(texts), exc)
            raise EmbeddingProviderError(f"Embedding provider failed: {exc}") from exc

        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return [list(v) for v in vectors]
