"""Query-side retrieval: text → embedding → ranked chunks.

Usage::

    from knowledge_hub.retrieval.retriever import Retriever

    retriever = Retriever(store, embedder)
    for r in retriever.search("What is our refund policy?", k=5):
        print(r.score, r.title, r.text[:80])
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from knowledge_hub.ingestion.embedder import Embedder
from knowledge_hub.retrieval.base import VectorStoreBase
from knowledge_hub.retrieval.models import SearchResult

logger = logging.getLogger(__name__)


class Retriever:
    """Thin layer between callers and a :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        The vector store to search.
    embedder:
        Used to embed query text.  The query is embedded before the store
        is touched, so a provider failure leaves the store untouched.
    default_k:
        Number of results when the caller does not pass *k*.
    """

    def __init__(self, store: VectorStoreBase, embedder: Embedder, *, default_k: int = 8) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = default_k

    def retrieve(self, query_embedding: Sequence[float], k: int | None = None) -> list[SearchResult]:
        """Rank stored chunks against a pre-computed *query_embedding*."""
        return self._store.search(query_embedding, k=self.default_k if k is None else k)

    def search(self, query: str, k: int | None = None) -> list[SearchResult]:
        """Embed *query* and return the ranked results; blank queries return ``[]``."""
        if not query.strip():
            return []
        embedding = self._embedder.embed(query)
        results = self.retrieve(embedding, k)
        logger.info("search returned %d results for %.80r", len(results), query)
        return results
