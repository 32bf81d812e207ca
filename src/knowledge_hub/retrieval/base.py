"""Abstract base class for vector-store backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the abstract methods.  The retriever, the stats
aggregator and the service layer are backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from knowledge_hub.retrieval.models import (
    Chunk,
    Document,
    DocumentSummary,
    SearchResult,
    StoreStats,
)


class VectorStoreBase(ABC):
    """Backend-agnostic document + chunk index.

    Parameters
    ----------
    name:
        Logical name of the index (used in log lines).
    """

    def __init__(self, name: str) -> None:
        self.name = name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def upsert(self, document: Document, chunks: Sequence[Chunk]) -> Document:
        """Insert or replace *document* together with *chunks*, atomically.

        Returns the stored document with ``created_at`` set.
        """
        ...

    @abstractmethod
    def search(self, query_embedding: Sequence[float], k: int = 8) -> list[SearchResult]:
        """Return up to *k* chunks ranked by cosine similarity (highest first).

        Chunks whose parent document no longer exists are skipped.
        """
        ...

    @abstractmethod
    def list_documents(self) -> list[DocumentSummary]:
        """Return a summary of every stored document."""
        ...

    @abstractmethod
    def get_document(self, doc_id: str) -> Document | None:
        """Point lookup; ``None`` when *doc_id* is unknown."""
        ...

    @abstractmethod
    def stats(self) -> StoreStats:
        """Document counts grouped by collection and by type."""
        ...

    # -- optional overrides ---------------------------------------------------

    def health_check(self) -> bool:
        """In-process backends are always ready; remote ones should ping their server."""
        return True

    def delete(self, ids: list[str]) -> None:
        """Remove documents and their chunks.  Not supported by default."""
        raise NotImplementedError(f"{type(self).__name__} does not support delete")
