"""In-process vector store with exact (linear-scan) cosine search.

The store is ephemeral: it lives for the lifetime of the serving process
and is rebuilt from scratch on restart.  Construct one instance at start-up
and pass it to every component that needs it.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

import numpy as np

from knowledge_hub.exceptions import EmbeddingProviderError
from knowledge_hub.retrieval.base import VectorStoreBase
from knowledge_hub.retrieval.locking import ReadWriteLock
from knowledge_hub.retrieval.models import (
    Chunk,
    Document,
    DocumentSummary,
    SearchResult,
    StoreStats,
)

logger = logging.getLogger(__name__)

EPSILON = 1e-8

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """``dot(a, b) / (|a| * |b| + EPSILON)``; an all-zero vector scores 0.0."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    return float(np.dot(va, vb) / (np.linalg.norm(va) * np.linalg.norm(vb) + EPSILON))


class InMemoryVectorStore(VectorStoreBase):
    """Dict-backed document/chunk index guarded by a reader/writer lock.

    Parameters
    ----------
    name:
        Logical index name.
    clock:
        Returns the current time as an aware UTC datetime; injected so
        freshness can be tested without sleeping.
    """

    def __init__(self, name: str = "knowledge_hub", *, clock: Clock = utcnow) -> None:
        super().__init__(name)
        self._clock = clock
        self._lock = ReadWriteLock()
        self._documents: dict[str, Document] = {}
        self._chunks: dict[str, Chunk] = {}
        self._vectors: dict[str, np.ndarray] = {}

    # -- writes ---------------------------------------------------------------

    def upsert(self, document: Document, chunks: Sequence[Chunk]) -> Document:
        for chunk in chunks:
            if chunk.doc_id != document.id:
                raise ValueError(
                    f"Chunk {chunk.id!r} belongs to {chunk.doc_id!r}, not {document.id!r}"
                )

        # Everything that can be prepared outside the critical section is.
        stored_chunks = [c.model_copy(deep=True) for c in chunks]
        vectors = {c.id: np.asarray(c.embedding, dtype=np.float64) for c in stored_chunks}

        with self._lock.write():
            stored = document.model_copy(
                deep=True,
                update={"created_at": self._clock(), "chunk_ids": [c.id for c in stored_chunks]},
            )
            self._documents[stored.id] = stored
            for chunk in stored_chunks:
                self._chunks[chunk.id] = chunk
            self._vectors.update(vectors)

        logger.info(
            "Upserted document %s (%r) with %d chunk(s) into %s",
            stored.id,
            stored.title,
            len(stored_chunks),
            self.name,
        )
        return stored.model_copy(deep=True)

    def reset(self) -> None:
        """Drop every document and chunk."""
        with self._lock.write():
            self._documents.clear()
            self._chunks.clear()
            self._vectors.clear()

    # -- reads ----------------------------------------------------------------

    def search(self, query_embedding: Sequence[float], k: int = 8) -> list[SearchResult]:
        """Rank every live chunk against *query_embedding*.

        Raises
        ------
        EmbeddingProviderError
            The query was embedded with a different dimension than the
            indexed chunks (e.g. the embedding model changed).
        """
        if k <= 0:
            return []
        query = np.asarray(query_embedding, dtype=np.float64)

        scored: list[SearchResult] = []
        with self._lock.read():
            for chunk in self._chunks.values():
                doc = self._documents.get(chunk.doc_id)
                if doc is None:
                    continue
                vector = self._vectors[chunk.id]
                if vector.shape != query.shape:
                    raise EmbeddingProviderError(
                        f"Query embedding has dimension {query.size}, "
                        f"but chunk {chunk.id!r} was indexed with dimension {vector.size}"
                    )
                scored.append(
                    SearchResult(
                        doc_id=doc.id,
                        chunk_id=chunk.id,
                        title=doc.title,
                        type=doc.type,
                        collection=doc.collection,
                        tags=list(doc.tags),
                        text=chunk.text,
                        score=cosine_similarity(query, vector),
                        index=len(scored),
                    )
                )

        # sorted() is stable: equal scores keep scan (insertion) order.
        ranked = sorted(scored, key=lambda r: r.score, reverse=True)
        return ranked[:k]

    def list_documents(self) -> list[DocumentSummary]:
        with self._lock.read():
            return [DocumentSummary.from_document(d) for d in self._documents.values()]

    def get_document(self, doc_id: str) -> Document | None:
        with self._lock.read():
            doc = self._documents.get(doc_id)
            return doc.model_copy(deep=True) if doc is not None else None

    def stats(self) -> StoreStats:
        with self._lock.read():
            docs = list(self._documents.values())
            total_chunks = len(self._chunks)
        return StoreStats(
            total_docs=len(docs),
            total_chunks=total_chunks,
            by_collection=dict(Counter(d.collection for d in docs)),
            by_type=dict(Counter(d.type for d in docs)),
        )

    @property
    def chunk_count(self) -> int:
        with self._lock.read():
            return len(self._chunks)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._documents)
