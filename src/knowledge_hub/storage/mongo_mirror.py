"""Write-only MongoDB mirror of ingested documents and chunks.

The in-memory store is authoritative; this mirror only gives operators a
durable copy.  Writes use upsert semantics keyed on ``id`` so re-ingestion
is idempotent.  Nothing here is ever read back into the store.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from knowledge_hub.config import settings
from knowledge_hub.retrieval.models import Chunk, Document

logger = logging.getLogger(__name__)

DOCS_COLLECTION = "docs"
CHUNKS_COLLECTION = "chunks"


@runtime_checkable
class DocumentMirror(Protocol):
    """Best-effort durable sink for documents and their chunks."""

    def put(self, document: Document) -> None: ...

    def put_chunks(self, chunks: Sequence[Chunk]) -> None: ...


def mirror_enabled() -> bool:
    """``True`` when both ``MONGODB_URI`` and ``MONGODB_DB`` are configured."""
    return bool(settings.mongodb_uri and settings.mongodb_db)


class MongoMirror:
    """MongoDB-backed :class:`DocumentMirror`.

    Parameters
    ----------
    uri:
        MongoDB connection string.
    database:
        Database name.
    client:
        Pre-built ``MongoClient`` (tests inject a mock).  When *None* a
        client is created lazily on first write.
    """

    def __init__(
        self,
        uri: str = "",
        database: str = "",
        *,
        client: Any | None = None,
        connect_timeout_ms: int = 15_000,
    ) -> None:
        self._uri = uri or settings.mongodb_uri
        self._database = database or settings.mongodb_db
        self._client = client
        self._connect_timeout_ms = connect_timeout_ms

    def _db(self) -> Any:
        if self._client is None:
            if not (self._uri and self._database):
                raise RuntimeError("Missing MONGODB_URI or MONGODB_DB")
            from pymongo import MongoClient

            self._client = MongoClient(self._uri, connectTimeoutMS=self._connect_timeout_ms)
        return self._client[self._database]

    def put(self, document: Document) -> None:
        payload = document.model_dump(mode="json", exclude={"chunk_ids"})
        self._db()[DOCS_COLLECTION].update_one(
            {"id": document.id},
            {"$set": payload},
            upsert=True,
        )
        logger.debug("Mirrored document %s", document.id)

    def put_chunks(self, chunks: Sequence[Chunk]) -> None:
        if not chunks:
            return
        from pymongo import UpdateOne

        operations = [
            UpdateOne(
                {"id": c.id},
                {"$set": {"id": c.id, "docId": c.doc_id, "text": c.text, "embedding": c.embedding}},
                upsert=True,
            )
            for c in chunks
        ]
        self._db()[CHUNKS_COLLECTION].bulk_write(operations, ordered=False)
        logger.debug("Mirrored %d chunk(s)", len(chunks))

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
