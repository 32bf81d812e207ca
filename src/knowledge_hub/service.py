"""Service facade exposing ingestion, search, stats and chat to the HTTP layer.

:class:`KnowledgeHub` owns one vector store and wires it to the chunker,
the embedder, the stats aggregator, the prompt builder, the chat model and
the optional durable mirror.  Build it once per process and inject it.

Usage::

    hub = KnowledgeHub.from_settings()
    result = hub.ingest("Onboarding", text, collection="hr", tags=["people"])
    hits = hub.search("How many vacation days do I get?", k=5)
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING
from uuid import uuid4

from pydantic import BaseModel

from knowledge_hub.config import settings
from knowledge_hub.exceptions import ValidationError
from knowledge_hub.generation.prompts import build_chat_messages
from knowledge_hub.generation.stream import stream_completion
from knowledge_hub.ingestion.chunker import ParagraphSentenceSplitter
from knowledge_hub.ingestion.embedder import Embedder
from knowledge_hub.ingestion.extractors import extract_text
from knowledge_hub.retrieval.base import VectorStoreBase
from knowledge_hub.retrieval.context import latest_user_query
from knowledge_hub.retrieval.memory_store import Clock, InMemoryVectorStore, utcnow
from knowledge_hub.retrieval.models import (
    DEFAULT_COLLECTION,
    DEFAULT_TYPE,
    DEFAULT_VERSION,
    Chunk,
    Document,
    DocumentSummary,
    IngestionSummary,
    SearchResult,
    StoreStats,
)
from knowledge_hub.retrieval.retriever import Retriever
from knowledge_hub.retrieval.stats import StatsAggregator
from knowledge_hub.storage.mongo_mirror import DocumentMirror, MongoMirror, mirror_enabled

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    document_id: str
    chunk_count: int


def new_document_id() -> str:
    """``doc_<epoch-ms>_<random>``; unique for the life of the process."""
    return f"doc_{int(time.time() * 1000)}_{uuid4().hex[:12]}"


class KnowledgeHub:
    """Ingestion, search, stats and chat over a single vector store.

    Parameters
    ----------
    store:
        The authoritative document/chunk index.
    embedder:
        Embeds chunk texts at ingest time and queries at search time.
    llm:
        Streaming chat model.  Created from settings on first use when
        *None*.
    mirror:
        Optional durable sink.  Written after the in-memory upsert on a
        background thread; failures are logged and otherwise ignored.
    clock:
        Time source for freshness stats; pass the same clock the store uses.
    chunk_max_len / search_k / chat_k / query_max_chars:
        Tunables, defaulting to the global settings.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: Embedder,
        *,
        llm: BaseChatModel | None = None,
        mirror: DocumentMirror | None = None,
        clock: Clock = utcnow,
        chunk_max_len: int | None = None,
        search_k: int | None = None,
        chat_k: int | None = None,
        query_max_chars: int | None = None,
    ) -> None:
        self.store = store
        self._embedder = embedder
        self._llm = llm
        self._mirror = mirror
        self._mirror_executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="mirror") if mirror is not None else None
        )
        self.chunk_max_len = chunk_max_len or settings.chunk_max_len
        self._splitter = ParagraphSentenceSplitter(max_len=self.chunk_max_len)
        self.chat_k = chat_k or settings.chat_context_k
        self.query_max_chars = query_max_chars or settings.query_max_chars
        self.retriever = Retriever(store, embedder, default_k=search_k or settings.search_default_k)
        self.stats = StatsAggregator(store, clock=clock)

    @classmethod
    def from_settings(cls) -> KnowledgeHub:
        """Build a hub with an empty in-memory store and configured providers."""
        mirror = MongoMirror() if mirror_enabled() else None
        if mirror is not None:
            logger.info("Durable mirror enabled (MongoDB database %r)", settings.mongodb_db)
        return cls(InMemoryVectorStore(), Embedder(), mirror=mirror)

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            from knowledge_hub.generation.llm import get_llm

            self._llm = get_llm()
        return self._llm

    # -- ingestion ------------------------------------------------------------

    def ingest(
        self,
        title: str | None,
        text: str | None,
        *,
        collection: str | None = None,
        type: str | None = None,  # noqa: A002
        tags: Sequence[str] | None = None,
        version: str | None = None,
    ) -> IngestResult:
        """Chunk, embed and index one document.

        Raises
        ------
        ValidationError
            *title* or *text* is missing or blank.
        EmbeddingProviderError
            The embedding provider failed; nothing was stored.
        """
        if not title or not title.strip() or not text or not text.strip():
            raise ValidationError("Missing 'text' or 'title'.")

        doc_id = new_document_id()
        pieces = self._splitter.split_text(text)
        vectors = self._embedder.embed_batch(pieces)
        chunks = [
            Chunk(id=Chunk.make_id(doc_id, i), doc_id=doc_id, text=piece, embedding=vector)
            for i, (piece, vector) in enumerate(zip(pieces, vectors))
        ]
        document = Document(
            id=doc_id,
            title=title,
            type=type or DEFAULT_TYPE,
            collection=collection or DEFAULT_COLLECTION,
            tags=[t for t in (tags or []) if t],
            text=text,
            version=version or DEFAULT_VERSION,
        )

        saved = self.store.upsert(document, chunks)
        self._mirror_async(saved, chunks)
        logger.info("Ingested %s (%r): %d chunk(s)", saved.id, saved.title, len(chunks))
        return IngestResult(document_id=saved.id, chunk_count=len(chunks))

    def ingest_file(
        self,
        data: bytes,
        *,
        filename: str | None = None,
        mime_type: str | None = None,
        title: str | None = None,
        collection: str | None = None,
        type: str | None = None,  # noqa: A002
        tags: Sequence[str] | None = None,
        version: str | None = None,
    ) -> IngestResult:
        """Extract text from an uploaded file, then :meth:`ingest` it.

        The detected format becomes the document type unless *type* is given.
        """
        extracted = extract_text(data, filename=filename, mime_type=mime_type)
        return self.ingest(
            title or filename,
            extracted.text,
            collection=collection,
            type=type or extracted.format.value,
            tags=tags,
            version=version,
        )

    # -- reads ----------------------------------------------------------------

    def search(self, query: str, k: int | None = None) -> list[SearchResult]:
        return self.retriever.search(query, k)

    def get_document(self, doc_id: str) -> Document | None:
        return self.store.get_document(doc_id)

    def list_documents(self) -> list[DocumentSummary]:
        return self.store.list_documents()

    def get_stats(self) -> IngestionSummary:
        return self.stats.summarize()

    def store_stats(self) -> StoreStats:
        return self.store.stats()

    # -- chat -----------------------------------------------------------------

    def prepare_chat(self, messages: Sequence[BaseMessage], k: int | None = None) -> list[BaseMessage]:
        """Retrieve context for the latest user turn and build the prompt.

        Runs before streaming starts so embedding failures surface as
        ordinary errors rather than a truncated stream.
        """
        query = latest_user_query(messages, self.query_max_chars)
        results = self.retriever.search(query, self.chat_k if k is None else k) if query else []
        logger.info("Chat retrieval: %d source(s) for %.80r", len(results), query)
        return build_chat_messages(messages, results, query)

    def stream_answer(self, prompt: Sequence[BaseMessage]) -> AsyncIterator[str]:
        return stream_completion(self.llm, prompt)

    async def chat(self, messages: Sequence[BaseMessage], k: int | None = None) -> AsyncIterator[str]:
        """Convenience wrapper: :meth:`prepare_chat` then :meth:`stream_answer`."""
        prompt = self.prepare_chat(messages, k)
        async for delta in self.stream_answer(prompt):
            yield delta

    # -- mirror ---------------------------------------------------------------

    def _mirror_async(self, document: Document, chunks: Sequence[Chunk]) -> Future | None:
        if self._mirror is None or self._mirror_executor is None:
            return None
        future = self._mirror_executor.submit(self._write_mirror, self._mirror, document, list(chunks))
        future.add_done_callback(lambda f: self._log_mirror_failure(f, document.id))
        return future

    @staticmethod
    def _write_mirror(mirror: DocumentMirror, document: Document, chunks: list[Chunk]) -> None:
        mirror.put(document)
        mirror.put_chunks(chunks)

    @staticmethod
    def _log_mirror_failure(future: Future, doc_id: str) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Mirror persist failed for %s: %s", doc_id, exc)

    def close(self) -> None:
        """Flush pending mirror writes and release the mirror connection."""
        if self._mirror_executor is not None:
            self._mirror_executor.shutdown(wait=True)
        close = getattr(self._mirror, "close", None)
        if callable(close):
            close()
