"""
Knowledge Hub — document ingestion, semantic search and cited RAG chat.

Public API
----------
- :class:`KnowledgeHub` — service facade (ingest, search, stats, chat).
- :class:`InMemoryVectorStore` — the authoritative document/chunk index.
- :func:`chunk_text` — paragraph/sentence chunker.
"""

from knowledge_hub.ingestion.chunker import chunk_text
from knowledge_hub.retrieval.memory_store import InMemoryVectorStore
from knowledge_hub.service import IngestResult, KnowledgeHub

__all__ = [
    "InMemoryVectorStore",
    "IngestResult",
    "KnowledgeHub",
    "chunk_text",
]
