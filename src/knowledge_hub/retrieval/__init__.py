"""
Retrieval — the document/chunk index, similarity search, freshness stats
and context assembly.

Public surface
--------------
- :class:`InMemoryVectorStore` — default in-process store.
- :class:`VectorStoreBase` — abstract backend.
- :class:`Retriever` — query text → ranked :class:`SearchResult` list.
- :class:`StatsAggregator` — per-collection freshness / version summary.
- :func:`format_sources`, :func:`format_context` — prompt fragments.
"""

from knowledge_hub.retrieval.base import VectorStoreBase
from knowledge_hub.retrieval.context import format_context, format_sources, latest_user_query
from knowledge_hub.retrieval.memory_store import InMemoryVectorStore, cosine_similarity
from knowledge_hub.retrieval.models import (
    Chunk,
    Document,
    DocumentSummary,
    IngestionSummary,
    SearchResult,
    StoreStats,
)
from knowledge_hub.retrieval.retriever import Retriever
from knowledge_hub.retrieval.stats import StatsAggregator, freshness_status, synthesize_version

__all__ = [
    "Chunk",
    "Document",
    "DocumentSummary",
    "InMemoryVectorStore",
    "IngestionSummary",
    "Retriever",
    "SearchResult",
    "StatsAggregator",
    "StoreStats",
    "VectorStoreBase",
    "cosine_similarity",
    "format_context",
    "format_sources",
    "freshness_status",
    "latest_user_query",
    "synthesize_version",
]
