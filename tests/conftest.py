"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from langchain_core.embeddings import Embeddings

from knowledge_hub.ingestion.embedder import Embedder
from knowledge_hub.retrieval.memory_store import InMemoryVectorStore
from knowledge_hub.service import KnowledgeHub

VOCABULARY = ["kubernetes", "vacation", "invoice", "python", "security"]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


class KeywordEmbeddings(Embeddings):
    """Deterministic embeddings: one dimension per vocabulary word (occurrence count)."""

    def __init__(self, vocabulary: list[str] | None = None) -> None:
        self.vocabulary = vocabulary or VOCABULARY
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.vocabulary]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self._vector(text)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture()
def store(clock: FakeClock) -> InMemoryVectorStore:
    return InMemoryVectorStore("test-store", clock=clock)


@pytest.fixture()
def hub(store: InMemoryVectorStore, embeddings: KeywordEmbeddings, clock: FakeClock) -> KnowledgeHub:
    return KnowledgeHub(store, Embedder(embeddings), clock=clock)
