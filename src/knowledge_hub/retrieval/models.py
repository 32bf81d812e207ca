"""Domain models for indexed documents, chunks and search results."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

DEFAULT_COLLECTION = "uncategorized"
DEFAULT_TYPE = "unknown"
DEFAULT_VERSION = "v1.0"


class Document(BaseModel):
    """A source document owned by the vector store.

    Attributes
    ----------
    id:
        Externally generated unique identifier.
    title:
        Display title.
    type:
        Format tag (``"markdown"``, ``"pdf"``, …).
    collection:
        Operator-assigned grouping label used for freshness reporting.
    tags:
        Free-form labels; duplicates are dropped, first occurrence wins.
    text:
        The full extracted text.
    version:
        Free-form version label.
    created_at:
        Set by the store at upsert time (UTC).  ``None`` until stored.
    chunk_ids:
        Ids of the chunks registered by the most recent upsert.
    """

    id: str
    title: str
    type: str = DEFAULT_TYPE
    collection: str = DEFAULT_COLLECTION
    tags: list[str] = Field(default_factory=list)
    text: str
    version: str = DEFAULT_VERSION
    created_at: datetime | None = None
    chunk_ids: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_ids)


class Chunk(BaseModel):
    """An embedded span of a document.

    ``doc_id`` is a foreign key resolved against the store at read time;
    a chunk never holds a reference to its parent object.
    """

    id: str
    doc_id: str
    text: str
    embedding: list[float]

    @staticmethod
    def make_id(doc_id: str, ordinal: int) -> str:
        """Derive the globally unique chunk id for *ordinal* within *doc_id*."""
        return f"{doc_id}_chunk_{ordinal}"


class SearchResult(BaseModel):
    """A scored chunk enriched with its parent document's metadata."""

    doc_id: str
    chunk_id: str
    title: str
    type: str = DEFAULT_TYPE
    collection: str = DEFAULT_COLLECTION
    tags: list[str] = Field(default_factory=list)
    text: str
    score: float
    index: int

    def __str__(self) -> str:  # noqa: D105
        return f"[{self.title}§{self.chunk_id}] {self.score:.3f} {self.text[:120]}…"


class DocumentSummary(BaseModel):
    """Listing view of a document, independent of chunk contents."""

    id: str
    title: str
    name: str
    type: str
    collection: str
    tags: list[str]
    size: int
    chunks: int
    created_at: datetime | None
    version: str

    @classmethod
    def from_document(cls, doc: Document) -> DocumentSummary:
        return cls(
            id=doc.id,
            title=doc.title,
            name=doc.title,
            type=doc.type,
            collection=doc.collection,
            tags=list(doc.tags),
            size=len(doc.text),
            chunks=doc.chunk_count,
            created_at=doc.created_at,
            version=doc.version,
        )


class StoreStats(BaseModel):
    """Document counts grouped by collection and by type."""

    total_docs: int = 0
    total_chunks: int = 0
    by_collection: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Freshness summaries
# ---------------------------------------------------------------------------


class IngestionStatus(BaseModel):
    status: str
    updated_at: datetime | None = None


class DatasetCard(BaseModel):
    """Per-collection freshness card."""

    name: str
    ver: str
    status: str
    count: int
    latest: datetime | None = None


class IngestionSummary(BaseModel):
    sources_count: int = 0
    collections: list[str] = Field(default_factory=list)
    ingestion: IngestionStatus
    datasets: list[DatasetCard] = Field(default_factory=list)
