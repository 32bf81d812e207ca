"""Error taxonomy for ingestion and retrieval.

A missing document is *not* an error: point lookups return ``None``.
"""

from __future__ import annotations


class KnowledgeHubError(Exception):
    """Base class for every error raised by :mod:`knowledge_hub`."""


class ExtractionError(KnowledgeHubError):
    """A source file could not be turned into usable plain text."""

    def __init__(self, message: str, *, format: str | None = None) -> None:  # noqa: A002
        super().__init__(message)
        self.format = format


class UnsupportedFormat(ExtractionError):
    """No extractor is registered for the requested format."""


class EmbeddingProviderError(KnowledgeHubError):
    """The embedding provider failed; the enclosing operation is aborted."""


class ValidationError(KnowledgeHubError):
    """An ingest request is missing required fields (title or text)."""
