"""Freshness and version summaries derived from the store's documents.

Nothing is cached: every call to :meth:`StatsAggregator.summarize` reads
the current store contents.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from knowledge_hub.retrieval.base import VectorStoreBase
from knowledge_hub.retrieval.memory_store import Clock, utcnow
from knowledge_hub.retrieval.models import DatasetCard, IngestionStatus, IngestionSummary

UP_TO_DATE = "Up-to-date"
REFRESHING = "Refreshing"
STALE = "Stale"
NO_DATA = "—"

UP_TO_DATE_WINDOW = timedelta(minutes=2)
REFRESHING_WINDOW = timedelta(minutes=60)


def freshness_status(age: timedelta) -> str:
    """Bucket the age of the newest document into a freshness label."""
    age = max(age, timedelta(0))
    if age < UP_TO_DATE_WINDOW:
        return UP_TO_DATE
    if age < REFRESHING_WINDOW:
        return REFRESHING
    return STALE


def synthesize_version(count: int) -> str:
    """Display-only version label derived from a collection's document count."""
    return f"v{1 + count // 5}.{count % 10}"


class StatsAggregator:
    """Builds the dashboard's ingestion summary from a vector store.

    Parameters
    ----------
    store:
        The store to read.
    clock:
        Source of "now"; must return datetimes comparable with the
        store's ``created_at`` stamps.
    """

    def __init__(self, store: VectorStoreBase, *, clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    def summarize(self) -> IngestionSummary:
        documents = self._store.list_documents()
        if not documents:
            return IngestionSummary(ingestion=IngestionStatus(status=NO_DATA))

        groups: dict[str, tuple[int, datetime | None]] = {}
        latest_global: datetime | None = None
        for doc in documents:
            count, latest = groups.get(doc.collection, (0, None))
            groups[doc.collection] = (count + 1, _later(latest, doc.created_at))
            latest_global = _later(latest_global, doc.created_at)

        now = self._clock()
        datasets = [
            DatasetCard(
                name=name,
                ver=synthesize_version(count),
                status=freshness_status(_age(now, latest)),
                count=count,
                latest=latest,
            )
            for name, (count, latest) in groups.items()
        ]
        datasets.sort(key=lambda card: card.latest or datetime.min.replace(tzinfo=now.tzinfo), reverse=True)

        return IngestionSummary(
            sources_count=len(documents),
            collections=list(groups),
            ingestion=IngestionStatus(
                status=freshness_status(_age(now, latest_global)),
                updated_at=latest_global,
            ),
            datasets=datasets,
        )


def _later(a: datetime | None, b: datetime | None) -> datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _age(now: datetime, latest: datetime | None) -> timedelta:
    # Documents without a timestamp count as infinitely old.
    if latest is None:
        return timedelta.max
    return now - latest
