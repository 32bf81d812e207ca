"""Unit tests for the in-memory vector store and its reader/writer lock."""

from __future__ import annotations

import math
import threading
import time

import pytest

from knowledge_hub.exceptions import EmbeddingProviderError
from knowledge_hub.retrieval.base import VectorStoreBase
from knowledge_hub.retrieval.locking import ReadWriteLock
from knowledge_hub.retrieval.memory_store import InMemoryVectorStore, cosine_similarity
from knowledge_hub.retrieval.models import Chunk, Document, SearchResult


# ── Helpers ─────────────────────────────────────────────────────────────


def _doc(doc_id: str, **overrides) -> Document:
    fields = {
        "id": doc_id,
        "title": f"Title {doc_id}",
        "type": "markdown",
        "collection": "engineering",
        "tags": ["alpha"],
        "text": f"Full text of {doc_id}.",
        "version": "v2.0",
    }
    fields.update(overrides)
    return Document(**fields)


def _chunks(doc_id: str, *embeddings: list[float]) -> list[Chunk]:
    return [
        Chunk(id=Chunk.make_id(doc_id, i), doc_id=doc_id, text=f"{doc_id} chunk {i}", embedding=e)
        for i, e in enumerate(embeddings)
    ]


# ── Cosine similarity ──────────────────────────────────────────────────


class TestCosineSimilarity:
    def test_self_similarity_is_one(self) -> None:
        assert cosine_similarity([0.3, -1.2, 4.0], [0.3, -1.2, 4.0]) == pytest.approx(1.0)

    def test_orthogonal_is_zero(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_is_minus_one(self) -> None:
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_zero_vector_does_not_divide_by_zero(self) -> None:
        score = cosine_similarity([0.0, 0.0], [1.0, 0.0])
        assert score == 0.0
        assert not math.isnan(score)

    def test_scale_invariant(self) -> None:
        assert cosine_similarity([1.0, 1.0], [10.0, 10.0]) == pytest.approx(1.0)


# ── Upsert / lookup ────────────────────────────────────────────────────


class TestUpsert:
    def test_is_a_vector_store(self, store: InMemoryVectorStore) -> None:
        assert isinstance(store, VectorStoreBase)
        assert store.health_check() is True

    def test_upsert_stamps_created_at(self, store: InMemoryVectorStore, clock) -> None:
        saved = store.upsert(_doc("d1"), _chunks("d1", [1.0, 0.0]))
        assert saved.created_at == clock.now

    def test_get_document_round_trip(self, store: InMemoryVectorStore) -> None:
        source = _doc("d1")
        store.upsert(source, _chunks("d1", [1.0, 0.0], [0.0, 1.0]))
        fetched = store.get_document("d1")
        assert fetched is not None
        assert fetched.created_at is not None
        assert fetched.model_dump(exclude={"created_at", "chunk_ids"}) == source.model_dump(
            exclude={"created_at", "chunk_ids"}
        )
        assert fetched.chunk_ids == ["d1_chunk_0", "d1_chunk_1"]

    def test_unknown_id_returns_none(self, store: InMemoryVectorStore) -> None:
        assert store.get_document("missing") is None

    def test_input_document_not_mutated(self, store: InMemoryVectorStore) -> None:
        source = _doc("d1")
        store.upsert(source, _chunks("d1", [1.0]))
        assert source.created_at is None

    def test_returned_copy_is_detached(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1"), [])
        fetched = store.get_document("d1")
        assert fetched is not None
        fetched.tags.append("mutated")
        assert store.get_document("d1").tags == ["alpha"]

    def test_chunk_for_other_document_rejected(self, store: InMemoryVectorStore) -> None:
        with pytest.raises(ValueError, match="belongs to"):
            store.upsert(_doc("d1"), _chunks("d2", [1.0]))
        assert store.get_document("d1") is None
        assert store.chunk_count == 0

    def test_reupsert_replaces_metadata_and_restamps(self, store: InMemoryVectorStore, clock) -> None:
        store.upsert(_doc("d1"), _chunks("d1", [1.0, 0.0]))
        clock.advance(minutes=5)
        store.upsert(_doc("d1", title="Renamed"), _chunks("d1", [0.0, 1.0]))
        fetched = store.get_document("d1")
        assert fetched.title == "Renamed"
        assert fetched.created_at == clock.now
        assert len(store) == 1

    def test_reupsert_keeps_chunks_missing_from_new_set(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1"), _chunks("d1", [1.0, 0.0], [0.0, 1.0]))
        store.upsert(_doc("d1"), _chunks("d1", [1.0, 0.0]))
        assert store.chunk_count == 2
        assert store.get_document("d1").chunk_count == 1
        assert {r.chunk_id for r in store.search([0.0, 1.0], k=5)} == {"d1_chunk_0", "d1_chunk_1"}

    def test_reset_clears_everything(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1"), _chunks("d1", [1.0]))
        store.reset()
        assert len(store) == 0
        assert store.chunk_count == 0

    def test_delete_not_supported(self, store: InMemoryVectorStore) -> None:
        with pytest.raises(NotImplementedError):
            store.delete(["d1"])


# ── Search ─────────────────────────────────────────────────────────────


class TestSearch:
    def test_empty_store_returns_empty(self, store: InMemoryVectorStore) -> None:
        assert store.search([1.0, 0.0], k=5) == []

    def test_orthogonal_documents_ranked(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("first"), _chunks("first", [1.0, 0.0]))
        store.upsert(_doc("second"), _chunks("second", [0.0, 1.0]))
        results = store.search([1.0, 0.0], k=2)
        assert [r.doc_id for r in results] == ["first", "second"]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.0)

    def test_results_enriched_with_parent_metadata(self, store: InMemoryVectorStore) -> None:
        store.upsert(
            _doc("d1", title="Runbook", type="pdf", collection="ops", tags=["oncall"]),
            _chunks("d1", [1.0, 0.0]),
        )
        (hit,) = store.search([1.0, 0.0], k=1)
        assert isinstance(hit, SearchResult)
        assert (hit.title, hit.type, hit.collection, hit.tags) == ("Runbook", "pdf", "ops", ["oncall"])
        assert hit.chunk_id == "d1_chunk_0"
        assert hit.text == "d1 chunk 0"

    def test_sorted_by_non_increasing_score(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1"), _chunks("d1", [1.0, 0.0], [0.7, 0.7], [0.0, 1.0], [-1.0, 0.0]))
        store.upsert(_doc("d2"), _chunks("d2", [0.9, 0.1], [0.1, 0.9]))
        scores = [r.score for r in store.search([1.0, 0.2], k=10)]
        assert scores == sorted(scores, reverse=True)

    def test_k_limits_results(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1"), _chunks("d1", [1.0, 0.0], [0.5, 0.5], [0.0, 1.0]))
        assert len(store.search([1.0, 0.0], k=2)) == 2
        assert len(store.search([1.0, 0.0], k=10)) == 3
        assert store.search([1.0, 0.0], k=0) == []

    def test_ties_resolve_in_insertion_order(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("a"), _chunks("a", [0.6, 0.8]))
        store.upsert(_doc("b"), _chunks("b", [0.6, 0.8]))
        store.upsert(_doc("c"), _chunks("c", [0.6, 0.8]))
        results = store.search([1.0, 0.0], k=3)
        assert len({r.score for r in results}) == 1
        assert [r.doc_id for r in results] == ["a", "b", "c"]

    def test_orphaned_chunks_are_skipped(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("kept"), _chunks("kept", [0.0, 1.0]))
        store.upsert(_doc("gone"), _chunks("gone", [1.0, 0.0]))
        # No public delete exists; simulate a vanished parent.
        del store._documents["gone"]
        results = store.search([1.0, 0.0], k=5)
        assert [r.doc_id for r in results] == ["kept"]

    def test_dimension_mismatch_is_a_provider_error(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1"), _chunks("d1", [1.0, 0.0, 0.0]))
        with pytest.raises(EmbeddingProviderError, match="dimension 2"):
            store.search([1.0, 0.0], k=5)


# ── Listing / stats ────────────────────────────────────────────────────


class TestListingAndStats:
    def test_list_documents_derived_fields(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1", text="x" * 42), _chunks("d1", [1.0], [0.5]))
        (summary,) = store.list_documents()
        assert summary.size == 42
        assert summary.chunks == 2
        assert summary.name == summary.title
        assert summary.version == "v2.0"

    def test_stats_group_counts_sum_to_total(self, store: InMemoryVectorStore) -> None:
        store.upsert(_doc("d1", collection="hr", type="pdf"), _chunks("d1", [1.0]))
        store.upsert(_doc("d2", collection="hr", type="docx"), _chunks("d2", [1.0], [0.0]))
        store.upsert(_doc("d3", collection="eng", type="pdf"), [])
        stats = store.stats()
        total = len(store.list_documents())
        assert stats.total_docs == total == 3
        assert stats.total_chunks == 3
        assert stats.by_collection == {"hr": 2, "eng": 1}
        assert stats.by_type == {"pdf": 2, "docx": 1}
        assert sum(stats.by_collection.values()) == total
        assert sum(stats.by_type.values()) == total

    def test_defaults_applied(self, store: InMemoryVectorStore) -> None:
        store.upsert(Document(id="d1", title="Plain", text="body"), [])
        (summary,) = store.list_documents()
        assert summary.collection == "uncategorized"
        assert summary.type == "unknown"
        assert summary.version == "v1.0"


# ── Concurrency ────────────────────────────────────────────────────────


class TestConcurrency:
    def test_readers_never_see_partial_documents(self, store: InMemoryVectorStore) -> None:
        chunks_per_doc = 25
        violations: list[str] = []
        stop = threading.Event()

        def writer() -> None:
            for n in range(40):
                doc_id = f"doc{n}"
                store.upsert(_doc(doc_id), _chunks(doc_id, *([[1.0, float(n)]] * chunks_per_doc)))
            stop.set()

        def reader() -> None:
            while not stop.is_set():
                counts: dict[str, int] = {}
                for hit in store.search([1.0, 0.0], k=10_000):
                    counts[hit.doc_id] = counts.get(hit.doc_id, 0) + 1
                violations.extend(d for d, c in counts.items() if c != chunks_per_doc)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        writer_thread.join(timeout=30)
        for t in readers:
            t.join(timeout=30)

        assert not violations
        assert len(store) == 40


class TestReadWriteLock:
    def test_readers_share_the_lock(self) -> None:
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=5)

        def read() -> None:
            with lock.read():
                inside.wait()

        threads = [threading.Thread(target=read) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert not inside.broken

    def test_writer_excludes_readers(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []

        def read() -> None:
            with lock.read():
                events.append("read")

        with lock.write():
            t = threading.Thread(target=read)
            t.start()
            time.sleep(0.05)
            events.append("write-done")
        t.join(timeout=5)
        assert events == ["write-done", "read"]
