"""Unit tests for the retrieval layer: models, Chroma store and SemanticRetriever."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from langchain_core.embeddings import Embeddings

from hybrid_memory.errors import StoreReadError, StoreWriteError
from hybrid_memory.ingestion.embedder import Embedder
from hybrid_memory.retrieval.base import DocumentStoreBase
from hybrid_memory.retrieval.models import Citation, MetadataFilter, RetrievalResult, SearchHit
from hybrid_memory.retrieval.retriever import SemanticRetriever, format_results


# ── Fakes ────────────────────────────────────────────────────────────────


class FakeDocumentStore(DocumentStoreBase):
    """In-memory fake that returns canned hits per user."""

    def __init__(self, hits: dict[str, list[SearchHit]] | None = None) -> None:
        super().__init__("test-collection")
        self._hits = hits or {}
        self.last_query: tuple[str, list[float], int] | None = None

    def has_document(self, user_id: str, filename: str) -> bool:
        return False

    def store_chunks(self, user_id, filename, chunks, embeddings) -> None:  # noqa: ANN001
        raise NotImplementedError

    def search(self, user_id: str, query_embedding: list[float], top_k: int) -> list[SearchHit]:
        self.last_query = (user_id, query_embedding, top_k)
        return self._hits.get(user_id, [])[:top_k]

    def health_check(self) -> bool:
        return True


class UnitEmbeddings(Embeddings):
    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [[1.0, 0.0, 0.0] for _ in texts]

    def embed_query(self, text: str) -> list[float]:
        return [1.0, 0.0, 0.0]


SAMPLE_HITS: list[SearchHit] = [
    SearchHit(
        content="Rate limits are 60 requests per minute.",
        score=0.92,
        metadata={"user_id": "alice", "filename": "api_guide.pdf", "chunk_index": 3},
    ),
    SearchHit(
        content="Quotas reset at midnight UTC.",
        score=0.87,
        metadata={"user_id": "alice", "filename": "billing.pdf", "chunk_index": 1},
    ),
    SearchHit(
        content="Unrelated appendix.",
        score=0.45,
        metadata={"user_id": "alice", "filename": "appendix.pdf", "chunk_index": 0},
    ),
]


@pytest.fixture()
def fake_store() -> FakeDocumentStore:
    return FakeDocumentStore(hits={"alice": SAMPLE_HITS})


@pytest.fixture()
def retriever(fake_store: FakeDocumentStore) -> SemanticRetriever:
    return SemanticRetriever(fake_store, Embedder(UnitEmbeddings(), dimensions=3), default_k=5)


# ── Model tests ──────────────────────────────────────────────────────────


class TestCitation:
    def test_label_with_chunk(self) -> None:
        assert Citation(filename="guide.pdf", chunk_index=3).label() == "guide.pdf#3"

    def test_label_without_chunk(self) -> None:
        assert Citation(filename="guide.pdf").label() == "guide.pdf#?"

    def test_from_hit(self) -> None:
        citation = Citation.from_hit(SAMPLE_HITS[1])
        assert (citation.filename, citation.chunk_index, citation.score) == ("billing.pdf", 1, 0.87)
        assert citation.retrieved_at.tzinfo is not None


class TestRetrievalResult:
    def test_str_includes_ref_and_content(self) -> None:
        r = RetrievalResult(content="Quotas reset daily.", citation=Citation(filename="b.pdf", chunk_index=1))
        assert str(r).startswith("[b.pdf#1] ")
        assert "Quotas" in str(r)


# ── SemanticRetriever tests ──────────────────────────────────────────────


class TestSemanticRetriever:
    def test_search_scopes_to_user(self, fake_store: FakeDocumentStore, retriever: SemanticRetriever) -> None:
        results = retriever.search("alice", "rate limits")
        assert len(results) == 3
        assert fake_store.last_query == ("alice", [1.0, 0.0, 0.0], 5)

    def test_other_user_sees_nothing(self, retriever: SemanticRetriever) -> None:
        assert retriever.search("bob", "rate limits") == []

    def test_citations_populated_from_metadata(self, retriever: SemanticRetriever) -> None:
        first = retriever.search("alice", "limits")[0].citation
        assert first.filename == "api_guide.pdf"
        assert first.chunk_index == 3
        assert first.score == 0.92

    def test_explicit_k_overrides_default(self, retriever: SemanticRetriever) -> None:
        assert len(retriever.search("alice", "anything", k=1)) == 1

    def test_score_threshold_filters(self, fake_store: FakeDocumentStore) -> None:
        retriever = SemanticRetriever(
            fake_store, Embedder(UnitEmbeddings(), dimensions=3), score_threshold=0.5
        )
        results = retriever.search("alice", "query")
        assert [r.citation.filename for r in results] == ["api_guide.pdf", "billing.pdf"]

    def test_missing_metadata_handled(self) -> None:
        store = FakeDocumentStore(hits={"alice": [SearchHit(content="text", score=0.8)]})
        retriever = SemanticRetriever(store, Embedder(UnitEmbeddings(), dimensions=3))
        citation = retriever.search("alice", "q")[0].citation
        assert citation.filename == "unknown"
        assert citation.chunk_index is None


class TestFormatResults:
    def test_no_results_message(self) -> None:
        assert format_results([]) == "No relevant documents found."

    def test_numbered_passages(self, retriever: SemanticRetriever) -> None:
        text = format_results(retriever.search("alice", "q", k=2))
        assert text.startswith("[1] api_guide.pdf#3 (score 0.920)")
        assert "[2] billing.pdf#1" in text


# ── Chroma store tests ───────────────────────────────────────────────────


class TestBuildChromaWhere:
    def test_single_filter(self) -> None:
        from hybrid_memory.retrieval.chroma_store import build_where

        assert build_where([MetadataFilter.equals("user_id", "alice")]) == {
            "user_id": {"$eq": "alice"}
        }

    def test_multiple_filters_produce_and(self) -> None:
        from hybrid_memory.retrieval.chroma_store import build_where

        where = build_where(
            [MetadataFilter.equals("user_id", "alice"), MetadataFilter.equals("filename", "a.pdf")]
        )
        assert where == {"$and": [{"user_id": {"$eq": "alice"}}, {"filename": {"$eq": "a.pdf"}}]}

    def test_none_when_empty(self) -> None:
        from hybrid_memory.retrieval.chroma_store import build_where

        assert build_where([]) is None

    @pytest.mark.parametrize("operator", ["ne", "in", "regex"])
    def test_only_equality_is_supported(self, operator: str) -> None:
        from hybrid_memory.retrieval.chroma_store import build_where

        with pytest.raises(ValueError, match="Unsupported filter operator"):
            build_where([MetadataFilter(field="x", operator=operator, value="y")])


class TestChromaDocumentStore:
    @pytest.fixture()
    def client(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture()
    def collection(self, client: MagicMock) -> MagicMock:
        return client.get_or_create_collection.return_value

    @pytest.fixture()
    def store(self, client: MagicMock):  # noqa: ANN201
        from hybrid_memory.retrieval.chroma_store import ChromaDocumentStore

        return ChromaDocumentStore("documents", client=client)

    def test_collection_uses_cosine_space(self, store, client: MagicMock) -> None:  # noqa: ANN001
        client.get_or_create_collection.assert_called_once_with(
            "documents", metadata={"hnsw:space": "cosine"}
        )

    def test_has_document_filters_on_user_and_filename(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        collection.get.return_value = {"ids": ["alice:a.pdf:0"]}
        assert store.has_document("alice", "a.pdf") is True
        where = collection.get.call_args.kwargs["where"]
        assert where == {"$and": [{"user_id": {"$eq": "alice"}}, {"filename": {"$eq": "a.pdf"}}]}

    def test_has_document_false_when_no_ids(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        collection.get.return_value = {"ids": []}
        assert store.has_document("alice", "a.pdf") is False

    def test_has_document_failure_raises_read_error(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        collection.get.side_effect = ConnectionError("down")
        with pytest.raises(StoreReadError):
            store.has_document("alice", "a.pdf")

    def test_store_chunks_writes_indexed_rows(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        store.store_chunks("alice", "a.pdf", ["one", "two"], [[0.1], [0.2]])
        kwargs = collection.add.call_args.kwargs
        assert kwargs["ids"] == ["alice:a.pdf:0", "alice:a.pdf:1"]
        assert kwargs["documents"] == ["one", "two"]
        assert [m["chunk_index"] for m in kwargs["metadatas"]] == [0, 1]
        assert all(m["user_id"] == "alice" and m["filename"] == "a.pdf" for m in kwargs["metadatas"])

    def test_store_chunks_length_mismatch(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        with pytest.raises(ValueError):
            store.store_chunks("alice", "a.pdf", ["one", "two"], [[0.1]])
        collection.add.assert_not_called()

    def test_store_chunks_failure_raises_write_error(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        collection.add.side_effect = RuntimeError("rejected")
        with pytest.raises(StoreWriteError):
            store.store_chunks("alice", "a.pdf", ["one"], [[0.1]])

    def test_search_converts_distance_to_score(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        collection.query.return_value = {
            "documents": [["close", "far"]],
            "metadatas": [[{"filename": "a.pdf", "chunk_index": 0}, {"filename": "b.pdf", "chunk_index": 2}]],
            "distances": [[0.1, 0.6]],
        }
        hits = store.search("alice", [0.3, 0.4], 5)
        assert [h.content for h in hits] == ["close", "far"]
        assert hits[0].score == pytest.approx(0.9)
        assert hits[1].score == pytest.approx(0.4)
        assert collection.query.call_args.kwargs["where"] == {"user_id": {"$eq": "alice"}}

    def test_search_failure_raises_read_error(self, store, collection: MagicMock) -> None:  # noqa: ANN001
        collection.query.side_effect = ConnectionError("down")
        with pytest.raises(StoreReadError):
            store.search("alice", [0.1], 5)

    def test_health_check(self, store, client: MagicMock) -> None:  # noqa: ANN001
        assert store.health_check() is True
        client.heartbeat.side_effect = ConnectionError("down")
        assert store.health_check() is False
