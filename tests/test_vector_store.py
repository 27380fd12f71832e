"""
Tests for the vector store implementations.
"""

import pytest
from unittest.mock import Mock
from langchain_core.documents import Document as LangChainDocument

from ragseek.exceptions import IndexingError
from ragseek.schema import Document
from ragseek.vector_stores import InMemoryVectorStore, LangChainVectorStore


@pytest.fixture
def populated_store():
    store = InMemoryVectorStore()
    store.add(
        [
            Document(id="x", page_content="x axis", embedding=[1.0, 0.0], metadata={"axis": "x"}),
            Document(id="y", page_content="y axis", embedding=[0.0, 1.0], metadata={"axis": "y"}),
            Document(id="xy", page_content="diagonal", embedding=[1.0, 1.0], metadata={"axis": "xy"}),
        ]
    )
    return store


class TestInMemoryVectorStore:
    """Test suite for InMemoryVectorStore."""

    def test_add_requires_embedding(self):
        store = InMemoryVectorStore()

        with pytest.raises(IndexingError) as exc_info:
            store.add([Document(page_content="no vector")])

        assert exc_info.value.stage == "add"
        assert store.count() == 0

    def test_add_assigns_missing_ids(self):
        store = InMemoryVectorStore()
        doc = Document(page_content="text", embedding=[1.0])

        ids = store.add([doc])

        assert len(ids) == 1 and ids[0]
        assert doc.id is None
        assert store.get(ids[0]).page_content == "text"

    def test_search_orders_by_similarity(self, populated_store):
        results = populated_store.search([1.0, 0.1], k=3)

        assert [d.id for d in results] == ["x", "xy", "y"]
        assert results[0].score > results[1].score > results[2].score

    def test_search_respects_k_and_min_score(self, populated_store):
        assert len(populated_store.search([1.0, 0.0], k=1)) == 1
        assert [d.id for d in populated_store.search([1.0, 0.0], k=3, min_score=0.5)] == ["x", "xy"]
        assert populated_store.search([1.0, 0.0], k=0) == []

    def test_search_filter(self, populated_store):
        results = populated_store.search([1.0, 0.0], k=3, filter={"axis": "y"})

        assert [d.id for d in results] == ["y"]

    def test_search_embedding_is_opt_in(self, populated_store):
        assert populated_store.search([1.0, 0.0], k=1)[0].embedding is None
        assert populated_store.search([1.0, 0.0], k=1, include_embedding=True)[0].embedding == [1.0, 0.0]

    def test_search_results_are_copies(self, populated_store):
        result = populated_store.search([1.0, 0.0], k=1)[0]
        result.metadata["axis"] = "changed"

        assert populated_store.get("x").metadata["axis"] == "x"

    def test_delete_and_clear(self, populated_store):
        populated_store.delete(["x", "missing"])
        assert populated_store.count() == 2
        assert populated_store.get("x") is None

        populated_store.clear()
        assert len(populated_store) == 0


class TestLangChainVectorStore:
    """Test suite for the LangChain VectorStore adapter."""

    @pytest.fixture
    def mock_backend(self):
        backend = Mock()
        backend.max_batch_size = 2
        backend.add_embeddings = Mock(side_effect=lambda pairs, metadatas, ids: ids)
        backend._select_relevance_score_fn = Mock(return_value=lambda distance: 1.0 - distance)
        backend.similarity_search_with_score_by_vector = Mock(
            return_value=[
                (LangChainDocument(id="a", page_content="a", metadata={"lang": "en"}), 0.1),
                (LangChainDocument(id="b", page_content="b", metadata={"lang": "fr"}), 0.3),
                (LangChainDocument(id="c", page_content="c", metadata={"lang": "en"}), 0.6),
            ]
        )
        return backend

    def test_add_uses_precomputed_vectors_in_batches(self, mock_backend):
        store = LangChainVectorStore(mock_backend)
        docs = [
            Document(id=f"d{i}", page_content=f"doc {i}", embedding=[float(i)]) for i in range(3)
        ]

        ids = store.add(docs)

        assert ids == ["d0", "d1", "d2"]
        assert mock_backend.add_embeddings.call_count == 2
        assert store.count() == 3

    def test_add_without_vectors_uses_add_documents(self, mock_backend):
        mock_backend.add_documents = Mock(return_value=["p"])
        store = LangChainVectorStore(mock_backend)

        store.add([Document(id="p", page_content="plain")])

        mock_backend.add_documents.assert_called_once()
        mock_backend.add_embeddings.assert_not_called()

    def test_add_failure_is_an_indexing_error(self, mock_backend):
        mock_backend.add_embeddings.side_effect = RuntimeError("disk full")
        store = LangChainVectorStore(mock_backend)

        with pytest.raises(IndexingError, match="disk full"):
            store.add([Document(page_content="x", embedding=[1.0])])

    def test_search_converts_distances(self, mock_backend):
        store = LangChainVectorStore(mock_backend)

        results = store.search([0.5], k=2)

        assert [d.id for d in results] == ["a", "b"]
        assert results[0].score == pytest.approx(0.9)
        mock_backend.similarity_search_with_score_by_vector.assert_called_once_with([0.5], k=2)

    def test_search_filter_over_fetches(self, mock_backend):
        store = LangChainVectorStore(mock_backend, filter_fetch_multiplier=4)

        results = store.search([0.5], k=2, filter={"lang": "en"}, min_score=0.5)

        assert [d.id for d in results] == ["a"]
        mock_backend.similarity_search_with_score_by_vector.assert_called_once_with([0.5], k=8)

    def test_clear_deletes_tracked_ids(self, mock_backend):
        store = LangChainVectorStore(mock_backend)
        store.add([Document(id="a", page_content="a", embedding=[1.0])])

        store.clear()

        mock_backend.delete.assert_called_once_with(ids=["a"])
        assert store.count() == 0
