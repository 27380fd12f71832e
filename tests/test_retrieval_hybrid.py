"""
Tests for HybridRetriever.
"""

import pytest
from unittest.mock import Mock

from ragseek.exceptions import ConfigurationError
from ragseek.retrieval import (
    BaseRetriever,
    HybridRetriever,
    KeywordRetriever,
    VectorRetriever,
)
from ragseek.schema import Document


class TestHybridRetriever:
    """Test suite for HybridRetriever."""

    @pytest.fixture
    def mock_vector_retriever(self):
        """Create a mock vector retriever."""
        retriever = Mock(spec=BaseRetriever)
        retriever.get_relevant_documents.return_value = [
            Document(id="a", page_content="vector doc a", score=0.9),
            Document(id="b", page_content="shared doc b", score=0.8),
        ]
        retriever.get_stats.return_value = {"top_k": 3}
        return retriever

    @pytest.fixture
    def mock_keyword_retriever(self):
        """Create a mock keyword retriever."""
        retriever = Mock(spec=BaseRetriever)
        retriever.get_relevant_documents.return_value = [
            Document(id="b", page_content="shared doc b", score=4.2),
            Document(id="c", page_content="keyword doc c", score=1.1),
        ]
        retriever.get_stats.return_value = {"top_k": 5}
        return retriever

    def test_init_validation(self, mock_vector_retriever, mock_keyword_retriever):
        with pytest.raises(ConfigurationError):
            HybridRetriever(None, mock_keyword_retriever)
        with pytest.raises(ConfigurationError):
            HybridRetriever(mock_vector_retriever, mock_keyword_retriever, vector_weight=-0.1)
        with pytest.raises(ConfigurationError):
            HybridRetriever(
                mock_vector_retriever, mock_keyword_retriever, vector_weight=0, keyword_weight=0
            )

    def test_rrf_fusion(self, mock_vector_retriever, mock_keyword_retriever):
        """Documents found by both branches rise to the top."""
        retriever = HybridRetriever(mock_vector_retriever, mock_keyword_retriever, top_k=5)

        docs = retriever.get_relevant_documents("query")

        assert [d.id for d in docs] == ["b", "a", "c"]
        assert docs[0].score == pytest.approx(0.7 / 62 + 0.3 / 61)

    def test_branches_fetch_twice_top_k(self, mock_vector_retriever, mock_keyword_retriever):
        retriever = HybridRetriever(mock_vector_retriever, mock_keyword_retriever, top_k=2)

        docs = retriever.get_relevant_documents("query", filter={"lang": "en"})

        assert len(docs) == 2
        mock_vector_retriever.get_relevant_documents.assert_called_once_with(
            "query", filter={"lang": "en"}, top_k=4
        )
        mock_keyword_retriever.get_relevant_documents.assert_called_once_with(
            "query", filter={"lang": "en"}, top_k=4
        )

    def test_weights_shift_ranking(self, mock_vector_retriever, mock_keyword_retriever):
        retriever = HybridRetriever(
            mock_vector_retriever, mock_keyword_retriever, vector_weight=0.1, keyword_weight=0.9
        )

        docs = retriever.get_relevant_documents("query")

        assert [d.id for d in docs] == ["b", "c", "a"]

    def test_branch_failure_fails_the_call(self, mock_vector_retriever, mock_keyword_retriever):
        mock_keyword_retriever.get_relevant_documents.side_effect = RuntimeError("index offline")
        retriever = HybridRetriever(mock_vector_retriever, mock_keyword_retriever)

        with pytest.raises(RuntimeError, match="index offline"):
            retriever.get_relevant_documents("query")

    def test_end_to_end(self, embeddings, vector_store):
        texts = ["the lazy dog", "a quick fox", "dog training tips"]
        docs = [
            Document(id=f"d{i}", page_content=t, embedding=embeddings.embed_query(t))
            for i, t in enumerate(texts)
        ]
        vector_store.add(docs)
        retriever = HybridRetriever(
            VectorRetriever(vector_store, embeddings),
            KeywordRetriever(docs),
            top_k=2,
        )

        results = retriever.get_relevant_documents("dog")

        assert {d.id for d in results} == {"d0", "d2"}

    def test_get_stats(self, mock_vector_retriever, mock_keyword_retriever):
        stats = HybridRetriever(mock_vector_retriever, mock_keyword_retriever).get_stats()

        assert stats["vector_weight"] == 0.7
        assert stats["keyword_weight"] == 0.3
        assert stats["vector_stats"] == {"top_k": 3}

    @pytest.mark.asyncio
    async def test_aget_relevant_documents(self, mock_vector_retriever, mock_keyword_retriever):
        retriever = HybridRetriever(mock_vector_retriever, mock_keyword_retriever)

        docs = await retriever.aget_relevant_documents("query")

        assert docs[0].id == "b"
