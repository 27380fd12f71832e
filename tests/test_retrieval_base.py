"""
Tests for BaseRetriever interface.
"""

import threading

import pytest
from langchain_core.documents import Document

from ragseek.retrieval import BaseRetriever


class ConcreteRetriever(BaseRetriever):
    """Concrete implementation for testing."""

    def __init__(self, docs=None):
        self.docs = docs or []
        self.calls = []

    def get_relevant_documents(self, query: str, **kwargs):
        self.calls.append((query, kwargs, threading.current_thread().name))
        return self.docs


class TestBaseRetriever:
    """Test suite for BaseRetriever."""

    def test_deduplicate_by_content_without_ids(self):
        docs = [
            Document(page_content="first"),
            Document(page_content="second"),
            Document(page_content="first"),
        ]
        retriever = ConcreteRetriever(docs)

        result = retriever._deduplicate_documents(docs)

        assert [d.page_content for d in result] == ["first", "second"]

    def test_deduplicate_prefers_ids(self):
        """Same content under different ids is kept; same id is dropped."""
        docs = [
            Document(id="1", page_content="content"),
            Document(id="2", page_content="content"),
            Document(id="1", page_content="other"),
        ]
        retriever = ConcreteRetriever(docs)

        result = retriever._deduplicate_documents(docs)

        assert [d.id for d in result] == ["1", "2"]
        assert result[0].page_content == "content"

    def test_resolve_options(self):
        assert BaseRetriever._resolve_top_k({}, 5) == 5
        assert BaseRetriever._resolve_top_k({"top_k": 0}, 5) == 5
        assert BaseRetriever._resolve_top_k({"top_k": 8}, 5) == 8
        assert BaseRetriever._resolve_min_score({}, 0.2) == 0.2
        assert BaseRetriever._resolve_min_score({"min_score": 0.0}, 0.2) == 0.0

    def test_abstract_methods_required(self):
        """Test that abstract methods must be implemented."""
        with pytest.raises(TypeError):
            BaseRetriever()

    def test_get_stats(self):
        assert ConcreteRetriever().get_stats() == {"retriever": "ConcreteRetriever"}

    @pytest.mark.asyncio
    async def test_async_runs_sync_implementation_in_worker_thread(self):
        docs = [Document(page_content="test")]
        retriever = ConcreteRetriever(docs)

        result = await retriever.aget_relevant_documents("query", top_k=2)

        assert result == docs
        query, kwargs, thread_name = retriever.calls[0]
        assert query == "query"
        assert kwargs == {"top_k": 2}
        assert thread_name != threading.main_thread().name
