"""
Tests for HyDERetriever.
"""

import threading

import pytest
from unittest.mock import Mock
from langchain_core.embeddings import Embeddings

from ragseek.exceptions import (
    ConfigurationError,
    RetrievalCancelledError,
    RetrievalStageError,
)
from ragseek.retrieval import HyDERetriever, VectorRetriever
from ragseek.retrieval.hyde import average_vectors
from ragseek.schema import Document


@pytest.fixture
def indexed_store(embeddings, vector_store):
    texts = {
        "dog": "dogs are loyal pets that love walks",
        "cat": "cats are independent pets",
        "rust": "rust compiles to fast native code",
    }
    vector_store.add(
        [
            Document(id=doc_id, page_content=text, embedding=embeddings.embed_query(text))
            for doc_id, text in texts.items()
        ]
    )
    return vector_store


def _caller(*responses):
    caller = Mock()
    caller.complete.side_effect = list(responses)
    return caller


class TestAverageVectors:
    def test_mean(self):
        assert average_vectors([[1.0, 3.0], [3.0, 5.0]]) == [2.0, 4.0]

    def test_uses_first_dimension(self):
        """Short vectors contribute zero; extra components are ignored."""
        assert average_vectors([[2.0, 2.0], [4.0], [0.0, 2.0, 9.0]]) == [2.0, 4.0 / 3.0]

    def test_empty(self):
        assert average_vectors([]) == []


class TestHyDERetriever:
    """Test suite for HyDERetriever."""

    def test_init_validation(self, embeddings, vector_store):
        with pytest.raises(ConfigurationError):
            HyDERetriever(None, embeddings, vector_store)
        with pytest.raises(ConfigurationError):
            HyDERetriever(Mock(), embeddings, vector_store, merge_strategy="median")

    def test_generation_request(self, embeddings, vector_store):
        caller = _caller("a passage")
        retriever = HyDERetriever(
            caller,
            embeddings,
            vector_store,
            prompt_template="Answer: {query}",
            model="small-model",
            max_tokens=64,
        )

        passages = retriever.generate_hypothetical_documents("why is the sky blue")

        assert passages == ["a passage"]
        caller.complete.assert_called_once_with(
            [{"role": "user", "content": "Answer: why is the sky blue"}],
            model="small-model",
            max_tokens=64,
            temperature=0.7,
        )

    def test_zero_temperature_leaves_model_default(self, embeddings, vector_store):
        caller = _caller("text")
        retriever = HyDERetriever(caller, embeddings, vector_store, temperature=0.0)

        retriever.generate_hypothetical_documents("q")

        assert caller.complete.call_args.kwargs["temperature"] is None

    def test_failed_and_empty_generations_are_skipped(self, embeddings, vector_store):
        caller = _caller(RuntimeError("overloaded"), "   ", "  useful passage  ")
        retriever = HyDERetriever(caller, embeddings, vector_store, num_hypothetical=3)

        assert retriever.generate_hypothetical_documents("q") == ["useful passage"]

    def test_average_strategy(self, embeddings, indexed_store):
        caller = _caller("loyal dogs love long walks", "pets such as dogs")
        retriever = HyDERetriever(
            caller, embeddings, indexed_store, num_hypothetical=2, top_k=2
        )

        docs = retriever.get_relevant_documents("what makes a good companion animal?")

        assert docs[0].id == "dog"
        assert len(docs) == 2
        assert all(d.metadata["retrieval_type"] == "hyde" for d in docs)

    def test_search_all_strategy_deduplicates(self, embeddings, indexed_store):
        caller = _caller("loyal dogs love long walks", "dogs and cats are pets")
        retriever = HyDERetriever(
            caller,
            embeddings,
            indexed_store,
            num_hypothetical=2,
            top_k=3,
            merge_strategy="search_all",
        )

        docs = retriever.get_relevant_documents("companion animals")

        ids = [d.id for d in docs]
        assert len(ids) == len(set(ids)) == 3
        assert ids[0] == "dog"

    def test_fallback_matches_plain_vector_search(self, embeddings, indexed_store):
        """With no hypothetical documents the raw query is searched instead."""
        retriever = HyDERetriever(_caller(""), embeddings, indexed_store, top_k=2)
        baseline = VectorRetriever(indexed_store, embeddings, top_k=2)

        docs = retriever.get_relevant_documents("independent cats")
        expected = baseline.get_relevant_documents("independent cats")

        assert [(d.id, d.score) for d in docs] == [(d.id, d.score) for d in expected]

    def test_failing_completions_fall_back_to_vector_search(self, embeddings, indexed_store):
        caller = Mock()
        caller.complete.side_effect = RuntimeError("llm unavailable")
        retriever = HyDERetriever(caller, embeddings, indexed_store, num_hypothetical=2, top_k=3)
        baseline = VectorRetriever(indexed_store, embeddings, top_k=3)

        docs = retriever.get_relevant_documents("loyal dogs")

        assert [d.id for d in docs] == [d.id for d in baseline.get_relevant_documents("loyal dogs")]
        assert caller.complete.call_count == 2

    def test_all_embeddings_failing(self, vector_store):
        broken = Mock(spec=Embeddings)
        broken.embed_documents.side_effect = RuntimeError("embedding service down")
        retriever = HyDERetriever(_caller("passage"), broken, vector_store)

        with pytest.raises(RetrievalStageError) as exc_info:
            retriever.get_relevant_documents("q")

        assert exc_info.value.stage == "hyde_embed"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_all_searches_failing(self, embeddings):
        store = Mock()
        store.search.side_effect = RuntimeError("store down")
        retriever = HyDERetriever(
            _caller("passage"), embeddings, store, merge_strategy="search_all"
        )

        with pytest.raises(RetrievalStageError) as exc_info:
            retriever.get_relevant_documents("q")

        assert exc_info.value.stage == "hyde_search"

    def test_cancellation(self, embeddings, indexed_store):
        cancel_event = threading.Event()
        cancel_event.set()
        caller = _caller("passage")
        retriever = HyDERetriever(caller, embeddings, indexed_store)

        with pytest.raises(RetrievalCancelledError):
            retriever.get_relevant_documents("q", cancel_event=cancel_event)
        caller.complete.assert_not_called()

    def test_get_stats(self, embeddings, vector_store):
        stats = HyDERetriever(Mock(), embeddings, vector_store, num_hypothetical=3).get_stats()

        assert stats["num_hypothetical"] == 3
        assert stats["merge_strategy"] == "average"
