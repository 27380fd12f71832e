"""
Tests for AdaptiveRetriever and the rule-based query classifier.
"""

import pytest
from unittest.mock import Mock

from ragseek.retrieval import (
    AdaptiveRetriever,
    BaseRetriever,
    QueryClassification,
    QueryClassifier,
    QueryComplexity,
    QueryType,
    RetrievalStrategy,
    RuleBasedClassifier,
)
from ragseek.retrieval.reranker import BaseReranker
from ragseek.schema import Document


@pytest.fixture
def classifier():
    return RuleBasedClassifier()


@pytest.fixture
def base_retriever():
    retriever = Mock(spec=BaseRetriever)
    retriever.get_relevant_documents.return_value = [
        Document(id=str(i), page_content=f"doc {i}", score=1.0 - i / 10) for i in range(6)
    ]
    return retriever


class TestRuleBasedClassifier:
    """Test suite for RuleBasedClassifier."""

    def test_short_factual_query(self, classifier):
        result = classifier.classify("What is RAG?")

        assert result.complexity == QueryComplexity.SIMPLE
        assert result.query_type == QueryType.FACTUAL
        assert result.keywords == ["What", "is", "RAG?"]
        assert result.confidence == 0.8

    def test_long_reasoning_query_is_complex(self, classifier):
        query = (
            "Why does increasing the chunk size change retrieval quality so much? "
            "And what is the cause?"
        )

        result = classifier.classify(query)

        assert result.complexity == QueryComplexity.COMPLEX
        assert result.query_type == QueryType.ANALYTICAL

    def test_chinese_reasoning_query(self, classifier):
        result = classifier.classify("为什么向量检索比关键词检索更好")

        assert result.complexity == QueryComplexity.MODERATE
        assert result.query_type == QueryType.ANALYTICAL

    def test_comparative(self, classifier):
        result = classifier.classify("compare bm25 and dense retrieval")

        assert result.query_type == QueryType.COMPARATIVE

    def test_aggregation(self, classifier):
        result = classifier.classify("list every supported retriever")

        assert result.query_type == QueryType.AGGREGATION

    def test_complexity_ordering(self):
        assert QueryComplexity.SIMPLE < QueryComplexity.MODERATE < QueryComplexity.COMPLEX


class TestStrategySelection:
    def test_simple_query_strategy(self):
        strategy = AdaptiveRetriever().select_strategy("What is RAG?")

        assert strategy == RetrievalStrategy(top_k=3, min_score=0.7)

    def test_comparative_nudge(self):
        strategy = AdaptiveRetriever().select_strategy("compare bm25 and dense retrieval")

        assert strategy.top_k == 8
        assert strategy.use_reranker is True
        assert strategy.min_score == 0.7

    def test_aggregation_nudge(self):
        strategy = AdaptiveRetriever().select_strategy("list every supported retriever")

        assert strategy.top_k == 10
        assert strategy.min_score == 0.3

    def test_analytical_nudge(self):
        strategy = AdaptiveRetriever().select_strategy("为什么向量检索比关键词检索更好")

        assert strategy.top_k == 5
        assert strategy.use_reranker is True

    def test_classifier_failure_uses_default(self):
        broken = Mock(spec=QueryClassifier)
        broken.classify.side_effect = RuntimeError("model unavailable")
        retriever = AdaptiveRetriever(classifier=broken, default_top_k=7, default_min_score=0.1)

        assert retriever.classify("q") is None
        assert retriever.select_strategy("q") == RetrievalStrategy(top_k=7, min_score=0.1)

    def test_missing_strategy_uses_default(self):
        retriever = AdaptiveRetriever(strategies={}, default_top_k=4)

        assert retriever.select_strategy("What is RAG?") == RetrievalStrategy(top_k=4)


class TestAdaptiveRetriever:
    """Test suite for AdaptiveRetriever dispatch."""

    def test_no_retriever_returns_empty(self):
        assert AdaptiveRetriever().get_relevant_documents("What is RAG?") == []

    def test_strategy_options_are_sent(self, base_retriever):
        retriever = AdaptiveRetriever(base_retriever=base_retriever)

        retriever.get_relevant_documents("What is RAG?")

        base_retriever.get_relevant_documents.assert_called_once_with(
            "What is RAG?", top_k=3, min_score=0.7
        )

    def test_caller_options_win(self, base_retriever):
        retriever = AdaptiveRetriever(base_retriever=base_retriever)

        retriever.get_relevant_documents("What is RAG?", top_k=1, filter={"a": 1})

        base_retriever.get_relevant_documents.assert_called_once_with(
            "What is RAG?", top_k=1, min_score=0.7, filter={"a": 1}
        )

    def test_zero_min_score_is_not_sent(self, base_retriever):
        classifier = Mock(spec=QueryClassifier)
        classifier.classify.return_value = QueryClassification()
        retriever = AdaptiveRetriever(
            base_retriever=base_retriever,
            classifier=classifier,
            strategies={QueryComplexity.SIMPLE: RetrievalStrategy(top_k=2)},
        )

        retriever.get_relevant_documents("q")

        base_retriever.get_relevant_documents.assert_called_once_with("q", top_k=2)

    def test_named_retriever(self, base_retriever):
        special = Mock(spec=BaseRetriever)
        special.get_relevant_documents.return_value = []
        retriever = AdaptiveRetriever(
            base_retriever=base_retriever,
            strategies={QueryComplexity.SIMPLE: RetrievalStrategy(retriever_name="special")},
        )
        retriever.add_retriever("special", special)

        retriever.get_relevant_documents("What is RAG?")

        special.get_relevant_documents.assert_called_once()
        base_retriever.get_relevant_documents.assert_not_called()

    def test_unknown_named_retriever_falls_back_to_base(self, base_retriever):
        retriever = AdaptiveRetriever(
            base_retriever=base_retriever,
            strategies={QueryComplexity.SIMPLE: RetrievalStrategy(retriever_name="missing")},
        )

        retriever.get_relevant_documents("What is RAG?")

        base_retriever.get_relevant_documents.assert_called_once()

    def test_reranking_over_fetches(self, base_retriever):
        reranker = Mock(spec=BaseReranker)
        reranker.rerank.side_effect = lambda query, docs: list(reversed(docs))
        classifier = Mock(spec=QueryClassifier)
        classifier.classify.return_value = QueryClassification()
        retriever = AdaptiveRetriever(
            base_retriever=base_retriever,
            classifier=classifier,
            strategies={QueryComplexity.SIMPLE: RetrievalStrategy(top_k=2, use_reranker=True)},
            reranker=reranker,
            rerank_fetch_multiplier=3,
        )

        docs = retriever.get_relevant_documents("q")

        base_retriever.get_relevant_documents.assert_called_once_with("q", top_k=6)
        reranker.rerank.assert_called_once()
        assert [d.id for d in docs] == ["0", "1"]

    def test_reranker_flag_without_reranker(self, base_retriever):
        retriever = AdaptiveRetriever(base_retriever=base_retriever)

        docs = retriever.get_relevant_documents("compare bm25 and dense retrieval")

        assert len(docs) == 6
        base_retriever.get_relevant_documents.assert_called_once_with(
            "compare bm25 and dense retrieval", top_k=8, min_score=0.7
        )

    def test_get_stats(self, base_retriever):
        stats = AdaptiveRetriever(base_retriever=base_retriever).get_stats()

        assert stats["classifier"] == "RuleBasedClassifier"
        assert stats["reranker"] is None
