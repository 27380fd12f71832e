"""
Adaptive Retriever

Classifies each query by complexity and intent, then picks retrieval
parameters (and optionally a different retriever) to match. Short factual
lookups get a few high-confidence hits; broad or comparative questions get
more documents, a lower threshold, and reranking.
"""

import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional

from langchain_core.documents import Document

from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.reranker import BaseReranker
from ragseek.retrieval.scoring import sort_by_score
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)


class QueryComplexity(IntEnum):
    SIMPLE = 0
    MODERATE = 1
    COMPLEX = 2


class QueryType(str, Enum):
    FACTUAL = "factual"
    ANALYTICAL = "analytical"
    COMPARATIVE = "comparative"
    AGGREGATION = "aggregation"


@dataclass
class QueryClassification:
    complexity: QueryComplexity = QueryComplexity.SIMPLE
    query_type: QueryType = QueryType.FACTUAL
    keywords: List[str] = field(default_factory=list)
    confidence: float = 0.0


@dataclass(frozen=True)
class RetrievalStrategy:
    """Retrieval parameters chosen for a query. Adjust with ``dataclasses.replace``."""

    top_k: int = 5
    min_score: float = 0.0
    use_reranker: bool = False
    # Carried for callers that expand queries themselves; not acted on here.
    multi_query: bool = False
    retriever_name: Optional[str] = None


DEFAULT_STRATEGIES: Dict[QueryComplexity, RetrievalStrategy] = {
    QueryComplexity.SIMPLE: RetrievalStrategy(top_k=3, min_score=0.7),
    QueryComplexity.MODERATE: RetrievalStrategy(top_k=5, min_score=0.5, use_reranker=True),
    QueryComplexity.COMPLEX: RetrievalStrategy(
        top_k=10, min_score=0.3, use_reranker=True, multi_query=True
    ),
}


class QueryClassifier(ABC):
    @abstractmethod
    def classify(self, query: str) -> QueryClassification:
        """Classify ``query``; may raise, in which case callers fall back."""


class RuleBasedClassifier(QueryClassifier):
    """
    Keyword and length heuristics for English and Chinese queries.

    Complexity score: +0.4 for more than 50 characters (else +0.2 for more
    than 20), +0.3 when a reasoning word appears, +0.2 for more than one
    question mark. A score of 0.6 or more is complex, 0.3 or more moderate.

    Type: comparative or aggregation by keyword, otherwise analytical for
    moderate and complex queries and factual for simple ones.
    """

    COMPLEX_WORDS = (
        "为什么", "如何", "怎样", "影响", "原因", "关系", "区别",
        "why", "how", "impact", "cause", "relationship", "difference",
    )
    COMPARE_WORDS = (
        "比较", "区别", "不同", "对比", "优缺点", "vs",
        "compare", "difference", "versus", "pros and cons",
    )
    AGGREGATION_WORDS = (
        "列出", "所有", "哪些", "多少", "统计",
        "list", "all", "which", "how many", "count",
    )

    def classify(self, query: str) -> QueryClassification:
        query_lower = query.lower()

        score = 0.0
        length = len(query)
        if length > 50:
            score += 0.4
        elif length > 20:
            score += 0.2

        if any(word in query_lower for word in self.COMPLEX_WORDS):
            score += 0.3

        if query.count("?") + query.count("？") > 1:
            score += 0.2

        if score >= 0.6:
            complexity = QueryComplexity.COMPLEX
        elif score >= 0.3:
            complexity = QueryComplexity.MODERATE
        else:
            complexity = QueryComplexity.SIMPLE

        if any(word in query_lower for word in self.COMPARE_WORDS):
            query_type = QueryType.COMPARATIVE
        elif any(word in query_lower for word in self.AGGREGATION_WORDS):
            query_type = QueryType.AGGREGATION
        elif complexity >= QueryComplexity.MODERATE:
            query_type = QueryType.ANALYTICAL
        else:
            query_type = QueryType.FACTUAL

        return QueryClassification(
            complexity=complexity,
            query_type=query_type,
            keywords=query.split(),
            confidence=0.8,
        )


class AdaptiveRetriever(BaseRetriever):
    """
    Chooses a retrieval strategy per query and dispatches to a retriever.

    The classifier's complexity picks a base strategy, which the query type
    then nudges: comparative queries get ``top_k >= 8`` and reranking,
    aggregation queries ``top_k >= 10`` and ``min_score <= 0.3``, analytical
    queries reranking. A ``retriever_name`` on the strategy switches to that
    named retriever when one is registered.

    If the classifier raises, or no strategy exists for its complexity, the
    flat default strategy (``default_top_k``, ``default_min_score``) is used.
    With no retriever to dispatch to the result is empty.

    Strategy values are sent as ``top_k`` and (when positive) ``min_score``;
    options passed by the caller win over them. When the strategy asks for
    reranking and a ``reranker`` is set, ``top_k * rerank_fetch_multiplier``
    candidates are fetched and reranked before truncation.

    Args:
        base_retriever: Default retriever
        retrievers: Named retrievers strategies may select
        classifier: Query classifier, :class:`RuleBasedClassifier` by default
        strategies: Strategy per complexity, :data:`DEFAULT_STRATEGIES` by default
        default_top_k: top_k of the fallback strategy
        default_min_score: min_score of the fallback strategy
        reranker: Optional reranker used by strategies with ``use_reranker``
        rerank_fetch_multiplier: Over-fetch factor before reranking
    """

    def __init__(
        self,
        base_retriever: Optional[BaseRetriever] = None,
        retrievers: Optional[Mapping[str, BaseRetriever]] = None,
        classifier: Optional[QueryClassifier] = None,
        strategies: Optional[Mapping[QueryComplexity, RetrievalStrategy]] = None,
        default_top_k: int = 5,
        default_min_score: float = 0.0,
        reranker: Optional[BaseReranker] = None,
        rerank_fetch_multiplier: int = 3,
    ):
        self.base_retriever = base_retriever
        self.retrievers: Dict[str, BaseRetriever] = dict(retrievers or {})
        self.classifier = classifier or RuleBasedClassifier()
        self.strategies: Dict[QueryComplexity, RetrievalStrategy] = dict(
            DEFAULT_STRATEGIES if strategies is None else strategies
        )
        self.default_top_k = default_top_k if default_top_k > 0 else 5
        self.default_min_score = default_min_score
        self.reranker = reranker
        self.rerank_fetch_multiplier = max(1, rerank_fetch_multiplier)

    def add_retriever(self, name: str, retriever: BaseRetriever) -> None:
        self.retrievers[name] = retriever

    def default_strategy(self) -> RetrievalStrategy:
        return RetrievalStrategy(top_k=self.default_top_k, min_score=self.default_min_score)

    def classify(self, query: str) -> Optional[QueryClassification]:
        """Classify ``query``, returning ``None`` when the classifier fails."""
        try:
            return self.classifier.classify(query)
        except Exception as exc:
            logger.warning(f"Query classification failed, using default strategy: {exc}")
            return None

    def select_strategy(self, query: str) -> RetrievalStrategy:
        classification = self.classify(query)
        if classification is None:
            return self.default_strategy()

        strategy = self.strategies.get(classification.complexity)
        if strategy is None:
            strategy = self.default_strategy()

        strategy = self._adjust_for_query_type(strategy, classification.query_type)
        logger.debug(
            f"Query classified as {classification.complexity.name.lower()}/"
            f"{classification.query_type.value}; strategy {strategy}"
        )
        return strategy

    @staticmethod
    def _adjust_for_query_type(
        strategy: RetrievalStrategy, query_type: QueryType
    ) -> RetrievalStrategy:
        if query_type == QueryType.COMPARATIVE:
            return dataclasses.replace(
                strategy, top_k=max(strategy.top_k, 8), use_reranker=True
            )
        if query_type == QueryType.AGGREGATION:
            return dataclasses.replace(
                strategy,
                top_k=max(strategy.top_k, 10),
                min_score=min(strategy.min_score, 0.3),
            )
        if query_type == QueryType.ANALYTICAL:
            return dataclasses.replace(strategy, use_reranker=True)
        return strategy

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        strategy = self.select_strategy(query)
        return self.retrieve_with_strategy(query, strategy, **kwargs)

    def retrieve_with_strategy(
        self, query: str, strategy: RetrievalStrategy, **kwargs
    ) -> List[Document]:
        retriever = self.base_retriever
        if strategy.retriever_name:
            named = self.retrievers.get(strategy.retriever_name)
            if named is not None:
                retriever = named
            else:
                logger.debug(f"No retriever named '{strategy.retriever_name}'; using base")

        if retriever is None:
            return []

        options: Dict[str, Any] = {"top_k": strategy.top_k}
        if strategy.min_score > 0:
            options["min_score"] = strategy.min_score
        options.update(kwargs)

        if not (strategy.use_reranker and self.reranker is not None):
            return retriever.get_relevant_documents(query, **options)

        final_top_k = options["top_k"]
        fetch_options = {**options, "top_k": final_top_k * self.rerank_fetch_multiplier}
        candidates = retriever.get_relevant_documents(query, **fetch_options)
        if not candidates:
            return []

        raise_if_cancelled(kwargs.get("cancel_event"))
        reranked = self.reranker.rerank(query, candidates)
        return sort_by_score(reranked)[:final_top_k]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "classifier": type(self.classifier).__name__,
            "named_retrievers": sorted(self.retrievers),
            "default_top_k": self.default_top_k,
            "reranker": type(self.reranker).__name__ if self.reranker else None,
        }
