"""
ragseek Retrieval Module

Retrievers for dense, keyword, hybrid, hypothetical-document, parent-document,
hierarchical and adaptive retrieval. Every retriever implements
:class:`BaseRetriever`; composite retrievers wrap other retrievers.
"""

from ragseek.retrieval.adaptive import (
    AdaptiveRetriever,
    QueryClassification,
    QueryClassifier,
    QueryComplexity,
    QueryType,
    RetrievalStrategy,
    RuleBasedClassifier,
)
from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.factory import create_retriever
from ragseek.retrieval.hybrid import HybridRetriever
from ragseek.retrieval.hyde import HyDERetriever
from ragseek.retrieval.keyword import KeywordRetriever
from ragseek.retrieval.multi import MultiRetriever
from ragseek.retrieval.node_index import NodeIndex
from ragseek.retrieval.parent_document import (
    ParentDocumentRetriever,
    ParentDocumentStore,
)
from ragseek.retrieval.recursive import RecursiveRetriever
from ragseek.retrieval.reranker import (
    BaseReranker,
    CompressorReranker,
    LLMReranker,
    RerankerRetriever,
)
from ragseek.retrieval.vector import VectorRetriever

__all__ = [
    "AdaptiveRetriever",
    "BaseReranker",
    "BaseRetriever",
    "CompressorReranker",
    "HybridRetriever",
    "HyDERetriever",
    "KeywordRetriever",
    "LLMReranker",
    "MultiRetriever",
    "NodeIndex",
    "ParentDocumentRetriever",
    "ParentDocumentStore",
    "QueryClassification",
    "QueryClassifier",
    "QueryComplexity",
    "QueryType",
    "RecursiveRetriever",
    "RerankerRetriever",
    "RetrievalStrategy",
    "RuleBasedClassifier",
    "VectorRetriever",
    "create_retriever",
]
