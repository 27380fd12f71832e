"""
ragseek package exports.

Expose the retrievers, the embedding cache and the core document types so
consumers can rely on stable import paths without triggering side effects.
"""

from .embeddings import CachedEmbeddings
from .exceptions import (
    ConfigurationError,
    IndexingError,
    RagseekError,
    RetrievalCancelledError,
    RetrievalStageError,
)
from .retrieval import (
    AdaptiveRetriever,
    BaseRetriever,
    HybridRetriever,
    HyDERetriever,
    KeywordRetriever,
    MultiRetriever,
    ParentDocumentRetriever,
    RecursiveRetriever,
    RerankerRetriever,
    VectorRetriever,
    create_retriever,
)
from .schema import Document, IndexNode, NodeType
from .vector_stores import InMemoryVectorStore

__version__ = "0.1.0"

__all__ = [
    "AdaptiveRetriever",
    "BaseRetriever",
    "CachedEmbeddings",
    "ConfigurationError",
    "Document",
    "HybridRetriever",
    "HyDERetriever",
    "IndexNode",
    "IndexingError",
    "InMemoryVectorStore",
    "KeywordRetriever",
    "MultiRetriever",
    "NodeType",
    "ParentDocumentRetriever",
    "RagseekError",
    "RecursiveRetriever",
    "RerankerRetriever",
    "RetrievalCancelledError",
    "RetrievalStageError",
    "VectorRetriever",
    "create_retriever",
]
