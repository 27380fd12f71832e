"""
Vector Retriever

Dense nearest-neighbour retrieval against a ragseek vector store.
"""

import logging
from typing import Any, Dict, List, Optional

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from ragseek.embeddings.cache import ensure_cached
from ragseek.exceptions import ConfigurationError
from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.scoring import sort_by_score
from ragseek.schema import to_document
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)


class VectorRetriever(BaseRetriever):
    """
    Vector-based semantic similarity retriever.

    Embeds the query through the embedding cache and asks the vector store for
    its nearest neighbours. Embedding and search errors propagate unchanged.

    Args:
        vector_store: Store implementing ``BaseVectorStore.search``
        embedding_model: LangChain embeddings (wrapped in the cache if needed)
        top_k: Number of documents to retrieve
        min_score: Minimum similarity; 0 disables the threshold
    """

    def __init__(
        self,
        vector_store,
        embedding_model: Embeddings,
        top_k: int = 5,
        min_score: float = 0.0,
    ):
        if vector_store is None:
            raise ConfigurationError("VectorRetriever requires a vector_store")
        if embedding_model is None:
            raise ConfigurationError("VectorRetriever requires an embedding_model")

        self.vector_store = vector_store
        self.embedding_model = ensure_cached(embedding_model)
        self.top_k = top_k if top_k > 0 else 5
        self.min_score = min_score

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        """
        Retrieve documents via vector similarity search.

        Args:
            query: Query string to search for
            **kwargs: Override top_k, min_score; filter; cancel_event

        Returns:
            List of relevant Document objects
        """
        cancel_event = kwargs.get("cancel_event")
        k = self._resolve_top_k(kwargs, self.top_k)
        min_score = self._resolve_min_score(kwargs, self.min_score)

        raise_if_cancelled(cancel_event)
        query_vector = self.embedding_model.embed_query(query)
        raise_if_cancelled(cancel_event)
        return self.search_by_vector(
            query_vector, k, min_score=min_score, filter=kwargs.get("filter")
        )

    def search_by_vector(
        self,
        query_vector: List[float],
        k: int,
        min_score: float = 0.0,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[Document]:
        """Search the store with an already computed query vector."""
        documents = self.vector_store.search(
            query_vector,
            k,
            min_score=min_score if min_score > 0 else None,
            filter=filter,
            include_embedding=True,
        )
        logger.debug(f"Vector search returned {len(documents)} documents")
        return sort_by_score([to_document(doc) for doc in documents])[:k]

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the retriever and its store.

        Returns:
            Dictionary of statistics
        """
        stats = {
            "retriever": type(self).__name__,
            "top_k": self.top_k,
            "min_score": self.min_score,
        }
        count = getattr(self.vector_store, "count", None)
        if callable(count):
            stats["document_count"] = count()
        return stats
