"""
Base Retriever Interface

Every ragseek retriever implements this one contract. Composite retrievers
wrap other retrievers instead of subclassing them.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from langchain_core.documents import Document

from ragseek.retrieval.scoring import document_key


class BaseRetriever(ABC):
    """
    Abstract base class for retrievers.

    Mirrors LangChain's ``get_relevant_documents`` naming so retrievers slot
    into existing pipelines. Common keyword options understood by every
    implementation:

    - ``top_k``: maximum number of documents to return
    - ``min_score``: minimum relevance score
    - ``filter``: exact-match metadata filter
    - ``cancel_event``: ``threading.Event``; once set, the call raises
      :class:`~ragseek.exceptions.RetrievalCancelledError`

    Results are always sorted by descending score.
    """

    @abstractmethod
    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        """
        Retrieve documents relevant to the query.

        Args:
            query: The query string to retrieve documents for
            **kwargs: Retrieval options (top_k, min_score, filter, cancel_event)

        Returns:
            List of relevant Document objects, best first
        """

    async def aget_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        """
        Async version of get_relevant_documents.

        Runs the synchronous implementation in a worker thread so the event
        loop is never blocked by embedding or search calls.
        """
        return await asyncio.to_thread(self.get_relevant_documents, query, **kwargs)

    def get_stats(self) -> Dict[str, Any]:
        """Describe the retriever's configuration."""
        return {"retriever": type(self).__name__}

    @staticmethod
    def _resolve_top_k(kwargs: Dict[str, Any], default: int) -> int:
        top_k = kwargs.get("top_k")
        if top_k is None or top_k <= 0:
            return default
        return int(top_k)

    @staticmethod
    def _resolve_min_score(kwargs: Dict[str, Any], default: float) -> float:
        min_score = kwargs.get("min_score")
        return default if min_score is None else float(min_score)

    def _deduplicate_documents(self, documents: List[Document]) -> List[Document]:
        """
        Remove repeated documents, keeping the first occurrence.

        Documents are matched by id, or by a content hash when they have none.
        """
        seen = set()
        unique_docs = []

        for doc in documents:
            key = document_key(doc)
            if key not in seen:
                seen.add(key)
                unique_docs.append(doc)

        return unique_docs
