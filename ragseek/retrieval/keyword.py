"""
Keyword Retriever

BM25 scoring over an in-memory document set. Needs no embeddings, which makes
it a cheap lexical complement to vector search.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from langchain_core.documents import Document

from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.scoring import bm25_score, match_filter, sort_by_score, tokenize
from ragseek.schema import to_document
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)


class KeywordRetriever(BaseRetriever):
    """
    BM25 keyword retriever.

    Every stored document is scored against the tokenized query. Documents
    scoring at or below ``min_score`` are dropped, the metadata filter is
    applied, and the best ``top_k`` are returned.

    Args:
        documents: Initial documents to search
        top_k: Number of documents to retrieve
        min_score: Scores at or below this value are discarded
    """

    def __init__(
        self,
        documents: Optional[Iterable[Document]] = None,
        top_k: int = 5,
        min_score: float = 0.0,
    ):
        self.top_k = top_k if top_k > 0 else 5
        self.min_score = min_score
        self._documents: List[Document] = list(documents or [])
        self._lock = threading.Lock()

    def add_documents(self, documents: Iterable[Document]) -> None:
        """Append documents to the searchable set."""
        documents = list(documents)
        with self._lock:
            self._documents.extend(documents)
        logger.debug(f"Added {len(documents)} documents to keyword index")

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        cancel_event = kwargs.get("cancel_event")
        k = self._resolve_top_k(kwargs, self.top_k)
        min_score = self._resolve_min_score(kwargs, self.min_score)
        metadata_filter = kwargs.get("filter")

        query_terms = tokenize(query)
        if not query_terms:
            return []

        with self._lock:
            documents = list(self._documents)

        scored = []
        for doc in documents:
            raise_if_cancelled(cancel_event)
            score = bm25_score(query_terms, doc.page_content)
            if score <= min_score:
                continue
            if not match_filter(doc.metadata, metadata_filter):
                continue
            scored.append(to_document(doc, score=score))

        return sort_by_score(scored)[:k]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "top_k": self.top_k,
            "min_score": self.min_score,
            "document_count": self.count(),
        }
