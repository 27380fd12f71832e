"""
In-memory vector store

Brute-force cosine search over a dict of documents. Suitable for tests,
notebooks, and corpora small enough to scan on every query.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.documents import Document

from ragseek.exceptions import IndexingError
from ragseek.retrieval.scoring import cosine_similarity, match_filter, sort_by_score
from ragseek.schema import to_document
from ragseek.utils.concurrency import ReadWriteLock
from ragseek.vector_stores.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class InMemoryVectorStore(BaseVectorStore):
    """Thread-safe in-memory implementation of :class:`BaseVectorStore`."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._documents: Dict[str, Document] = {}

    def add(self, documents: Sequence[Document]) -> List[str]:
        prepared = []
        for doc in documents:
            if getattr(doc, "embedding", None) is None:
                raise IndexingError(
                    "add", f"document {doc.id or '<no id>'} has no embedding"
                )
            doc_id = doc.id or str(uuid.uuid4())
            prepared.append(to_document(doc, id=doc_id))

        with self._lock.write_lock():
            for doc in prepared:
                self._documents[doc.id] = doc

        logger.debug(f"Stored {len(prepared)} documents ({self.count()} total)")
        return [doc.id for doc in prepared]

    def search(
        self,
        embedding: Sequence[float],
        k: int,
        *,
        min_score: Optional[float] = None,
        filter: Optional[Dict[str, Any]] = None,
        include_embedding: bool = False,
    ) -> List[Document]:
        if k <= 0:
            return []

        with self._lock.read_lock():
            candidates = list(self._documents.values())

        scored = []
        for doc in candidates:
            if not match_filter(doc.metadata, filter):
                continue
            score = cosine_similarity(embedding, doc.embedding)
            if min_score is not None and score < min_score:
                continue
            scored.append(
                to_document(
                    doc,
                    score=score,
                    embedding=doc.embedding if include_embedding else None,
                )
            )

        return sort_by_score(scored)[:k]

    def get(self, doc_id: str) -> Optional[Document]:
        with self._lock.read_lock():
            doc = self._documents.get(doc_id)
        return to_document(doc) if doc is not None else None

    def delete(self, ids: Sequence[str]) -> None:
        with self._lock.write_lock():
            for doc_id in ids:
                self._documents.pop(doc_id, None)

    def clear(self) -> None:
        with self._lock.write_lock():
            self._documents.clear()

    def count(self) -> int:
        with self._lock.read_lock():
            return len(self._documents)
