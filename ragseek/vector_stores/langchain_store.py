from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from langchain_core.documents import Document as LangChainDocument
from langchain_core.vectorstores import VectorStore

from ragseek.exceptions import IndexingError
from ragseek.retrieval.scoring import match_filter, sort_by_score
from ragseek.schema import to_document
from ragseek.vector_stores.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class LangChainVectorStore(BaseVectorStore):
    """
    Adapter exposing a LangChain ``VectorStore`` through :class:`BaseVectorStore`.

    Precomputed vectors are written with ``add_embeddings`` when the backend has
    it (FAISS and friends); otherwise documents go through ``add_documents`` and
    the backend embeds them itself. Backend distances are converted to
    relevance scores with the store's own relevance function.

    Args:
        store: LangChain VectorStore instance
        filter_fetch_multiplier: Over-fetch factor used when a metadata filter
            has to be applied after the backend search
    """

    def __init__(self, store: VectorStore, filter_fetch_multiplier: int = 4) -> None:
        self._store = store
        self.filter_fetch_multiplier = max(1, filter_fetch_multiplier)
        self._ids: Set[str] = set()
        self._ids_lock = threading.Lock()

    @property
    def store(self) -> VectorStore:
        """Expose the underlying LangChain VectorStore instance."""
        return self._store

    def add(self, documents: Sequence[LangChainDocument]) -> List[str]:
        docs = [to_document(doc, id=doc.id or str(uuid.uuid4())) for doc in documents]
        if not docs:
            return []

        limit = self._detect_batch_limit() or len(docs)
        ids: List[str] = []
        for start in range(0, len(docs), limit):
            ids.extend(self._add_batch(docs[start : start + limit]))

        with self._ids_lock:
            self._ids.update(ids)
        return ids

    def _add_batch(self, docs: List[Any]) -> List[str]:
        ids = [doc.id for doc in docs]
        metadatas = [dict(doc.metadata) for doc in docs]
        add_embeddings = getattr(self._store, "add_embeddings", None)
        try:
            if callable(add_embeddings) and all(d.embedding is not None for d in docs):
                pairs = [(doc.page_content, list(doc.embedding)) for doc in docs]
                return list(add_embeddings(pairs, metadatas=metadatas, ids=ids))
            plain = [
                LangChainDocument(page_content=doc.page_content, metadata=meta, id=doc.id)
                for doc, meta in zip(docs, metadatas)
            ]
            return list(self._store.add_documents(plain, ids=ids))
        except Exception as exc:
            raise IndexingError("add", f"{type(self._store).__name__}: {exc}") from exc

    def search(
        self,
        embedding: Sequence[float],
        k: int,
        *,
        min_score: Optional[float] = None,
        filter: Optional[Dict[str, Any]] = None,
        include_embedding: bool = False,
    ) -> List[LangChainDocument]:
        if k <= 0:
            return []

        fetch_k = k * self.filter_fetch_multiplier if filter else k
        pairs = self._store.similarity_search_with_score_by_vector(
            list(embedding), k=fetch_k
        )
        relevance = self._relevance_fn()

        results = []
        for doc, raw_score in pairs:
            if not match_filter(doc.metadata, filter):
                continue
            score = float(relevance(raw_score))
            if min_score is not None and score < min_score:
                continue
            results.append(to_document(doc, score=score))

        if include_embedding:
            logger.debug("Backend search does not return stored vectors; omitting them")
        return sort_by_score(results)[:k]

    def _relevance_fn(self) -> Callable[[float], float]:
        try:
            return self._store._select_relevance_score_fn()
        except NotImplementedError:
            return lambda score: score

    def delete(self, ids: Sequence[str]) -> None:
        ids = list(ids)
        if not ids:
            return
        self._store.delete(ids=ids)
        with self._ids_lock:
            self._ids.difference_update(ids)

    def clear(self) -> None:
        with self._ids_lock:
            ids = list(self._ids)
        self.delete(ids)

    def count(self) -> int:
        with self._ids_lock:
            return len(self._ids)

    def _detect_batch_limit(self) -> Optional[int]:
        """Infer the max batch size supported by the underlying store, if exposed."""
        direct_limit = getattr(self._store, "max_batch_size", None)
        if isinstance(direct_limit, int) and direct_limit > 0:
            return direct_limit

        client = getattr(self._store, "_client", None)
        if client is None:
            return None
        getter = getattr(client, "get_max_batch_size", None)
        if callable(getter):
            value = getter()
            if isinstance(value, int) and value > 0:
                return value
        return None
