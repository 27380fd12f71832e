"""
Parent Document Retriever

Small child fragments are embedded and matched against the query; the full
parent documents they came from are returned. Matching precision comes from
the children, answer context from the parents.
"""

import hashlib
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Sequence

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from ragseek.embeddings.cache import ensure_cached
from ragseek.exceptions import (
    ConfigurationError,
    IndexingError,
    RetrievalCancelledError,
    RetrievalStageError,
)
from ragseek.retrieval.base import BaseRetriever
from ragseek.schema import Document as RagseekDocument
from ragseek.schema import to_document
from ragseek.utils.concurrency import ReadWriteLock, raise_if_cancelled

logger = logging.getLogger(__name__)


def generate_doc_id(content: str) -> str:
    """Content-derived id: ``doc_`` plus the first 8 bytes of a sha256 digest."""
    return "doc_" + hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


class ParentDocumentStore:
    """In-memory parent document map with concurrent reads and serialised writes."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._docs: Dict[str, RagseekDocument] = {}

    def save(self, doc: RagseekDocument) -> None:
        with self._lock.write_lock():
            self._docs[doc.id] = doc

    def get(self, doc_id: str) -> Optional[RagseekDocument]:
        with self._lock.read_lock():
            return self._docs.get(doc_id)

    def delete(self, doc_id: str) -> None:
        with self._lock.write_lock():
            self._docs.pop(doc_id, None)

    def clear(self) -> None:
        with self._lock.write_lock():
            self._docs.clear()

    def count(self) -> int:
        with self._lock.read_lock():
            return len(self._docs)

    def ids(self) -> List[str]:
        with self._lock.read_lock():
            return list(self._docs)


class ParentDocumentRetriever(BaseRetriever):
    """
    Child-match, parent-return retriever.

    Indexing saves each parent, splits it with ``child_splitter`` (any object
    with ``split_documents``, such as a LangChain ``TextSplitter``), tags the
    children with ``parent_id`` and ``chunk_index``, embeds them in one batch
    and writes them to ``child_store``. Only the parent map write is locked.
    Re-indexing a parent id replaces its previous children.

    Retrieval searches ``child_top_k`` children, keeps each parent's best child
    score, resolves parents best first and returns at most ``parent_top_k``.
    Children whose parent is gone are skipped.

    Args:
        child_store: Store holding the child fragments
        embedding_model: LangChain embeddings (wrapped in the cache if needed)
        child_splitter: Splitter for parents; without one the parent is its
            own single child
        child_top_k: Child fragments searched per query
        parent_top_k: Parent documents returned
        min_score: Minimum child similarity; 0 disables the threshold
        parent_store: Shared :class:`ParentDocumentStore`, created if omitted
        max_workers: Threads used to index parents concurrently
    """

    def __init__(
        self,
        child_store,
        embedding_model: Embeddings,
        child_splitter=None,
        child_top_k: int = 10,
        parent_top_k: int = 5,
        min_score: float = 0.0,
        parent_store: Optional[ParentDocumentStore] = None,
        max_workers: int = 4,
    ):
        if child_store is None:
            raise ConfigurationError("ParentDocumentRetriever requires a child_store")
        if embedding_model is None:
            raise ConfigurationError("ParentDocumentRetriever requires an embedding_model")

        self.child_store = child_store
        self.embedding_model = ensure_cached(embedding_model)
        self.child_splitter = child_splitter
        self.child_top_k = child_top_k if child_top_k > 0 else 10
        self.parent_top_k = parent_top_k if parent_top_k > 0 else 5
        self.min_score = min_score
        self.parent_store = parent_store if parent_store is not None else ParentDocumentStore()
        self.max_workers = max(1, max_workers)

        self._children: Dict[str, List[str]] = {}
        self._children_lock = threading.Lock()

    def index(self, documents: Iterable[Document], cancel_event=None) -> List[str]:
        """
        Index parent documents and their child fragments.

        Returns:
            The parent ids, in input order
        """
        documents = list(documents)
        if not documents:
            return []

        raise_if_cancelled(cancel_event, "indexing")
        if self.max_workers == 1 or len(documents) == 1:
            ids = []
            for doc in documents:
                raise_if_cancelled(cancel_event, "indexing")
                ids.append(self._index_one(doc, cancel_event))
            return ids

        ids: List[Optional[str]] = [None] * len(documents)
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="ragseek-parent-index"
        )
        try:
            futures = {
                executor.submit(self._index_one, doc, cancel_event): position
                for position, doc in enumerate(documents)
            }
            for future in as_completed(futures):
                ids[futures[future]] = future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        logger.info(f"Indexed {len(documents)} parent documents")
        return ids

    def _index_one(self, doc: Document, cancel_event=None) -> str:
        raise_if_cancelled(cancel_event, "indexing")
        parent_id = doc.id or generate_doc_id(doc.page_content)
        parent = to_document(doc, id=parent_id, score=0.0)
        self.parent_store.save(parent)

        children = self._split(parent)
        for position, child in enumerate(children):
            child.id = f"{parent_id}_chunk_{position}"
            child.metadata["parent_id"] = parent_id
            child.metadata["chunk_index"] = position

        raise_if_cancelled(cancel_event, "indexing")
        try:
            vectors = self.embedding_model.embed_documents(
                [child.page_content for child in children]
            )
        except Exception as exc:
            raise IndexingError("embed", f"children of {parent_id}: {exc}") from exc

        for child, vector in zip(children, vectors):
            child.embedding = vector

        raise_if_cancelled(cancel_event, "indexing")
        try:
            self.child_store.add(children)
        except IndexingError:
            raise
        except Exception as exc:
            raise IndexingError("store", f"children of {parent_id}: {exc}") from exc

        child_ids = [child.id for child in children]
        with self._children_lock:
            previous = self._children.get(parent_id, [])
            self._children[parent_id] = child_ids

        # Re-indexing overwrites chunks by id; drop the ones past the new split.
        current = set(child_ids)
        stale = [child_id for child_id in previous if child_id not in current]
        if stale:
            try:
                self.child_store.delete(stale)
            except Exception as exc:
                raise IndexingError("store", f"stale children of {parent_id}: {exc}") from exc
        logger.debug(f"Indexed parent {parent_id} as {len(children)} children")
        return parent_id

    def _split(self, parent: RagseekDocument) -> List[RagseekDocument]:
        if self.child_splitter is None:
            return [to_document(parent, id=None)]

        source = Document(page_content=parent.page_content, metadata=dict(parent.metadata))
        try:
            pieces = self.child_splitter.split_documents([source])
        except Exception as exc:
            raise IndexingError("split", f"document {parent.id}: {exc}") from exc
        return [
            RagseekDocument(page_content=piece.page_content, metadata=dict(piece.metadata))
            for piece in pieces
        ]

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        cancel_event = kwargs.get("cancel_event")
        k = self._resolve_top_k(kwargs, self.parent_top_k)
        min_score = self._resolve_min_score(kwargs, self.min_score)

        raise_if_cancelled(cancel_event)
        try:
            query_vector = self.embedding_model.embed_query(query)
        except Exception as exc:
            raise RetrievalStageError("embed_query", str(exc)) from exc

        raise_if_cancelled(cancel_event)
        try:
            children = self.child_store.search(
                query_vector,
                self.child_top_k,
                min_score=min_score if min_score > 0 else None,
                filter=kwargs.get("filter"),
            )
        except RetrievalCancelledError:
            raise
        except Exception as exc:
            raise RetrievalStageError("search", str(exc)) from exc

        best_scores: Dict[str, float] = {}
        for child in children:
            parent_id = child.metadata.get("parent_id")
            if not isinstance(parent_id, str):
                continue
            score = float(getattr(child, "score", 0.0))
            if parent_id not in best_scores or score > best_scores[parent_id]:
                best_scores[parent_id] = score

        ranked = sorted(best_scores.items(), key=lambda item: (-item[1], item[0]))

        results = []
        for parent_id, score in ranked:
            if len(results) >= k:
                break
            parent = self.parent_store.get(parent_id)
            if parent is None:
                logger.debug(f"Skipping child of missing parent {parent_id}")
                continue
            results.append(
                to_document(parent, score=score, metadata={"retrieval_type": "parent_doc"})
            )
        return results

    def delete(self, ids: Sequence[str]) -> None:
        """Remove parents and the child fragments indexed for them."""
        child_ids: List[str] = []
        with self._children_lock:
            for parent_id in ids:
                child_ids.extend(self._children.pop(parent_id, []))
        for parent_id in ids:
            self.parent_store.delete(parent_id)
        if child_ids:
            self.child_store.delete(child_ids)

    def clear(self) -> None:
        with self._children_lock:
            self._children.clear()
        self.parent_store.clear()
        self.child_store.clear()

    def count(self) -> int:
        """Number of parent documents."""
        return self.parent_store.count()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "child_top_k": self.child_top_k,
            "parent_top_k": self.parent_top_k,
            "parent_count": self.count(),
        }
