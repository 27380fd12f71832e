"""
Recursive Retriever

Walks a hierarchy of index nodes (summaries over sections over chunks). A
vector search picks the entry points, then each entry point is descended
depth first, following only the children most similar to the query.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Set

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
from ragseek.retrieval.node_index import NodeIndex
from ragseek.retrieval.scoring import cosine_similarity, sort_by_score
from ragseek.schema import Document as RagseekDocument
from ragseek.schema import IndexNode, NodeType
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)


class RecursiveRetriever(BaseRetriever):
    """
    Depth- and similarity-bounded traversal over a :class:`NodeIndex`.

    1. Embed the query once
    2. Search the store for ``2 * top_k`` seed nodes; seeds unknown to the
       node index are treated as plain chunk leaves
    3. Descend each seed depth first, never visiting a node twice in one call
       and never going deeper than ``max_depth`` below a seed
    4. At each level keep the ``top_k`` children scoring at least
       ``min_score`` (cosine to the query when the child has a vector, its
       existing score otherwise), or every child with ``expand_all``
    5. Leaves, and nodes whose children are all missing, become results;
       intermediate nodes only with ``include_intermediate``

    Traversal scores live in a per-call map, so registered nodes are never
    modified by retrieval.

    Args:
        vector_store: Store holding one entry per node
        embedding_model: LangChain embeddings (wrapped in the cache if needed)
        node_index: Registry of nodes; a new one is created if omitted
        max_depth: Deepest level visited below a seed
        top_k: Results returned, and children kept per level
        min_score: Children scoring below this are pruned
        expand_all: Descend into every child regardless of score
        include_intermediate: Return non-leaf nodes as results too
        batch_size: Nodes embedded per request while indexing
        max_workers: Threads used for indexing batches
    """

    def __init__(
        self,
        vector_store,
        embedding_model: Embeddings,
        node_index: Optional[NodeIndex] = None,
        max_depth: int = 3,
        top_k: int = 5,
        min_score: float = 0.0,
        expand_all: bool = False,
        include_intermediate: bool = False,
        batch_size: int = 64,
        max_workers: int = 4,
    ):
        if vector_store is None:
            raise ConfigurationError("RecursiveRetriever requires a vector_store")
        if embedding_model is None:
            raise ConfigurationError("RecursiveRetriever requires an embedding_model")

        self.vector_store = vector_store
        self.embedding_model = ensure_cached(embedding_model)
        self.node_index = node_index if node_index is not None else NodeIndex()
        self.max_depth = max_depth if max_depth > 0 else 3
        self.top_k = top_k if top_k > 0 else 5
        self.min_score = min_score
        self.expand_all = expand_all
        self.include_intermediate = include_intermediate
        self.batch_size = batch_size if batch_size > 0 else 64
        self.max_workers = max(1, max_workers)

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        cancel_event = kwargs.get("cancel_event")
        k = self._resolve_top_k(kwargs, self.top_k)
        min_score = self._resolve_min_score(kwargs, self.min_score)

        raise_if_cancelled(cancel_event)
        try:
            query_vector = self.embedding_model.embed_query(query)
        except Exception as exc:
            raise RetrievalStageError("embed_query", str(exc)) from exc

        raise_if_cancelled(cancel_event)
        try:
            seeds = self.vector_store.search(
                query_vector,
                2 * k,
                min_score=min_score if min_score > 0 else None,
                filter=kwargs.get("filter"),
                include_embedding=True,
            )
        except RetrievalCancelledError:
            raise
        except Exception as exc:
            raise RetrievalStageError("search", str(exc)) from exc

        visited: Set[str] = set()
        scores: Dict[str, float] = {}
        results: List[IndexNode] = []

        for seed in seeds:
            raise_if_cancelled(cancel_event)
            node = self.node_index.get(seed.id) if seed.id else None
            if node is None:
                node = IndexNode(
                    id=seed.id or "",
                    type=NodeType.CHUNK,
                    content=seed.page_content,
                    metadata=dict(seed.metadata),
                    embedding=getattr(seed, "embedding", None),
                )
            scores[node.id] = float(getattr(seed, "score", 0.0))
            self._descend(
                node, 0, query_vector, k, min_score, visited, scores, results, cancel_event
            )

        documents = [self._to_document(node, scores.get(node.id, node.score)) for node in results]
        return sort_by_score(documents)[:k]

    def _descend(
        self,
        node: IndexNode,
        depth: int,
        query_vector: List[float],
        k: int,
        min_score: float,
        visited: Set[str],
        scores: Dict[str, float],
        results: List[IndexNode],
        cancel_event,
    ) -> None:
        raise_if_cancelled(cancel_event)
        if node.id in visited:
            return
        visited.add(node.id)

        if depth > self.max_depth:
            return

        if node.is_leaf:
            results.append(node)
            return

        children = self.node_index.get_children(node.id)
        if not children:
            results.append(node)
            return

        if self.include_intermediate:
            results.append(node)

        if self.expand_all:
            selected = children
        else:
            selected = self._select_children(children, query_vector, k, min_score, scores)

        for child in selected:
            self._descend(
                child, depth + 1, query_vector, k, min_score, visited, scores, results, cancel_event
            )

    def _select_children(
        self,
        children: List[IndexNode],
        query_vector: List[float],
        k: int,
        min_score: float,
        scores: Dict[str, float],
    ) -> List[IndexNode]:
        scored = []
        for child in children:
            if child.embedding and query_vector:
                score = cosine_similarity(query_vector, child.embedding)
            else:
                score = scores.get(child.id, child.score)
            if score >= min_score:
                scored.append((score, child))

        scored.sort(key=lambda item: (-item[0], item[1].id))
        selected = []
        for score, child in scored[:k]:
            scores[child.id] = score
            selected.append(child)
        return selected

    @staticmethod
    def _to_document(node: IndexNode, score: float) -> RagseekDocument:
        metadata = dict(node.metadata)
        metadata["node_type"] = node.type.value
        metadata["retrieval_type"] = "recursive"
        return RagseekDocument(
            id=node.id or None,
            page_content=node.content,
            metadata=metadata,
            embedding=node.embedding,
            score=score,
        )

    def index_nodes(self, nodes: Iterable[IndexNode], cancel_event=None) -> int:
        """
        Register nodes and write them to the vector store.

        Nodes with content but no vector are embedded in batches of
        ``batch_size`` on a bounded worker pool. Each node is stored with
        ``node_type``, ``parent_node`` and ``child_count`` metadata.

        Returns:
            Number of nodes written to the vector store
        """
        nodes = list(nodes)
        if not nodes:
            return 0

        raise_if_cancelled(cancel_event, "indexing")
        pending = [n for n in nodes if not n.embedding and n.content]
        vectors = self._embed_batches([n.content for n in pending], cancel_event)
        embedded = {node.id: vector for node, vector in zip(pending, vectors)}

        stored_nodes = [
            node.model_copy(update={"embedding": embedded[node.id]}) if node.id in embedded else node
            for node in nodes
        ]
        self.node_index.add_many(stored_nodes)

        raise_if_cancelled(cancel_event, "indexing")
        documents = []
        for node in stored_nodes:
            if not node.embedding:
                logger.warning(f"Node {node.id} has neither content nor a vector; not searchable")
                continue
            metadata = dict(node.metadata)
            metadata["node_type"] = node.type.value
            metadata["parent_node"] = node.parent or ""
            metadata["child_count"] = len(node.children)
            documents.append(
                RagseekDocument(
                    id=node.id,
                    page_content=node.content,
                    metadata=metadata,
                    embedding=node.embedding,
                )
            )

        try:
            self.vector_store.add(documents)
        except IndexingError:
            raise
        except Exception as exc:
            raise IndexingError("store", str(exc)) from exc

        logger.info(f"Indexed {len(stored_nodes)} nodes ({len(pending)} embedded)")
        return len(documents)

    def _embed_batches(self, texts: List[str], cancel_event=None) -> List[List[float]]:
        if not texts:
            return []

        batches = [
            texts[start : start + self.batch_size]
            for start in range(0, len(texts), self.batch_size)
        ]

        def embed(batch: List[str]) -> List[List[float]]:
            raise_if_cancelled(cancel_event, "indexing")
            try:
                return self.embedding_model.embed_documents(batch)
            except Exception as exc:
                raise IndexingError("embed", str(exc)) from exc

        if len(batches) == 1 or self.max_workers == 1:
            results = [embed(batch) for batch in batches]
        else:
            executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="ragseek-node-index"
            )
            try:
                results = list(executor.map(embed, batches))
            finally:
                executor.shutdown(wait=True, cancel_futures=True)

        vectors: List[List[float]] = []
        for batch_vectors in results:
            vectors.extend(batch_vectors)
        return vectors

    def clear(self) -> None:
        """Empty both the node index and the vector store."""
        self.node_index.clear()
        self.vector_store.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "top_k": self.top_k,
            "max_depth": self.max_depth,
            "expand_all": self.expand_all,
            "include_intermediate": self.include_intermediate,
            "node_count": self.node_index.count(),
        }
