"""
Hybrid Retriever

Combines dense vector and BM25 keyword retrieval with reciprocal-rank fusion.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Dict, List

from langchain_core.documents import Document

from ragseek.exceptions import ConfigurationError
from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.scoring import RRF_K, reciprocal_rank_fusion
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)


class HybridRetriever(BaseRetriever):
    """
    Hybrid retriever fusing vector similarity and keyword relevance.

    Both branches run concurrently, each asked for ``2 * top_k`` documents.
    Their ranked lists are merged with weighted reciprocal-rank fusion, so a
    document ranked ``r`` in a branch of weight ``w`` contributes
    ``w / (60 + r)``. If either branch fails the whole call fails.

    Args:
        vector_retriever: Retriever for the dense branch
        keyword_retriever: Retriever for the lexical branch
        vector_weight: RRF weight of the dense branch
        keyword_weight: RRF weight of the lexical branch
        top_k: Number of fused documents to return
    """

    def __init__(
        self,
        vector_retriever: BaseRetriever,
        keyword_retriever: BaseRetriever,
        vector_weight: float = 0.7,
        keyword_weight: float = 0.3,
        top_k: int = 5,
    ):
        if vector_retriever is None or keyword_retriever is None:
            raise ConfigurationError(
                "HybridRetriever requires both a vector_retriever and a keyword_retriever"
            )
        if vector_weight < 0 or keyword_weight < 0:
            raise ConfigurationError("Hybrid weights must be non-negative")
        if vector_weight == 0 and keyword_weight == 0:
            raise ConfigurationError("At least one hybrid weight must be positive")

        self.vector_retriever = vector_retriever
        self.keyword_retriever = keyword_retriever
        self.vector_weight = vector_weight
        self.keyword_weight = keyword_weight
        self.top_k = top_k if top_k > 0 else 5

        logger.info(
            f"Initialized HybridRetriever (vector_weight={vector_weight}, "
            f"keyword_weight={keyword_weight}, top_k={self.top_k})"
        )

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        """
        Retrieve documents from both branches and fuse them.

        Args:
            query: Query string
            **kwargs: Override top_k; other options reach both branches

        Returns:
            Fused documents sorted by descending RRF score
        """
        k = self._resolve_top_k(kwargs, self.top_k)
        cancel_event = kwargs.get("cancel_event")
        branch_kwargs = {**kwargs, "top_k": 2 * k}

        raise_if_cancelled(cancel_event)
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="ragseek-hybrid")
        try:
            vector_future = executor.submit(
                self.vector_retriever.get_relevant_documents, query, **branch_kwargs
            )
            keyword_future = executor.submit(
                self.keyword_retriever.get_relevant_documents, query, **branch_kwargs
            )
            done, _ = wait([vector_future, keyword_future], return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    branch = "vector" if future is vector_future else "keyword"
                    logger.error(f"Hybrid {branch} branch failed: {error}")
                    raise error
            vector_docs = vector_future.result()
            keyword_docs = keyword_future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        raise_if_cancelled(cancel_event)
        fused = reciprocal_rank_fusion(
            [(vector_docs, self.vector_weight), (keyword_docs, self.keyword_weight)],
            k=RRF_K,
        )
        logger.debug(
            f"Hybrid fused {len(vector_docs)} vector and {len(keyword_docs)} "
            f"keyword documents into {len(fused)}"
        )
        return fused[:k]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "top_k": self.top_k,
            "vector_weight": self.vector_weight,
            "keyword_weight": self.keyword_weight,
            "vector_stats": self.vector_retriever.get_stats(),
            "keyword_stats": self.keyword_retriever.get_stats(),
        }
