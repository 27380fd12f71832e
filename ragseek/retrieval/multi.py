"""
Multi Retriever

Fans a query out to several retrievers and merges what comes back.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.documents import Document

from ragseek.exceptions import RetrievalCancelledError, RetrievalStageError
from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.scoring import sort_by_score
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)


class MultiRetriever(BaseRetriever):
    """
    Queries every source concurrently with the same ``top_k``.

    A source that fails is logged and dropped; the call only fails when every
    source failed. With ``deduplicate`` on, a document id seen in more than one
    source is kept once, from the earliest source in the list.

    Args:
        retrievers: Sources to query
        top_k: Number of documents to return
        deduplicate: Whether to drop repeated document ids
        max_workers: Thread pool size; defaults to one thread per source
    """

    def __init__(
        self,
        retrievers: Sequence[BaseRetriever],
        top_k: int = 5,
        deduplicate: bool = True,
        max_workers: Optional[int] = None,
    ):
        self.retrievers = list(retrievers or [])
        self.top_k = top_k if top_k > 0 else 5
        self.deduplicate = deduplicate
        self.max_workers = max_workers

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        if not self.retrievers:
            return []

        k = self._resolve_top_k(kwargs, self.top_k)
        cancel_event = kwargs.get("cancel_event")
        source_kwargs = {**kwargs, "top_k": k}

        raise_if_cancelled(cancel_event)
        workers = self.max_workers or len(self.retrievers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ragseek-multi") as executor:
            futures = [
                executor.submit(retriever.get_relevant_documents, query, **source_kwargs)
                for retriever in self.retrievers
            ]

            collected: List[Document] = []
            errors: List[BaseException] = []
            for index, future in enumerate(futures):
                try:
                    collected.extend(future.result())
                except RetrievalCancelledError:
                    raise
                except Exception as exc:
                    logger.warning(
                        f"Retriever {index} ({type(self.retrievers[index]).__name__}) "
                        f"failed and was skipped: {exc}"
                    )
                    errors.append(exc)

        raise_if_cancelled(cancel_event)
        if len(errors) == len(self.retrievers):
            raise RetrievalStageError(
                "multi", f"all {len(errors)} retrievers failed"
            ) from errors[-1]

        if self.deduplicate:
            collected = self._deduplicate_documents(collected)
        return sort_by_score(collected)[:k]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "top_k": self.top_k,
            "deduplicate": self.deduplicate,
            "sources": [type(r).__name__ for r in self.retrievers],
        }
