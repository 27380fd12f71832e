"""
Reranker Retriever

Wraps any retriever with a second-stage relevance pass: fetch a wide
candidate set, rescore it with a reranker, keep the best few.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from langchain_core.documents import Document

from ragseek.exceptions import ConfigurationError, RetrievalStageError
from ragseek.prompts import get_prompt
from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.scoring import sort_by_score
from ragseek.schema import to_document
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)

SCORE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


class BaseReranker(ABC):
    """Reorders candidate documents by relevance to a query."""

    @abstractmethod
    def rerank(self, query: str, documents: List[Document]) -> List[Document]:
        """Return ``documents`` rescored and sorted, best first."""


class LLMReranker(BaseReranker):
    """
    Scores each document by asking an LLM for a 0-10 relevance rating.

    Ratings are normalised to 0-1 and stored both as the document score and as
    ``metadata["rerank_score"]``. A reply without a number scores 0.5.

    Args:
        llm_caller: Object implementing ``BaseLLMCaller.complete``
        prompt_template: Template with ``{query}`` and ``{document}`` fields
        max_content_chars: Document text is truncated to this many characters
        model: Optional model override passed to the caller
    """

    def __init__(
        self,
        llm_caller,
        prompt_template: Optional[str] = None,
        max_content_chars: int = 1000,
        model: Optional[str] = None,
    ):
        if llm_caller is None:
            raise ConfigurationError("LLMReranker requires an llm_caller")
        self.llm_caller = llm_caller
        self.prompt_template = prompt_template or get_prompt("rerank")
        self.max_content_chars = max_content_chars
        self.model = model

    def rerank(self, query: str, documents: List[Document]) -> List[Document]:
        scored = []
        for doc in documents:
            prompt = self.prompt_template.format(
                query=query, document=doc.page_content[: self.max_content_chars]
            )
            try:
                response = self.llm_caller.complete(
                    prompt, model=self.model, max_tokens=8, temperature=0.0
                )
            except Exception as exc:
                raise RetrievalStageError("rerank", str(exc)) from exc

            score = self._parse_score(str(response))
            scored.append(
                to_document(doc, score=score, metadata={"rerank_score": score})
            )

        return sort_by_score(scored)

    @staticmethod
    def _parse_score(response: str) -> float:
        # Handle replies like "8", "Score: 8" or "8/10"
        match = SCORE_PATTERN.search(response.strip())
        if not match:
            logger.warning(f"Could not extract score from response: {response!r}")
            return 0.5
        return max(0.0, min(10.0, float(match.group(1)))) / 10.0


class CompressorReranker(BaseReranker):
    """
    Adapts a LangChain ``BaseDocumentCompressor`` (Cohere rerank,
    cross-encoder rerankers, ...) to the reranker interface.

    The compressor's ``relevance_score`` metadata becomes the document score;
    compressors that do not report one keep their output order.
    """

    def __init__(self, compressor):
        if compressor is None:
            raise ConfigurationError("CompressorReranker requires a compressor")
        self.compressor = compressor

    def rerank(self, query: str, documents: List[Document]) -> List[Document]:
        compressed = list(self.compressor.compress_documents(documents, query))
        total = len(compressed)
        rescored = []
        for position, doc in enumerate(compressed):
            score = doc.metadata.get("relevance_score")
            if score is None:
                score = (total - position) / total
            rescored.append(
                to_document(doc, score=float(score), metadata={"rerank_score": float(score)})
            )
        return sort_by_score(rescored)


class RerankerRetriever(BaseRetriever):
    """
    Retriever wrapper that reranks results by relevance.

    Strategy:
    1. Fetch ``fetch_k`` candidates from the base retriever
    2. Rescore them with the reranker
    3. Return the ``top_k`` highest scoring documents

    Reranker errors propagate to the caller.

    Args:
        base_retriever: The underlying retriever to wrap
        reranker: A :class:`BaseReranker`
        top_k: Number of documents to return after reranking
        fetch_k: Number of candidates fetched before reranking
    """

    def __init__(
        self,
        base_retriever: BaseRetriever,
        reranker: BaseReranker,
        top_k: int = 5,
        fetch_k: int = 20,
    ):
        if base_retriever is None:
            raise ConfigurationError("RerankerRetriever requires a base_retriever")
        if reranker is None:
            raise ConfigurationError("RerankerRetriever requires a reranker")

        self.base_retriever = base_retriever
        self.reranker = reranker
        self.top_k = top_k if top_k > 0 else 5
        self.fetch_k = fetch_k if fetch_k > 0 else 20

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        """
        Retrieve and rerank documents.

        Args:
            query: Query string
            **kwargs: Override top_k; other options go to the base retriever

        Returns:
            List of reranked Document objects
        """
        final_top_k = self._resolve_top_k(kwargs, self.top_k)
        cancel_event = kwargs.get("cancel_event")

        retriever_kwargs = {k: v for k, v in kwargs.items() if k != "top_k"}
        documents = self.base_retriever.get_relevant_documents(
            query, top_k=self.fetch_k, **retriever_kwargs
        )
        if not documents:
            return []

        raise_if_cancelled(cancel_event)
        reranked = self.reranker.rerank(query, documents)
        return sort_by_score(reranked)[:final_top_k]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "reranker": type(self.reranker).__name__,
            "top_k": self.top_k,
            "fetch_k": self.fetch_k,
        }
