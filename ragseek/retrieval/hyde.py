"""
HyDE Retriever

Hypothetical Document Embeddings: instead of embedding the question, ask an
LLM to write a plausible answer passage and search with that passage's
vector. Answers sit closer to real documents in embedding space than
questions do.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from ragseek.embeddings.cache import ensure_cached
from ragseek.exceptions import (
    ConfigurationError,
    RetrievalCancelledError,
    RetrievalStageError,
)
from ragseek.prompts import get_prompt
from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.scoring import sort_by_score
from ragseek.retrieval.vector import VectorRetriever
from ragseek.schema import to_document
from ragseek.utils.concurrency import raise_if_cancelled

logger = logging.getLogger(__name__)

MergeStrategy = Literal["average", "search_all"]
MERGE_STRATEGIES = ("average", "search_all")


def average_vectors(vectors: List[List[float]]) -> List[float]:
    """
    Component-wise mean using the first vector's dimension.

    Shorter vectors contribute zero past their own length; extra components
    of longer vectors are ignored.
    """
    if not vectors:
        return []
    dim = len(vectors[0])
    total = [0.0] * dim
    for vector in vectors:
        for i in range(min(dim, len(vector))):
            total[i] += vector[i]
    count = float(len(vectors))
    return [value / count for value in total]


class HyDERetriever(BaseRetriever):
    """
    Retrieves with LLM-generated hypothetical documents.

    Flow per call:
    1. Generate ``num_hypothetical`` passages; empty or failed completions
       are skipped
    2. If none were produced, fall back to a plain vector search on the raw
       query
    3. ``average``: embed each passage, average the vectors, search once
    4. ``search_all``: embed and search per passage, keep the first copy of
       each document, sort, truncate

    Per-passage embedding or search failures are skipped unless every passage
    fails.

    Args:
        llm_caller: Object implementing ``BaseLLMCaller.complete``
        embedding_model: LangChain embeddings (wrapped in the cache if needed)
        vector_store: Store implementing ``BaseVectorStore.search``
        prompt_template: Template with a ``{query}`` field; defaults to the
            bundled ``hyde`` prompt
        num_hypothetical: Passages generated per query
        top_k: Number of documents to return
        merge_strategy: ``"average"`` or ``"search_all"``
        model: Optional model override passed to the caller
        temperature: Sampling temperature; 0 leaves the model default
        max_tokens: Token budget per passage
    """

    def __init__(
        self,
        llm_caller,
        embedding_model: Embeddings,
        vector_store,
        prompt_template: Optional[str] = None,
        num_hypothetical: int = 1,
        top_k: int = 5,
        merge_strategy: MergeStrategy = "average",
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ):
        if llm_caller is None:
            raise ConfigurationError("HyDERetriever requires an llm_caller")
        if embedding_model is None:
            raise ConfigurationError("HyDERetriever requires an embedding_model")
        if vector_store is None:
            raise ConfigurationError("HyDERetriever requires a vector_store")
        if merge_strategy not in MERGE_STRATEGIES:
            raise ConfigurationError(
                f"Unknown merge strategy: {merge_strategy}. "
                f"Must be one of {', '.join(MERGE_STRATEGIES)}."
            )

        self.llm_caller = llm_caller
        self.embedding_model = ensure_cached(embedding_model)
        self.vector_store = vector_store
        self.prompt_template = prompt_template or get_prompt("hyde")
        self.num_hypothetical = num_hypothetical if num_hypothetical > 0 else 1
        self.top_k = top_k if top_k > 0 else 5
        self.merge_strategy = merge_strategy
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        self._vector_retriever = VectorRetriever(
            vector_store=vector_store,
            embedding_model=self.embedding_model,
            top_k=self.top_k,
        )

    def get_relevant_documents(self, query: str, **kwargs) -> List[Document]:
        cancel_event = kwargs.get("cancel_event")
        k = self._resolve_top_k(kwargs, self.top_k)

        hypothetical_docs = self.generate_hypothetical_documents(
            query, cancel_event=cancel_event
        )
        if not hypothetical_docs:
            logger.warning("No hypothetical documents generated; searching with the raw query")
            return self._vector_retriever.get_relevant_documents(query, **{**kwargs, "top_k": k})

        if self.merge_strategy == "search_all":
            documents = self._retrieve_with_search_all(hypothetical_docs, k, kwargs)
        else:
            documents = self._retrieve_with_average_vector(hypothetical_docs, k, kwargs)

        return [to_document(doc, metadata={"retrieval_type": "hyde"}) for doc in documents]

    def generate_hypothetical_documents(
        self, query: str, cancel_event=None
    ) -> List[str]:
        """Ask the LLM for hypothetical answer passages to ``query``."""
        prompt = self.prompt_template.format(query=query)
        temperature = self.temperature if self.temperature > 0 else None

        passages = []
        for attempt in range(self.num_hypothetical):
            raise_if_cancelled(cancel_event)
            try:
                content = self.llm_caller.complete(
                    [{"role": "user", "content": prompt}],
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=temperature,
                )
            except RetrievalCancelledError:
                raise
            except Exception as exc:
                logger.warning(
                    f"Hypothetical document {attempt + 1}/{self.num_hypothetical} "
                    f"generation failed: {exc}"
                )
                continue

            content = (content or "").strip()
            if content:
                passages.append(content)

        logger.debug(f"Generated {len(passages)} hypothetical documents")
        return passages

    def _retrieve_with_average_vector(
        self, passages: List[str], k: int, kwargs: Dict[str, Any]
    ) -> List[Document]:
        cancel_event = kwargs.get("cancel_event")
        vectors = []
        last_error: Optional[BaseException] = None
        for passage in passages:
            raise_if_cancelled(cancel_event)
            try:
                vectors.append(self.embedding_model.embed_query(passage))
            except Exception as exc:
                logger.warning(f"Embedding a hypothetical document failed: {exc}")
                last_error = exc

        if not vectors:
            raise RetrievalStageError(
                "hyde_embed", f"all {len(passages)} hypothetical documents failed to embed"
            ) from last_error

        raise_if_cancelled(cancel_event)
        return self._search(average_vectors(vectors), k, kwargs)

    def _retrieve_with_search_all(
        self, passages: List[str], k: int, kwargs: Dict[str, Any]
    ) -> List[Document]:
        cancel_event = kwargs.get("cancel_event")
        collected: List[Document] = []
        succeeded = 0
        last_error: Optional[BaseException] = None

        for passage in passages:
            raise_if_cancelled(cancel_event)
            try:
                vector = self.embedding_model.embed_query(passage)
                collected.extend(self._search(vector, k, kwargs))
            except RetrievalCancelledError:
                raise
            except Exception as exc:
                logger.warning(f"Retrieval for a hypothetical document failed: {exc}")
                last_error = exc
                continue
            succeeded += 1

        if succeeded == 0:
            raise RetrievalStageError(
                "hyde_search", f"all {len(passages)} hypothetical document searches failed"
            ) from last_error

        return sort_by_score(self._deduplicate_documents(collected))[:k]

    def _search(self, vector: List[float], k: int, kwargs: Dict[str, Any]) -> List[Document]:
        min_score = self._resolve_min_score(kwargs, 0.0)
        return self._vector_retriever.search_by_vector(
            vector, k, min_score=min_score, filter=kwargs.get("filter")
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            "retriever": type(self).__name__,
            "top_k": self.top_k,
            "num_hypothetical": self.num_hypothetical,
            "merge_strategy": self.merge_strategy,
            "temperature": self.temperature,
        }
