"""
Config-driven retriever construction.

``create_retriever("hybrid", vector_store=..., embedding_model=...)`` builds a
retriever with its parameters read from the ``retriever`` section of the
configuration. Keyword arguments that match a constructor parameter override
the configured value.
"""

import logging
from typing import Any, Dict, Optional

from ragseek.config import AdaptiveConfig, ConfigManager
from ragseek.embeddings.cache import CachedEmbeddings
from ragseek.exceptions import ConfigurationError
from ragseek.prompts import get_prompt
from ragseek.retrieval.adaptive import (
    AdaptiveRetriever,
    QueryComplexity,
    RetrievalStrategy,
)
from ragseek.retrieval.base import BaseRetriever
from ragseek.retrieval.hybrid import HybridRetriever
from ragseek.retrieval.hyde import HyDERetriever
from ragseek.retrieval.keyword import KeywordRetriever
from ragseek.retrieval.multi import MultiRetriever
from ragseek.retrieval.parent_document import ParentDocumentRetriever
from ragseek.retrieval.recursive import RecursiveRetriever
from ragseek.retrieval.reranker import LLMReranker, RerankerRetriever
from ragseek.retrieval.vector import VectorRetriever

logger = logging.getLogger(__name__)

RETRIEVER_KINDS = (
    "vector",
    "keyword",
    "hybrid",
    "multi",
    "reranker",
    "hyde",
    "parent_document",
    "recursive",
    "adaptive",
)


def strategies_from_config(
    adaptive_config: AdaptiveConfig,
) -> Dict[QueryComplexity, RetrievalStrategy]:
    """Map the ``strategies`` block (keyed by complexity name) to strategies."""
    strategies = {}
    for name, strategy_config in adaptive_config.strategies.items():
        try:
            complexity = QueryComplexity[name.upper()]
        except KeyError:
            logger.warning(f"Ignoring strategy for unknown complexity '{name}'")
            continue
        strategies[complexity] = RetrievalStrategy(**strategy_config.model_dump())
    return strategies


def create_retriever(
    kind: str, config_manager: Optional[ConfigManager] = None, **kwargs: Any
) -> BaseRetriever:
    """
    Build a retriever of the given kind.

    Args:
        kind: One of :data:`RETRIEVER_KINDS`
        config_manager: Source of defaults; the bundled config when omitted
        **kwargs: Collaborators (stores, models, inner retrievers) and
            parameter overrides

    Raises:
        ConfigurationError: For an unknown kind or a missing collaborator
    """
    if kind not in RETRIEVER_KINDS:
        raise ConfigurationError(
            f"Unknown retriever kind: {kind}. Must be one of {', '.join(RETRIEVER_KINDS)}."
        )

    config_manager = config_manager or ConfigManager()
    if kwargs.get("embedding_model") is not None:
        kwargs["embedding_model"] = _cached(kwargs["embedding_model"], config_manager)

    builder = globals()[f"_build_{kind}"]
    retriever = builder(config_manager, kwargs)
    logger.info(f"Created {type(retriever).__name__} from config")
    return retriever


def _cached(embedding_model, config_manager: ConfigManager) -> CachedEmbeddings:
    if isinstance(embedding_model, CachedEmbeddings):
        return embedding_model
    return CachedEmbeddings.from_config(embedding_model, config_manager)


def _params(config, kwargs: Dict[str, Any], *names: str) -> Dict[str, Any]:
    """Configured values for ``names``, overridden by matching kwargs."""
    values = {name: getattr(config, name) for name in names}
    values.update({name: kwargs[name] for name in names if name in kwargs})
    return values


def _require(kwargs: Dict[str, Any], *names: str) -> None:
    missing = [name for name in names if kwargs.get(name) is None]
    if missing:
        raise ConfigurationError(f"Missing required collaborator(s): {', '.join(missing)}")


def _llm_caller(config_manager: ConfigManager, kwargs: Dict[str, Any]):
    llm_caller = kwargs.get("llm_caller")
    if llm_caller is None:
        from ragseek.llms import get_llm_caller

        llm_caller = get_llm_caller(config_manager=config_manager)
    return llm_caller


def _build_vector(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    _require(kwargs, "vector_store", "embedding_model")
    config = config_manager.vector_retriever_config
    return VectorRetriever(
        vector_store=kwargs["vector_store"],
        embedding_model=kwargs["embedding_model"],
        **_params(config, kwargs, "top_k", "min_score"),
    )


def _build_keyword(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    config = config_manager.keyword_retriever_config
    return KeywordRetriever(
        documents=kwargs.get("documents"),
        **_params(config, kwargs, "top_k", "min_score"),
    )


def _build_hybrid(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    config = config_manager.hybrid_retriever_config
    vector_retriever = kwargs.get("vector_retriever")
    if vector_retriever is None:
        vector_retriever = _build_vector(config_manager, kwargs)
    keyword_retriever = kwargs.get("keyword_retriever")
    if keyword_retriever is None:
        keyword_retriever = _build_keyword(config_manager, kwargs)
    return HybridRetriever(
        vector_retriever=vector_retriever,
        keyword_retriever=keyword_retriever,
        **_params(config, kwargs, "top_k", "vector_weight", "keyword_weight"),
    )


def _build_multi(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    config = config_manager.multi_retriever_config
    return MultiRetriever(
        retrievers=kwargs.get("retrievers") or [],
        **_params(config, kwargs, "top_k", "deduplicate"),
    )


def _build_reranker(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    _require(kwargs, "base_retriever")
    config = config_manager.reranker_config
    reranker = kwargs.get("reranker")
    if reranker is None:
        reranker = LLMReranker(
            llm_caller=_llm_caller(config_manager, kwargs),
            **_params(config, kwargs, "max_content_chars"),
        )
    return RerankerRetriever(
        base_retriever=kwargs["base_retriever"],
        reranker=reranker,
        **_params(config, kwargs, "top_k", "fetch_k"),
    )


def _build_hyde(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    _require(kwargs, "vector_store", "embedding_model")
    config = config_manager.hyde_config
    return HyDERetriever(
        llm_caller=_llm_caller(config_manager, kwargs),
        embedding_model=kwargs["embedding_model"],
        vector_store=kwargs["vector_store"],
        prompt_template=kwargs.get("prompt_template") or get_prompt(config.prompt),
        **_params(
            config,
            kwargs,
            "num_hypothetical",
            "top_k",
            "merge_strategy",
            "model",
            "temperature",
            "max_tokens",
        ),
    )


def _build_parent_document(
    config_manager: ConfigManager, kwargs: Dict[str, Any]
) -> BaseRetriever:
    _require(kwargs, "vector_store", "embedding_model")
    config = config_manager.parent_document_config
    splitter = kwargs.get("child_splitter")
    if splitter is None:
        from langchain_text_splitters import RecursiveCharacterTextSplitter

        splitter = RecursiveCharacterTextSplitter(
            chunk_size=config.chunk_size, chunk_overlap=config.chunk_overlap
        )
    return ParentDocumentRetriever(
        child_store=kwargs["vector_store"],
        embedding_model=kwargs["embedding_model"],
        child_splitter=splitter,
        parent_store=kwargs.get("parent_store"),
        max_workers=kwargs.get("max_workers", config_manager.indexing_config.max_workers),
        **_params(config, kwargs, "child_top_k", "parent_top_k", "min_score"),
    )


def _build_recursive(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    _require(kwargs, "vector_store", "embedding_model")
    config = config_manager.recursive_config
    indexing = config_manager.indexing_config
    return RecursiveRetriever(
        vector_store=kwargs["vector_store"],
        embedding_model=kwargs["embedding_model"],
        node_index=kwargs.get("node_index"),
        batch_size=kwargs.get("batch_size", indexing.batch_size),
        max_workers=kwargs.get("max_workers", indexing.max_workers),
        **_params(
            config,
            kwargs,
            "max_depth",
            "top_k",
            "min_score",
            "expand_all",
            "include_intermediate",
        ),
    )


def _build_adaptive(config_manager: ConfigManager, kwargs: Dict[str, Any]) -> BaseRetriever:
    config = config_manager.adaptive_config
    return AdaptiveRetriever(
        base_retriever=kwargs.get("base_retriever"),
        retrievers=kwargs.get("retrievers"),
        classifier=kwargs.get("classifier"),
        strategies=kwargs.get("strategies") or strategies_from_config(config),
        reranker=kwargs.get("reranker"),
        **_params(config, kwargs, "default_top_k", "default_min_score", "rerank_fetch_multiplier"),
    )
