import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ragseek.config.base_config import (
    AdaptiveConfig,
    EmbeddingCacheConfig,
    HybridRetrieverConfig,
    HyDEConfig,
    IndexingConfig,
    KeywordRetrieverConfig,
    LLMConfig,
    MultiRetrieverConfig,
    ParentDocumentConfig,
    RecursiveConfig,
    RerankerConfig,
    VectorRetrieverConfig,
)
from ragseek.exceptions import ConfigurationError
from ragseek.prompts import list_prompts


class ConfigManager:
    """Manages configuration loading and validation."""

    logger = logging.getLogger(__name__)

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the config manager.

        Args:
            config_path: Optional path to the configuration file. When omitted,
                the default configuration bundled with the package is used.
        """
        if not config_path:
            config_path = Path(__file__).parent / "default_config.yaml"

        self.config_path = config_path
        self._config = self._load_config()
        self._log_loaded_config()
        self._ensure_retriever_defaults()
        self._validate_prompts()

    def _log_loaded_config(self) -> None:
        try:
            pretty_config = json.dumps(self._config, indent=2)
        except TypeError:
            pretty_config = str(self._config)
        self.logger.debug("Loaded config:\n%s", pretty_config)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML."""
        if not os.path.exists(self.config_path):
            self.logger.debug(
                "Config file not found at %s. Using default values.", self.config_path
            )
            return {}

        self.logger.debug("Loading config file from %s.", self.config_path)
        with open(self.config_path, "r", encoding="utf-8") as handle:
            config = yaml.safe_load(handle) or {}

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Config file {self.config_path} must contain a mapping at the top level"
            )
        return config

    def _ensure_retriever_defaults(self) -> None:
        """
        Backfill every retriever block so partial user configs stay usable.

        Defaults are written into the underlying dict, making them visible both
        to the typed properties and to code reading ``_config`` directly.
        """
        self._config.setdefault("embedding_cache", {}).setdefault("max_size", 10000)

        indexing = self._config.setdefault("indexing", {})
        indexing.setdefault("max_workers", 4)
        indexing.setdefault("batch_size", 64)

        retriever_config = self._config.setdefault("retriever", {})

        vector_config = retriever_config.setdefault("vector", {})
        vector_config.setdefault("top_k", 5)
        vector_config.setdefault("min_score", 0.0)

        keyword_config = retriever_config.setdefault("keyword", {})
        keyword_config.setdefault("top_k", 5)
        keyword_config.setdefault("min_score", 0.0)

        hybrid_config = retriever_config.setdefault("hybrid", {})
        hybrid_config.setdefault("top_k", 5)
        hybrid_config.setdefault("vector_weight", 0.7)
        hybrid_config.setdefault("keyword_weight", 0.3)

        multi_config = retriever_config.setdefault("multi", {})
        multi_config.setdefault("top_k", 5)
        multi_config.setdefault("deduplicate", True)

        reranker_config = retriever_config.setdefault("reranker", {})
        reranker_config.setdefault("top_k", 5)
        reranker_config.setdefault("fetch_k", 20)

        hyde_config = retriever_config.setdefault("hyde", {})
        hyde_config.setdefault("num_hypothetical", 1)
        hyde_config.setdefault("top_k", 5)
        hyde_config.setdefault("merge_strategy", "average")
        hyde_config.setdefault("temperature", 0.7)
        hyde_config.setdefault("max_tokens", 500)
        hyde_config.setdefault("prompt", "hyde")

        parent_config = retriever_config.setdefault("parent_document", {})
        parent_config.setdefault("child_top_k", 10)
        parent_config.setdefault("parent_top_k", 5)

        recursive_config = retriever_config.setdefault("recursive", {})
        recursive_config.setdefault("max_depth", 3)
        recursive_config.setdefault("top_k", 5)
        recursive_config.setdefault("expand_all", False)
        recursive_config.setdefault("include_intermediate", False)

        adaptive_config = retriever_config.setdefault("adaptive", {})
        adaptive_config.setdefault("default_top_k", 5)
        adaptive_config.setdefault("default_min_score", 0.0)

    def _validate_prompts(self) -> None:
        prompt_name = self._config["retriever"]["hyde"]["prompt"]
        available = set(list_prompts())
        if prompt_name not in available:
            self.logger.warning(
                "HyDE prompt '%s' is not bundled (available: %s)",
                prompt_name,
                sorted(available),
            )

    def _retriever_section(self, name: str) -> Dict[str, Any]:
        return self._config.get("retriever", {}).get(name, {})

    @property
    def embedding_cache_config(self) -> EmbeddingCacheConfig:
        """Typed embedding cache configuration."""
        return EmbeddingCacheConfig.model_validate(self._config.get("embedding_cache", {}))

    @property
    def llm_config(self) -> LLMConfig:
        """Typed LLM configuration."""
        return LLMConfig.model_validate(self._config.get("llm", {}))

    @property
    def indexing_config(self) -> IndexingConfig:
        return IndexingConfig.model_validate(self._config.get("indexing", {}))

    @property
    def vector_retriever_config(self) -> VectorRetrieverConfig:
        return VectorRetrieverConfig.model_validate(self._retriever_section("vector"))

    @property
    def keyword_retriever_config(self) -> KeywordRetrieverConfig:
        return KeywordRetrieverConfig.model_validate(self._retriever_section("keyword"))

    @property
    def hybrid_retriever_config(self) -> HybridRetrieverConfig:
        return HybridRetrieverConfig.model_validate(self._retriever_section("hybrid"))

    @property
    def multi_retriever_config(self) -> MultiRetrieverConfig:
        return MultiRetrieverConfig.model_validate(self._retriever_section("multi"))

    @property
    def reranker_config(self) -> RerankerConfig:
        return RerankerConfig.model_validate(self._retriever_section("reranker"))

    @property
    def hyde_config(self) -> HyDEConfig:
        return HyDEConfig.model_validate(self._retriever_section("hyde"))

    @property
    def parent_document_config(self) -> ParentDocumentConfig:
        return ParentDocumentConfig.model_validate(self._retriever_section("parent_document"))

    @property
    def recursive_config(self) -> RecursiveConfig:
        return RecursiveConfig.model_validate(self._retriever_section("recursive"))

    @property
    def adaptive_config(self) -> AdaptiveConfig:
        return AdaptiveConfig.model_validate(self._retriever_section("adaptive"))
