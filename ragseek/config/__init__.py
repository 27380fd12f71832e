from ragseek.config.base_config import (
    AdaptiveConfig,
    BaseConfig,
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
    StrategyConfig,
    VectorRetrieverConfig,
)
from ragseek.config.config_manager import ConfigManager

__all__ = [
    "AdaptiveConfig",
    "BaseConfig",
    "ConfigManager",
    "EmbeddingCacheConfig",
    "HybridRetrieverConfig",
    "HyDEConfig",
    "IndexingConfig",
    "KeywordRetrieverConfig",
    "LLMConfig",
    "MultiRetrieverConfig",
    "ParentDocumentConfig",
    "RecursiveConfig",
    "RerankerConfig",
    "StrategyConfig",
    "VectorRetrieverConfig",
]
