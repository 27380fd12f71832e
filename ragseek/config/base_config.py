from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class BaseConfig(BaseModel):
    """Base configuration class that all configs should inherit from"""
    enabled: bool = Field(default=True, description="Whether this component is enabled")


class EmbeddingCacheConfig(BaseConfig):
    """Configuration for the embedding cache"""
    max_size: int = Field(default=10000, gt=0, description="Maximum number of cached vectors")


class LLMConfig(BaseConfig):
    """Configuration for the chat model used by HyDE and LLM reranking"""
    model: str = Field(default="gpt-4o-mini", description="Name of the language model to use")
    provider: Optional[str] = Field(default="openai", description="LangChain model provider")
    api_key: Optional[str] = Field(default=None, description="API key or os.environ/VAR reference")
    kwargs: Dict[str, Any] = Field(default_factory=dict, description="Extra model settings")


class IndexingConfig(BaseConfig):
    """Configuration shared by the indexing paths"""
    max_workers: int = Field(default=4, gt=0, description="Worker threads for batch indexing")
    batch_size: int = Field(default=64, gt=0, description="Nodes embedded per batch")


class VectorRetrieverConfig(BaseConfig):
    """Configuration for dense vector retrieval"""
    top_k: int = Field(default=5, gt=0, description="Number of documents to retrieve")
    min_score: float = Field(default=0.0, description="Minimum similarity score")


class KeywordRetrieverConfig(BaseConfig):
    """Configuration for BM25 keyword retrieval"""
    top_k: int = Field(default=5, gt=0, description="Number of documents to retrieve")
    min_score: float = Field(default=0.0, description="Scores at or below this are dropped")


class HybridRetrieverConfig(BaseConfig):
    """Configuration for vector + keyword fusion"""
    top_k: int = Field(default=5, gt=0, description="Number of fused documents to return")
    vector_weight: float = Field(default=0.7, ge=0.0, description="RRF weight of the vector branch")
    keyword_weight: float = Field(default=0.3, ge=0.0, description="RRF weight of the keyword branch")


class MultiRetrieverConfig(BaseConfig):
    """Configuration for fan-out over several retrievers"""
    top_k: int = Field(default=5, gt=0, description="Number of documents to return")
    deduplicate: bool = Field(default=True, description="Drop repeated document ids")


class RerankerConfig(BaseConfig):
    """Configuration for fetch-then-rerank retrieval"""
    top_k: int = Field(default=5, gt=0, description="Number of documents kept after reranking")
    fetch_k: int = Field(default=20, gt=0, description="Candidates fetched before reranking")
    max_content_chars: int = Field(default=1000, gt=0, description="Document text sent to an LLM reranker")


class HyDEConfig(BaseConfig):
    """Configuration for hypothetical document embedding retrieval"""
    num_hypothetical: int = Field(default=1, gt=0, description="Hypothetical documents generated per query")
    top_k: int = Field(default=5, gt=0, description="Number of documents to return")
    merge_strategy: Literal["average", "search_all"] = Field(
        default="average", description="How hypothetical document vectors are combined"
    )
    model: Optional[str] = Field(default=None, description="Model override passed to the LLM caller")
    temperature: float = Field(default=0.7, ge=0.0, description="Sampling temperature")
    max_tokens: int = Field(default=500, gt=0, description="Maximum tokens per hypothetical document")
    prompt: str = Field(default="hyde", description="Name of the bundled prompt template")


class ParentDocumentConfig(BaseConfig):
    """Configuration for child-match / parent-return retrieval"""
    child_top_k: int = Field(default=10, gt=0, description="Child fragments fetched per query")
    parent_top_k: int = Field(default=5, gt=0, description="Parent documents returned")
    min_score: float = Field(default=0.0, description="Minimum child similarity")
    chunk_size: int = Field(default=400, gt=0, description="Child fragment size in characters")
    chunk_overlap: int = Field(default=0, ge=0, description="Overlap between child fragments")


class RecursiveConfig(BaseConfig):
    """Configuration for hierarchical node traversal"""
    max_depth: int = Field(default=3, gt=0, description="Deepest level visited below a seed")
    top_k: int = Field(default=5, gt=0, description="Results returned and children kept per level")
    min_score: float = Field(default=0.0, description="Children scoring below this are pruned")
    expand_all: bool = Field(default=False, description="Descend into every child")
    include_intermediate: bool = Field(default=False, description="Return non-leaf nodes as results")


class StrategyConfig(BaseModel):
    """Retrieval strategy for one query complexity level"""
    top_k: int = Field(default=5, gt=0)
    min_score: float = Field(default=0.0)
    use_reranker: bool = Field(default=False)
    multi_query: bool = Field(default=False)
    retriever_name: Optional[str] = Field(default=None, description="Named retriever override")


def _default_strategies() -> Dict[str, StrategyConfig]:
    return {
        "simple": StrategyConfig(top_k=3, min_score=0.7),
        "moderate": StrategyConfig(top_k=5, min_score=0.5, use_reranker=True),
        "complex": StrategyConfig(top_k=10, min_score=0.3, use_reranker=True, multi_query=True),
    }


class AdaptiveConfig(BaseConfig):
    """Configuration for classifier-driven strategy selection"""
    default_top_k: int = Field(default=5, gt=0, description="top_k of the fallback strategy")
    default_min_score: float = Field(default=0.0, description="min_score of the fallback strategy")
    rerank_fetch_multiplier: int = Field(default=3, gt=0, description="Over-fetch factor before reranking")
    strategies: Dict[str, StrategyConfig] = Field(default_factory=_default_strategies)
