from ragseek.embeddings.cache import CachedEmbeddings, ensure_cached

__all__ = ["CachedEmbeddings", "ensure_cached"]
