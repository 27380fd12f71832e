"""
Embedding cache

LRU cache in front of any LangChain ``Embeddings`` model. Concurrent callers
asking for the same uncached text share a single upstream request.
"""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Tuple

from langchain_core.embeddings import Embeddings

from ragseek.exceptions import ConfigurationError
from ragseek.utils.concurrency import ReadWriteLock

DEFAULT_MAX_SIZE = 10000


class CachedEmbeddings(Embeddings):
    """
    Caching wrapper around an embedding model.

    Cache keys are md5 digests of the text. Hits are promoted to
    most-recently-used; once ``max_size`` entries are held, every insert evicts
    the least-recently-used one. Misses in a call are embedded with one
    ``embed_documents`` call on the wrapped model, made without holding the
    cache lock.

    While a text is being embedded it sits in an in-flight registry. Other
    callers that miss on it wait for that request instead of issuing their own,
    and see its result or its error. A failed request caches nothing.

    Args:
        embeddings: The wrapped LangChain embedding model
        max_size: Maximum number of cached vectors
    """

    logger = logging.getLogger(__name__)

    def __init__(self, embeddings: Embeddings, max_size: int = DEFAULT_MAX_SIZE):
        if embeddings is None:
            raise ConfigurationError("CachedEmbeddings requires an embedding model")
        if max_size <= 0:
            raise ConfigurationError(f"max_size must be positive, got {max_size}")

        self.embeddings = embeddings
        self.max_size = max_size

        self._lock = ReadWriteLock()
        self._cache: "OrderedDict[str, List[float]]" = OrderedDict()
        self._in_flight: Dict[str, Future] = {}
        self._stats = {
            "hits": 0,
            "misses": 0,
            "upstream_calls": 0,
            "coalesced": 0,
            "evictions": 0,
        }

        self.logger.info(
            f"Embedding cache initialized for {type(embeddings).__name__} "
            f"(max_size={max_size})"
        )

    @classmethod
    def from_config(
        cls, embeddings: Embeddings, config_manager: Optional[Any] = None
    ) -> "CachedEmbeddings":
        """Build a cache sized from the ``embedding_cache`` config section."""
        if config_manager is None:
            from ragseek.config import ConfigManager

            config_manager = ConfigManager()
        cache_config = config_manager.embedding_cache_config
        return cls(embeddings, max_size=cache_config.max_size)

    @staticmethod
    def _key(text: str) -> str:
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        keys = [self._key(text) for text in texts]
        resolved: Dict[str, List[float]] = {}
        waiting: Dict[str, Future] = {}
        owned: Dict[str, Tuple[str, Future]] = {}

        with self._lock.write_lock():
            for key, text in zip(keys, texts):
                if key in resolved or key in waiting or key in owned:
                    continue
                if key in self._cache:
                    self._cache.move_to_end(key)
                    resolved[key] = self._cache[key]
                    self._stats["hits"] += 1
                elif key in self._in_flight:
                    waiting[key] = self._in_flight[key]
                    self._stats["coalesced"] += 1
                else:
                    future: Future = Future()
                    self._in_flight[key] = future
                    owned[key] = (text, future)
                    self._stats["misses"] += 1
            if owned:
                self._stats["upstream_calls"] += 1

        if owned:
            resolved.update(self._fetch(owned))

        for key, future in waiting.items():
            resolved[key] = future.result()

        return [list(resolved[key]) for key in keys]

    def embed_query(self, text: str) -> List[float]:
        return self.embed_documents([text])[0]

    def _fetch(self, owned: Dict[str, Tuple[str, Future]]) -> Dict[str, List[float]]:
        """Embed the texts this caller registered and publish the outcome."""
        ordered_keys = sorted(owned)
        batch = [owned[key][0] for key in ordered_keys]

        try:
            vectors = self.embeddings.embed_documents(batch)
            if len(vectors) != len(batch):
                raise ValueError(
                    f"Embedding model returned {len(vectors)} vectors for "
                    f"{len(batch)} texts"
                )
        except Exception as exc:
            self.logger.error(f"Embedding request for {len(batch)} texts failed: {exc}")
            with self._lock.write_lock():
                for key in ordered_keys:
                    self._in_flight.pop(key, None)
            for key in ordered_keys:
                owned[key][1].set_exception(exc)
            raise

        fetched = {key: list(vector) for key, vector in zip(ordered_keys, vectors)}
        with self._lock.write_lock():
            for key, vector in fetched.items():
                self._store(key, vector)
                self._in_flight.pop(key, None)
        for key in ordered_keys:
            owned[key][1].set_result(fetched[key])

        self.logger.debug(f"Embedded {len(batch)} uncached texts")
        return fetched

    def _store(self, key: str, vector: List[float]) -> None:
        # Caller holds the write lock.
        self._cache[key] = vector
        self._cache.move_to_end(key)
        while len(self._cache) > self.max_size:
            self._cache.popitem(last=False)
            self._stats["evictions"] += 1

    @property
    def dimension(self) -> Optional[int]:
        """Vector dimension reported by the wrapped model, or seen in the cache."""
        for attr in ("dimension", "dimensions"):
            value = getattr(self.embeddings, attr, None)
            if isinstance(value, int) and value > 0:
                return value
        with self._lock.read_lock():
            for vector in self._cache.values():
                return len(vector)
        return None

    def contains(self, text: str) -> bool:
        with self._lock.read_lock():
            return self._key(text) in self._cache

    def cache_size(self) -> int:
        with self._lock.read_lock():
            return len(self._cache)

    def clear_cache(self) -> None:
        with self._lock.write_lock():
            self._cache.clear()
        self.logger.info("Embedding cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock.read_lock():
            stats = dict(self._stats)
            stats["size"] = len(self._cache)
        stats["max_size"] = self.max_size
        return stats


def ensure_cached(
    embeddings: Embeddings, max_size: int = DEFAULT_MAX_SIZE
) -> CachedEmbeddings:
    """Wrap ``embeddings`` in a cache unless it already is one."""
    if isinstance(embeddings, CachedEmbeddings):
        return embeddings
    return CachedEmbeddings(embeddings, max_size=max_size)
