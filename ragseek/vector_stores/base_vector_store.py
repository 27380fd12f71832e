from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.documents import Document


class BaseVectorStore(ABC):
    """
    Vector store contract used by the retrievers.

    Documents are written with their embeddings already attached; searches take
    a query vector and return documents carrying a ``score`` (higher is more
    similar).
    """

    @abstractmethod
    def add(self, documents: Sequence[Document]) -> List[str]:
        """Insert or replace documents. Each must carry an ``embedding``."""

    @abstractmethod
    def search(
        self,
        embedding: Sequence[float],
        k: int,
        *,
        min_score: Optional[float] = None,
        filter: Optional[Dict[str, Any]] = None,
        include_embedding: bool = False,
    ) -> List[Document]:
        """Return up to ``k`` documents most similar to ``embedding``."""

    @abstractmethod
    def delete(self, ids: Sequence[str]) -> None:
        """Remove documents by id. Unknown ids are ignored."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every document."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored documents."""

    def __len__(self) -> int:
        return self.count()
