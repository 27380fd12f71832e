"""Vector stores consumed by ragseek retrievers."""

from ragseek.vector_stores.base_vector_store import BaseVectorStore
from ragseek.vector_stores.langchain_store import LangChainVectorStore
from ragseek.vector_stores.memory import InMemoryVectorStore

__all__ = ["BaseVectorStore", "InMemoryVectorStore", "LangChainVectorStore"]
