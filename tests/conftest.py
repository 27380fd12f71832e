"""
Shared test doubles.

``KeywordEmbeddings`` gives every distinct token its own dimension, so cosine
similarity between two texts reflects their shared vocabulary with no hash
collisions. ``FixedWidthSplitter`` cuts documents into equal-width pieces.
"""

import threading
from typing import List

import pytest
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from ragseek.retrieval.scoring import tokenize
from ragseek.vector_stores import InMemoryVectorStore


class KeywordEmbeddings(Embeddings):
    """Deterministic bag-of-words embeddings that record every upstream batch."""

    def __init__(self, dimension: int = 256):
        self.dimension = dimension
        self.calls: List[List[str]] = []
        self._vocabulary = {}
        self._lock = threading.Lock()

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for token in tokenize(text):
            index = self._vocabulary.setdefault(token, len(self._vocabulary) % self.dimension)
            vector[index] += 1.0
        return vector

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        with self._lock:
            self.calls.append(list(texts))
            return [self._vector(text) for text in texts]

    def embed_query(self, text: str) -> List[float]:
        return self.embed_documents([text])[0]


class FixedWidthSplitter:
    """Splits each document into ``width``-character pieces."""

    def __init__(self, width: int = 20):
        self.width = width

    def split_documents(self, documents: List[Document]) -> List[Document]:
        pieces = []
        for doc in documents:
            text = doc.page_content
            for start in range(0, len(text), self.width):
                pieces.append(
                    Document(page_content=text[start : start + self.width], metadata=dict(doc.metadata))
                )
        return pieces


@pytest.fixture
def embeddings():
    return KeywordEmbeddings()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def splitter():
    return FixedWidthSplitter(width=20)
