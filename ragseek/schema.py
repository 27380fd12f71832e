"""
Core data types shared by every retriever.

``Document`` extends LangChain's document so results can be handed straight
to LangChain chains, while carrying the embedding and score that retrieval
attaches.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from langchain_core.documents import Document as LangChainDocument
from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(LangChainDocument):
    """A content fragment plus the retrieval-time fields ragseek attaches."""

    embedding: Optional[List[float]] = Field(
        default=None, description="Dense vector for the content, when known"
    )
    score: float = Field(default=0.0, description="Relevance score set by retrieval")
    created_at: datetime = Field(default_factory=_utcnow)


def to_document(doc: Any, **updates: Any) -> Document:
    """
    Return a fresh ragseek ``Document`` for ``doc`` with ``updates`` applied.

    Accepts ragseek or plain LangChain documents. ``metadata`` in ``updates`` is
    merged over the existing metadata; the input document is never modified.
    """
    extra_metadata = updates.pop("metadata", None) or {}
    metadata = {**(doc.metadata or {}), **extra_metadata}

    if isinstance(doc, Document):
        updates["metadata"] = metadata
        return doc.model_copy(update=updates)

    fields: Dict[str, Any] = {
        "page_content": doc.page_content,
        "metadata": metadata,
        "id": getattr(doc, "id", None),
    }
    fields.update(updates)
    return Document(**fields)


class NodeType(str, Enum):
    """Kinds of node in a hierarchical index."""

    CHUNK = "chunk"
    INDEX = "index"
    SUMMARY = "summary"
    TABLE = "table"
    IMAGE = "image"


class IndexNode(BaseModel):
    """
    A node in the hierarchical index walked by the recursive retriever.

    ``children`` lists child ids in order. Ids that are not registered are
    tolerated and skipped during traversal.
    """

    id: str
    type: NodeType = NodeType.CHUNK
    content: str = ""
    children: List[str] = Field(default_factory=list)
    parent: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    embedding: Optional[List[float]] = None
    score: float = 0.0

    @property
    def is_leaf(self) -> bool:
        return not self.children
