"""
Scoring primitives

Cosine similarity, a simplified BM25, and reciprocal-rank fusion, plus the
ordering and filtering helpers every retriever relies on.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from langchain_core.documents import Document

from ragseek.schema import to_document

TOKEN_PATTERN = re.compile(r"[a-z0-9\u4e00-\u9fff]+")

BM25_K1 = 1.2
BM25_B = 0.75
# No corpus statistics are kept, so document length is normalised against a
# fixed average and every term gets an IDF of 1.0.
BM25_AVG_DOC_LENGTH = 500.0

RRF_K = 60


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ, either vector is empty, or either has
    zero magnitude. Accumulation happens in float64.
    """
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def tokenize(text: str) -> List[str]:
    """Lower-case ``text`` and split it into ASCII alphanumeric and CJK runs."""
    if not text:
        return []
    return TOKEN_PATTERN.findall(text.lower())


def bm25_score(
    query_terms: Sequence[str],
    content: str,
    k1: float = BM25_K1,
    b: float = BM25_B,
    avg_doc_length: float = BM25_AVG_DOC_LENGTH,
) -> float:
    """
    Score ``content`` against already-tokenized ``query_terms``.

    A query term that is not an exact token but occurs as a substring of the
    lower-cased content counts once, which lets unsegmented CJK text match.
    """
    content_lower = content.lower()
    content_terms = tokenize(content)

    term_freq: Dict[str, int] = {}
    for term in content_terms:
        term_freq[term] = term_freq.get(term, 0) + 1

    doc_length = float(len(content_terms))
    score = 0.0
    for term in query_terms:
        tf = float(term_freq.get(term, 0))
        if tf == 0 and term and term in content_lower:
            tf = 1.0
        if tf > 0:
            idf = 1.0
            numerator = tf * (k1 + 1)
            denominator = tf + k1 * (1 - b + b * doc_length / avg_doc_length)
            score += idf * numerator / denominator
    return score


def document_key(doc: Document) -> str:
    """Stable identity for a document: its id, or a hash of its content."""
    doc_id = getattr(doc, "id", None)
    if doc_id:
        return str(doc_id)
    return hashlib.md5(doc.page_content.encode("utf-8")).hexdigest()


def document_score(doc: Document) -> float:
    score = getattr(doc, "score", None)
    if score is None:
        score = doc.metadata.get("score", 0.0)
    return float(score)


def sort_by_score(documents: Sequence[Document]) -> List[Document]:
    """Sort by descending score, breaking ties by ascending document key."""
    return sorted(documents, key=lambda d: (-document_score(d), document_key(d)))


def match_filter(
    metadata: Optional[Mapping[str, Any]], filter: Optional[Mapping[str, Any]]
) -> bool:
    """True when every ``filter`` key is present in ``metadata`` with an equal value."""
    if not filter:
        return True
    if not metadata:
        return False
    for key, value in filter.items():
        if key not in metadata or metadata[key] != value:
            return False
    return True


def reciprocal_rank_fusion(
    ranked_lists: Sequence[Tuple[Sequence[Document], float]], k: int = RRF_K
) -> List[Document]:
    """
    Fuse several ranked lists with weighted reciprocal-rank fusion.

    Each entry of ``ranked_lists`` is ``(documents, weight)``; a document at
    1-based rank ``r`` contributes ``weight / (k + r)``. Documents are matched
    by :func:`document_key`; the first copy seen is returned, carrying the
    fused score.
    """
    scores: Dict[str, float] = {}
    first_seen: Dict[str, Document] = {}

    for documents, weight in ranked_lists:
        for rank, doc in enumerate(documents, start=1):
            key = document_key(doc)
            scores[key] = scores.get(key, 0.0) + weight / (k + rank)
            if key not in first_seen:
                first_seen[key] = doc

    fused = [to_document(first_seen[key], score=score) for key, score in scores.items()]
    return sort_by_score(fused)
