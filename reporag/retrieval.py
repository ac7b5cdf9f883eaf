"""Similarity search over stored chunk vectors.

This module implements:
- cosine_similarity: dot(a, b) / (|a| * |b|), defined as 0 when either norm is zero
- Retriever.search: embed the query, score every candidate in scope, keep the top-k
  and drop anything at or below the minimum similarity
- format_as_context: render results as a plain-text block for a language model prompt

Low-similarity matches are treated as noise: callers may receive fewer than top-k
results, possibly none. An empty result is the normal "nothing relevant" answer.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from reporag.config import settings
from reporag.embedding import Embedder
from reporag.errors import DimensionMismatch
from reporag.obs import span
from reporag.schemas import SearchResult
from reporag.vector_store import VectorStore

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        float: Similarity in [-1, 1]; 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatch: The vectors have different lengths.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatch(va.shape[0], vb.shape[0])
    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    sim = float(np.dot(va, vb)) / denom
    return max(-1.0, min(1.0, sim))


class Retriever:
    """Rank stored chunks by cosine similarity to a query.

    Args:
        store: Vector store to read candidates from.
        embedder: Embedder used for the query.
        min_similarity: Results must score strictly above this floor.
    """

    def __init__(self, store: VectorStore, embedder: Embedder, min_similarity: Optional[float] = None):
        self.store = store
        self.embedder = embedder
        self.min_similarity = settings.MIN_SIMILARITY if min_similarity is None else min_similarity

    def search(self, query: str, repository: Optional[str] = None, top_k: int = 5) -> List[SearchResult]:
        """Find the stored chunks most similar to a query.

        Args:
            query: Free-text query.
            repository: Restrict candidates to one repository; all repositories when None.
            top_k: Maximum number of results.

        Returns:
            List[SearchResult]: At most top_k results, best first, each scoring above
            the minimum similarity.

        Raises:
            DimensionMismatch: The query vector and a stored vector differ in length.
        """
        if top_k <= 0:
            return []
        with span("retrieval.search", {"repository": repository or "*", "top_k": top_k}):
            query_vec = self.embedder.embed_query(query)
            candidates = (
                self.store.get_by_repository(repository) if repository else self.store.get_all()
            )
            if not candidates:
                logger.debug("No candidates for repository=%s", repository)
                return []

            scored: List[SearchResult] = []
            for cand in candidates:
                if len(cand.values) != len(query_vec):
                    raise DimensionMismatch(len(query_vec), len(cand.values), context=f"stored vector {cand.id}")
                scored.append(
                    SearchResult(document=cand.to_document(), score=cosine_similarity(query_vec, cand.values))
                )

            scored.sort(key=lambda r: r.score, reverse=True)
            results = [r for r in scored[:top_k] if r.score > self.min_similarity]

        logger.info(
            "Search repository=%s candidates=%d returned=%d best=%.3f",
            repository or "*", len(candidates), len(results), scored[0].score,
        )
        return results


def format_as_context(results: Sequence[SearchResult]) -> str:
    """Render search results as a context block for a language model.

    Each stanza shows the source path, the line range (or "file" when unknown) and the
    raw chunk text; stanzas are separated by blank lines.

    Args:
        results: Search results in rank order.

    Returns:
        str: The context block, or "" when there are no results.
    """
    if not results:
        return ""
    parts: List[str] = []
    for i, r in enumerate(results, start=1):
        doc = r.document
        if doc.start_line is not None and doc.end_line is not None:
            location = f"lines {doc.start_line}-{doc.end_line}"
        else:
            location = "file"
        parts.append(f"[Context {i}] {doc.path} ({location}):\n{doc.content}")
    return "Relevant code context:\n\n" + "\n\n".join(parts) + "\n"
