"""Cosine similarity retrieval over stored chunk vectors.

BruteForceIndex scans every candidate on every query. Callers depend on the
SimilarityIndex protocol only, so an approximate index can replace it.
"""
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np
import structlog

from policyqa import config
from policyqa.models import Chunk

logger = structlog.get_logger()

ScoredChunk = Tuple[Chunk, float]


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """Cosine of the angle between two vectors.

    Returns 0.0 instead of failing when either vector is missing, either
    norm is zero, or the dimensions differ.
    """
    if a is None or b is None or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


class SimilarityIndex(Protocol):
    def top_k(
        self, query_vector: Sequence[float], candidates: Sequence[Chunk], k: int
    ) -> List[ScoredChunk]:
        ...


class BruteForceIndex:
    """Exact top-K by cosine similarity with a linear scan."""

    def top_k(
        self,
        query_vector: Sequence[float],
        candidates: Sequence[Chunk],
        k: int = None,
    ) -> List[ScoredChunk]:
        """Rank candidates against the query vector.

        Args:
            query_vector: Embedded query
            candidates: Chunks in insertion order
            k: Number of results (default from config.RETRIEVAL_TOP_K)

        Returns:
            Up to k (chunk, score) pairs, best first. Equal scores keep
            insertion order.
        """
        k = config.RETRIEVAL_TOP_K if k is None else k
        if k <= 0:
            return []

        scored = [(chunk, cosine_similarity(query_vector, chunk.vector)) for chunk in candidates]
        # list.sort is stable, also with reverse=True
        scored.sort(key=lambda pair: pair[1], reverse=True)

        results = scored[:k]

        logger.info(
            "similarity_scan_completed",
            candidates=len(candidates),
            returned=len(results),
            top_score=results[0][1] if results else None,
        )

        return results
