"""Cosine similarity and ranking over embedding vectors.

Pure functions using only the math module.  A zero-norm vector has similarity
exactly 0.0 with everything, so callers never see NaN from an all-zero
embedding.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence

from alignai.errors import DimensionMismatchError


class RankedMatch(NamedTuple):
    id: str
    similarity: float


def similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors, in [-1, 1].

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: If ``len(a) != len(b)``.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    # Clamp float drift so similarity(a, a) never exceeds 1.0
    return max(-1.0, min(1.0, dot / (math.sqrt(norm_a) * math.sqrt(norm_b))))


def pairwise_similarities(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Similarity of every unordered pair (i < j), in row-major order."""
    return [
        similarity(vectors[i], vectors[j])
        for i in range(len(vectors))
        for j in range(i + 1, len(vectors))
    ]


def rank_most_similar(
    target: Sequence[float],
    candidates: Sequence[tuple[str, Sequence[float]]],
    top_k: int = 5,
) -> list[RankedMatch]:
    """Return the *top_k* candidates most similar to *target*.

    Args:
        target:     Query vector.
        candidates: ``(id, vector)`` pairs.
        top_k:      Number of matches to return, clamped to ``[0, len(candidates)]``.

    Returns:
        RankedMatch list sorted by descending similarity; ties keep input order.
    """
    top_k = max(0, min(top_k, len(candidates)))
    scored = [RankedMatch(item_id, similarity(target, vector)) for item_id, vector in candidates]
    # sorted() is stable, so equal scores keep their input order
    return sorted(scored, key=lambda match: -match.similarity)[:top_k]
