"""
Score fusion for hybrid ranking.

BM25 and cosine scores live on different scales, so each array is min-max
normalized to [0, 1] across the candidate set before blending:

    fused = α × bm25_norm + (1 - α) × cosine_norm

α = 1 is pure BM25 ordering, α = 0 pure TF-IDF ordering.
"""

from typing import List, Sequence

RANGE_EPSILON = 1e-12


def min_max_normalize(scores: Sequence[float]) -> List[float]:
    """
    Scale scores to [0, 1].

    When all scores are (numerically) equal, including empty and single-item
    inputs, every normalized score is 0.0.

    Example:
        >>> min_max_normalize([2.0, 4.0, 3.0])
        [0.0, 1.0, 0.5]
        >>> min_max_normalize([0.7, 0.7])
        [0.0, 0.0]
    """
    if not scores:
        return []
    low = min(scores)
    high = max(scores)
    spread = high - low
    if spread < RANGE_EPSILON:
        return [0.0 for _ in scores]
    return [(s - low) / spread for s in scores]


def clamp_alpha(alpha: float) -> float:
    return max(0.0, min(1.0, float(alpha)))


def fuse_scores(
    bm25_normalized: Sequence[float],
    cosine_normalized: Sequence[float],
    alpha: float = 0.5,
) -> List[float]:
    """Convex combination of two normalized score arrays (α clamped to [0, 1])"""
    if len(bm25_normalized) != len(cosine_normalized):
        raise ValueError(
            f"Score arrays differ in length: {len(bm25_normalized)} vs {len(cosine_normalized)}"
        )
    weight = clamp_alpha(alpha)
    return [
        weight * lexical + (1 - weight) * vector
        for lexical, vector in zip(bm25_normalized, cosine_normalized)
    ]
