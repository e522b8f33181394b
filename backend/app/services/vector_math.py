"""
Vector math helpers shared by embeddings and scoring.

Embeddings are plain lists of floats; numpy is used for the arithmetic.
"""

from typing import List, Sequence

import numpy as np

from app.services.errors import DimensionMismatch


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1]; 0.0 when either vector has zero norm

    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))

    a_arr = np.asarray(a, dtype=float)
    b_arr = np.asarray(b, dtype=float)

    norm_a = np.linalg.norm(a_arr)
    norm_b = np.linalg.norm(b_arr)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(a_arr, b_arr) / (norm_a * norm_b))
    # Floating point noise can push identical vectors fractionally past 1
    return max(-1.0, min(1.0, similarity))


def blend_vectors(first: Sequence[float], second: Sequence[float], first_weight: float) -> List[float]:
    """
    Element-wise weighted blend: first * w + second * (1 - w).

    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    if len(first) != len(second):
        raise DimensionMismatch(len(first), len(second))

    blended = np.asarray(first, dtype=float) * first_weight + np.asarray(second, dtype=float) * (1 - first_weight)
    return blended.tolist()


def similarity_to_score(similarity: float) -> float:
    """Rescale a cosine similarity from [-1, 1] to a 0-100 score."""
    return clamp((similarity + 1) / 2 * 100)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))
