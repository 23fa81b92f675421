"""Cosine similarity helpers for semantic question dedupe.

Question batches are small (tens of items, at most 50 accepted questions
embedded), so comparisons are plain O(n*m) loops over NumPy vectors.
"""

from typing import Iterable, Optional

import numpy as np

# Keeps zero-magnitude vectors from dividing by zero.
SIMILARITY_EPSILON = 1e-9


def cosine_similarity(vec_a: np.ndarray, vec_b: np.ndarray) -> float:
    """Compute ``dot(a, b) / (||a|| * ||b|| + eps)``.

    Args:
        vec_a: First embedding vector.
        vec_b: Second embedding vector, same length as ``vec_a``.

    Returns:
        Similarity in [-1.0, 1.0]; 0.0 when either vector has zero magnitude.

    Example:
        >>> import numpy as np
        >>> round(cosine_similarity(np.array([1.0, 0.0]), np.array([1.0, 0.0])), 6)
        1.0
    """
    dot_product = float(np.dot(vec_a, vec_b))
    norm_product = float(np.linalg.norm(vec_a) * np.linalg.norm(vec_b))
    return dot_product / (norm_product + SIMILARITY_EPSILON)


def first_match_at_or_above(
    embedding: np.ndarray,
    others: Iterable[np.ndarray],
    threshold: float,
) -> Optional[float]:
    """Return the first similarity ``>= threshold`` against ``others``, or None.

    Stops at the first match; the returned score is not necessarily the maximum.
    """
    for other in others:
        score = cosine_similarity(embedding, other)
        if score >= threshold:
            return score
    return None
