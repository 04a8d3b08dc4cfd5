"""Vector similarity helpers."""
from __future__ import annotations
from typing import Optional, Sequence

import numpy as np


def cosine_similarity(vec_a: Optional[Sequence[float]], vec_b: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 instead of raising for missing, empty, mismatched-length or
    zero-magnitude vectors.

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        Similarity in [-1, 1], or 0.0 when undefined
    """
    if vec_a is None or vec_b is None:
        return 0.0
    a = np.asarray(vec_a, dtype=float).ravel()
    b = np.asarray(vec_b, dtype=float).ravel()
    if a.size == 0 or a.size != b.size:
        return 0.0

    magnitude = float(np.linalg.norm(a) * np.linalg.norm(b))
    if magnitude == 0.0 or not np.isfinite(magnitude):
        return 0.0
    similarity = float(np.dot(a, b) / magnitude)
    return max(-1.0, min(1.0, similarity))
