"""
Vector primitives used for semantic control matching.
"""

from typing import Sequence

import numpy as np

from .exceptions import DimensionMismatch


def _as_vector(values: Sequence[float]) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1 or vector.size == 0:
        raise DimensionMismatch(
            expected=1,
            actual=vector.ndim,
            message="Embedding must be a non-empty one-dimensional sequence",
        )
    return vector


def _pair(a: Sequence[float], b: Sequence[float]):
    va, vb = _as_vector(a), _as_vector(b)
    if va.shape != vb.shape:
        raise DimensionMismatch(expected=va.size, actual=vb.size)
    return va, vb


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product of two equal-length vectors."""
    va, vb = _pair(a, b)
    return float(np.dot(va, vb))


def norm(a: Sequence[float]) -> float:
    """Euclidean magnitude of a vector."""
    return float(np.linalg.norm(_as_vector(a)))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between two vectors.

    Args:
        a: First embedding
        b: Second embedding, same length as ``a``

    Returns:
        Similarity in [-1, 1]; 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatch: If the vectors differ in length or are empty.
    """
    va, vb = _pair(a, b)
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0.0 or nb == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb) / (na * nb))
    # rounding can push |v|·|v| slightly past 1
    return max(-1.0, min(1.0, similarity))
