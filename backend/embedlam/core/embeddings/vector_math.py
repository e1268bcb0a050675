"""Vector helpers shared by providers, scoring and tag centroids.

Vectors cross this module's boundary as ``list[float]``; numpy is only used
internally for the arithmetic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from embedlam.core.errors import DegenerateVectorError, DimensionMismatchError

if TYPE_CHECKING:
    from collections.abc import Sequence


def _as_array(vector: Sequence[float]) -> np.ndarray:
    return np.asarray(vector, dtype=np.float64)


def _checked_norm(arr: np.ndarray) -> float:
    norm = float(np.linalg.norm(arr))
    if norm == 0.0 or not np.isfinite(norm):
        raise DegenerateVectorError(f"Cannot normalize vector with norm {norm}")
    return norm


def normalize(vector: Sequence[float]) -> list[float]:
    """Scale a vector to unit L2 norm."""
    arr = _as_array(vector)
    return (arr / _checked_norm(arr)).tolist()


def average_and_normalize(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Element-wise mean of equally sized vectors, scaled to unit length."""
    if not vectors:
        raise ValueError("Cannot average an empty set of vectors")
    expected = len(vectors[0])
    for vector in vectors:
        if len(vector) != expected:
            raise DimensionMismatchError(expected, len(vector))
    mean = np.mean(np.asarray(vectors, dtype=np.float64), axis=0)
    return (mean / _checked_norm(mean)).tolist()


def cosine_distances(query: Sequence[float], candidates: Sequence[Sequence[float]]) -> list[float]:
    """Return ``1 - cosine_similarity(query, c)`` for each candidate, in order.

    The batch is atomic: a single mismatched or zero-norm candidate fails the call.
    """
    if not candidates:
        return []
    q = _as_array(query)
    for candidate in candidates:
        if len(candidate) != len(q):
            raise DimensionMismatchError(len(q), len(candidate))
    matrix = np.asarray(candidates, dtype=np.float64)
    q_norm = _checked_norm(q)
    norms = np.linalg.norm(matrix, axis=1)
    if np.any(norms == 0.0):
        raise DegenerateVectorError("Cannot compare against a zero-norm candidate")
    similarities = (matrix @ q) / (norms * q_norm)
    return (1.0 - similarities).tolist()


def min_max_scale(
    values: Sequence[float],
    target_min: float = 0.0,
    target_max: float = 1.0,
) -> list[float]:
    """Linearly remap ``values`` into ``[target_min, target_max]``, keeping order.

    A flat input (or a flat target range) maps every value to ``target_min``.
    """
    if not values:
        return []
    low = min(values)
    high = max(values)
    src_range = high - low
    dst_range = target_max - target_min
    if src_range == 0 or dst_range == 0:
        return [float(target_min)] * len(values)
    return [((v - low) / src_range) * dst_range + target_min for v in values]
