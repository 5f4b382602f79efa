"""
Vector helpers shared by the embedding providers and the vector index.

All math happens in float64 so a normalized vector has an L2 norm within
1e-9 of 1.0.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

VectorLike = Sequence[float] | np.ndarray


def as_vector(values: VectorLike) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        vector = vector.reshape(-1)
    return vector


def normalize(values: VectorLike) -> np.ndarray:
    """
    Scale a vector to unit L2 norm.

    The zero vector is returned unchanged.
    """
    vector = as_vector(values)
    magnitude = float(np.linalg.norm(vector))
    if magnitude == 0.0 or not np.isfinite(magnitude):
        return vector.copy()
    return vector / magnitude


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    va = as_vector(a)
    vb = as_vector(b)
    if va.shape != vb.shape:
        raise ValueError(f"Vector shapes differ: {va.shape} vs {vb.shape}")

    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    score = float(np.dot(va, vb)) / denom
    return max(-1.0, min(1.0, score))


__all__ = ["VectorLike", "as_vector", "normalize", "cosine_similarity"]
