"""Vector similarity helpers."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 for empty, zero-magnitude or mismatched vectors."""
    if len(v1) == 0 or len(v2) == 0 or len(v1) != len(v2):
        return 0.0
    a = np.asarray(v1, dtype=np.float64)
    b = np.asarray(v2, dtype=np.float64)
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return max(-1.0, min(1.0, float(np.dot(a, b) / norm)))


def cosine_similarity_matrix(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one query vector against every row of ``matrix``."""
    q = np.asarray(query, dtype=np.float64)
    if matrix.size == 0 or q.size == 0 or matrix.shape[1] != q.size:
        return np.zeros(matrix.shape[0] if matrix.ndim == 2 else 0)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * q_norm
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(denom > 0, matrix @ q / denom, 0.0)
    return np.clip(scores, -1.0, 1.0)
