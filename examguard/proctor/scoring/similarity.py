"""
Embedding Similarity - Compares face embeddings for identity matching
"""

import numpy as np
from typing import Sequence


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity between two embeddings.

    Args:
        vec_a: First embedding
        vec_b: Second embedding, same length as vec_a

    Returns:
        dot(a, b) / (|a| * |b|), or 0.0 if either vector has zero magnitude

    Raises:
        ValueError: If the embeddings differ in length
    """
    a = np.asarray(vec_a, dtype=np.float64).ravel()
    b = np.asarray(vec_b, dtype=np.float64).ravel()

    if a.shape != b.shape:
        raise ValueError(f"Embedding length mismatch: {a.size} != {b.size}")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def match_percentage(similarity: float) -> float:
    """Clamp a similarity to [0, 1] and report it as a percentage with one decimal."""
    clamped = max(0.0, min(1.0, similarity))
    return round(clamped * 100, 1)
