"""Cosine similarity between embedding vectors."""

import numpy as np


def cosine_similarity(vec_a: np.ndarray, vec_b: np.ndarray) -> float:
    """Calculate the cosine similarity between two vectors.

    Zero-magnitude vectors have no direction, so they score 0.0 against
    anything instead of producing NaN.

    Returns:
        Similarity in [-1, 1].

    Raises:
        ValueError: If the vectors differ in dimensionality.
    """
    a = np.asarray(vec_a, dtype=np.float64).ravel()
    b = np.asarray(vec_b, dtype=np.float64).ravel()
    if a.shape != b.shape:
        msg = f"Embedding dimensions differ: {a.shape[0]} != {b.shape[0]}"
        raise ValueError(msg)

    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return 0.0

    return float(np.clip(np.dot(a, b) / magnitude, -1.0, 1.0))
