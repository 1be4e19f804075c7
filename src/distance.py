"""
Distance Module
===============

Scaled Euclidean distance between reimbursement inputs.

Each feature difference is divided by its fixed scale before taking the
Euclidean norm, so no single feature dominates because of its units.
"""

import numpy as np

from .preprocessing import FixedScaleNormalizer
from .schemas import InputTriple

_normalizer = FixedScaleNormalizer()


def calculate_distance(query: InputTriple, candidate: InputTriple) -> float:
    """
    Distance between two input triples.

    Args:
        query: The request being estimated
        candidate: A historical input

    Returns:
        Non-negative dissimilarity score
    """
    diff = np.asarray(query.as_tuple()) - np.asarray(candidate.as_tuple())
    scaled = _normalizer.transform(diff)
    return float(np.sqrt(np.sum(scaled * scaled)))


def pairwise_distances(query: np.ndarray, features: np.ndarray) -> np.ndarray:
    """
    Distances from one raw query vector to every row of a feature matrix.

    Args:
        query: Raw feature vector of shape (3,)
        features: Raw feature matrix of shape (n_samples, 3)

    Returns:
        Array of shape (n_samples,) with the same values calculate_distance
        would return row by row
    """
    scaled = _normalizer.transform(np.asarray(query, dtype=float) - features)
    return np.sqrt(np.sum(scaled * scaled, axis=1))
