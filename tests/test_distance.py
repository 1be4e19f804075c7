"""
Test Suite for Distance Module
==============================

Tests for the scaled Euclidean distance.
"""

import math

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.distance import calculate_distance, pairwise_distances
from src.preprocessing import queries_to_array
from src.schemas import InputTriple


def triple(days, miles, receipts):
    return InputTriple(
        trip_duration_days=days,
        miles_traveled=miles,
        total_receipts_amount=receipts
    )


class TestCalculateDistance:
    """Tests for calculate_distance."""

    @pytest.fixture
    def triples(self):
        np.random.seed(0)
        return [
            triple(
                int(np.random.randint(0, 20)),
                float(np.random.uniform(0, 2000)),
                float(np.random.uniform(0, 3000)),
            )
            for _ in range(20)
        ]

    def test_identity(self, triples):
        """Distance from a point to itself is zero."""
        for t in triples:
            assert calculate_distance(t, t) == 0.0

    def test_symmetry(self, triples):
        """distance(a, b) == distance(b, a)."""
        for a in triples:
            for b in triples:
                assert calculate_distance(a, b) == calculate_distance(b, a)

    def test_non_negative(self, triples):
        for a in triples:
            for b in triples:
                assert calculate_distance(a, b) >= 0

    def test_single_axis_scales(self):
        """Each axis is divided by its own scale."""
        origin = triple(0, 0.0, 0.0)

        assert calculate_distance(triple(20, 0.0, 0.0), origin) == pytest.approx(1.0)
        assert calculate_distance(triple(0, 2000.0, 0.0), origin) == pytest.approx(1.0)
        assert calculate_distance(triple(0, 0.0, 3000.0), origin) == pytest.approx(1.0)

    def test_combined_axes(self):
        """Scaled differences combine as a Euclidean norm."""
        a = triple(5, 400.0, 600.0)
        b = triple(1, 100.0, 0.0)
        expected = math.sqrt((4 / 20.0) ** 2 + (300 / 2000.0) ** 2 + (600 / 3000.0) ** 2)

        assert calculate_distance(a, b) == pytest.approx(expected)


class TestPairwiseDistances:
    """Tests for the vectorized form."""

    def test_matches_scalar(self):
        """Vectorized distances equal the scalar ones row by row."""
        np.random.seed(1)
        candidates = [
            triple(
                int(np.random.randint(0, 20)),
                float(np.random.uniform(0, 2000)),
                float(np.random.uniform(0, 3000)),
            )
            for _ in range(30)
        ]
        query = triple(4, 512.3, 733.1)

        vectorized = pairwise_distances(
            np.asarray(query.as_tuple()), queries_to_array(candidates)
        )
        scalar = [calculate_distance(query, c) for c in candidates]

        np.testing.assert_allclose(vectorized, scalar, rtol=1e-12)

    def test_shape(self):
        features = np.zeros((7, 3))

        assert pairwise_distances(np.array([1.0, 1.0, 1.0]), features).shape == (7,)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
