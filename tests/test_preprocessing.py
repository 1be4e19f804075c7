"""
Test Suite for Preprocessing Module
=====================================

Tests for the FixedScaleNormalizer class and record conversion functions.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.preprocessing import (
    FEATURE_COLUMNS,
    FixedScaleNormalizer,
    queries_to_array,
    records_to_arrays,
    records_to_frame,
)
from src.schemas import HistoricalRecord, InputTriple


class TestFixedScaleNormalizer:
    """Tests for FixedScaleNormalizer class."""

    @pytest.fixture
    def normalizer(self):
        return FixedScaleNormalizer()

    def test_init(self, normalizer):
        """Default scales are days 20, miles 2000, receipts 3000."""
        np.testing.assert_array_equal(normalizer.scales, [20.0, 2000.0, 3000.0])

    def test_transform(self, normalizer):
        data = np.array([[20.0, 1000.0, 300.0], [2.0, 0.0, 3000.0]])

        np.testing.assert_array_almost_equal(
            normalizer.transform(data),
            [[1.0, 0.5, 0.1], [0.1, 0.0, 1.0]]
        )

    def test_wrong_number_of_scales(self):
        with pytest.raises(ValueError, match="Expected 3 scales"):
            FixedScaleNormalizer(scales=[1.0, 2.0])

    def test_non_positive_scale(self):
        with pytest.raises(ValueError, match="must be positive"):
            FixedScaleNormalizer(scales=[20.0, 0.0, 3000.0])


class TestRecordConversion:
    """Tests for records_to_frame / records_to_arrays."""

    @pytest.fixture
    def records(self):
        return [
            HistoricalRecord(
                input=InputTriple(trip_duration_days=3, miles_traveled=93.0, total_receipts_amount=1.42),
                expected_output=364.51
            ),
            HistoricalRecord(
                input=InputTriple(trip_duration_days=1, miles_traveled=55.0, total_receipts_amount=3.6),
                expected_output=126.06
            ),
        ]

    def test_frame(self, records):
        df = records_to_frame(records)

        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == FEATURE_COLUMNS + ['expected_output']
        assert df['trip_duration_days'].tolist() == [3, 1]
        assert df['expected_output'].tolist() == [364.51, 126.06]

    def test_empty_frame(self):
        df = records_to_frame([])

        assert df.empty
        assert list(df.columns) == FEATURE_COLUMNS + ['expected_output']

    def test_arrays(self, records):
        features, days, outputs = records_to_arrays(records)

        assert features.shape == (2, 3)
        assert days.dtype == np.int64
        np.testing.assert_array_equal(days, [3, 1])
        np.testing.assert_array_equal(features[:, 1], [93.0, 55.0])
        np.testing.assert_array_equal(outputs, [364.51, 126.06])

    def test_queries_to_array(self, records):
        array = queries_to_array([r.input for r in records])

        assert array.shape == (2, 3)
        assert queries_to_array([]).shape == (0, 3)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
