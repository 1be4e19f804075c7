"""
Data Preprocessing Module
=========================

Converts validated records into numeric arrays for the predictor.

Functions:
    - records_to_frame: Flatten historical records into a DataFrame
    - records_to_arrays: Feature matrix and target vector from records
    - queries_to_array: Feature matrix from bare input triples

Classes:
    - FixedScaleNormalizer: Divide each feature by its fixed scale constant
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from .schemas import HistoricalRecord, InputTriple

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = ['trip_duration_days', 'miles_traveled', 'total_receipts_amount']
TARGET_COLUMN = 'expected_output'

# Typical observed ranges: trips of 1-20 days, 0-2000 miles, $0-3000 receipts
DAY_SCALE = 20.0
MILE_SCALE = 2000.0
RECEIPT_SCALE = 3000.0

FEATURE_SCALES = np.array([DAY_SCALE, MILE_SCALE, RECEIPT_SCALE])


class FixedScaleNormalizer:
    """
    Normalizes the three input features by fixed per-feature scales.

    Unlike a fitted scaler, the scales never depend on the data, so the
    same query always maps to the same point regardless of which cases
    have been loaded.
    """

    def __init__(self, scales: Sequence[float] = FEATURE_SCALES):
        """
        Initialize the normalizer.

        Args:
            scales: One positive divisor per feature column
        """
        self.scales = np.asarray(scales, dtype=float)

        if self.scales.shape != (len(FEATURE_COLUMNS),):
            raise ValueError(
                f"Expected {len(FEATURE_COLUMNS)} scales, but got {self.scales.shape}"
            )
        if np.any(self.scales <= 0):
            raise ValueError(f"Scales must be positive, got {self.scales.tolist()}")

    def transform(self, features: np.ndarray) -> np.ndarray:
        """
        Scale raw features.

        Args:
            features: Array of shape (n_samples, 3) or (3,)

        Returns:
            Array of the same shape divided by the scales
        """
        return np.asarray(features, dtype=float) / self.scales


def records_to_frame(records: Sequence[HistoricalRecord]) -> pd.DataFrame:
    """
    Flatten historical records into a DataFrame.

    Args:
        records: Historical records in dataset order

    Returns:
        DataFrame with one row per record, feature columns then target
    """
    rows = [
        {**record.input.model_dump(), TARGET_COLUMN: record.expected_output}
        for record in records
    ]
    return pd.DataFrame(rows, columns=FEATURE_COLUMNS + [TARGET_COLUMN])


def records_to_arrays(
    records: Sequence[HistoricalRecord]
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Build the arrays the predictor works on.

    Day counts are kept in their own integer array so exact matching can
    compare them with integer equality.

    Args:
        records: Historical records in dataset order

    Returns:
        Tuple of (features (n, 3) float, days (n,) int, outputs (n,) float)
    """
    features = np.array([record.input.as_tuple() for record in records], dtype=float)
    days = np.array([record.input.trip_duration_days for record in records], dtype=np.int64)
    outputs = np.array([record.expected_output for record in records], dtype=float)

    features = features.reshape(len(records), len(FEATURE_COLUMNS))

    logger.debug(f"Built feature matrix {features.shape} from {len(records)} records")
    return features, days, outputs


def queries_to_array(queries: Sequence[InputTriple]) -> np.ndarray:
    """Stack input triples into a (n, 3) feature matrix."""
    return np.array([query.as_tuple() for query in queries], dtype=float).reshape(
        len(queries), len(FEATURE_COLUMNS)
    )
