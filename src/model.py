"""
Model Module
============

Nearest-neighbor reimbursement estimator.

A query is answered from the historical cases directly: an exact match
returns the recorded amount, otherwise the k closest cases are blended
with inverse-distance weights.

Features:
    - Exact-match short-circuit within a fixed tolerance
    - Stable ranking by scaled Euclidean distance
    - Inverse-distance-weighted aggregation
    - Leave-one-out copies for honest evaluation
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional, Sequence

import numpy as np

from .distance import pairwise_distances
from .preprocessing import records_to_arrays
from .schemas import HistoricalRecord, InputTriple, Neighbor

logger = logging.getLogger(__name__)

NEIGHBOR_COUNT = 5
EPSILON = 1e-8
EXACT_MATCH_TOLERANCE = 0.001


class NearestNeighborReimbursementModel:
    """
    Inverse-distance-weighted k-nearest-neighbor estimator.

    The fitted arrays are never modified after fit(), so a single instance
    can answer any number of predictions.
    """

    def __init__(self, n_neighbors: int = NEIGHBOR_COUNT):
        """
        Initialize the model.

        Args:
            n_neighbors: Number of closest cases blended into an estimate
        """
        if n_neighbors < 1:
            raise ValueError(f"n_neighbors must be at least 1, got {n_neighbors}")

        self.n_neighbors = n_neighbors

        self.features_: Optional[np.ndarray] = None
        self.days_: Optional[np.ndarray] = None
        self.outputs_: Optional[np.ndarray] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    @property
    def n_records_(self) -> int:
        return 0 if self.outputs_ is None else len(self.outputs_)

    def fit(self, records: Sequence[HistoricalRecord]) -> 'NearestNeighborReimbursementModel':
        """
        Load the historical cases.

        Args:
            records: Non-empty sequence of historical records

        Returns:
            Self for method chaining

        Raises:
            ValueError: If records is empty
        """
        if len(records) == 0:
            raise ValueError("Cannot fit on an empty training set.")

        features, days, outputs = records_to_arrays(records)
        self._set_arrays(features, days, outputs)

        logger.info(f"Fitted nearest-neighbor model on {self.n_records_} records")
        return self

    def _set_arrays(self, features: np.ndarray, days: np.ndarray, outputs: np.ndarray) -> None:
        for arr in (features, days, outputs):
            arr.setflags(write=False)

        self.features_ = features
        self.days_ = days
        self.outputs_ = outputs
        self.training_info = {
            'n_records': int(len(outputs)),
            'fitted_at': datetime.now().isoformat(),
            'n_neighbors': self.n_neighbors,
        }
        self._is_fitted = True

    def _check_fitted(self) -> None:
        if not self._is_fitted:
            raise ValueError("Model must be fitted before prediction. Call fit() first.")

    def find_exact_match(self, query: InputTriple) -> Optional[int]:
        """
        Index of the first record matching the query.

        A match needs identical trip days and miles and receipts each within
        EXACT_MATCH_TOLERANCE. When several records match, the earliest in
        dataset order wins.

        Returns:
            Record index, or None when nothing matches
        """
        self._check_fitted()

        mask = (
            (self.days_ == query.trip_duration_days)
            & (np.abs(self.features_[:, 1] - query.miles_traveled) < EXACT_MATCH_TOLERANCE)
            & (np.abs(self.features_[:, 2] - query.total_receipts_amount) < EXACT_MATCH_TOLERANCE)
        )
        hits = np.flatnonzero(mask)
        if hits.size == 0:
            return None
        return int(hits[0])

    def rank_neighbors(self, query: InputTriple, limit: Optional[int] = None) -> List[Neighbor]:
        """
        Historical cases ordered by distance to the query.

        Ties keep dataset order.

        Args:
            query: Input to rank against
            limit: Keep only the closest `limit` neighbors

        Returns:
            Neighbors sorted by ascending distance
        """
        self._check_fitted()

        distances = pairwise_distances(np.asarray(query.as_tuple()), self.features_)
        order = np.argsort(distances, kind='stable')
        if limit is not None:
            order = order[:limit]

        return [Neighbor(float(distances[i]), float(self.outputs_[i])) for i in order]

    def predict(self, query: InputTriple) -> float:
        """
        Estimate the reimbursement for one query.

        Args:
            query: Trip inputs

        Returns:
            Estimated reimbursement amount
        """
        match = self.find_exact_match(query)
        if match is not None:
            logger.debug(f"Exact match at record {match} for {query}")
            return float(self.outputs_[match])

        # min(k, n): slicing past the end keeps every record
        neighbors = self.rank_neighbors(query, limit=self.n_neighbors)
        return weighted_average(neighbors)

    def predict_many(self, queries: Sequence[InputTriple]) -> np.ndarray:
        """Estimate every query in order."""
        return np.array([self.predict(query) for query in queries], dtype=float)

    def leave_out(self, index: int) -> 'NearestNeighborReimbursementModel':
        """
        Copy of this model without one record.

        Args:
            index: Position of the record to drop

        Returns:
            New fitted model over the remaining records

        Raises:
            ValueError: If dropping the record would leave no records
        """
        self._check_fitted()

        if self.n_records_ <= 1:
            raise ValueError("Cannot leave out the only record in the training set.")

        model = NearestNeighborReimbursementModel(n_neighbors=self.n_neighbors)
        model._set_arrays(
            np.delete(self.features_, index, axis=0),
            np.delete(self.days_, index),
            np.delete(self.outputs_, index),
        )
        return model


def weighted_average(neighbors: Sequence[Neighbor]) -> float:
    """
    Inverse-distance-weighted mean of neighbor outputs.

    Args:
        neighbors: Selected neighbors, nearest first

    Returns:
        sum(w * output) / sum(w) with w = 1 / (distance + EPSILON), or the
        nearest output if the weights sum to zero
    """
    if not neighbors:
        raise ValueError("Cannot aggregate zero neighbors.")

    weighted_sum = 0.0
    total_weight = 0.0

    for neighbor in neighbors:
        weight = 1.0 / (neighbor.distance + EPSILON)
        weighted_sum += weight * neighbor.output
        total_weight += weight

    if total_weight == 0:
        logger.warning("Neighbor weights sum to zero, using nearest neighbor")
        return neighbors[0].output

    return weighted_sum / total_weight


def predict_reimbursement(
    query: InputTriple,
    training_set: Sequence[HistoricalRecord],
    k: int = NEIGHBOR_COUNT
) -> float:
    """
    One-shot estimate from a training set.

    Args:
        query: Trip inputs
        training_set: Non-empty historical records
        k: Number of neighbors to blend

    Returns:
        Estimated reimbursement amount
    """
    return NearestNeighborReimbursementModel(n_neighbors=k).fit(training_set).predict(query)


def train_model(records: Sequence[HistoricalRecord]) -> NearestNeighborReimbursementModel:
    """Fit a model with the standard neighbor count."""
    return NearestNeighborReimbursementModel().fit(records)


def print_model_summary(model: NearestNeighborReimbursementModel) -> None:
    """
    Print a summary of the fitted model.

    Args:
        model: Fitted model instance
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print("Model Type: inverse-distance-weighted k-nearest neighbors")
    print(f"Neighbors (k): {model.n_neighbors}")
    print(f"Historical records: {model.n_records_}")
    print(f"Exact-match tolerance: {EXACT_MATCH_TOLERANCE}")

    if model.training_info:
        print(f"Fitted at: {model.training_info.get('fitted_at', 'N/A')}")

    print("=" * 50 + "\n")
