"""
Prediction Module
=================

Handles reimbursement estimates for single requests and query files.

Features:
    - Single estimate formatted the way the legacy system prints it
    - Batch estimates for a query file with one fitted model
    - Export to a plain results file (one amount per line) and CSV
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

import numpy as np
import pandas as pd

from .model import NearestNeighborReimbursementModel
from .preprocessing import FEATURE_COLUMNS, queries_to_array
from .schemas import InputTriple

logger = logging.getLogger(__name__)


def format_amount(value: float) -> str:
    """Two-decimal rendering used for every printed estimate."""
    return f"{value:.2f}"


def predict_single(
    model: NearestNeighborReimbursementModel,
    trip_duration_days: int,
    miles_traveled: float,
    total_receipts_amount: float
) -> float:
    """
    Estimate one request from raw values.

    Raises:
        pydantic.ValidationError: If a value is negative or the day count
            is not a whole number
    """
    query = InputTriple(
        trip_duration_days=trip_duration_days,
        miles_traveled=miles_traveled,
        total_receipts_amount=total_receipts_amount,
    )
    return model.predict(query)


def export_predictions(
    queries: List[InputTriple],
    predictions: np.ndarray,
    output_path: str
) -> Dict[str, str]:
    """
    Write predictions to a results file and a companion CSV.

    The results file holds one two-decimal amount per line in query order.
    The CSV sits next to it with the same stem.

    Args:
        queries: Queries in order
        predictions: Estimates aligned with queries
        output_path: Path of the results file

    Returns:
        Paths of the written files
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        for value in predictions:
            f.write(format_amount(value) + "\n")

    df = pd.DataFrame(queries_to_array(queries), columns=FEATURE_COLUMNS)
    df['trip_duration_days'] = df['trip_duration_days'].astype(int)
    df['predicted'] = np.round(predictions, 2)
    df.index.name = 'case'

    csv_path = output_path.with_suffix('.csv')
    df.to_csv(csv_path)

    logger.info(f"Predictions exported to {output_path} and {csv_path}")
    return {'results_path': str(output_path), 'csv_path': str(csv_path)}


def run_batch_prediction(
    model: NearestNeighborReimbursementModel,
    queries: List[InputTriple],
    output_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Estimate every query with one fitted model.

    Args:
        model: Fitted model
        queries: Requests to estimate
        output_path: Results file to write (optional)

    Returns:
        Dictionary containing predictions and file paths
    """
    logger.info(f"Generating predictions for {len(queries)} queries...")

    predictions = model.predict_many(queries)

    result = {
        'queries': queries,
        'predictions': predictions,
        'results_path': None,
        'csv_path': None,
    }

    if output_path:
        result.update(export_predictions(queries, predictions, output_path))

    logger.info(f"Batch prediction complete: {len(predictions)} estimates")
    return result


def print_prediction_results(result: Dict[str, Any], limit: int = 10) -> None:
    """
    Print formatted batch results to console.

    Args:
        result: Result dictionary from run_batch_prediction
        limit: Maximum number of rows to show
    """
    queries = result['queries']
    predictions = result['predictions']

    print("\n" + "=" * 70)
    print(f"PREDICTION RESULTS - {len(predictions)} QUERIES")
    print("=" * 70)
    print(f"\n{'Days':<8} {'Miles':<12} {'Receipts':<12} {'Estimate':<12}")
    print("-" * 70)

    for query, value in list(zip(queries, predictions))[:limit]:
        print(f"{query.trip_duration_days:<8} {query.miles_traveled:<12.2f} "
              f"{query.total_receipts_amount:<12.2f} {format_amount(value):<12}")

    if len(predictions) > limit:
        print(f"... {len(predictions) - limit} more")

    print("-" * 70)
    if result.get('results_path'):
        print(f"\nResults written to: {result['results_path']}")
        print(f"CSV written to: {result['csv_path']}")

    print("=" * 70 + "\n")
