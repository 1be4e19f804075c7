"""
Model Evaluation Module
=======================

Scores the estimator against labelled cases.

Features:
    - Exact (±$0.01) and close (±$1.00) match counts
    - Average / maximum error and the combined challenge score
    - MAE, RMSE, R² via scikit-learn
    - Leave-one-out mode so exact matches don't hide the real error
    - Residual and actual vs predicted plots
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import mean_squared_error, mean_absolute_error, r2_score

from .model import NearestNeighborReimbursementModel
from .preprocessing import records_to_frame
from .schemas import HistoricalRecord

logger = logging.getLogger(__name__)

EXACT_THRESHOLD = 0.01
CLOSE_THRESHOLD = 1.0


def predict_cases(
    model: NearestNeighborReimbursementModel,
    records: List[HistoricalRecord],
    leave_one_out: bool = False
) -> np.ndarray:
    """
    Predict every labelled case.

    Args:
        model: Model fitted on `records` (required for leave-one-out)
        records: Cases to predict
        leave_one_out: Predict case i from a model without case i

    Returns:
        Predictions in case order
    """
    if not leave_one_out:
        return model.predict_many([record.input for record in records])

    if model.n_records_ != len(records):
        raise ValueError(
            f"Leave-one-out needs the model fitted on the evaluated cases "
            f"({model.n_records_} fitted, {len(records)} evaluated)"
        )

    predictions = np.empty(len(records), dtype=float)
    for i, record in enumerate(records):
        if i > 0 and i % 100 == 0:
            logger.info(f"Progress: {i}/{len(records)} cases predicted")
        predictions[i] = model.leave_out(i).predict(record.input)

    return predictions


def calculate_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, Any]:
    """
    Calculate evaluation metrics.

    Args:
        y_true: Expected reimbursements
        y_pred: Predicted reimbursements

    Returns:
        Dictionary of metrics
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    if len(y_true) == 0:
        raise ValueError("Cannot evaluate zero cases.")

    errors = np.abs(y_true - y_pred)
    n_cases = len(errors)

    exact_matches = int(np.sum(errors < EXACT_THRESHOLD))
    close_matches = int(np.sum(errors < CLOSE_THRESHOLD))
    average_error = float(np.mean(errors))
    worst_case = int(np.argmax(errors))

    metrics = {
        'n_cases': n_cases,
        'exact_matches': exact_matches,
        'exact_match_pct': exact_matches / n_cases * 100,
        'close_matches': close_matches,
        'close_match_pct': close_matches / n_cases * 100,
        'average_error': average_error,
        'max_error': float(errors[worst_case]),
        'max_error_case': worst_case,
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        # r2 is undefined for a single case
        'r2': float(r2_score(y_true, y_pred)) if n_cases > 1 else float('nan'),
        'score': average_error * 100 + (n_cases - exact_matches) * 0.1,
    }

    return metrics


def build_results_frame(
    records: List[HistoricalRecord],
    y_pred: np.ndarray
) -> pd.DataFrame:
    """Per-case inputs, expected and predicted values, and absolute error."""
    df = records_to_frame(records)
    df.insert(0, 'case', np.arange(1, len(df) + 1))
    df['predicted'] = y_pred
    df['error'] = (df['expected_output'] - df['predicted']).abs()
    return df


def plot_actual_vs_predicted(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    figsize: Tuple[int, int] = (8, 8),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter of expected against predicted reimbursement.

    Args:
        y_true: Expected values
        y_pred: Predicted values
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    ax.scatter(y_true, y_pred, alpha=0.5, s=15)

    min_val = min(np.min(y_true), np.min(y_pred))
    max_val = max(np.max(y_true), np.max(y_pred))
    ax.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=2, label='Perfect')

    ax.set_xlabel('Expected ($)')
    ax.set_ylabel('Predicted ($)')
    ax.set_title('Expected vs Predicted Reimbursement', fontweight='bold')
    ax.legend(loc='upper left')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def plot_residuals(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    figsize: Tuple[int, int] = (10, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram of residuals (expected - predicted).

    Args:
        y_true: Expected values
        y_pred: Predicted values
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    residuals = np.asarray(y_true) - np.asarray(y_pred)

    fig, ax = plt.subplots(figsize=figsize)

    sns.histplot(residuals, kde=len(residuals) > 1, ax=ax, bins=50, alpha=0.7)
    ax.axvline(0, color='red', linestyle='--', linewidth=2, label='Zero')
    ax.axvline(np.mean(residuals), color='green', linestyle='--',
               linewidth=2, label=f'Mean: {np.mean(residuals):.2f}')

    ax.set_xlabel('Residual (Expected - Predicted)')
    ax.set_ylabel('Frequency')
    ax.set_title(f'Residual Distribution (Std: {np.std(residuals):.2f})', fontweight='bold')
    ax.legend()
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Residuals plot saved to {save_path}")

    return fig


def evaluate_model(
    model: NearestNeighborReimbursementModel,
    records: List[HistoricalRecord],
    output_dir: Optional[str] = "reports/",
    leave_one_out: bool = False,
    save_plots: bool = True
) -> Dict[str, Any]:
    """
    Run complete model evaluation and generate all reports.

    Args:
        model: Fitted model
        records: Labelled cases to score
        output_dir: Directory for output files, or None to skip writing
        leave_one_out: Score each case against all the others
        save_plots: Whether to write figures

    Returns:
        Dictionary containing metrics, the per-case frame and file paths
    """
    mode = "leave-one-out" if leave_one_out else "in-sample"
    logger.info(f"Evaluating {len(records)} cases ({mode})")

    y_pred = predict_cases(model, records, leave_one_out=leave_one_out)
    y_true = np.array([record.expected_output for record in records], dtype=float)

    metrics = calculate_metrics(y_true, y_pred)
    metrics['mode'] = mode
    results = build_results_frame(records, y_pred)

    result = {
        'metrics': metrics,
        'results': results,
        'figures': [],
        'metrics_file': None,
        'results_file': None,
    }

    if output_dir is not None:
        output_dir = Path(output_dir)
        figures_dir = output_dir / "figures"
        metrics_dir = output_dir / "metrics"
        metrics_dir.mkdir(parents=True, exist_ok=True)

        metrics_file = metrics_dir / "evaluation_metrics.json"
        with open(metrics_file, 'w') as f:
            json.dump(metrics, f, indent=2)
        logger.info(f"Metrics saved to {metrics_file}")

        results_file = metrics_dir / "evaluation_results.csv"
        results.to_csv(results_file, index=False)

        result['metrics_file'] = str(metrics_file)
        result['results_file'] = str(results_file)

        if save_plots:
            figures_dir.mkdir(parents=True, exist_ok=True)
            plot_actual_vs_predicted(
                y_true, y_pred,
                save_path=str(figures_dir / "eval_actual_vs_predicted.png")
            )
            plot_residuals(
                y_true, y_pred,
                save_path=str(figures_dir / "eval_residuals.png")
            )
            result['figures'] = ["eval_actual_vs_predicted.png", "eval_residuals.png"]
            plt.close('all')

    logger.info(f"Evaluation complete: average error ${metrics['average_error']:.2f}, "
                f"score {metrics['score']:.2f}")

    return result


def print_evaluation_report(
    metrics: Dict[str, Any],
    results: Optional[pd.DataFrame] = None,
    n_worst: int = 5
) -> None:
    """
    Print a formatted evaluation report to console.

    Args:
        metrics: Metrics dictionary from calculate_metrics
        results: Per-case frame, used to list the worst cases
        n_worst: Number of worst cases to list
    """
    n = metrics['n_cases']

    print("\n" + "=" * 70)
    print(f"MODEL EVALUATION REPORT ({metrics.get('mode', 'in-sample')})")
    print("=" * 70)
    print(f"  Total test cases: {n}")
    print(f"  Exact matches (±$0.01): {metrics['exact_matches']} ({metrics['exact_match_pct']:.1f}%)")
    print(f"  Close matches (±$1.00): {metrics['close_matches']} ({metrics['close_match_pct']:.1f}%)")
    print(f"  Average error: ${metrics['average_error']:.2f}")
    print(f"  Maximum error: ${metrics['max_error']:.2f} (case {metrics['max_error_case'] + 1})")
    print(f"  MAE: {metrics['mae']:.2f}  RMSE: {metrics['rmse']:.2f}  R²: {metrics['r2']:.4f}")
    print(f"\n  Score: {metrics['score']:.2f} (lower is better)")

    if results is not None and n_worst > 0 and metrics['exact_matches'] < n:
        print("\nHigh-error cases:")
        print("-" * 70)
        worst = results.nlargest(n_worst, 'error')
        for row in worst.itertuples(index=False):
            print(f"  Case {row.case}: {row.trip_duration_days} days, "
                  f"{row.miles_traveled} miles, ${row.total_receipts_amount} receipts")
            print(f"    Expected: ${row.expected_output:.2f}, "
                  f"Got: ${row.predicted:.2f}, Error: ${row.error:.2f}")

    print("=" * 70 + "\n")
