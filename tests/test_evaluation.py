"""
Test Suite for Evaluation Module
================================

Tests for scoring metrics, leave-one-out prediction and report output.
"""

import json

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.evaluation import (
    build_results_frame,
    calculate_metrics,
    evaluate_model,
    predict_cases,
    print_evaluation_report,
)
from src.model import train_model
from src.schemas import HistoricalRecord, InputTriple


@pytest.fixture
def records():
    """Synthetic cases with distinct inputs."""
    np.random.seed(42)
    n_samples = 40
    days = np.random.randint(1, 15, n_samples)
    miles = np.round(np.random.uniform(0, 1200, n_samples), 2)
    receipts = np.round(np.random.uniform(0, 2500, n_samples), 2)
    outputs = np.round(100 * days + 0.5 * miles + 0.4 * receipts, 2)

    return [
        HistoricalRecord(
            input=InputTriple(
                trip_duration_days=int(d),
                miles_traveled=float(m),
                total_receipts_amount=float(r)
            ),
            expected_output=float(o)
        )
        for d, m, r, o in zip(days, miles, receipts, outputs)
    ]


class TestCalculateMetrics:
    """Tests for calculate_metrics."""

    def test_counts_and_score(self):
        y_true = np.array([100.0, 200.0, 300.0, 400.0])
        y_pred = np.array([100.005, 200.5, 310.0, 400.0])

        metrics = calculate_metrics(y_true, y_pred)

        assert metrics['n_cases'] == 4
        assert metrics['exact_matches'] == 2
        assert metrics['close_matches'] == 3
        assert metrics['exact_match_pct'] == pytest.approx(50.0)
        assert metrics['average_error'] == pytest.approx(10.505 / 4)
        assert metrics['max_error'] == pytest.approx(10.0)
        assert metrics['max_error_case'] == 2
        assert metrics['score'] == pytest.approx(10.505 / 4 * 100 + 2 * 0.1)

    def test_perfect(self):
        y = np.array([1.0, 2.0, 3.0])
        metrics = calculate_metrics(y, y)

        assert metrics['exact_matches'] == 3
        assert metrics['score'] == 0.0
        assert metrics['r2'] == pytest.approx(1.0)

    def test_empty(self):
        with pytest.raises(ValueError, match="zero cases"):
            calculate_metrics(np.array([]), np.array([]))


class TestPredictCases:
    """Tests for predict_cases."""

    def test_in_sample_is_exact(self, records):
        """Every case finds itself as an exact match."""
        model = train_model(records)
        predictions = predict_cases(model, records)

        np.testing.assert_array_equal(
            predictions, [r.expected_output for r in records]
        )

    def test_leave_one_out_excludes_self(self, records):
        """Leave-one-out predictions come from the other cases."""
        model = train_model(records)
        predictions = predict_cases(model, records, leave_one_out=True)

        expected = [r.expected_output for r in records]
        assert not np.allclose(predictions, expected)
        assert predictions[0] == pytest.approx(
            model.leave_out(0).predict(records[0].input)
        )

    def test_leave_one_out_needs_matching_model(self, records):
        model = train_model(records[:10])

        with pytest.raises(ValueError, match="Leave-one-out"):
            predict_cases(model, records, leave_one_out=True)


class TestEvaluateModel:
    """Tests for evaluate_model."""

    def test_writes_reports(self, records, tmp_path):
        model = train_model(records)
        result = evaluate_model(model, records, output_dir=str(tmp_path), leave_one_out=True)

        metrics_file = Path(result['metrics_file'])
        assert metrics_file.exists()
        assert json.loads(metrics_file.read_text())['n_cases'] == 40
        assert Path(result['results_file']).exists()
        for name in result['figures']:
            assert (tmp_path / "figures" / name).exists()
        assert result['metrics']['mode'] == "leave-one-out"

    def test_without_output(self, records):
        model = train_model(records)
        result = evaluate_model(model, records, output_dir=None)

        assert result['metrics_file'] is None
        assert result['figures'] == []
        assert result['metrics']['exact_matches'] == 40

    def test_results_frame(self, records):
        y_pred = np.array([r.expected_output + 1.0 for r in records])
        df = build_results_frame(records, y_pred)

        assert df['case'].tolist()[:3] == [1, 2, 3]
        np.testing.assert_allclose(df['error'], 1.0)

    def test_report_prints(self, records, capsys):
        model = train_model(records)
        result = evaluate_model(model, records, output_dir=None, leave_one_out=True)

        print_evaluation_report(result['metrics'], result['results'], n_worst=3)
        out = capsys.readouterr().out

        assert "MODEL EVALUATION REPORT (leave-one-out)" in out
        assert "High-error cases:" in out
        assert "Score:" in out


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
