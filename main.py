#!/usr/bin/env python3
"""
Travel Reimbursement Estimator - Command Line
=============================================

Estimates a travel reimbursement from trip days, miles and receipts by
blending the closest historical cases.

Commands:
    predict  - Estimate one request and print the amount
    evaluate - Score the estimator against the labelled cases
    batch    - Estimate every query in a JSON file

Usage:
    # Single estimate (prints e.g. 487.25)
    python main.py predict 5 250 150.75

    # Score against the historical cases, each predicted from the others
    python main.py evaluate --leave-one-out

    # Estimate a query file
    python main.py batch --input private_cases.json --output private_results.txt
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Any, Optional

import matplotlib

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

from src.data_loader import default_config, load_config, load_cases, load_queries, validate_cases, print_data_summary
from src.model import train_model, print_model_summary
from src.evaluation import evaluate_model, print_evaluation_report
from src.prediction import format_amount, predict_single, run_batch_prediction, print_prediction_results

matplotlib.use("Agg")

DEFAULT_CONFIG_PATH = "config/config.yaml"


def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """Configure logging; stdout is reserved for results."""
    level_value = logging.getLevelName(str(level).upper())
    if not isinstance(level_value, int):
        raise ValueError(f"Unknown logging level: {level}")

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level_value,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def resolve_config(config_path: str) -> Dict[str, Any]:
    """
    Load the configuration file, falling back to built-in defaults when the
    default path is absent.
    """
    if config_path == DEFAULT_CONFIG_PATH and not Path(config_path).exists():
        return default_config()
    return load_config(config_path)


def run_predict(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    records = load_cases(config['data']['cases_path'])
    model = train_model(records)

    amount = predict_single(
        model,
        args.trip_duration_days,
        args.miles_traveled,
        args.total_receipts_amount
    )
    print(format_amount(amount))
    return 0


def run_evaluate(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    records = load_cases(config['data']['cases_path'])
    print_data_summary(records)

    is_valid, validation_report = validate_cases(records, strict=False)
    if not is_valid:
        print(f"⚠️  Data validation warnings: {validation_report['issues']}")

    model = train_model(records)
    print_model_summary(model)

    output_dir = None if args.no_reports else config['output']['reports_path']
    result = evaluate_model(
        model,
        records,
        output_dir=output_dir,
        leave_one_out=args.leave_one_out
    )
    print_evaluation_report(result['metrics'], result['results'])

    if result['metrics_file']:
        print(f"Metrics saved to: {result['metrics_file']}")
    return 0


def run_batch(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    records = load_cases(config['data']['cases_path'])
    queries = load_queries(args.input)
    model = train_model(records)

    output_path = args.output
    if output_path is None:
        output_path = str(Path(config['data']['predictions_path']) / f"{Path(args.input).stem}_results.txt")

    result = run_batch_prediction(model, queries, output_path=output_path)
    print_prediction_results(result)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Travel reimbursement estimator (weighted nearest neighbors)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py predict 5 250 150.75
  python main.py evaluate --leave-one-out
  python main.py batch --input private_cases.json --output private_results.txt
        """
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        default=None,
        help='Path to the historical cases JSON (overrides config)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    predict = subparsers.add_parser('predict', help='Estimate a single request')
    predict.add_argument('trip_duration_days', type=int)
    predict.add_argument('miles_traveled', type=float)
    predict.add_argument('total_receipts_amount', type=float)
    predict.set_defaults(handler=run_predict)

    evaluate = subparsers.add_parser('evaluate', help='Score against the historical cases')
    evaluate.add_argument(
        '--leave-one-out',
        action='store_true',
        help='Predict each case from all other cases'
    )
    evaluate.add_argument(
        '--no-reports',
        action='store_true',
        help='Skip writing metrics files and figures'
    )
    evaluate.set_defaults(handler=run_evaluate)

    batch = subparsers.add_parser('batch', help='Estimate every query in a JSON file')
    batch.add_argument('--input', '-i', type=str, required=True, help='Query JSON file')
    batch.add_argument('--output', '-o', type=str, default=None, help='Results file')
    batch.set_defaults(handler=run_batch)

    return parser


def main(argv=None) -> int:
    """Main entry point with argument parsing."""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args.config)

        if args.data:
            config['data']['cases_path'] = args.data

        level = 'DEBUG' if args.verbose else config['logging']['level']
        setup_logging(level, config['logging'].get('file'))

        return args.handler(args, config)

    except Exception as e:
        if args.verbose:
            logging.error(f"Run failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
