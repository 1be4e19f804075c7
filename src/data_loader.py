"""
Data Loader Module
==================

Handles configuration, case-file ingestion, validation, and basic data
quality checks.

Functions:
    - load_config: Load YAML configuration file
    - load_cases: Load labelled historical cases from JSON
    - load_queries: Load unlabelled queries from JSON
    - validate_cases: Check data quality constraints
    - get_data_summary: Generate basic statistics
"""

import copy
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Tuple

import numpy as np
import yaml
from pydantic import TypeAdapter, ValidationError

from .preprocessing import FEATURE_COLUMNS, TARGET_COLUMN, records_to_frame
from .schemas import HistoricalRecord, InputTriple

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'data': {
        'cases_path': 'public_cases.json',
        'predictions_path': 'data/predictions/',
    },
    'output': {
        'reports_path': 'reports/',
    },
    'logging': {
        'level': 'WARNING',
        'file': None,
    },
}

_records_adapter = TypeAdapter(List[HistoricalRecord])
_queries_adapter = TypeAdapter(List[InputTriple])


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_config() -> Dict[str, Any]:
    """Fresh copy of the built-in configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Keys missing from the file fall back to DEFAULT_CONFIG.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return _merge(DEFAULT_CONFIG, config)


def _read_json(file_path: Path) -> Any:
    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    with open(file_path, 'r') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{file_path} is not valid JSON: {e}") from e


def load_cases(file_path: str) -> List[HistoricalRecord]:
    """
    Load labelled historical cases.

    Args:
        file_path: Path to a JSON array of {"input": {...}, "expected_output": x}

    Returns:
        Records in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid JSON or a record is malformed
    """
    file_path = Path(file_path)
    raw = _read_json(file_path)

    try:
        records = _records_adapter.validate_python(raw)
    except ValidationError as e:
        raise ValueError(f"Malformed case file {file_path}: {e}") from e

    logger.info(f"Loaded {len(records)} cases from {file_path}")
    return records


def load_queries(file_path: str) -> List[InputTriple]:
    """
    Load unlabelled queries.

    Entries may be bare input objects or {"input": {...}} wrappers, so a
    labelled case file also works.

    Args:
        file_path: Path to a JSON array of queries

    Returns:
        Queries in file order
    """
    file_path = Path(file_path)
    raw = _read_json(file_path)

    if isinstance(raw, list):
        raw = [item['input'] if isinstance(item, dict) and 'input' in item else item
               for item in raw]

    try:
        queries = _queries_adapter.validate_python(raw)
    except ValidationError as e:
        raise ValueError(f"Malformed query file {file_path}: {e}") from e

    logger.info(f"Loaded {len(queries)} queries from {file_path}")
    return queries


def validate_cases(
    records: List[HistoricalRecord],
    strict: bool = True
) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate data quality constraints for the historical cases.

    Checks:
        - At least one record
        - Duplicate inputs (exact matches resolve to the first one)
        - Duplicate inputs with different outputs
        - Outliers beyond 4 standard deviations

    Args:
        records: Records to validate
        strict: If True, raise errors on validation failure

    Returns:
        Tuple of (is_valid, validation_report)
    """
    df = records_to_frame(records)

    report = {
        "total_rows": len(df),
        "issues": []
    }

    # Check 1: A prediction needs at least one neighbor
    if df.empty:
        report["issues"].append("No records found")

    # Check 2: Duplicate inputs
    duplicated_inputs = df.duplicated(subset=FEATURE_COLUMNS)
    duplicates = int(duplicated_inputs.sum())
    if duplicates > 0:
        issue = f"Duplicate inputs found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

        # Check 3: Conflicting duplicates
        outputs_per_input = df.groupby(FEATURE_COLUMNS)[TARGET_COLUMN].nunique()
        conflicts = int((outputs_per_input > 1).sum())
        if conflicts > 0:
            issue = f"Inputs with conflicting outputs: {conflicts}"
            report["issues"].append(issue)
            logger.warning(issue)

    # Check 4: Outliers
    for col in FEATURE_COLUMNS + [TARGET_COLUMN]:
        if len(df) < 2:
            break
        col_std = df[col].std()
        if not np.isfinite(col_std) or col_std == 0:
            continue
        col_mean = df[col].mean()
        outliers = int(((df[col] - col_mean).abs() > 4 * col_std).sum())
        if outliers > 0:
            issue = f"Column '{col}' has {outliers} potential outliers (>4 std)"
            report["issues"].append(issue)
            logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def get_data_summary(records: List[HistoricalRecord]) -> Dict[str, Any]:
    """
    Generate summary statistics for the cases.

    Args:
        records: Records to summarize

    Returns:
        Dictionary containing summary statistics
    """
    df = records_to_frame(records)

    summary = {
        "n_records": len(df),
        "columns": list(df.columns),
        "statistics": {}
    }

    if df.empty:
        return summary

    for col in df.columns:
        summary["statistics"][col] = {
            "count": int(df[col].count()),
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "50%": float(df[col].quantile(0.50)),
            "max": float(df[col].max()),
        }

    return summary


def print_data_summary(records: List[HistoricalRecord]) -> None:
    """
    Print a formatted summary of the cases to console.

    Args:
        records: Records to summarize
    """
    summary = get_data_summary(records)

    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
    print("=" * 60)
    print(f"Records: {summary['n_records']}")
    print("\nBasic Statistics:")
    print("-" * 60)
    print(f"{'Column':<24} {'Mean':>8} {'Std':>8} {'Min':>8} {'Median':>8} {'Max':>8}")

    for col, stats in summary['statistics'].items():
        print(f"{col:<24} {stats['mean']:>8.2f} {stats['std']:>8.2f} {stats['min']:>8.2f} "
              f"{stats['50%']:>8.2f} {stats['max']:>8.2f}")

    print("=" * 60 + "\n")
