"""
Data Loader Module
==================

Handles configuration loading, CSV ingestion and basic data quality checks
for the Play Store exports.

Functions:
    - load_config: Load YAML configuration file
    - load_data: Load a CSV file, optionally checking required columns
    - load_apps / load_reviews: Load the two Play Store exports
    - validate_data: Check data quality constraints
    - print_data_summary: Console summary of a table
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Sequence, Tuple

import pandas as pd
import yaml

logger = logging.getLogger(__name__)

APP_COLUMNS = [
    'App', 'Category', 'Rating', 'Reviews', 'Size', 'Installs',
    'Type', 'Price', 'Content Rating', 'Genres', 'Last Updated'
]
REVIEW_COLUMNS = [
    'App', 'Translated_Review', 'Sentiment',
    'Sentiment_Polarity', 'Sentiment_Subjectivity'
]


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

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
    return config


def load_data(
    file_path: str,
    required_columns: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Load CSV data and check that the required columns are present.

    Every column is read as text; typing happens in preprocessing.

    Args:
        file_path: Path to the CSV file
        required_columns: Columns that must be present (optional)

    Returns:
        DataFrame containing the loaded data

    Raises:
        FileNotFoundError: If data file doesn't exist
        ValueError: If required columns are missing
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(file_path, dtype=str, keep_default_na=True)
    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    if required_columns is not None:
        missing = [col for col in required_columns if col not in df.columns]
        if missing:
            raise ValueError(
                f"Missing required columns {missing} in {file_path}. "
                f"Columns: {list(df.columns)}"
            )

    return df


def load_apps(file_path: str) -> pd.DataFrame:
    """Load the apps export (one row per app listing)."""
    return load_data(file_path, required_columns=APP_COLUMNS)


def load_reviews(file_path: str) -> pd.DataFrame:
    """Load the user reviews export (one row per review)."""
    return load_data(file_path, required_columns=REVIEW_COLUMNS)


def validate_data(df: pd.DataFrame, strict: bool = True) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate data quality constraints.

    Checks:
        - Missing values per column
        - Duplicate rows

    Args:
        df: DataFrame to validate
        strict: If True, raise errors on validation failure

    Returns:
        Tuple of (is_valid, validation_report)
    """
    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "column_names": list(df.columns),
        "issues": []
    }

    if df.empty:
        report["issues"].append("Table is empty")

    missing_counts = df.isnull().sum()
    total_missing = int(missing_counts.sum())
    if total_missing > 0:
        missing_pct = (total_missing / (df.shape[0] * df.shape[1])) * 100
        issue = f"Missing values: {total_missing} ({missing_pct:.2f}%)"
        report["issues"].append(issue)
        report["missing_by_column"] = missing_counts[missing_counts > 0].to_dict()
        logger.warning(issue)

    duplicates = int(df.duplicated().sum())
    if duplicates > 0:
        issue = f"Duplicate rows found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def print_data_summary(df: pd.DataFrame, title: str = "DATASET SUMMARY") -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
        title: Heading for the summary
    """
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"Memory Usage: {df.memory_usage(deep=True).sum() / 1024:.2f} KB")
    print("\nColumn Information:")
    print("-" * 40)

    for col in df.columns:
        dtype = df[col].dtype
        non_null = df[col].count()
        null_pct = (1 - non_null / len(df)) * 100 if len(df) else 0.0
        print(f"  {col}: {dtype} | {non_null} non-null ({null_pct:.1f}% missing)")

    print("=" * 60 + "\n")
