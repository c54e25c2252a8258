"""
Data Loader Module
==================

Handles CSV ingestion, validation, and basic data quality checks for the
listings dataset.

Functions:
    - load_config: Load YAML configuration file
    - load_data: Load the listings CSV and check required columns
    - validate_data: Check data quality constraints
    - get_data_summary: Generate basic statistics
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd
import numpy as np
import yaml

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    'price',
    'neighbourhood_group',
    'room_type',
    'availability_365',
    'reviews_per_month',
    'calculated_host_listings_count',
]

NUMERIC_COLUMNS = [
    'price',
    'minimum_nights',
    'number_of_reviews',
    'reviews_per_month',
    'calculated_host_listings_count',
    'availability_365',
    'latitude',
    'longitude',
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
        config = yaml.safe_load(f)

    logger.info(f"Loaded configuration from {config_path}")
    return config or {}


def load_data(
    file_path: str,
    required_columns: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Load the listings CSV and make sure the columns the report needs exist.

    Args:
        file_path: Path to the CSV file
        required_columns: Columns that must be present (default: REQUIRED_COLUMNS)

    Returns:
        DataFrame with one row per listing

    Raises:
        FileNotFoundError: If data file doesn't exist
        ValueError: If required columns are missing
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(file_path)
    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    if required_columns is None:
        required_columns = REQUIRED_COLUMNS

    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ValueError(
            f"Missing required columns: {missing}. "
            f"Columns found: {list(df.columns)}"
        )

    return df


def validate_data(
    df: pd.DataFrame,
    strict: bool = True,
    required_columns: Optional[List[str]] = None
) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate data quality constraints for the listings table.

    Checks:
        - Required columns are present
        - Numeric columns hold numbers
        - Missing values per column
        - Duplicate rows
        - Non-positive prices (log-price undefined)

    Args:
        df: DataFrame to validate
        strict: If True, raise errors on validation failure
        required_columns: Columns that must be present (default: REQUIRED_COLUMNS)

    Returns:
        Tuple of (is_valid, validation_report)
    """
    if required_columns is None:
        required_columns = REQUIRED_COLUMNS

    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "column_names": list(df.columns),
        "issues": []
    }

    # Check 1: Required columns
    missing_cols = [col for col in required_columns if col not in df.columns]
    if missing_cols:
        issue = f"Missing required columns: {missing_cols}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 2: Numeric columns should be numerical
    non_numeric_cols = [
        col for col in NUMERIC_COLUMNS
        if col in df.columns and not pd.api.types.is_numeric_dtype(df[col])
    ]
    if non_numeric_cols:
        issue = f"Non-numeric values in numeric columns: {non_numeric_cols}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 3: Missing values
    missing_counts = df.isnull().sum()
    total_missing = missing_counts.sum()
    if total_missing > 0:
        missing_pct = (total_missing / (df.shape[0] * df.shape[1])) * 100
        issue = f"Missing values: {total_missing} ({missing_pct:.2f}%)"
        report["issues"].append(issue)
        report["missing_by_column"] = {
            col: int(count) for col, count in missing_counts[missing_counts > 0].items()
        }
        logger.warning(issue)

    # Check 4: Duplicate rows
    duplicates = int(df.duplicated().sum())
    if duplicates > 0:
        issue = f"Duplicate rows found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 5: Prices must be positive for the log transform
    if 'price' in df.columns:
        price = pd.to_numeric(df['price'], errors='coerce')
        non_positive = int((price <= 0).sum())
        if non_positive > 0:
            issue = f"Listings with non-positive price: {non_positive}"
            report["issues"].append(issue)
            logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def get_data_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Generate summary statistics for the dataset.

    Args:
        df: DataFrame to summarize

    Returns:
        Dictionary containing summary statistics
    """
    summary = {
        "shape": df.shape,
        "columns": list(df.columns),
        "dtypes": df.dtypes.astype(str).to_dict(),
        "memory_usage_mb": df.memory_usage(deep=True).sum() / 1024 / 1024,
        "statistics": {},
        "categories": {}
    }

    for col in df.select_dtypes(include=[np.number]).columns:
        summary["statistics"][col] = {
            "count": int(df[col].count()),
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "25%": float(df[col].quantile(0.25)),
            "50%": float(df[col].quantile(0.50)),
            "75%": float(df[col].quantile(0.75)),
            "max": float(df[col].max()),
            "skew": float(df[col].skew())
        }

    for col in ('neighbourhood_group', 'room_type'):
        if col in df.columns:
            summary["categories"][col] = df[col].value_counts().to_dict()

    return summary


def print_data_summary(df: pd.DataFrame) -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
    """
    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
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

    numeric = df.select_dtypes(include=[np.number])
    if not numeric.empty:
        print("\nBasic Statistics:")
        print("-" * 40)
        print(numeric.describe().round(4).to_string())
    print("=" * 60 + "\n")
