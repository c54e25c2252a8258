#!/usr/bin/env python3
"""
Airbnb Listings Price Report - Main Pipeline
=============================================

Loads the listings CSV, cleans it, plots it, and compares three log-price
regressors.

Phases:
    1. EDA - Descriptive plots of the cleaned listings
    2. Preprocessing - Design matrix and train/test split
    3. Training - Linear regression, decision tree, random forest
    4. Evaluation - Comparison table, residual plot, conclusion

Usage:
    # Run the complete report
    python main.py --data data/raw/AB_NYC_2019.csv

    # Run specific phase
    python main.py --data data/raw/AB_NYC_2019.csv --phase eda

    # Run with custom config
    python main.py --data data/raw/AB_NYC_2019.csv --config config/config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

import pandas as pd

from airbnb_report.data_loader import load_config, load_data, validate_data, print_data_summary
from airbnb_report.eda import generate_eda_report, print_correlation_insights
from airbnb_report.preprocessing import clean_listings, preprocess_pipeline, print_preprocessing_summary
from airbnb_report.model import train_models, print_model_summary, ListingPriceModel
from airbnb_report.evaluation import evaluate_models, print_comparison_table, print_conclusion


def setup_logging(level: str = "INFO", log_dir: str = "logs/") -> None:
    """Configure logging for the pipeline."""
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = Path(log_dir) / f'report_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def run_loading(data_path: str, config: Dict[str, Any]) -> pd.DataFrame:
    """
    Load, validate and clean the listings.

    Args:
        data_path: Path to the listings CSV
        config: Configuration dictionary

    Returns:
        Cleaned listings with log_price
    """
    print("\n📊 Loading data...")
    df = load_data(data_path, required_columns=config.get('data', {}).get('required_columns'))
    print_data_summary(df)

    is_valid, _ = validate_data(
        df,
        strict=False,
        required_columns=config.get('data', {}).get('required_columns')
    )
    if not is_valid:
        print("⚠️  Data validation warnings detected. Cleaning will handle them...")

    clean_config = config.get('cleaning', {})
    feature_config = config.get('features', {})
    df_clean = clean_listings(
        df,
        min_price=clean_config.get('min_price', 0.0),
        max_price=clean_config.get('max_price'),
        max_minimum_nights=clean_config.get('max_minimum_nights'),
        numeric_features=feature_config.get('numeric'),
        categorical_features=feature_config.get('categorical'),
        target=feature_config.get('target', 'log_price')
    )
    print(f"✓ Cleaning kept {len(df_clean)} of {len(df)} listings")

    return df_clean


def run_eda(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 1: Exploratory Data Analysis.

    Args:
        df: Cleaned listings
        config: Configuration dictionary

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 1: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')
    feature_config = config.get('features', {})
    target = feature_config.get('target', 'log_price')

    report = generate_eda_report(
        df,
        output_dir=output_dir,
        show_plots=False,
        numeric_features=feature_config.get('numeric'),
        target=target
    )

    corr_df = pd.DataFrame(report["correlation_matrix"])
    print_correlation_insights(corr_df, target=target)

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_preprocessing(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 2: Data Preprocessing.

    Args:
        df: Cleaned listings
        config: Configuration dictionary

    Returns:
        Preprocessing result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 2: DATA PREPROCESSING")
    print("=" * 70)

    feature_config = config.get('features', {})
    split_config = config.get('split', {})

    result = preprocess_pipeline(
        df,
        numeric_features=feature_config.get('numeric'),
        categorical_features=feature_config.get('categorical'),
        target=feature_config.get('target', 'log_price'),
        test_size=split_config.get('test_size', 0.2),
        random_state=split_config.get('random_state', 42)
    )

    print_preprocessing_summary(result)

    return result


def run_training(
    prep_result: Dict[str, Any],
    config: Dict[str, Any]
) -> Dict[str, ListingPriceModel]:
    """
    Execute Phase 3: Model Training.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Trained models keyed by name
    """
    print("\n" + "=" * 70)
    print("PHASE 3: MODEL TRAINING")
    print("=" * 70)

    output_config = config.get('output', {})
    save_dir = output_config.get('models_path', 'models/') if output_config.get('save_models') else None

    models = train_models(
        prep_result['X_train'],
        prep_result['y_train'],
        config,
        save_dir=save_dir
    )

    print_model_summary(models)

    return models


def run_evaluation(
    models: Dict[str, ListingPriceModel],
    prep_result: Dict[str, Any],
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 4: Model Evaluation.

    Args:
        models: Trained models
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 4: MODEL EVALUATION")
    print("=" * 70)

    figures_dir = config.get('output', {}).get('figures_path', 'reports/figures/')
    metrics_dir = Path(figures_dir).parent / "metrics"

    result = evaluate_models(
        models,
        prep_result['X_test'],
        prep_result['y_test'],
        feature_names=prep_result['feature_names'],
        figures_dir=figures_dir,
        metrics_dir=str(metrics_dir),
        show_plots=False
    )

    print_comparison_table(result['comparison'])
    print_conclusion(result['comparison'])

    return result


def run_full_pipeline(
    data_path: str,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute the complete report.

    Args:
        data_path: Path to input CSV file
        config_path: Path to configuration file
        log_level: Overrides the configured logging level

    Returns:
        Dictionary containing all phase results
    """
    print("\n" + "=" * 70)
    print("AIRBNB LISTINGS PRICE REPORT")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    config = load_config(config_path)
    log_config = config.get('logging', {})
    setup_logging(log_level or log_config.get('level', 'INFO'), log_config.get('log_dir', 'logs/'))

    df = run_loading(data_path, config)

    results = {
        'config': config,
        'data_shape': df.shape
    }

    results['eda'] = run_eda(df, config)
    results['preprocessing'] = run_preprocessing(df, config)
    results['models'] = run_training(results['preprocessing'], config)
    results['evaluation'] = run_evaluation(
        results['models'],
        results['preprocessing'],
        config
    )

    best = results['evaluation']['best_model']
    print("\n" + "=" * 70)
    print("REPORT COMPLETE")
    print("=" * 70)
    print(f"  • Listings analysed: {df.shape[0]}")
    print(f"  • Best model: {results['models'][best].label}")
    print(f"  • Best R²: {results['evaluation']['metrics'][best]['r2']:.4f}")
    print(f"  • Comparison table: {results['evaluation']['comparison_file']}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    data_path: str,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute a single phase of the report.

    Args:
        phase: Phase to run ('eda', 'preprocess', 'train', 'evaluate')
        data_path: Path to input CSV file
        config_path: Path to configuration file
        log_level: Overrides the configured logging level

    Returns:
        Phase result dictionary
    """
    config = load_config(config_path)
    log_config = config.get('logging', {})
    setup_logging(log_level or log_config.get('level', 'INFO'), log_config.get('log_dir', 'logs/'))

    df = run_loading(data_path, config)

    if phase == 'eda':
        return run_eda(df, config)

    elif phase == 'preprocess':
        return run_preprocessing(df, config)

    elif phase == 'train':
        prep_result = run_preprocessing(df, config)
        return {'models': run_training(prep_result, config), 'preprocessing': prep_result}

    elif phase == 'evaluate':
        prep_result = run_preprocessing(df, config)
        models = run_training(prep_result, config)
        return run_evaluation(models, prep_result, config)

    else:
        raise ValueError(f"Unknown phase: {phase}. Choose from: eda, preprocess, train, evaluate")


def main(argv=None) -> int:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Airbnb Listings Price Report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --data data/raw/AB_NYC_2019.csv
  python main.py --data data/raw/AB_NYC_2019.csv --phase eda
  python main.py --data data/raw/AB_NYC_2019.csv --config config/custom.yaml
        """
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        required=True,
        help='Path to the listings CSV file'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['eda', 'preprocess', 'train', 'evaluate', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if not Path(args.data).exists():
        print(f"Error: Data file not found: {args.data}")
        print("\nPlace the listings CSV at the specified location.")
        print("Expected columns include: price, neighbourhood_group, room_type, availability_365")
        return 1

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        return 1

    log_level = "DEBUG" if args.verbose else None

    try:
        if args.phase == 'all':
            run_full_pipeline(args.data, args.config, log_level=log_level)
        else:
            run_single_phase(args.phase, args.data, args.config, log_level=log_level)

        return 0

    except Exception as e:
        logging.error(f"Report failed: {e}", exc_info=True)
        print(f"\n❌ Report failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
