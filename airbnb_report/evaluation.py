"""
Model Evaluation Module - Phase 4
==================================

Compares the fitted models on the held-out listings.

Features:
    - RMSE, MAE, R² on the log scale, RMSE/MAE in price units
    - Comparison table sorted by RMSE
    - Residual and actual-vs-predicted plots
    - Random forest feature importances
    - Prose conclusion
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

from .model import ListingPriceModel, MODEL_LABELS

logger = logging.getLogger(__name__)


def _panel_axes(n_panels: int, figsize: Tuple[int, int]) -> Tuple[plt.Figure, List[plt.Axes]]:
    fig, axes = plt.subplots(1, n_panels, figsize=figsize, squeeze=False)
    return fig, list(axes.flatten())


def calculate_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """
    Calculate evaluation metrics for one model.

    Args:
        y_true: Actual log-prices
        y_pred: Predicted log-prices

    Returns:
        Dictionary with log-scale rmse/mae/r2 and price-scale rmse/mae
    """
    price_true = np.exp(y_true)
    price_pred = np.exp(y_pred)

    return {
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'r2': float(r2_score(y_true, y_pred)),
        'price_rmse': float(np.sqrt(mean_squared_error(price_true, price_pred))),
        'price_mae': float(mean_absolute_error(price_true, price_pred)),
        'mean_residual': float(np.mean(y_true - y_pred)),
        'n_samples': int(len(y_true))
    }


def build_comparison_table(metrics: Dict[str, Dict[str, float]]) -> pd.DataFrame:
    """
    One row per model, best (lowest log RMSE) first.

    Args:
        metrics: Mapping of model key to calculate_metrics output

    Returns:
        DataFrame indexed by model label
    """
    rows = []
    for name, values in metrics.items():
        rows.append({
            'model': MODEL_LABELS.get(name, name),
            'RMSE': values['rmse'],
            'MAE': values['mae'],
            'R2': values['r2'],
            'RMSE ($)': values['price_rmse'],
            'MAE ($)': values['price_mae'],
        })

    table = pd.DataFrame(rows).set_index('model')
    return table.sort_values('RMSE')


def plot_residuals(
    predictions: Dict[str, np.ndarray],
    y_true: np.ndarray,
    figsize: Tuple[int, int] = (16, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Residuals against fitted values, one panel per model.

    Args:
        predictions: Mapping of model key to predicted log-prices
        y_true: Actual log-prices
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, axes = _panel_axes(len(predictions), figsize)

    for ax, (name, y_pred) in zip(axes, predictions.items()):
        residuals = y_true - y_pred

        ax.scatter(y_pred, residuals, alpha=0.3, s=10)
        ax.axhline(0, color='red', linestyle='--', linewidth=2)

        ax.set_xlabel('Fitted log-price')
        ax.set_ylabel('Residual (Actual - Fitted)')
        ax.set_title(
            f'{MODEL_LABELS.get(name, name)} (Std: {np.std(residuals):.4f})',
            fontsize=10, fontweight='bold'
        )

    plt.suptitle('Residuals vs Fitted - Test Listings', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Residuals plot saved to {save_path}")

    return fig


def plot_actual_vs_predicted(
    predictions: Dict[str, np.ndarray],
    y_true: np.ndarray,
    figsize: Tuple[int, int] = (16, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Actual vs predicted log-price scatter for each model.

    Args:
        predictions: Mapping of model key to predicted log-prices
        y_true: Actual log-prices
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, axes = _panel_axes(len(predictions), figsize)

    for ax, (name, y_pred) in zip(axes, predictions.items()):
        ax.scatter(y_true, y_pred, alpha=0.3, s=10)

        min_val = min(y_true.min(), y_pred.min())
        max_val = max(y_true.max(), y_pred.max())
        ax.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=2, label='Perfect')

        r2 = r2_score(y_true, y_pred)
        rmse = np.sqrt(mean_squared_error(y_true, y_pred))

        ax.set_xlabel('Actual log-price')
        ax.set_ylabel('Predicted log-price')
        ax.set_title(
            f'{MODEL_LABELS.get(name, name)}\nR²={r2:.4f}, RMSE={rmse:.4f}',
            fontsize=10, fontweight='bold'
        )
        ax.legend(loc='upper left', fontsize=8)

    plt.suptitle('Actual vs Predicted - Model Performance', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def plot_error_summary(
    table: pd.DataFrame,
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of RMSE, MAE and R² per model.

    Args:
        table: Comparison table from build_comparison_table
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    models = table.index.tolist()
    x = np.arange(len(models))
    width = 0.6

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].bar(x, table['RMSE'], width, color='steelblue', alpha=0.8)
    axes[0].set_ylabel('RMSE (log-price)')
    axes[0].set_title('Root Mean Squared Error', fontweight='bold')

    axes[1].bar(x, table['MAE'], width, color='coral', alpha=0.8)
    axes[1].set_ylabel('MAE (log-price)')
    axes[1].set_title('Mean Absolute Error', fontweight='bold')

    colors = ['green' if r2 > 0.6 else 'orange' if r2 > 0.4 else 'red' for r2 in table['R2']]
    axes[2].bar(x, table['R2'], width, color=colors, alpha=0.8)
    axes[2].axhline(1.0, color='gray', linestyle=':', alpha=0.5)
    axes[2].set_ylabel('R² Score')
    axes[2].set_title('R² Score', fontweight='bold')
    axes[2].set_ylim([min(0, table['R2'].min() - 0.1), 1.1])

    for ax in axes:
        ax.set_xticks(x)
        ax.set_xticklabels(models, rotation=30, ha='right')

    plt.suptitle('Model Comparison', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Error summary plot saved to {save_path}")

    return fig


def plot_feature_importances(
    importances: np.ndarray,
    feature_names: List[str],
    top_n: int = 15,
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Horizontal bar chart of the most important features.

    Args:
        importances: Importance per feature
        feature_names: Names aligned with importances
        top_n: Number of features to show
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    ranking = (
        pd.Series(importances, index=feature_names)
        .sort_values(ascending=False)
        .head(top_n)
    )

    fig, ax = plt.subplots(figsize=figsize)
    sns.barplot(x=ranking.values, y=ranking.index, ax=ax, color='steelblue')
    ax.set_xlabel('Mean decrease in impurity')
    ax.set_ylabel('')
    ax.set_title('Random Forest Feature Importance', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Feature importance plot saved to {save_path}")

    return fig


def evaluate_models(
    models: Dict[str, ListingPriceModel],
    X_test: np.ndarray,
    y_test: np.ndarray,
    feature_names: Optional[List[str]] = None,
    figures_dir: str = "reports/figures/",
    metrics_dir: str = "reports/metrics/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Score every model on the test listings and write the report artifacts.

    Args:
        models: Trained models keyed by name
        X_test: Test features
        y_test: Test log-prices
        feature_names: Design matrix column names, enables the importance plot
        figures_dir: Directory for evaluation figures
        metrics_dir: Directory for the metrics JSON and comparison CSV
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing metrics, comparison table, figures and best model key
    """
    figures_dir = Path(figures_dir)
    metrics_dir = Path(metrics_dir)

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING MODEL EVALUATION (Phase 4)")
    logger.info("=" * 60)

    predictions = {name: model.predict(X_test) for name, model in models.items()}
    metrics = {
        name: calculate_metrics(y_test, y_pred) for name, y_pred in predictions.items()
    }
    table = build_comparison_table(metrics)

    metrics_file = metrics_dir / "evaluation_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump(metrics, f, indent=2)
    logger.info(f"Metrics saved to {metrics_file}")

    table_file = metrics_dir / "model_comparison.csv"
    table.to_csv(table_file)
    logger.info(f"Comparison table saved to {table_file}")

    figures = []

    logger.info("Generating residual plot...")
    plot_residuals(
        predictions, y_test,
        save_path=str(figures_dir / "eval_residuals.png")
    )
    figures.append("eval_residuals.png")

    logger.info("Generating Actual vs Predicted plots...")
    plot_actual_vs_predicted(
        predictions, y_test,
        save_path=str(figures_dir / "eval_actual_vs_predicted.png")
    )
    figures.append("eval_actual_vs_predicted.png")

    logger.info("Generating error summary...")
    plot_error_summary(
        table,
        save_path=str(figures_dir / "eval_error_summary.png")
    )
    figures.append("eval_error_summary.png")

    if feature_names is not None and 'random_forest' in models:
        logger.info("Generating feature importances...")
        plot_feature_importances(
            models['random_forest'].get_feature_importances(),
            feature_names,
            save_path=str(figures_dir / "eval_feature_importances.png")
        )
        figures.append("eval_feature_importances.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    best_label = table.index[0]
    best_model = next(name for name in metrics if MODEL_LABELS.get(name, name) == best_label)

    result = {
        'metrics': metrics,
        'comparison': table,
        'figures': figures,
        'best_model': best_model,
        'metrics_file': str(metrics_file),
        'comparison_file': str(table_file)
    }

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info(f"  Best model: {best_label}")
    logger.info(f"  RMSE: {metrics[best_model]['rmse']:.6f}")
    logger.info(f"  R²: {metrics[best_model]['r2']:.6f}")
    logger.info("=" * 60)

    return result


def print_comparison_table(table: pd.DataFrame) -> None:
    """
    Print the model comparison table to console.

    Args:
        table: Comparison table from build_comparison_table
    """
    print("\n" + "=" * 70)
    print("MODEL COMPARISON (test listings, target = log-price)")
    print("=" * 70)
    print(f"{'Model':<20} {'RMSE':<10} {'MAE':<10} {'R²':<10} {'RMSE ($)':<10} {'MAE ($)':<10}")
    print("-" * 70)

    for label, row in table.iterrows():
        print(f"{label:<20} {row['RMSE']:<10.4f} {row['MAE']:<10.4f} {row['R2']:<10.4f} "
              f"{row['RMSE ($)']:<10.2f} {row['MAE ($)']:<10.2f}")

    print("=" * 70 + "\n")


def write_conclusion(table: pd.DataFrame) -> str:
    """
    Short prose conclusion for the report.

    Args:
        table: Comparison table from build_comparison_table

    Returns:
        Conclusion paragraph
    """
    best = table.index[0]
    best_row = table.iloc[0]

    sentences = [
        f"{best} gives the lowest test error "
        f"(RMSE {best_row['RMSE']:.3f} on log-price, R² {best_row['R2']:.3f})."
    ]

    baseline = MODEL_LABELS['linear_regression']
    if best != baseline and baseline in table.index:
        base_rmse = table.loc[baseline, 'RMSE']
        gain = (base_rmse - best_row['RMSE']) / base_rmse * 100
        sentences.append(
            f"That is {gain:.1f}% below the linear regression baseline "
            f"(RMSE {base_rmse:.3f})."
        )

    r2 = best_row['R2']
    if r2 > 0.6:
        sentences.append("The features explain most of the variation in log-price.")
    elif r2 > 0.4:
        sentences.append(
            "Room type and location explain a fair share of log-price, "
            "but much of the variation is left to unobserved listing traits."
        )
    else:
        sentences.append(
            "Most of the variation in log-price is not captured by these features; "
            "richer listing attributes would be needed."
        )

    return " ".join(sentences)


def print_conclusion(table: pd.DataFrame) -> None:
    """Print the prose conclusion to console."""
    print("=" * 70)
    print("CONCLUSION")
    print("=" * 70)
    print(write_conclusion(table))
    print("=" * 70 + "\n")
