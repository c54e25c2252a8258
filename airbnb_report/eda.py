"""
Exploratory Data Analysis (EDA) Module - Phase 1
=================================================

Descriptive plots of the cleaned listings.

Functions:
    - plot_price_distribution: Raw vs log price histograms
    - plot_price_by_category: Log-price box plots per category level
    - plot_listing_counts: Listings per borough split by room type
    - plot_correlation_matrix: Correlation heatmap
    - plot_geographic_scatter: Listings on a lat/lon map coloured by log-price
    - plot_feature_relationships: Numeric features against log-price
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

from .preprocessing import NUMERIC_FEATURES, TARGET

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")


def _save(fig: plt.Figure, save_path: Optional[str], what: str) -> None:
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"{what} saved to {save_path}")


def plot_price_distribution(
    df: pd.DataFrame,
    target: str = TARGET,
    figsize: Tuple[int, int] = (14, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram + KDE of nightly price and of log-price side by side.

    The log transform is what makes the target usable for least squares,
    so the normality p-value is shown on both panels.

    Args:
        df: Cleaned listings with 'price' and the log-price column
        target: Log-price column
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, axes = plt.subplots(1, 2, figsize=figsize)

    for ax, col in zip(axes, ['price', target]):
        values = df[col].dropna()
        sns.histplot(values, kde=True, ax=ax, bins=50, alpha=0.7)

        mean_val = values.mean()
        median_val = values.median()
        ax.axvline(mean_val, color='red', linestyle='--', label=f'Mean: {mean_val:.2f}')
        ax.axvline(median_val, color='green', linestyle='--', label=f'Median: {median_val:.2f}')

        title = f'{col} (skew={values.skew():.2f})'
        if len(values) >= 8:
            _, p_value = stats.normaltest(values)
            title = f'{col} (skew={values.skew():.2f}, normality p={p_value:.3f})'

        ax.set_title(title, fontsize=10, fontweight='bold')
        ax.legend(fontsize=8)

    plt.suptitle('Price Distribution', fontsize=14, fontweight='bold')
    plt.tight_layout()

    _save(fig, save_path, "Price distribution plot")
    return fig


def plot_price_by_category(
    df: pd.DataFrame,
    column: str,
    target: str = TARGET,
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Box plots of log-price for each level of a categorical column.

    Args:
        df: Cleaned listings
        column: Categorical column, e.g. 'neighbourhood_group' or 'room_type'
        target: Log-price column
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    order = df.groupby(column)[target].median().sort_values(ascending=False).index

    fig, ax = plt.subplots(figsize=figsize)
    sns.boxplot(data=df, x=column, y=target, order=order, ax=ax)

    ax.set_title(f'Log-price by {column}', fontsize=14, fontweight='bold')
    ax.set_xlabel(column)
    ax.set_ylabel('log(price)')
    plt.tight_layout()

    _save(fig, save_path, f"Log-price by {column} plot")
    return fig


def plot_listing_counts(
    df: pd.DataFrame,
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Number of listings per neighbourhood group, split by room type.

    Args:
        df: Cleaned listings
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)
    order = df['neighbourhood_group'].value_counts().index
    sns.countplot(data=df, x='neighbourhood_group', hue='room_type', order=order, ax=ax)

    ax.set_title('Listings per Neighbourhood Group', fontsize=14, fontweight='bold')
    ax.set_xlabel('neighbourhood_group')
    ax.set_ylabel('Listings')
    plt.tight_layout()

    _save(fig, save_path, "Listing counts plot")
    return fig


def plot_correlation_matrix(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    method: str = 'pearson',
    target: str = TARGET,
    figsize: Tuple[int, int] = (10, 8),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Create a correlation heatmap for the numeric features and log-price.

    Args:
        df: Cleaned listings
        columns: Columns to correlate (default: numeric features + log_price)
        method: Correlation method ('pearson', 'spearman', 'kendall')
        target: Log-price column appended to the default columns
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    if columns is None:
        columns = [c for c in NUMERIC_FEATURES + [target] if c in df.columns]

    corr_matrix = df[columns].corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.3f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    _save(fig, save_path, "Correlation matrix")
    return fig, corr_matrix


def plot_geographic_scatter(
    df: pd.DataFrame,
    target: str = TARGET,
    figsize: Tuple[int, int] = (10, 8),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Listings placed by latitude/longitude and coloured by log-price.

    Args:
        df: Cleaned listings with 'latitude' and 'longitude'
        target: Log-price column used for the colour scale
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)
    points = ax.scatter(
        df['longitude'], df['latitude'],
        c=df[target], cmap='viridis', s=4, alpha=0.5
    )
    fig.colorbar(points, ax=ax, label='log(price)')

    ax.set_xlabel('Longitude')
    ax.set_ylabel('Latitude')
    ax.set_title('Listing Locations by Log-price', fontsize=14, fontweight='bold')
    plt.tight_layout()

    _save(fig, save_path, "Geographic scatter")
    return fig


def plot_feature_relationships(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    target: str = TARGET,
    figsize: Tuple[int, int] = (14, 10),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter of each numeric feature against log-price.

    Args:
        df: Cleaned listings
        columns: Numeric features to plot (default: NUMERIC_FEATURES present)
        target: Log-price column on the y axis
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    if columns is None:
        columns = [c for c in NUMERIC_FEATURES if c in df.columns]

    n_cols = len(columns)
    n_rows = max((n_cols + 1) // 2, 1)

    fig, axes = plt.subplots(n_rows, 2, figsize=figsize, squeeze=False)
    axes = axes.flatten()

    for idx, col in enumerate(columns):
        ax = axes[idx]
        ax.scatter(df[col], df[target], alpha=0.2, s=6)
        ax.set_title(f'{col} (r={df[col].corr(df[target]):.3f})', fontsize=10, fontweight='bold')
        ax.set_xlabel(col)
        ax.set_ylabel('log(price)')

    # Hide unused subplots
    for idx in range(len(columns), len(axes)):
        axes[idx].set_visible(False)

    plt.suptitle('Numeric Features vs Log-price', fontsize=14, fontweight='bold')
    plt.tight_layout()

    _save(fig, save_path, "Feature relationship plots")
    return fig


def generate_eda_report(
    df: pd.DataFrame,
    output_dir: str = "reports/figures/",
    show_plots: bool = False,
    numeric_features: Optional[List[str]] = None,
    target: str = TARGET
) -> Dict[str, Any]:
    """
    Generate the complete EDA report with all visualizations.

    Args:
        df: Cleaned listings (output of clean_listings)
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively
        numeric_features: Numeric columns to correlate and plot (default: NUMERIC_FEATURES)
        target: Log-price column

    Returns:
        Dictionary containing EDA results and file names
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    numeric = [c for c in (numeric_features or NUMERIC_FEATURES) if c in df.columns]

    report = {
        "data_shape": df.shape,
        "columns": list(df.columns),
        "figures": [],
        "correlation_matrix": None,
        "statistics": {},
        "group_medians": {}
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS (Phase 1)")
    logger.info("=" * 60)

    logger.info("Plotting price distributions...")
    plot_price_distribution(
        df,
        target=target,
        save_path=str(output_dir / "01_price_distribution.png")
    )
    report["figures"].append("01_price_distribution.png")

    for number, column in (("02", "neighbourhood_group"), ("03", "room_type")):
        if column in df.columns:
            logger.info(f"Plotting log-price by {column}...")
            name = f"{number}_log_price_by_{column}.png"
            plot_price_by_category(df, column, target=target, save_path=str(output_dir / name))
            report["figures"].append(name)
            report["group_medians"][column] = (
                df.groupby(column)['price'].median().round(2).to_dict()
            )

    if {'neighbourhood_group', 'room_type'} <= set(df.columns):
        logger.info("Counting listings per neighbourhood group...")
        plot_listing_counts(df, save_path=str(output_dir / "04_listing_counts.png"))
        report["figures"].append("04_listing_counts.png")

    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        df,
        columns=numeric + [target],
        save_path=str(output_dir / "05_correlation_matrix.png")
    )
    report["figures"].append("05_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    if {'latitude', 'longitude'} <= set(df.columns):
        logger.info("Plotting listing locations...")
        plot_geographic_scatter(
            df,
            target=target,
            save_path=str(output_dir / "06_geographic_scatter.png")
        )
        report["figures"].append("06_geographic_scatter.png")

    logger.info("Plotting feature relationships...")
    plot_feature_relationships(
        df,
        columns=numeric,
        target=target,
        save_path=str(output_dir / "07_feature_relationships.png")
    )
    report["figures"].append("07_feature_relationships.png")

    for col in numeric + ['price', target]:
        report["statistics"][col] = {
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "max": float(df[col].max()),
            "skew": float(df[col].skew())
        }

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_correlation_insights(
    corr_matrix: pd.DataFrame,
    target: str = TARGET,
    threshold: float = 0.1
) -> None:
    """
    Print the features most associated with log-price.

    Args:
        corr_matrix: Correlation matrix DataFrame
        target: Column to rank correlations against
        threshold: Minimum |r| to be reported as notable
    """
    print("\n" + "=" * 50)
    print("CORRELATION INSIGHTS")
    print("=" * 50)

    if target not in corr_matrix.columns:
        print(f"\n'{target}' not in correlation matrix")
        print("=" * 50 + "\n")
        return

    with_target = corr_matrix[target].drop(target).dropna()
    ranked = with_target.reindex(with_target.abs().sort_values(ascending=False).index)
    notable = ranked[ranked.abs() >= threshold]

    if not notable.empty:
        print(f"\nFeatures correlated with {target} (|r| >= {threshold}):")
        for col, value in notable.items():
            direction = "positive" if value > 0 else "negative"
            print(f"  • {col}: {value:.3f} ({direction})")
    else:
        print(f"\nNo numeric feature reaches |r| >= {threshold} with {target}")
        print("  - Price is driven mostly by the categorical features")

    print("=" * 50 + "\n")
