"""
Test Suite for Evaluation Module
=================================
"""

import json

import pytest
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from airbnb_report.evaluation import (
    build_comparison_table,
    calculate_metrics,
    evaluate_models,
    plot_residuals,
    write_conclusion,
)
from airbnb_report.model import train_models
from airbnb_report.preprocessing import clean_listings, preprocess_pipeline


def _metrics(rmse, r2):
    return {
        'rmse': rmse, 'mae': rmse * 0.8, 'r2': r2,
        'price_rmse': rmse * 100, 'price_mae': rmse * 80,
        'mean_residual': 0.0, 'n_samples': 50
    }


class TestCalculateMetrics:
    """Tests for calculate_metrics."""

    def test_perfect_prediction(self):
        """Exact predictions give zero error and R² of one."""
        y = np.log(np.array([50.0, 80.0, 120.0, 300.0]))

        metrics = calculate_metrics(y, y)

        assert metrics['rmse'] == 0.0
        assert metrics['mae'] == 0.0
        assert metrics['r2'] == 1.0
        assert metrics['price_rmse'] == 0.0
        assert metrics['n_samples'] == 4

    def test_constant_offset(self):
        """A constant log offset shows up in RMSE, MAE and the mean residual."""
        y_true = np.log(np.array([50.0, 80.0, 120.0, 300.0]))
        y_pred = y_true - 0.1

        metrics = calculate_metrics(y_true, y_pred)

        assert np.isclose(metrics['rmse'], 0.1)
        assert np.isclose(metrics['mae'], 0.1)
        assert np.isclose(metrics['mean_residual'], 0.1)

    def test_price_scale(self):
        """Price-scale errors are measured after undoing the log."""
        y_true = np.log(np.array([100.0, 100.0]))
        y_pred = np.log(np.array([110.0, 90.0]))

        metrics = calculate_metrics(y_true, y_pred)

        assert np.isclose(metrics['price_mae'], 10.0)
        assert np.isclose(metrics['price_rmse'], 10.0)


class TestComparisonTable:
    """Tests for build_comparison_table and write_conclusion."""

    @pytest.fixture
    def table(self):
        return build_comparison_table({
            'linear_regression': _metrics(0.50, 0.40),
            'decision_tree': _metrics(0.48, 0.45),
            'random_forest': _metrics(0.40, 0.62),
        })

    def test_sorted_by_rmse(self, table):
        """Best model first."""
        assert list(table.index) == ['Random Forest', 'Decision Tree', 'Linear Regression']
        assert table['RMSE'].is_monotonic_increasing

    def test_columns(self, table):
        assert list(table.columns) == ['RMSE', 'MAE', 'R2', 'RMSE ($)', 'MAE ($)']

    def test_conclusion_names_best_model(self, table):
        """The conclusion names the winner and its gain over the baseline."""
        text = write_conclusion(table)

        assert text.startswith("Random Forest gives the lowest test error")
        assert "20.0% below the linear regression baseline" in text

    def test_conclusion_when_baseline_wins(self):
        """No improvement sentence when linear regression is best."""
        table = build_comparison_table({
            'linear_regression': _metrics(0.30, 0.30),
            'decision_tree': _metrics(0.48, 0.20),
        })

        text = write_conclusion(table)

        assert text.startswith("Linear Regression")
        assert "baseline" not in text
        assert "not captured" in text


def test_plot_residuals_panels():
    """One residual panel per model."""
    y_true = np.log(np.array([50.0, 80.0, 120.0, 300.0]))
    predictions = {'linear_regression': y_true + 0.1, 'random_forest': y_true - 0.05}

    fig = plot_residuals(predictions, y_true)

    assert len(fig.axes) == 2
    assert fig.axes[0].get_title().startswith('Linear Regression')
    plt.close(fig)


class TestEvaluateModels:
    """Tests for evaluate_models end to end."""

    @pytest.fixture
    def result(self, raw_listings, fast_config, tmp_path):
        prepared = preprocess_pipeline(clean_listings(raw_listings))
        models = train_models(prepared['X_train'], prepared['y_train'], fast_config)
        return evaluate_models(
            models,
            prepared['X_test'],
            prepared['y_test'],
            feature_names=prepared['feature_names'],
            figures_dir=str(tmp_path / "reports" / "figures"),
            metrics_dir=str(tmp_path / "reports" / "metrics")
        )

    def test_comparison(self, result):
        """Three models, best one first and reported as best_model."""
        table = result['comparison']

        assert isinstance(table, pd.DataFrame)
        assert len(table) == 3
        assert table['RMSE'].is_monotonic_increasing
        assert result['metrics'][result['best_model']]['rmse'] == table['RMSE'].iloc[0]

    def test_files_written(self, result, tmp_path):
        """Figures, metrics JSON and comparison CSV land under output_dir."""
        figures_dir = tmp_path / "reports" / "figures"

        for name in result['figures']:
            assert (figures_dir / name).exists()
        assert 'eval_residuals.png' in result['figures']
        assert 'eval_feature_importances.png' in result['figures']

        with open(result['metrics_file']) as f:
            saved = json.load(f)
        assert set(saved) == {'linear_regression', 'decision_tree', 'random_forest'}

        saved_table = pd.read_csv(result['comparison_file'], index_col=0)
        assert list(saved_table.index) == list(result['comparison'].index)
