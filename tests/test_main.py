"""
Test Suite for the Report Entry Point
======================================
"""

import pytest
import numpy as np
import pandas as pd
import yaml

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import main


@pytest.fixture
def config_file(tmp_path, fast_config):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(fast_config))
    return path


def test_missing_data_file(tmp_path, config_file, capsys):
    """A missing CSV exits with status 1."""
    code = main.main(['--data', str(tmp_path / "missing.csv"), '--config', str(config_file)])

    assert code == 1
    assert "Data file not found" in capsys.readouterr().out


def test_missing_config_file(tmp_path, listings_csv, capsys):
    """A missing config exits with status 1."""
    code = main.main(['--data', str(listings_csv), '--config', str(tmp_path / "nope.yaml")])

    assert code == 1
    assert "Config file not found" in capsys.readouterr().out


def test_pipeline_failure_returns_one(tmp_path, config_file, capsys):
    """Errors inside the report are caught and reported."""
    path = tmp_path / "bad.csv"
    pd.DataFrame({'price': [1, 2]}).to_csv(path, index=False)

    code = main.main(['--data', str(path), '--config', str(config_file)])

    assert code == 1
    assert "Report failed" in capsys.readouterr().out


def test_full_report(tmp_path, listings_csv, config_file, capsys):
    """The complete report writes the comparison table and prints a conclusion."""
    code = main.main(['--data', str(listings_csv), '--config', str(config_file)])

    out = capsys.readouterr().out
    assert code == 0
    assert "MODEL COMPARISON" in out
    assert "CONCLUSION" in out

    table = pd.read_csv(tmp_path / "reports" / "metrics" / "model_comparison.csv", index_col=0)
    assert sorted(table.index) == ['Decision Tree', 'Linear Regression', 'Random Forest']
    assert (tmp_path / "reports" / "figures" / "eval_residuals.png").exists()
    assert (tmp_path / "reports" / "figures" / "01_price_distribution.png").exists()


def test_evaluation_follows_figures_path(tmp_path, listings_csv, fast_config):
    """Evaluation figures go to figures_path, metrics to its sibling folder."""
    plots_dir = tmp_path / "out" / "plots"
    fast_config['output']['figures_path'] = str(plots_dir)
    path = tmp_path / "plots.yaml"
    path.write_text(yaml.safe_dump(fast_config))

    result = main.run_single_phase('evaluate', str(listings_csv), str(path))

    for name in result['figures']:
        assert (plots_dir / name).exists()
    assert (plots_dir / "eval_residuals.png").exists()
    assert (tmp_path / "out" / "metrics" / "model_comparison.csv").exists()
    assert not (tmp_path / "out" / "figures").exists()


def test_configured_target_and_features(tmp_path, listings_csv, fast_config):
    """A renamed target and the configured feature lists carry through the report."""
    fast_config['features'] = {
        'target': 'y_log',
        'numeric': ['availability_365', 'minimum_nights'],
        'categorical': ['neighbourhood_group', 'room_type'],
    }
    path = tmp_path / "target.yaml"
    path.write_text(yaml.safe_dump(fast_config))

    code = main.main(['--data', str(listings_csv), '--config', str(path)])

    assert code == 0
    table = pd.read_csv(tmp_path / "reports" / "metrics" / "model_comparison.csv", index_col=0)
    assert len(table) == 3


def test_run_preprocessing_with_renamed_target(listings_csv, fast_config):
    fast_config['features'] = {'target': 'y_log'}
    df = main.run_loading(str(listings_csv), fast_config)

    result = main.run_preprocessing(df, fast_config)

    assert 'y_log' in df.columns
    np.testing.assert_array_almost_equal(
        np.sort(np.concatenate([result['y_train'], result['y_test']])),
        np.sort(df['y_log'].values)
    )


def test_min_price_null(tmp_path, listings_csv, fast_config):
    """A null min_price keeps the default floor instead of failing."""
    fast_config['cleaning']['min_price'] = None

    df = main.run_loading(str(listings_csv), fast_config)

    assert (df['price'] > 0).all()


def test_single_phase_eda(listings_csv, config_file, fast_config):
    """The eda phase returns the EDA report only."""
    report = main.run_single_phase('eda', str(listings_csv), str(config_file))

    assert 'figures' in report
    assert Path(fast_config['output']['figures_path']).exists()


def test_unknown_phase(listings_csv, config_file):
    with pytest.raises(ValueError, match="Unknown phase"):
        main.run_single_phase('predict', str(listings_csv), str(config_file))
