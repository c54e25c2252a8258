"""
Shared fixtures for the test suite.
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

BOROUGH_EFFECT = {
    'Manhattan': 0.5,
    'Brooklyn': 0.2,
    'Queens': 0.0,
    'Bronx': -0.2,
    'Staten Island': -0.1,
}

ROOM_EFFECT = {
    'Entire home/apt': 0.6,
    'Private room': 0.0,
    'Shared room': -0.5,
}


def make_listings(n_samples: int = 300, seed: int = 42) -> pd.DataFrame:
    """Synthetic listings laid out like the NYC Airbnb CSV."""
    rng = np.random.RandomState(seed)

    groups = rng.choice(list(BOROUGH_EFFECT), size=n_samples)
    rooms = rng.choice(list(ROOM_EFFECT), size=n_samples, p=[0.5, 0.4, 0.1])
    availability = rng.randint(0, 366, size=n_samples)
    host_count = rng.randint(1, 20, size=n_samples)
    n_reviews = rng.poisson(20, size=n_samples)
    reviews_pm = np.round(rng.gamma(1.5, 1.0, size=n_samples), 2)

    log_price = (
        4.1
        + np.array([BOROUGH_EFFECT[g] for g in groups])
        + np.array([ROOM_EFFECT[r] for r in rooms])
        + 0.002 * availability
        + rng.normal(0, 0.25, size=n_samples)
    )

    df = pd.DataFrame({
        'id': np.arange(1, n_samples + 1),
        'name': [f"Listing {i}" for i in range(n_samples)],
        'host_id': rng.randint(1000, 9999, size=n_samples),
        'host_name': rng.choice(['Ana', 'Sam', 'Lee', 'Kim'], size=n_samples),
        'neighbourhood_group': groups,
        'neighbourhood': rng.choice(['Harlem', 'Astoria', 'Bushwick'], size=n_samples),
        'latitude': 40.7 + rng.normal(0, 0.05, size=n_samples),
        'longitude': -73.95 + rng.normal(0, 0.05, size=n_samples),
        'room_type': rooms,
        'price': np.round(np.exp(log_price)).astype(int),
        'minimum_nights': rng.randint(1, 30, size=n_samples),
        'number_of_reviews': n_reviews,
        'last_review': '2019-06-01',
        'reviews_per_month': reviews_pm,
        'calculated_host_listings_count': host_count,
        'availability_365': availability,
    })

    # Listings never reviewed have no reviews_per_month in the source data
    df.loc[df.index % 10 == 0, 'reviews_per_month'] = np.nan
    df.loc[df.index % 10 == 0, 'number_of_reviews'] = 0
    # A few free listings, which cannot be log-transformed
    df.loc[[3, 57, 111], 'price'] = 0

    return df


@pytest.fixture
def raw_listings():
    """Raw synthetic listings, including zero prices and missing reviews."""
    return make_listings()


@pytest.fixture
def listings_csv(tmp_path, raw_listings):
    """Synthetic listings written to a CSV file."""
    path = tmp_path / "listings.csv"
    raw_listings.to_csv(path, index=False)
    return path


@pytest.fixture
def fast_config(tmp_path):
    """Configuration with small models and outputs under tmp_path."""
    return {
        'cleaning': {'min_price': 0, 'max_price': 1000, 'max_minimum_nights': 365},
        'split': {'test_size': 0.2, 'random_state': 42},
        'models': {
            'random_state': 42,
            'decision_tree': {'cv_folds': 3, 'ccp_alpha_grid': [0.0, 0.001, 0.01]},
            'random_forest': {'n_estimators': 20, 'max_features': 3, 'n_jobs': 1},
        },
        'output': {
            'figures_path': str(tmp_path / "reports" / "figures"),
            'models_path': str(tmp_path / "models"),
            'save_models': False,
        },
        'logging': {'level': 'INFO', 'log_dir': str(tmp_path / "logs")},
    }
