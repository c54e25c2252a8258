"""
Data Preprocessing Module - Phase 2
====================================

Cleans the raw listings table and turns it into a design matrix.

Functions:
    - clean_listings: Drop unused columns, filter rows, derive log_price
    - ListingPreprocessor: Imputation + one-hot encoding of the features
    - preprocess_pipeline: Build X/y and the train/test split
"""

import logging
from typing import Dict, Any, Tuple, Optional, List

import pandas as pd
import numpy as np
import joblib
from sklearn.compose import ColumnTransformer
from sklearn.impute import SimpleImputer
from sklearn.model_selection import train_test_split
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

logger = logging.getLogger(__name__)

DROP_COLUMNS = ['id', 'name', 'host_id', 'host_name', 'neighbourhood', 'last_review']

NUMERIC_FEATURES = [
    'availability_365',
    'reviews_per_month',
    'calculated_host_listings_count',
    'minimum_nights',
    'number_of_reviews',
]

CATEGORICAL_FEATURES = ['neighbourhood_group', 'room_type']

TARGET = 'log_price'


def _coerce_price(price: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(price):
        return price.astype(float)
    cleaned = price.astype(str).str.replace(r"[$,]", "", regex=True).str.strip()
    return pd.to_numeric(cleaned, errors='coerce')


def clean_listings(
    df: pd.DataFrame,
    min_price: Optional[float] = 0.0,
    max_price: Optional[float] = None,
    max_minimum_nights: Optional[int] = None,
    numeric_features: Optional[List[str]] = None,
    categorical_features: Optional[List[str]] = None,
    target: str = TARGET
) -> pd.DataFrame:
    """
    Clean the raw listings table and add the log-price target.

    Steps:
        1. Drop identifier and free-text columns
        2. Coerce numeric columns (prices like "$1,200.00" included)
        3. Listings without reviews get reviews_per_month = 0
        4. Drop rows missing price or a categorical feature
        5. Keep min_price < price <= max_price and minimum_nights <= max_minimum_nights
        6. Add target = ln(price)

    Args:
        df: Raw listings DataFrame
        min_price: Exclusive lower price bound (must be >= 0), None means 0
        max_price: Inclusive upper price bound, None disables
        max_minimum_nights: Inclusive minimum_nights bound, None disables
        numeric_features: Columns coerced to numbers (default: NUMERIC_FEATURES)
        categorical_features: Rows missing any of these are dropped (default: CATEGORICAL_FEATURES)
        target: Name of the log-price column to add

    Returns:
        New cleaned DataFrame with a fresh index

    Raises:
        ValueError: If min_price is negative or no listing survives cleaning
    """
    if min_price is None:
        min_price = 0.0
    if min_price < 0:
        raise ValueError(f"min_price must be >= 0, got {min_price}")

    numeric_features = numeric_features or NUMERIC_FEATURES
    categorical_features = categorical_features or CATEGORICAL_FEATURES

    n_raw = len(df)
    df = df.drop(columns=[c for c in DROP_COLUMNS if c in df.columns])

    df['price'] = _coerce_price(df['price'])
    for col in numeric_features:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')

    if 'reviews_per_month' in df.columns:
        df['reviews_per_month'] = df['reviews_per_month'].fillna(0.0)

    required = ['price'] + [c for c in categorical_features if c in df.columns]
    df = df.dropna(subset=required)

    mask = df['price'] > min_price
    if max_price is not None:
        mask &= df['price'] <= max_price
    if max_minimum_nights is not None and 'minimum_nights' in df.columns:
        mask &= df['minimum_nights'] <= max_minimum_nights
    df = df.loc[mask].copy()

    if df.empty:
        raise ValueError("No listings left after cleaning; check the price filters")

    df[target] = np.log(df['price'])
    df = df.reset_index(drop=True)

    logger.info(
        f"Cleaned listings: kept {len(df)} of {n_raw} rows "
        f"({n_raw - len(df)} dropped)"
    )
    return df


class ListingPreprocessor:
    """
    Turns cleaned listings into a numeric design matrix.

    Numeric features are median-imputed, categorical features are one-hot
    encoded with every level kept. Unknown levels at transform time encode
    as all zeros.
    """

    def __init__(
        self,
        numeric_features: Optional[List[str]] = None,
        categorical_features: Optional[List[str]] = None,
        target: str = TARGET,
        test_size: float = 0.2,
        random_state: int = 42
    ):
        """
        Initialize the preprocessor.

        Args:
            numeric_features: Numeric columns to use as-is
            categorical_features: Columns to one-hot encode
            target: Name of the regression target column
            test_size: Fraction of listings held out for testing
            random_state: Seed for the shuffled split
        """
        self.numeric_features = list(numeric_features or NUMERIC_FEATURES)
        self.categorical_features = list(categorical_features or CATEGORICAL_FEATURES)
        self.target = target
        self.test_size = test_size
        self.random_state = random_state

        self.numeric_used: List[str] = []
        self.categorical_used: List[str] = []
        self.transformer: Optional[ColumnTransformer] = None
        self.feature_columns: Optional[List[str]] = None
        self.n_features: Optional[int] = None
        self._is_fitted = False

    def _build_transformer(self) -> ColumnTransformer:
        categorical = Pipeline(steps=[
            ('imputer', SimpleImputer(strategy='most_frequent')),
            ('onehot', OneHotEncoder(handle_unknown='ignore', sparse_output=False)),
        ])
        return ColumnTransformer(
            transformers=[
                ('num', SimpleImputer(strategy='median'), self.numeric_used),
                ('cat', categorical, self.categorical_used),
            ],
            remainder='drop',
        )

    def fit(self, df: pd.DataFrame) -> 'ListingPreprocessor':
        """
        Learn imputation values and category levels.

        Args:
            df: Cleaned listings DataFrame

        Returns:
            Self for method chaining
        """
        self.numeric_used = [c for c in self.numeric_features if c in df.columns]
        self.categorical_used = [c for c in self.categorical_features if c in df.columns]

        if not self.numeric_used and not self.categorical_used:
            raise ValueError("None of the configured feature columns are present")

        skipped = sorted(
            set(self.numeric_features + self.categorical_features)
            - set(self.numeric_used + self.categorical_used)
        )
        if skipped:
            logger.warning(f"Feature columns not found and skipped: {skipped}")

        self.transformer = self._build_transformer()
        self.transformer.fit(df[self.numeric_used + self.categorical_used])

        self.feature_columns = self._feature_names()
        self.n_features = len(self.feature_columns)
        self._is_fitted = True

        logger.info(
            f"Fitted preprocessor: {len(self.numeric_used)} numeric, "
            f"{len(self.categorical_used)} categorical -> {self.n_features} features"
        )
        return self

    def transform(self, df: pd.DataFrame) -> np.ndarray:
        """
        Transform listings using fitted parameters.

        Args:
            df: DataFrame to transform

        Returns:
            Design matrix of shape (n_listings, n_features)
        """
        if not self._is_fitted:
            raise ValueError("Preprocessor must be fitted before transform. Call fit() first.")

        return self.transformer.transform(df[self.numeric_used + self.categorical_used])

    def fit_transform(self, df: pd.DataFrame) -> np.ndarray:
        """Fit and transform in one step."""
        self.fit(df)
        return self.transform(df)

    def get_target(self, df: pd.DataFrame) -> np.ndarray:
        """Return the target column as a float array."""
        if self.target not in df.columns:
            raise ValueError(f"Target column '{self.target}' not found; run clean_listings first")
        return df[self.target].to_numpy(dtype=float)

    def _feature_names(self) -> List[str]:
        names = list(self.numeric_used)
        if self.categorical_used:
            encoder = self.transformer.named_transformers_['cat'].named_steps['onehot']
            for col, levels in zip(self.categorical_used, encoder.categories_):
                names.extend(f"{col}_{level}" for level in levels)
        return names

    def get_feature_names(self) -> List[str]:
        """
        Names of the design matrix columns.

        Returns:
            Numeric feature names followed by 'column_level' dummies
        """
        if self.feature_columns is None:
            raise ValueError("Preprocessor must be fitted first.")
        return list(self.feature_columns)

    def prepare_train_test_split(
        self,
        X: np.ndarray,
        y: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Shuffled, seeded train/test split.

        Args:
            X: Feature array
            y: Target array

        Returns:
            Tuple of (X_train, X_test, y_train, y_test)
        """
        X_train, X_test, y_train, y_test = train_test_split(
            X, y, test_size=self.test_size, random_state=self.random_state
        )

        logger.info(
            f"Train/Test split: {len(X_train)} train samples, {len(X_test)} test samples"
        )

        return X_train, X_test, y_train, y_test

    def save(self, filepath: str) -> None:
        """
        Save the preprocessor state to disk.

        Args:
            filepath: Path to save the preprocessor
        """
        state = {
            'numeric_features': self.numeric_features,
            'categorical_features': self.categorical_features,
            'target': self.target,
            'test_size': self.test_size,
            'random_state': self.random_state,
            'numeric_used': self.numeric_used,
            'categorical_used': self.categorical_used,
            'transformer': self.transformer,
            'feature_columns': self.feature_columns,
            'n_features': self.n_features,
            '_is_fitted': self._is_fitted
        }
        joblib.dump(state, filepath)
        logger.info(f"Preprocessor saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'ListingPreprocessor':
        """
        Load a preprocessor from disk.

        Args:
            filepath: Path to the saved preprocessor

        Returns:
            Loaded ListingPreprocessor instance
        """
        state = joblib.load(filepath)

        preprocessor = cls(
            numeric_features=state['numeric_features'],
            categorical_features=state['categorical_features'],
            target=state['target'],
            test_size=state['test_size'],
            random_state=state['random_state']
        )
        preprocessor.numeric_used = state['numeric_used']
        preprocessor.categorical_used = state['categorical_used']
        preprocessor.transformer = state['transformer']
        preprocessor.feature_columns = state['feature_columns']
        preprocessor.n_features = state['n_features']
        preprocessor._is_fitted = state['_is_fitted']

        logger.info(f"Preprocessor loaded from {filepath}")
        return preprocessor


def preprocess_pipeline(
    df: pd.DataFrame,
    numeric_features: Optional[List[str]] = None,
    categorical_features: Optional[List[str]] = None,
    target: str = TARGET,
    test_size: float = 0.2,
    random_state: int = 42,
    save_preprocessor: Optional[str] = None
) -> Dict[str, Any]:
    """
    Build the design matrix from cleaned listings and split it.

    Args:
        df: Cleaned listings DataFrame (output of clean_listings)
        numeric_features: Numeric feature columns
        categorical_features: Categorical feature columns
        target: Target column name
        test_size: Held-out fraction
        random_state: Split seed
        save_preprocessor: Path to save the fitted preprocessor

    Returns:
        Dictionary containing:
            - X_train, X_test, y_train, y_test: Split datasets
            - preprocessor: Fitted ListingPreprocessor
            - feature_names: Names of design matrix columns
    """
    logger.info("=" * 60)
    logger.info("STARTING DATA PREPROCESSING (Phase 2)")
    logger.info("=" * 60)

    preprocessor = ListingPreprocessor(
        numeric_features=numeric_features,
        categorical_features=categorical_features,
        target=target,
        test_size=test_size,
        random_state=random_state
    )

    X = preprocessor.fit_transform(df)
    y = preprocessor.get_target(df)

    X_train, X_test, y_train, y_test = preprocessor.prepare_train_test_split(X, y)

    if save_preprocessor:
        preprocessor.save(save_preprocessor)

    result = {
        'X_train': X_train,
        'X_test': X_test,
        'y_train': y_train,
        'y_test': y_test,
        'preprocessor': preprocessor,
        'feature_names': preprocessor.get_feature_names()
    }

    logger.info("=" * 60)
    logger.info("PREPROCESSING COMPLETE")
    logger.info(f"  Training samples: {len(X_train)}")
    logger.info(f"  Test samples: {len(X_test)}")
    logger.info(f"  Features per sample: {X_train.shape[1]}")
    logger.info("=" * 60)

    return result


def print_preprocessing_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the preprocessing results.

    Args:
        result: Dictionary from preprocess_pipeline
    """
    preprocessor = result['preprocessor']
    print("\n" + "=" * 50)
    print("PREPROCESSING SUMMARY")
    print("=" * 50)
    print(f"Training samples: {result['X_train'].shape[0]}")
    print(f"Test samples: {result['X_test'].shape[0]}")
    print(f"Features per sample: {result['X_train'].shape[1]}")
    print(f"\nNumeric features: {', '.join(preprocessor.numeric_used)}")
    print(f"Categorical features: {', '.join(preprocessor.categorical_used)}")
    print(f"Target: {preprocessor.target}")
    print(f"Test size: {preprocessor.test_size}")
    print("=" * 50 + "\n")
