"""
Model Training Module - Phase 3
================================

Fits the three log-price regressors compared in the report.

Features:
    - Linear regression baseline
    - Decision tree with its complexity parameter tuned by 3-fold CV
    - Random forest with fixed tree count and feature sampling
    - Model persistence (save/load)
    - Training progress logging
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

import numpy as np
import joblib
from sklearn.base import BaseEstimator
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LinearRegression
from sklearn.model_selection import GridSearchCV, KFold
from sklearn.tree import DecisionTreeRegressor

logger = logging.getLogger(__name__)

MODEL_LABELS = {
    'linear_regression': 'Linear Regression',
    'decision_tree': 'Decision Tree',
    'random_forest': 'Random Forest',
}


class ListingPriceModel:
    """
    A named scikit-learn regressor predicting log-price.

    Wraps the estimator so every model in the comparison is fitted, timed,
    logged and persisted the same way.
    """

    def __init__(self, name: str, estimator: BaseEstimator):
        """
        Args:
            name: Key of the model ('linear_regression', 'decision_tree', ...)
            estimator: Unfitted scikit-learn regressor or search object
        """
        self.name = name
        self.estimator = estimator

        self.n_features_in_: Optional[int] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    @property
    def label(self) -> str:
        return MODEL_LABELS.get(self.name, self.name)

    @property
    def fitted_estimator(self) -> BaseEstimator:
        """The underlying regressor, unwrapped from a CV search if needed."""
        if isinstance(self.estimator, GridSearchCV) and self._is_fitted:
            return self.estimator.best_estimator_
        return self.estimator

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'ListingPriceModel':
        """
        Train the model on the provided data.

        Args:
            X: Feature array of shape (n_samples, n_features)
            y: Log-price array of shape (n_samples,)

        Returns:
            Self for method chaining
        """
        start_time = datetime.now()

        logger.info(f"Training {self.label} on X={X.shape}, y={y.shape}")
        self.estimator.fit(X, y)

        end_time = datetime.now()
        self.n_features_in_ = X.shape[1]
        self.training_info = {
            'training_duration_seconds': (end_time - start_time).total_seconds(),
            'n_samples': X.shape[0],
            'n_features': X.shape[1],
            'trained_at': end_time.isoformat(),
        }

        if isinstance(self.estimator, GridSearchCV):
            self.training_info['best_params'] = self.estimator.best_params_
            self.training_info['cv_rmse'] = float(-self.estimator.best_score_)
            logger.info(
                f"  CV selected {self.estimator.best_params_} "
                f"(CV RMSE: {-self.estimator.best_score_:.4f})"
            )

        self._is_fitted = True
        logger.info(
            f"  {self.label} trained in "
            f"{self.training_info['training_duration_seconds']:.2f} seconds"
        )
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Predict log-price.

        Args:
            X: Feature array of shape (n_samples, n_features)

        Returns:
            Predictions array of shape (n_samples,)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        if X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"Expected {self.n_features_in_} features, but got {X.shape[1]}"
            )

        return self.estimator.predict(X)

    def get_feature_importances(self) -> np.ndarray:
        """
        Impurity-based feature importances of a tree model.

        Returns:
            Array of shape (n_features,)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")

        estimator = self.fitted_estimator
        if not hasattr(estimator, 'feature_importances_'):
            raise ValueError(f"{self.label} does not expose feature importances")

        return np.asarray(estimator.feature_importances_)

    def save(self, filepath: str) -> None:
        """
        Save the trained model to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'name': self.name,
            'estimator': self.estimator,
            'n_features_in_': self.n_features_in_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'ListingPriceModel':
        """
        Load a trained model from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded ListingPriceModel instance
        """
        state = joblib.load(filepath)

        model = cls(state['name'], state['estimator'])
        model.n_features_in_ = state['n_features_in_']
        model.training_info = state['training_info']
        model._is_fitted = state['_is_fitted']

        logger.info(f"Model loaded from {filepath}")
        return model


def build_models(config: Dict[str, Any]) -> Dict[str, ListingPriceModel]:
    """
    Create the three unfitted models from configuration.

    Args:
        config: Full configuration dictionary (uses the 'models' section)

    Returns:
        Ordered mapping of model key to ListingPriceModel
    """
    model_config = config.get('models', {})
    random_state = model_config.get('random_state', 42)
    tree_config = model_config.get('decision_tree', {})
    forest_config = model_config.get('random_forest', {})

    tree_search = GridSearchCV(
        DecisionTreeRegressor(random_state=random_state),
        param_grid={
            'ccp_alpha': tree_config.get('ccp_alpha_grid', [0.0, 0.0005, 0.001, 0.005, 0.01])
        },
        cv=KFold(
            n_splits=tree_config.get('cv_folds', 3),
            shuffle=True,
            random_state=random_state
        ),
        scoring='neg_root_mean_squared_error'
    )

    forest = RandomForestRegressor(
        n_estimators=forest_config.get('n_estimators', 200),
        max_features=forest_config.get('max_features', 3),
        random_state=random_state,
        n_jobs=forest_config.get('n_jobs', -1)
    )

    return {
        'linear_regression': ListingPriceModel('linear_regression', LinearRegression()),
        'decision_tree': ListingPriceModel('decision_tree', tree_search),
        'random_forest': ListingPriceModel('random_forest', forest),
    }


def train_models(
    X_train: np.ndarray,
    y_train: np.ndarray,
    config: Dict[str, Any],
    save_dir: Optional[str] = None
) -> Dict[str, ListingPriceModel]:
    """
    Fit every model in the comparison.

    Args:
        X_train: Training features
        y_train: Training log-prices
        config: Configuration dictionary
        save_dir: Directory to save the trained models (optional)

    Returns:
        Mapping of model key to trained ListingPriceModel
    """
    logger.info("=" * 60)
    logger.info("STARTING MODEL TRAINING (Phase 3)")
    logger.info("=" * 60)

    models = build_models(config)

    forest = models['random_forest'].estimator
    if isinstance(forest.max_features, int) and forest.max_features > X_train.shape[1]:
        logger.warning(
            f"max_features={forest.max_features} exceeds {X_train.shape[1]} features; "
            f"using all features"
        )
        forest.set_params(max_features=X_train.shape[1])

    for name, model in models.items():
        model.fit(X_train, y_train)
        if save_dir:
            model.save(str(Path(save_dir) / f"{name}.joblib"))

    logger.info("=" * 60)
    logger.info(f"MODEL TRAINING COMPLETE - {len(models)} models fitted")
    logger.info("=" * 60)

    return models


def print_model_summary(models: Dict[str, ListingPriceModel]) -> None:
    """
    Print a summary of the trained models.

    Args:
        models: Mapping of model key to trained model
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)

    for model in models.values():
        info = model.training_info
        print(f"\n{model.label} ({type(model.fitted_estimator).__name__})")
        if info:
            print(f"  - Duration: {info.get('training_duration_seconds', 0.0):.2f}s")
            print(f"  - Samples: {info.get('n_samples', 'N/A')}")
            print(f"  - Features: {info.get('n_features', 'N/A')}")
        if 'best_params' in info:
            print(f"  - CV best params: {info['best_params']}")
            print(f"  - CV RMSE: {info['cv_rmse']:.4f}")

    print("=" * 50 + "\n")
