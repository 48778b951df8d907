"""
Model Module
============

Trainer/predictor adapters over scikit-learn regressors.

The cross-validation driver only sees two callables: ``train`` turns a
training slice of observations into a fitted model, ``predict`` turns a fitted
model and one observation into a float. ``Regressor`` supplies both for any
scikit-learn estimator and a fixed list of predictor columns.

Features:
    - Linear regression, regression tree and mean-baseline factories
    - Model construction from the ``models`` config section
    - Fitted-model summaries (coefficients or tree structure)
"""

import logging
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.base import BaseEstimator, clone
from sklearn.dummy import DummyRegressor
from sklearn.linear_model import LinearRegression
from sklearn.tree import DecisionTreeRegressor

from .exceptions import InvalidConfiguration
from .preprocessing import Observation, DEFAULT_PREDICTORS

logger = logging.getLogger(__name__)

MIN_TRAINING_ROWS = 2


def observations_to_arrays(
    observations: Sequence[Observation],
    features: Sequence[str]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stack observations into a feature matrix and target vector.

    Args:
        observations: Observation records
        features: Predictor names, in column order

    Returns:
        Tuple of (X, y) with shapes (n, len(features)) and (n,)
    """
    X = np.array(
        [[obs.predictors[name] for name in features] for obs in observations],
        dtype=float
    ).reshape(len(observations), len(features))
    y = np.array([obs.target for obs in observations], dtype=float)
    return X, y


class Regressor:
    """
    A named scikit-learn estimator template bound to a set of predictors.

    Each call to ``train`` fits a fresh clone, so one Regressor can serve
    every fold, including folds running in parallel.
    """

    def __init__(self, name: str, estimator: BaseEstimator, features: Sequence[str]):
        if not features:
            raise InvalidConfiguration(f"Model '{name}' needs at least one feature")
        self.name = name
        self.estimator = estimator
        self.features = list(features)

    def __repr__(self) -> str:
        return f"Regressor(name={self.name!r}, estimator={self.estimator!r}, features={self.features})"

    def train(self, observations: Sequence[Observation]) -> BaseEstimator:
        """
        Fit a fresh copy of the estimator.

        Args:
            observations: Training slice

        Returns:
            Fitted estimator

        Raises:
            ValueError: If the slice is too small or any predictor is not finite
        """
        if len(observations) < MIN_TRAINING_ROWS:
            raise ValueError(
                f"Need at least {MIN_TRAINING_ROWS} training rows, got {len(observations)}"
            )

        X, y = observations_to_arrays(observations, self.features)
        if not np.all(np.isfinite(X)) or not np.all(np.isfinite(y)):
            raise ValueError("Training data contains non-finite values")

        model = clone(self.estimator)
        model.fit(X, y)
        return model

    def predict(self, model: BaseEstimator, observation: Observation) -> float:
        """Predict the target for one observation."""
        X, _ = observations_to_arrays([observation], self.features)
        return float(model.predict(X)[0])


def linear_regression(features: Optional[Sequence[str]] = None, name: str = "linear_regression") -> Regressor:
    """Ordinary least squares on the given predictors."""
    return Regressor(name, LinearRegression(), features or DEFAULT_PREDICTORS)


def regression_tree(
    features: Optional[Sequence[str]] = None,
    max_depth: Optional[int] = 5,
    min_samples_leaf: int = 20,
    random_state: int = 42,
    name: str = "regression_tree"
) -> Regressor:
    """CART regression tree on the given predictors."""
    estimator = DecisionTreeRegressor(
        max_depth=max_depth,
        min_samples_leaf=min_samples_leaf,
        random_state=random_state
    )
    return Regressor(name, estimator, features or DEFAULT_PREDICTORS)


def mean_baseline(features: Optional[Sequence[str]] = None, name: str = "mean_baseline") -> Regressor:
    """Predicts the training-set mean for every observation."""
    return Regressor(name, DummyRegressor(strategy='mean'), features or DEFAULT_PREDICTORS)


MODEL_FACTORIES = {
    'linear': linear_regression,
    'tree': regression_tree,
    'mean': mean_baseline,
}


def build_regressors(
    config: Dict[str, Any],
    default_features: Optional[Sequence[str]] = None
) -> Dict[str, Regressor]:
    """
    Build every model listed in the ``models`` config section.

    Example section::

        models:
          regression_tree:
            type: tree
            features: [Rating, average_polarity]
            max_depth: 4

    Args:
        config: Full configuration dictionary
        default_features: Features for models that do not list their own

    Returns:
        Mapping of model name to Regressor, in config order

    Raises:
        InvalidConfiguration: On a missing section or an unknown model type
    """
    models_config = config.get('models') or {}
    if not models_config:
        raise InvalidConfiguration("No models configured under 'models'")

    regressors = {}
    for name, params in models_config.items():
        params = dict(params or {})
        model_type = params.pop('type', None)
        if model_type not in MODEL_FACTORIES:
            raise InvalidConfiguration(
                f"Unknown type {model_type!r} for model '{name}'. "
                f"Choose from: {', '.join(MODEL_FACTORIES)}"
            )
        features = params.pop('features', None) or default_features

        try:
            regressors[name] = MODEL_FACTORIES[model_type](features=features, name=name, **params)
        except TypeError as e:
            raise InvalidConfiguration(f"Bad parameters for model '{name}': {e}") from e

        logger.info(f"Configured model '{name}': {regressors[name].estimator}")

    return regressors


def describe_model(regressor: Regressor, fitted: BaseEstimator) -> Dict[str, Any]:
    """
    Summarize a fitted model.

    Args:
        regressor: The Regressor that produced the model
        fitted: Fitted estimator returned by ``regressor.train``

    Returns:
        Dictionary with the model type plus coefficients (linear),
        structure and importances (tree) or the constant (baseline)
    """
    summary: Dict[str, Any] = {
        'name': regressor.name,
        'type': type(fitted).__name__,
        'features': regressor.features
    }

    if isinstance(fitted, LinearRegression):
        summary['intercept'] = float(fitted.intercept_)
        summary['coefficients'] = dict(zip(regressor.features, map(float, fitted.coef_)))
    elif isinstance(fitted, DecisionTreeRegressor):
        summary['depth'] = int(fitted.get_depth())
        summary['n_leaves'] = int(fitted.get_n_leaves())
        summary['feature_importances'] = dict(
            zip(regressor.features, map(float, fitted.feature_importances_))
        )
    elif isinstance(fitted, DummyRegressor):
        summary['constant'] = float(np.ravel(fitted.constant_)[0])

    return summary


def fit_full_models(
    regressors: Dict[str, Regressor],
    observations: Sequence[Observation]
) -> List[Dict[str, Any]]:
    """Fit each model on all observations and describe it."""
    summaries = []
    for regressor in regressors.values():
        fitted = regressor.train(observations)
        summaries.append(describe_model(regressor, fitted))
    return summaries


def print_model_summary(summary: Dict[str, Any]) -> None:
    """
    Print a summary of a fitted model.

    Args:
        summary: Dictionary from describe_model
    """
    print("\n" + "=" * 50)
    print(f"MODEL SUMMARY - {summary['name']}")
    print("=" * 50)
    print(f"Model Type: {summary['type']}")
    print(f"Features: {', '.join(summary['features'])}")

    if 'coefficients' in summary:
        print(f"\nIntercept: {summary['intercept']:.4f}")
        print("Coefficients:")
        for feature, coef in summary['coefficients'].items():
            print(f"  - {feature}: {coef:.4f}")

    if 'feature_importances' in summary:
        print(f"\nDepth: {summary['depth']}, Leaves: {summary['n_leaves']}")
        print("Feature importances:")
        for feature, importance in summary['feature_importances'].items():
            print(f"  - {feature}: {importance:.4f}")

    if 'constant' in summary:
        print(f"\nConstant prediction: {summary['constant']:.4f}")

    print("=" * 50 + "\n")
