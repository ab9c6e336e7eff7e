"""
Narrow wrapper around LightGBM multiclass boosting.

The rest of the pipeline only sees two calls:
  train_booster(features, labels, config) -> BoosterModel
  predict_proba(model, features) -> (n_rows, n_classes) probability matrix

so the tree library can be swapped without touching tuning or reporting.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import lightgbm as lgb
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_PARAMS = {
    "objective": "multiclass",
    "bagging_freq": 1,
    "deterministic": True,
    "verbose": -1,
}


@dataclass(frozen=True)
class BoosterConfig:
    """Training configuration for one boosted-tree fit."""
    num_rounds: int
    learning_rate: float
    subsample: float
    reg_lambda: float
    min_child_weight: float
    num_class: int = 5
    seed: int = 0
    num_threads: int = 0

    def to_params(self, extra_params: Optional[Dict] = None) -> Dict:
        """Translate to LightGBM parameter names."""
        params = DEFAULT_PARAMS.copy()
        params.update({
            "num_class": self.num_class,
            "learning_rate": self.learning_rate,
            "bagging_fraction": self.subsample,
            "lambda_l2": self.reg_lambda,
            "min_sum_hessian_in_leaf": self.min_child_weight,
            "seed": self.seed,
            "num_threads": self.num_threads,
        })
        if extra_params:
            params.update(extra_params)
        return params

    def to_dict(self) -> dict:
        return {
            "num_rounds": self.num_rounds,
            "learning_rate": self.learning_rate,
            "subsample": self.subsample,
            "reg_lambda": self.reg_lambda,
            "min_child_weight": self.min_child_weight,
            "num_class": self.num_class,
            "seed": self.seed,
        }


class BoosterModel:
    """A trained booster together with the config that produced it."""

    def __init__(self, booster: lgb.Booster, config: BoosterConfig):
        self.booster = booster
        self.config = config

    @property
    def feature_names(self):
        return self.booster.feature_name()

    def predict_proba(self, features) -> np.ndarray:
        """Predict class probabilities.

        Args:
            features: DataFrame or array of shape (n_samples, n_features).

        Returns:
            Array of shape (n_samples, num_class); rows sum to 1.
        """
        if isinstance(features, np.ndarray) and features.ndim == 1:
            features = features.reshape(1, -1)
        proba = np.asarray(self.booster.predict(features))
        if proba.ndim == 1:
            proba = proba.reshape(-1, self.config.num_class)
        return proba

    def feature_importance(self) -> Dict[str, float]:
        """Gain importance per feature name."""
        importance = self.booster.feature_importance(importance_type="gain")
        return {name: float(imp) for name, imp in zip(self.feature_names, importance)}


def train_booster(
    features,
    labels: np.ndarray,
    config: BoosterConfig,
    extra_params: Optional[Dict] = None,
) -> BoosterModel:
    """Fit a multiclass booster.

    Args:
        features: Feature DataFrame (categorical columns are picked up by
            LightGBM automatically) or numeric array.
        labels: Integer class labels in [0, config.num_class).
        config: BoosterConfig for this fit.
        extra_params: Additional LightGBM params to merge.

    Returns:
        BoosterModel wrapping the trained booster.
    """
    labels = np.asarray(labels)
    if len(labels) == 0:
        raise ValueError("Cannot train on an empty set")
    if isinstance(features, pd.DataFrame):
        train_set = lgb.Dataset(features, label=labels, free_raw_data=True)
    else:
        train_set = lgb.Dataset(np.asarray(features, dtype=float), label=labels)

    params = config.to_params(extra_params)
    logger.debug(
        "Training booster: rounds=%d lr=%.3f mcw=%.3f lambda=%.3f on %d rows",
        config.num_rounds, config.learning_rate, config.min_child_weight,
        config.reg_lambda, len(labels),
    )
    booster = lgb.train(params=params, train_set=train_set, num_boost_round=config.num_rounds)
    return BoosterModel(booster, config)


def predict_proba(model: BoosterModel, features) -> np.ndarray:
    return model.predict_proba(features)
