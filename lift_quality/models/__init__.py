"""Boosted-tree model wrapper."""
from .booster import BoosterConfig, BoosterModel, predict_proba, train_booster

__all__ = ["BoosterConfig", "BoosterModel", "predict_proba", "train_booster"]
