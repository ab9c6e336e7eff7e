"""Tests for the LightGBM wrapper."""
import numpy as np
import pytest

from lift_quality.models.booster import BoosterConfig, BoosterModel, predict_proba, train_booster
from lift_quality.training.features import extract_features_dataframe, extract_labels


def _config(**kwargs):
    defaults = dict(
        num_rounds=10,
        learning_rate=0.3,
        subsample=0.5,
        reg_lambda=0.5,
        min_child_weight=1.0,
        num_class=5,
        seed=1,
    )
    defaults.update(kwargs)
    return BoosterConfig(**defaults)


class TestBoosterConfig:
    def test_param_translation(self):
        params = _config(reg_lambda=0.25, min_child_weight=0.5).to_params()
        assert params["objective"] == "multiclass"
        assert params["num_class"] == 5
        assert params["lambda_l2"] == 0.25
        assert params["min_sum_hessian_in_leaf"] == 0.5
        assert params["bagging_fraction"] == 0.5
        assert params["bagging_freq"] == 1

    def test_extra_params_merge(self):
        params = _config().to_params({"num_leaves": 7})
        assert params["num_leaves"] == 7

    def test_frozen(self):
        config = _config()
        with pytest.raises(AttributeError):
            config.reg_lambda = 2.0


class TestTrainBooster:
    def test_probabilities(self, corpus):
        predictors = [f"sensor_{j}" for j in range(10)]
        X = extract_features_dataframe(corpus, predictors)
        y = extract_labels(corpus)

        model = train_booster(X, y, _config())
        assert isinstance(model, BoosterModel)

        proba = predict_proba(model, X)
        assert proba.shape == (len(corpus), 5)
        np.testing.assert_allclose(proba.sum(axis=1), 1.0, atol=1e-6)
        assert np.all(proba >= 0)

    def test_numpy_input(self):
        rng = np.random.RandomState(0)
        y = np.repeat(np.arange(5), 20)
        X = y[:, None] + rng.randn(100, 3) * 0.5
        model = train_booster(X, y, _config())
        assert model.predict_proba(X[0]).shape == (1, 5)

    def test_learns_signal(self, corpus):
        predictors = [f"sensor_{j}" for j in range(10)]
        X = extract_features_dataframe(corpus, predictors)
        y = extract_labels(corpus)
        model = train_booster(X, y, _config(num_rounds=30), {"min_data_in_leaf": 5})
        accuracy = np.mean(model.predict_proba(X).argmax(axis=1) == y)
        assert accuracy > 0.6

    def test_feature_importance_names(self, corpus):
        predictors = [f"sensor_{j}" for j in range(10)]
        X = extract_features_dataframe(corpus, predictors)
        model = train_booster(X, extract_labels(corpus), _config())
        assert set(model.feature_importance()) == set(predictors)

    def test_config_kept(self, corpus):
        X = extract_features_dataframe(corpus, ["sensor_0"])
        config = _config()
        model = train_booster(X, extract_labels(corpus), config)
        assert model.config is config

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            train_booster(np.zeros((0, 3)), np.array([], dtype=int), _config())
