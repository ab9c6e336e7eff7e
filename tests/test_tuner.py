"""Tests for the cross-validated grid search."""
from unittest.mock import patch

import numpy as np
import pytest

from lift_quality.errors import DegenerateFoldError, NumericError
from lift_quality.models.booster import train_booster
from lift_quality.training import tuner
from lift_quality.training.features import extract_features_dataframe, extract_labels
from lift_quality.training.tuner import GridPoint, TuningResult, build_grid, cross_validate

PREDICTORS = [f"sensor_{j}" for j in range(10)]


def _xy(corpus):
    return extract_features_dataframe(corpus, PREDICTORS), extract_labels(corpus)


class TestGridPoint:
    def test_lambda_derived_from_relative(self):
        point = GridPoint(min_child_weight=0.5, lambda_relative=2.0)
        assert point.reg_lambda == pytest.approx(1.0)

    def test_lambda_not_settable(self):
        point = GridPoint(0.5, 2.0)
        with pytest.raises(AttributeError):
            point.reg_lambda = 3.0

    def test_to_dict(self):
        d = GridPoint(0.2, 0.5).to_dict()
        assert d == {"min_child_weight": 0.2, "lambda_relative": 0.5, "reg_lambda": pytest.approx(0.1)}


class TestBuildGrid:
    def test_outer_loop_is_min_child_weight(self):
        grid = build_grid([0.2, 0.5], [0.2, 0.5])
        assert [p.as_tuple() for p in grid] == [(0.2, 0.2), (0.2, 0.5), (0.5, 0.2), (0.5, 0.5)]

    def test_default_size(self):
        assert len(build_grid()) == len(tuner.MIN_CHILD_WEIGHTS) * len(tuner.LAMBDA_RELATIVES)

    def test_empty_axis(self):
        with pytest.raises(ValueError):
            build_grid([], [1.0])


class TestCrossValidate:
    def test_one_point_trains_k_models(self, corpus):
        """A 1x1 grid over 5 folds trains exactly 5 models and yields one mean."""
        X, y = _xy(corpus)
        fold_scores = []
        real_cross_entropy = tuner.cross_entropy

        def recording_cross_entropy(proba, labels):
            score = real_cross_entropy(proba, labels)
            fold_scores.append(score)
            return score

        with patch("lift_quality.training.tuner.train_booster", wraps=train_booster) as mock_train, \
                patch("lift_quality.training.tuner.cross_entropy", side_effect=recording_cross_entropy):
            result = cross_validate(X, y, [GridPoint(1.0, 1.0)], k=5, num_rounds=10)

        assert mock_train.call_count == 5
        assert isinstance(result, TuningResult)
        assert result.fold_scores.shape == (5, 1)
        assert result.mean_scores.shape == (1,)
        assert result.models_trained == 5
        assert len(fold_scores) == 5
        assert result.mean_scores[0] == pytest.approx(np.mean(fold_scores))

    def test_scores_per_grid_point(self, corpus):
        X, y = _xy(corpus)
        grid = build_grid([0.5, 2.0], [0.2, 1.0])
        result = cross_validate(X, y, grid, k=3, num_rounds=10)
        assert result.fold_scores.shape == (3, 4)
        assert np.all(np.isfinite(result.fold_scores))
        assert np.all(result.fold_scores > 0)
        np.testing.assert_allclose(result.mean_scores, result.fold_scores.mean(axis=0))
        assert sum(result.fold_sizes) == len(y)

    def test_threads_match_sequential(self, corpus):
        """Concurrent runs fill the same slots as sequential ones."""
        X, y = _xy(corpus)
        grid = build_grid([0.5, 2.0], [1.0])
        sequential = cross_validate(X, y, grid, k=3, num_rounds=10, n_jobs=1)
        threaded = cross_validate(X, y, grid, k=3, num_rounds=10, n_jobs=3)
        np.testing.assert_allclose(sequential.fold_scores, threaded.fold_scores, atol=1e-3)

    def test_deterministic(self, corpus):
        X, y = _xy(corpus)
        grid = [GridPoint(1.0, 0.5)]
        a = cross_validate(X, y, grid, k=3, num_rounds=10, seed=5)
        b = cross_validate(X, y, grid, k=3, num_rounds=10, seed=5)
        np.testing.assert_array_equal(a.fold_scores, b.fold_scores)

    def test_training_failure_aborts(self, corpus):
        X, y = _xy(corpus)
        with patch("lift_quality.training.tuner.train_booster", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError, match="boom"):
                cross_validate(X, y, [GridPoint(1.0, 1.0)], k=5, num_rounds=10)

    def test_training_failure_aborts_threaded(self, corpus):
        X, y = _xy(corpus)
        with patch("lift_quality.training.tuner.train_booster", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                cross_validate(X, y, build_grid([1.0, 2.0], [1.0]), k=5, num_rounds=10, n_jobs=2)

    def test_non_finite_score_raises(self, corpus):
        X, y = _xy(corpus)
        with patch("lift_quality.training.tuner.cross_entropy", return_value=float("inf")):
            with pytest.raises(NumericError):
                cross_validate(X, y, [GridPoint(1.0, 1.0)], k=5, num_rounds=5)

    def test_degenerate_folds(self, corpus):
        X, y = _xy(corpus)
        y = y.copy()
        y[y == 4] = 3
        with pytest.raises(DegenerateFoldError):
            cross_validate(X, y, [GridPoint(1.0, 1.0)], k=5, num_rounds=5)

    def test_length_mismatch(self, corpus):
        X, y = _xy(corpus)
        with pytest.raises(ValueError):
            cross_validate(X, y[:-1], [GridPoint(1.0, 1.0)])

    def test_result_table_and_dict(self, corpus):
        X, y = _xy(corpus)
        grid = build_grid([1.0], [0.5, 1.0])
        result = cross_validate(X, y, grid, k=3, num_rounds=5)
        table = result.table()
        assert list(table["lambda_relative"]) == [0.5, 1.0]
        d = result.to_dict()
        assert d["n_folds"] == 3
        assert len(d["grid"][0]["per_fold"]) == 3
        assert "mean bits" in result.summary()
