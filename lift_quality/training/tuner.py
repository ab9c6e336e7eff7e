"""
Grid search over (min_child_weight, lambda_relative) with stratified k-fold CV.

Every (fold, grid point) pair trains one booster on the held-in rows and scores
it by cross-entropy on the held-out rows. Runs share no mutable state: each
writes into its own slot of a preallocated score matrix, so they can be
scheduled on a thread pool. Any failing run aborts the whole search; a grid
point is never averaged over fewer than k folds.
"""
import itertools
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..errors import NumericError
from ..models.booster import BoosterConfig, train_booster
from .evaluator import cross_entropy
from .features import N_CLASSES
from .partition import N_FOLDS, SEED, Fold, stratified_folds

logger = logging.getLogger(__name__)

MIN_CHILD_WEIGHTS = (0.2, 0.5, 1.0, 2.0, 5.0)
LAMBDA_RELATIVES = (0.2, 0.5, 1.0, 2.0, 5.0)

# Enough rounds at this rate to converge across the whole grid
CV_ROUNDS = 150
CV_LEARNING_RATE = 0.3
SUBSAMPLE = 0.5


@dataclass(frozen=True)
class GridPoint:
    """Hyperparameter pair; lambda always follows from the relative multiplier."""
    min_child_weight: float
    lambda_relative: float

    @property
    def reg_lambda(self) -> float:
        return self.lambda_relative * self.min_child_weight

    def as_tuple(self):
        return (self.min_child_weight, self.lambda_relative)

    def to_dict(self) -> dict:
        return {
            "min_child_weight": self.min_child_weight,
            "lambda_relative": self.lambda_relative,
            "reg_lambda": self.reg_lambda,
        }


@dataclass
class TuningResult:
    """Cross-validation scores for every grid point."""
    grid: List[GridPoint]
    fold_scores: np.ndarray  # shape (k, len(grid))
    mean_scores: np.ndarray  # shape (len(grid),)
    fold_sizes: List[int]

    @property
    def n_folds(self) -> int:
        return self.fold_scores.shape[0]

    @property
    def models_trained(self) -> int:
        return int(self.fold_scores.size)

    def table(self) -> pd.DataFrame:
        """Mean/std score per grid point in enumeration order."""
        return pd.DataFrame({
            "min_child_weight": [p.min_child_weight for p in self.grid],
            "lambda_relative": [p.lambda_relative for p in self.grid],
            "reg_lambda": [p.reg_lambda for p in self.grid],
            "mean_cross_entropy": self.mean_scores,
            "std_cross_entropy": self.fold_scores.std(axis=0),
        })

    def summary(self) -> str:
        lines = [f"{self.n_folds}-fold CV over {len(self.grid)} grid points "
                 f"({self.models_trained} models):", ""]
        lines.append(f"  {'mcw':>8} {'lambda_rel':>10} {'lambda':>8} {'mean bits':>10} {'std':>8}")
        for _, row in self.table().iterrows():
            lines.append(
                f"  {row.min_child_weight:8.3g} {row.lambda_relative:10.3g} {row.reg_lambda:8.3g} "
                f"{row.mean_cross_entropy:10.4f} {row.std_cross_entropy:8.4f}"
            )
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "n_folds": self.n_folds,
            "fold_sizes": list(self.fold_sizes),
            "grid": [
                {**p.to_dict(), "mean_cross_entropy": float(m),
                 "per_fold": [float(s) for s in self.fold_scores[:, j]]}
                for j, (p, m) in enumerate(zip(self.grid, self.mean_scores))
            ],
        }


def build_grid(
    min_child_weights: Sequence[float] = MIN_CHILD_WEIGHTS,
    lambda_relatives: Sequence[float] = LAMBDA_RELATIVES,
) -> List[GridPoint]:
    """Enumerate the grid with min_child_weight as the outer loop."""
    if not min_child_weights or not lambda_relatives:
        raise ValueError("Both hyperparameter axes need at least one value")
    return [
        GridPoint(float(mcw), float(rel))
        for mcw, rel in itertools.product(min_child_weights, lambda_relatives)
    ]


def _rows(features, idx: np.ndarray):
    if isinstance(features, pd.DataFrame):
        return features.iloc[idx]
    return features[idx]


def _score_run(
    features,
    labels: np.ndarray,
    fold: Fold,
    point: GridPoint,
    num_rounds: int,
    learning_rate: float,
    subsample: float,
    seed: int,
    num_threads: int,
    extra_params: Optional[Dict],
) -> float:
    config = BoosterConfig(
        num_rounds=num_rounds,
        learning_rate=learning_rate,
        subsample=subsample,
        reg_lambda=point.reg_lambda,
        min_child_weight=point.min_child_weight,
        num_class=N_CLASSES,
        seed=seed,
        num_threads=num_threads,
    )
    model = train_booster(
        _rows(features, fold.held_in), labels[fold.held_in], config, extra_params,
    )
    proba = model.predict_proba(_rows(features, fold.held_out))
    score = cross_entropy(proba, labels[fold.held_out])
    if not math.isfinite(score):
        raise NumericError(
            f"Non-finite cross-entropy on fold {fold.index} at {point.as_tuple()}"
        )
    logger.debug("Fold %d %s: %.4f bits", fold.index, point.as_tuple(), score)
    return score


def cross_validate(
    features,
    labels: np.ndarray,
    grid: Sequence[GridPoint],
    k: int = N_FOLDS,
    seed: int = SEED,
    num_rounds: int = CV_ROUNDS,
    learning_rate: float = CV_LEARNING_RATE,
    subsample: float = SUBSAMPLE,
    n_jobs: int = 1,
    extra_params: Optional[Dict] = None,
) -> TuningResult:
    """Score every grid point by mean cross-entropy over k stratified folds.

    Args:
        features: Training feature DataFrame (or array).
        labels: Integer labels for the training rows.
        grid: Grid points in enumeration order (see build_grid).
        k: Number of folds (default 5).
        seed: Seed for fold assignment and row subsampling.
        num_rounds: Fixed boosting rounds per run.
        learning_rate: Fixed learning rate per run.
        subsample: Row-subsampling fraction per boosting round.
        n_jobs: Concurrent training runs (1 = sequential).
        extra_params: Additional LightGBM params to merge.

    Returns:
        TuningResult with per-fold and mean scores.

    Raises:
        DegenerateFoldError: If folds cannot cover every class.
        NumericError: If any run yields a non-finite score.
    """
    grid = list(grid)
    if not grid:
        raise ValueError("Grid is empty")
    labels = np.asarray(labels)
    if len(labels) != len(features):
        raise ValueError(f"{len(features)} feature rows but {len(labels)} labels")

    folds = stratified_folds(labels, k=k, seed=seed)
    scores = np.full((k, len(grid)), np.nan)
    tasks = [(f, j) for f in range(k) for j in range(len(grid))]

    # One LightGBM thread per concurrent run
    num_threads = 1 if n_jobs > 1 else 0

    def run(task):
        f, j = task
        scores[f, j] = _score_run(
            features, labels, folds[f], grid[j], num_rounds, learning_rate,
            subsample, seed, num_threads, extra_params,
        )

    logger.info(
        "Cross-validating %d grid points x %d folds = %d runs (n_jobs=%d)",
        len(grid), k, len(tasks), n_jobs,
    )
    if n_jobs > 1:
        with ThreadPoolExecutor(max_workers=n_jobs) as pool:
            # list() re-raises the first failure
            list(pool.map(run, tasks))
    else:
        for task in tasks:
            run(task)

    mean_scores = scores.mean(axis=0)
    for point, mean in zip(grid, mean_scores):
        logger.info(
            "mcw=%.3g lambda_rel=%.3g (lambda=%.3g): mean %.4f bits",
            point.min_child_weight, point.lambda_relative, point.reg_lambda, mean,
        )

    return TuningResult(
        grid=grid,
        fold_scores=scores,
        mean_scores=mean_scores,
        fold_sizes=[len(f.held_out) for f in folds],
    )
