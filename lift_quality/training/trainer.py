"""
End-to-end analysis pipeline for the weight-lifting exercise classifier.

Stages, each run once in order:
  1. stratified 70/30 training/validation split (fixed seed)
  2. predictor selection on the training partition only
  3. k-fold cross-validated grid search over (min_child_weight, lambda_relative)
  4. selection of the lowest mean cross-entropy grid point
  5. final fit on the full training partition with more rounds and a smaller
     learning rate, scored once on the validation partition
  6. class-probability predictions for the unlabeled evaluation rows

The validation rows are never seen by feature selection, category learning,
tuning folds, or the final fit.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..models.booster import BoosterConfig, BoosterModel, train_booster
from .data_validator import validate_schema, validate_training_data
from .evaluator import ClassificationReport, cross_entropy, evaluate_classifier, format_predictions
from .features import (
    MISSING_CUTOFF, N_CLASSES, PROBLEM_ID_COLUMN,
    FeatureSelection, extract_features_dataframe, extract_labels,
    learn_categories, select_predictors,
)
from .partition import N_FOLDS, SEED, TRAIN_FRACTION, stratified_split
from .selector import select_best
from .tuner import (
    CV_LEARNING_RATE, CV_ROUNDS, LAMBDA_RELATIVES, MIN_CHILD_WEIGHTS, SUBSAMPLE,
    GridPoint, TuningResult, build_grid, cross_validate,
)

logger = logging.getLogger(__name__)

FINAL_ROUNDS = 600
FINAL_LEARNING_RATE = 0.05


@dataclass
class PipelineResult:
    """Everything the report needs from one pipeline run."""
    selection: FeatureSelection
    train_size: int
    valid_size: int
    tuning: TuningResult
    best_point: GridPoint
    final_config: BoosterConfig
    validation_report: ClassificationReport
    validation_cross_entropy: float
    predictions: List[Dict] = field(default_factory=list)
    model: Optional[BoosterModel] = None

    def to_dict(self) -> dict:
        return {
            "train_size": self.train_size,
            "valid_size": self.valid_size,
            "feature_selection": self.selection.to_dict(),
            "cv_evaluation": self.tuning.to_dict(),
            "best_point": self.best_point.to_dict(),
            "final_config": self.final_config.to_dict(),
            "validation_cross_entropy": self.validation_cross_entropy,
            "evaluation": self.validation_report.to_dict(),
            "predictions": self.predictions,
        }


def train_final_model(
    train_features,
    train_labels: np.ndarray,
    point: GridPoint,
    num_rounds: int = FINAL_ROUNDS,
    learning_rate: float = FINAL_LEARNING_RATE,
    subsample: float = SUBSAMPLE,
    seed: int = SEED,
    cv_rounds: int = CV_ROUNDS,
    cv_learning_rate: float = CV_LEARNING_RATE,
    extra_params: Optional[Dict] = None,
) -> BoosterModel:
    """Refit on the whole training partition with the selected hyperparameters.

    Args:
        train_features: Training feature DataFrame.
        train_labels: Integer labels for the training rows.
        point: Grid point chosen by the selector.
        num_rounds: Boosting rounds; must exceed cv_rounds.
        learning_rate: Learning rate; must be below cv_learning_rate.
        subsample: Row-subsampling fraction.
        seed: Random seed.
        cv_rounds: Rounds used during tuning, for the budget check.
        cv_learning_rate: Learning rate used during tuning, for the step check.
        extra_params: Additional LightGBM params to merge.

    Returns:
        Trained BoosterModel.
    """
    if num_rounds <= cv_rounds:
        raise ValueError(f"Final num_rounds ({num_rounds}) must exceed tuning rounds ({cv_rounds})")
    if learning_rate >= cv_learning_rate:
        raise ValueError(
            f"Final learning_rate ({learning_rate}) must be below tuning rate ({cv_learning_rate})"
        )

    config = BoosterConfig(
        num_rounds=num_rounds,
        learning_rate=learning_rate,
        subsample=subsample,
        reg_lambda=point.reg_lambda,
        min_child_weight=point.min_child_weight,
        num_class=N_CLASSES,
        seed=seed,
    )
    logger.info(
        "Training final model (%d rounds, lr=%.3f, mcw=%.3g, lambda=%.3g) on %d rows...",
        num_rounds, learning_rate, point.min_child_weight, point.reg_lambda, len(train_labels),
    )
    return train_booster(train_features, train_labels, config, extra_params)


def run_pipeline(
    labeled: pd.DataFrame,
    unlabeled: pd.DataFrame,
    seed: int = SEED,
    train_fraction: float = TRAIN_FRACTION,
    missing_cutoff: float = MISSING_CUTOFF,
    n_folds: int = N_FOLDS,
    min_child_weights: Sequence[float] = MIN_CHILD_WEIGHTS,
    lambda_relatives: Sequence[float] = LAMBDA_RELATIVES,
    cv_rounds: int = CV_ROUNDS,
    cv_learning_rate: float = CV_LEARNING_RATE,
    num_rounds: int = FINAL_ROUNDS,
    learning_rate: float = FINAL_LEARNING_RATE,
    subsample: float = SUBSAMPLE,
    n_jobs: int = 1,
    min_samples: int = 50,
    extra_params: Optional[Dict] = None,
) -> PipelineResult:
    """Run every stage from split to evaluation-set predictions.

    Args:
        labeled: Labeled corpus (has the classe column).
        unlabeled: Evaluation table (has problem_id, no label).
        seed: Seed for the split, folds and row subsampling.
        train_fraction: Training share of the labeled corpus (default 0.7).
        missing_cutoff: Drop predictors missing in more than this fraction.
        n_folds: Cross-validation folds (default 5).
        min_child_weights: Grid axis for min_child_weight.
        lambda_relatives: Grid axis for lambda / min_child_weight.
        cv_rounds: Boosting rounds per tuning run.
        cv_learning_rate: Learning rate per tuning run.
        num_rounds: Boosting rounds for the final model.
        learning_rate: Learning rate for the final model.
        subsample: Row-subsampling fraction for every fit.
        n_jobs: Concurrent tuning runs.
        min_samples: Minimum training rows required.
        extra_params: Additional LightGBM params to merge.

    Returns:
        PipelineResult.

    Raises:
        SchemaError: On missing columns, unknown labels, or too little data.
        DegenerateFoldError: If a tuning fold cannot cover every class.
        NumericError: If a tuning score is not finite.
    """
    validate_schema(labeled, labeled=True)
    validate_schema(unlabeled, labeled=False)

    all_labels = extract_labels(labeled)
    logger.info("Labeled corpus: %d rows; evaluation table: %d rows", len(labeled), len(unlabeled))

    # ---- Partition ----
    train_idx, valid_idx = stratified_split(all_labels, train_fraction=train_fraction, seed=seed)
    training = labeled.iloc[train_idx]
    validation = labeled.iloc[valid_idx]
    train_labels = all_labels[train_idx]
    valid_labels = all_labels[valid_idx]

    validation_result = validate_training_data(train_labels, min_samples=min_samples)
    for warning in validation_result.warnings:
        logger.warning(warning)
    validation_result.raise_for_errors()

    # ---- Feature selection (training partition only) ----
    selection = select_predictors(training, cutoff=missing_cutoff)
    if not selection.predictors:
        raise ValueError("No predictor columns survived selection")
    categories = learn_categories(training, selection.predictors)

    X_train = extract_features_dataframe(training, selection.predictors, categories)
    X_valid = extract_features_dataframe(validation, selection.predictors, categories)
    X_eval = extract_features_dataframe(unlabeled, selection.predictors, categories)

    # ---- Tuning ----
    grid = build_grid(min_child_weights, lambda_relatives)
    tuning = cross_validate(
        X_train, train_labels, grid,
        k=n_folds, seed=seed,
        num_rounds=cv_rounds, learning_rate=cv_learning_rate,
        subsample=subsample, n_jobs=n_jobs, extra_params=extra_params,
    )
    best = select_best(tuning.grid, tuning.mean_scores)

    # ---- Final model ----
    model = train_final_model(
        X_train, train_labels, best,
        num_rounds=num_rounds, learning_rate=learning_rate,
        subsample=subsample, seed=seed,
        cv_rounds=cv_rounds, cv_learning_rate=cv_learning_rate,
        extra_params=extra_params,
    )

    valid_proba = model.predict_proba(X_valid)
    valid_ce = cross_entropy(valid_proba, valid_labels)
    report = evaluate_classifier(valid_proba, valid_labels)
    logger.info(
        "Validation: accuracy=%.4f (95%% CI %.4f-%.4f), kappa=%.4f, cross-entropy=%.4f bits",
        report.accuracy, report.accuracy_ci[0], report.accuracy_ci[1],
        report.kappa, valid_ce,
    )

    eval_proba = model.predict_proba(X_eval)
    predictions = format_predictions(eval_proba, unlabeled[PROBLEM_ID_COLUMN].tolist())
    logger.info("Predicted %d evaluation rows", len(predictions))

    return PipelineResult(
        selection=selection,
        train_size=len(train_idx),
        valid_size=len(valid_idx),
        tuning=tuning,
        best_point=best,
        final_config=model.config,
        validation_report=report,
        validation_cross_entropy=valid_ce,
        predictions=predictions,
        model=model,
    )
