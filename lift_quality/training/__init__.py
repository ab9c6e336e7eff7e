"""
Training pipeline for the weight-lifting exercise quality classifier.

Tunes a LightGBM multiclass model over (min_child_weight, lambda_relative)
with stratified k-fold cross-validation scored by cross-entropy.
"""
from .features import (
    extract_features_dataframe,
    extract_labels,
    learn_categories,
    missing_fractions,
    select_predictors,
    FeatureSelection,
    CLASS_NAMES,
    ID_COLUMNS,
    LABEL_COLUMN,
    LABEL_MAP,
    LABEL_NAMES,
    MISSING_CUTOFF,
)
from .data_validator import validate_schema, validate_training_data, ValidationResult
from .partition import stratified_folds, stratified_split, Fold
from .evaluator import (
    cross_entropy,
    evaluate_classifier,
    format_predictions,
    ClassificationReport,
)
from .tuner import build_grid, cross_validate, GridPoint, TuningResult
from .selector import select_best, select_best_from
from .trainer import run_pipeline, train_final_model, PipelineResult

__all__ = [
    "extract_features_dataframe",
    "extract_labels",
    "learn_categories",
    "missing_fractions",
    "select_predictors",
    "FeatureSelection",
    "CLASS_NAMES",
    "ID_COLUMNS",
    "LABEL_COLUMN",
    "LABEL_MAP",
    "LABEL_NAMES",
    "MISSING_CUTOFF",
    "validate_schema",
    "validate_training_data",
    "ValidationResult",
    "stratified_folds",
    "stratified_split",
    "Fold",
    "cross_entropy",
    "evaluate_classifier",
    "format_predictions",
    "ClassificationReport",
    "build_grid",
    "cross_validate",
    "GridPoint",
    "TuningResult",
    "select_best",
    "select_best_from",
    "run_pipeline",
    "train_final_model",
    "PipelineResult",
]
