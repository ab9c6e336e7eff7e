#!/usr/bin/env python3
"""
CLI for the weight-lifting exercise quality analysis

Usage:
    python -m lift_quality.cli fetch
    python -m lift_quality.cli select-features [--missing-cutoff 0.95]
    python -m lift_quality.cli run [--jobs 4] [--min-child-weights 0.2 0.5 1] [--json]
"""
import argparse
import json
import logging
import sys

from .data.loader import DATA_DIR, EVALUATION_URL, TRAINING_URL, fetch_dataset, load_datasets
from .errors import PipelineError
from .training.data_validator import validate_schema
from .training.evaluator import predictions_summary
from .training.features import MISSING_CUTOFF, extract_labels, select_predictors
from .training.partition import N_FOLDS, SEED, TRAIN_FRACTION, stratified_split
from .training.trainer import FINAL_LEARNING_RATE, FINAL_ROUNDS, run_pipeline
from .training.tuner import CV_LEARNING_RATE, CV_ROUNDS, LAMBDA_RELATIVES, MIN_CHILD_WEIGHTS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Weight-lifting exercise quality classifier"
    )
    parser.add_argument(
        "--data-dir",
        default=DATA_DIR,
        help=f"Directory for downloaded CSV files (default: {DATA_DIR})"
    )
    parser.add_argument(
        "--training",
        default=TRAINING_URL,
        help="URL or path of the labeled CSV"
    )
    parser.add_argument(
        "--evaluation",
        default=EVALUATION_URL,
        help="URL or path of the unlabeled evaluation CSV"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Download both CSV files into the data directory"
    )
    fetch_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Re-download files that already exist"
    )

    select_parser = subparsers.add_parser(
        "select-features",
        help="Show the predictor set chosen on the training partition"
    )
    select_parser.add_argument("--seed", type=int, default=SEED)
    select_parser.add_argument("--train-fraction", type=float, default=TRAIN_FRACTION)
    select_parser.add_argument(
        "--missing-cutoff",
        type=float,
        default=MISSING_CUTOFF,
        help=f"Drop columns missing in more than this fraction (default: {MISSING_CUTOFF})"
    )

    run_parser = subparsers.add_parser(
        "run",
        help="Tune, train and evaluate the classifier end to end"
    )
    run_parser.add_argument("--seed", type=int, default=SEED)
    run_parser.add_argument("--train-fraction", type=float, default=TRAIN_FRACTION)
    run_parser.add_argument("--missing-cutoff", type=float, default=MISSING_CUTOFF)
    run_parser.add_argument(
        "--folds",
        type=int,
        default=N_FOLDS,
        help=f"Cross-validation folds (default: {N_FOLDS})"
    )
    run_parser.add_argument(
        "--min-child-weights",
        type=float,
        nargs="+",
        default=list(MIN_CHILD_WEIGHTS),
        help="Grid values for min_child_weight"
    )
    run_parser.add_argument(
        "--lambda-relatives",
        type=float,
        nargs="+",
        default=list(LAMBDA_RELATIVES),
        help="Grid values for lambda / min_child_weight"
    )
    run_parser.add_argument("--cv-rounds", type=int, default=CV_ROUNDS)
    run_parser.add_argument("--cv-learning-rate", type=float, default=CV_LEARNING_RATE)
    run_parser.add_argument(
        "--num-rounds",
        type=int,
        default=FINAL_ROUNDS,
        help=f"Boosting rounds for the final model (default: {FINAL_ROUNDS})"
    )
    run_parser.add_argument(
        "--learning-rate",
        type=float,
        default=FINAL_LEARNING_RATE,
        help=f"Learning rate for the final model (default: {FINAL_LEARNING_RATE})"
    )
    run_parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Concurrent cross-validation runs (default: 1)"
    )

    return parser.parse_args(argv)


def _load(args):
    labeled, unlabeled = load_datasets(
        training=args.training, evaluation=args.evaluation, data_dir=args.data_dir,
    )
    validate_schema(labeled, labeled=True)
    validate_schema(unlabeled, labeled=False)
    return labeled, unlabeled


def cmd_fetch(args) -> dict:
    """Execute the fetch command."""
    paths = [
        fetch_dataset(url, data_dir=args.data_dir, overwrite=args.overwrite)
        for url in (args.training, args.evaluation)
    ]
    return {
        "command": "fetch",
        "paths": paths,
    }


def cmd_select_features(args) -> dict:
    """Execute the select-features command."""
    labeled, _ = _load(args)
    labels = extract_labels(labeled)
    train_idx, _ = stratified_split(labels, train_fraction=args.train_fraction, seed=args.seed)
    selection = select_predictors(labeled.iloc[train_idx], cutoff=args.missing_cutoff)
    return {
        "command": "select-features",
        "train_size": len(train_idx),
        **selection.to_dict(),
        "summary": selection.summary(),
    }


def cmd_run(args) -> dict:
    """Execute the run command (sync, CPU bound)."""
    labeled, unlabeled = _load(args)
    result = run_pipeline(
        labeled,
        unlabeled,
        seed=args.seed,
        train_fraction=args.train_fraction,
        missing_cutoff=args.missing_cutoff,
        n_folds=args.folds,
        min_child_weights=args.min_child_weights,
        lambda_relatives=args.lambda_relatives,
        cv_rounds=args.cv_rounds,
        cv_learning_rate=args.cv_learning_rate,
        num_rounds=args.num_rounds,
        learning_rate=args.learning_rate,
        n_jobs=args.jobs,
    )

    best = result.best_point
    summary = "\n\n".join([
        f"Training rows: {result.train_size}, validation rows: {result.valid_size}, "
        f"predictors: {len(result.selection.predictors)}",
        result.tuning.summary(),
        f"Selected: min_child_weight={best.min_child_weight:g}, "
        f"lambda_relative={best.lambda_relative:g} (lambda={best.reg_lambda:g})",
        result.validation_report.summary(),
        "Evaluation set predictions:\n" + predictions_summary(result.predictions),
    ])
    return {
        "command": "run",
        "success": True,
        **result.to_dict(),
        "summary": summary,
    }


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if args.command == "fetch":
            result = cmd_fetch(args)
        elif args.command == "select-features":
            result = cmd_select_features(args)
        elif args.command == "run":
            result = cmd_run(args)
        else:
            logger.error("Unknown command: %s", args.command)
            return 1
    except PipelineError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1

    summary = result.pop("summary", None)
    if args.json:
        print(json.dumps(result, indent=2, default=str))
    elif summary:
        print(summary)
    else:
        for key, value in result.items():
            print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
