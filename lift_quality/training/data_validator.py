"""
Data validation for the training pipeline.

Checks the input schema and minimum label requirements before any model is
trained, providing clear error messages when the dataset is unusable.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from ..errors import SchemaError
from .features import ID_COLUMNS, LABEL_COLUMN, LABEL_NAMES, N_CLASSES, PROBLEM_ID_COLUMN

MIN_TOTAL_SAMPLES = 50
MIN_SAMPLES_PER_CLASS = 5
WARN_TOTAL_SAMPLES = 500
WARN_SAMPLES_PER_CLASS = 50

# Identifier columns present in every table of the corpus
REQUIRED_COLUMNS = ["user_name", "num_window"]


@dataclass
class ValidationResult:
    """Result of training data validation."""
    is_valid: bool
    total_samples: int
    class_distribution: Dict[str, int]
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        lines = [f"Samples: {self.total_samples}"]
        for name, count in sorted(self.class_distribution.items()):
            lines.append(f"  {name}: {count}")
        if self.errors:
            lines.append("Errors:")
            for e in self.errors:
                lines.append(f"  - {e}")
        if self.warnings:
            lines.append("Warnings:")
            for w in self.warnings:
                lines.append(f"  - {w}")
        return "\n".join(lines)

    def raise_for_errors(self):
        if not self.is_valid:
            raise SchemaError("; ".join(self.errors))


def validate_schema(
    frame: pd.DataFrame,
    labeled: bool = True,
    required: Sequence[str] = REQUIRED_COLUMNS,
):
    """Fail fast when a table lacks the columns the pipeline relies on.

    Args:
        frame: Labeled corpus or unlabeled evaluation table.
        labeled: Whether the table must carry the label column (True) or the
            problem_id column (False).
        required: Other columns that must be present.

    Raises:
        SchemaError: Listing every missing column.
    """
    expected = list(required)
    expected.append(LABEL_COLUMN if labeled else PROBLEM_ID_COLUMN)
    missing = [c for c in expected if c not in frame.columns]
    if missing:
        kind = "labeled" if labeled else "evaluation"
        raise SchemaError(f"The {kind} table is missing expected columns: {missing}")
    id_set = set(ID_COLUMNS)
    candidates = [c for c in frame.columns if c not in id_set and c != LABEL_COLUMN]
    if not candidates:
        raise SchemaError("Table has no candidate predictor columns")


def validate_training_data(labels: np.ndarray, min_samples: int = MIN_TOTAL_SAMPLES) -> ValidationResult:
    """Validate that training labels meet minimum requirements.

    Every class must be present: the booster is trained for all classes and
    the cross-entropy needs each one represented in every fold.

    Args:
        labels: Array of integer class labels.
        min_samples: Override minimum total samples (default 50).

    Returns:
        ValidationResult with is_valid flag, distribution, warnings, and errors.
    """
    errors: List[str] = []
    warnings: List[str] = []
    total = len(labels)

    class_dist: Dict[str, int] = {LABEL_NAMES[i]: 0 for i in range(N_CLASSES)}
    if total > 0:
        unique, counts = np.unique(labels, return_counts=True)
        for cls_id, count in zip(unique, counts):
            name = LABEL_NAMES.get(int(cls_id), f"unknown_{cls_id}")
            class_dist[name] = int(count)

    if total < min_samples:
        errors.append(f"Need at least {min_samples} labeled samples, got {total}.")

    for name, count in class_dist.items():
        if name.startswith("unknown_"):
            errors.append(f"Label code '{name}' is outside the {N_CLASSES} known classes.")
        elif count == 0:
            errors.append(f"Class '{name}' has no samples.")
        elif count < MIN_SAMPLES_PER_CLASS:
            errors.append(
                f"Class '{name}' has only {count} samples (minimum {MIN_SAMPLES_PER_CLASS})."
            )

    if min_samples <= total < WARN_TOTAL_SAMPLES:
        warnings.append(
            f"Only {total} samples; cross-validation estimates will be noisy. "
            f"Recommend at least {WARN_TOTAL_SAMPLES}."
        )

    for name, count in class_dist.items():
        if MIN_SAMPLES_PER_CLASS <= count < WARN_SAMPLES_PER_CLASS:
            warnings.append(
                f"Class '{name}' has only {count} samples; recommend {WARN_SAMPLES_PER_CLASS}+."
            )

    return ValidationResult(
        is_valid=len(errors) == 0,
        total_samples=total,
        class_distribution=class_dist,
        warnings=warnings,
        errors=errors,
    )
