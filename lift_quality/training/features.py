"""
Predictor selection for the weight-lifting exercise corpus.

The labeled corpus has 160 columns:
  Identifiers/timestamps (7): X, user_name, raw_timestamp_part_1,
    raw_timestamp_part_2, cvtd_timestamp, new_window, num_window
  Sensor readings (152): belt, arm, dumbbell and forearm IMU channels,
    about two thirds of them window summaries (avg_, stddev_, kurtosis_, ...)
    populated only on new_window == "yes" rows
  Label (1): classe, one of A..E

The unlabeled evaluation table swaps classe for problem_id.

The predictor set is fitted on the training partition only: columns that are
mostly missing there are dropped, as are the identifier columns and the label.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..errors import SchemaError

logger = logging.getLogger(__name__)

LABEL_COLUMN = "classe"
PROBLEM_ID_COLUMN = "problem_id"

LABEL_MAP = {"A": 0, "B": 1, "C": 2, "D": 3, "E": 4}
LABEL_NAMES = {v: k for k, v in LABEL_MAP.items()}
CLASS_NAMES = [LABEL_NAMES[i] for i in range(len(LABEL_MAP))]
N_CLASSES = len(LABEL_MAP)

# Non-predictive bookkeeping columns
ID_COLUMNS = [
    "X",
    "user_name",
    "raw_timestamp_part_1",
    "raw_timestamp_part_2",
    "cvtd_timestamp",
    "new_window",
    "num_window",
    PROBLEM_ID_COLUMN,
]

MISSING_CUTOFF = 0.95


@dataclass
class FeatureSelection:
    """Outcome of predictor selection on a training table."""
    predictors: List[str]
    dropped_missing: List[str] = field(default_factory=list)
    dropped_ids: List[str] = field(default_factory=list)
    dropped_label: List[str] = field(default_factory=list)
    cutoff: float = MISSING_CUTOFF

    @property
    def excluded(self) -> List[str]:
        return self.dropped_label + self.dropped_ids + self.dropped_missing

    def summary(self) -> str:
        lines = [
            f"Predictors:        {len(self.predictors)}",
            f"Mostly missing:    {len(self.dropped_missing)} (> {self.cutoff:.0%} missing)",
            f"Identifier/time:   {len(self.dropped_ids)}",
            f"Label:             {len(self.dropped_label)}",
            "",
            "Predictor columns:",
        ]
        for name in self.predictors:
            lines.append(f"  {name}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "predictors": list(self.predictors),
            "dropped_missing": list(self.dropped_missing),
            "dropped_ids": list(self.dropped_ids),
            "dropped_label": list(self.dropped_label),
            "cutoff": self.cutoff,
        }


def missing_fractions(frame: pd.DataFrame) -> pd.Series:
    """Fraction of rows per column that are NaN or an empty string."""
    if len(frame) == 0:
        return pd.Series(0.0, index=frame.columns)
    missing = frame.isna()
    for col in frame.columns:
        if not pd.api.types.is_numeric_dtype(frame[col]):
            blank = frame[col].astype(object).map(lambda v: isinstance(v, str) and v.strip() == "")
            missing[col] = missing[col] | blank.astype(bool)
    return missing.mean(axis=0)


def select_predictors(
    frame: pd.DataFrame,
    cutoff: float = MISSING_CUTOFF,
    label_column: str = LABEL_COLUMN,
    id_columns: Sequence[str] = ID_COLUMNS,
) -> FeatureSelection:
    """Choose predictor columns from a training table.

    A column is mostly missing when its missing fraction is strictly greater
    than ``cutoff``; a fraction exactly at the cutoff is kept.

    Args:
        frame: Training partition.
        cutoff: Missing-fraction threshold (default 0.95).
        label_column: Label column to exclude.
        id_columns: Identifier/timestamp columns to exclude.

    Returns:
        FeatureSelection with predictors in original column order.
    """
    if not 0.0 <= cutoff <= 1.0:
        raise ValueError(f"cutoff must be within [0, 1], got {cutoff}")

    fractions = missing_fractions(frame)
    id_set = set(id_columns)

    predictors: List[str] = []
    dropped_missing: List[str] = []
    dropped_ids: List[str] = []
    dropped_label: List[str] = []

    for col in frame.columns:
        if col == label_column:
            dropped_label.append(col)
        elif col in id_set:
            dropped_ids.append(col)
        elif fractions[col] > cutoff:
            dropped_missing.append(col)
        else:
            predictors.append(col)

    logger.info(
        "Selected %d predictors (dropped %d mostly-missing, %d identifier columns)",
        len(predictors), len(dropped_missing), len(dropped_ids),
    )
    return FeatureSelection(
        predictors=predictors,
        dropped_missing=dropped_missing,
        dropped_ids=dropped_ids,
        dropped_label=dropped_label,
        cutoff=cutoff,
    )


def _is_numeric_like(series: pd.Series) -> bool:
    if pd.api.types.is_numeric_dtype(series):
        return True
    non_null = series.dropna()
    if len(non_null) == 0:
        return True
    converted = pd.to_numeric(non_null, errors="coerce")
    return bool(converted.notna().all())


def learn_categories(frame: pd.DataFrame, predictors: Iterable[str]) -> Dict[str, List[str]]:
    """Category levels for non-numeric predictors, learned from the training table."""
    categories: Dict[str, List[str]] = {}
    for col in predictors:
        series = frame[col]
        if not _is_numeric_like(series):
            levels = sorted(str(v) for v in series.dropna().unique())
            categories[col] = levels
    return categories


def extract_features_dataframe(
    frame: pd.DataFrame,
    predictors: Sequence[str],
    categories: Optional[Dict[str, List[str]]] = None,
) -> pd.DataFrame:
    """Build the feature frame for a table using a fixed predictor set.

    Args:
        frame: Any of the training, validation or evaluation tables.
        predictors: Predictor columns, in order, from select_predictors.
        categories: Category levels from learn_categories on the training
            table. Columns listed here become pandas Categoricals with exactly
            these levels; everything else is coerced to float.

    Returns:
        DataFrame with columns == predictors.

    Raises:
        SchemaError: If a predictor column is absent.
    """
    missing = [c for c in predictors if c not in frame.columns]
    if missing:
        raise SchemaError(f"Table is missing predictor columns: {missing}")

    categories = categories or {}
    out = {}
    for col in predictors:
        if col in categories:
            values = frame[col].map(lambda v: None if pd.isna(v) else str(v))
            out[col] = pd.Categorical(values, categories=categories[col])
        else:
            out[col] = pd.to_numeric(frame[col], errors="coerce").astype(float)
    return pd.DataFrame(out, index=frame.index, columns=list(predictors))


def extract_labels(frame: pd.DataFrame, label_column: str = LABEL_COLUMN) -> np.ndarray:
    """Map label strings to integer codes.

    Raises:
        SchemaError: If the label column is absent or holds unknown labels.
    """
    if label_column not in frame.columns:
        raise SchemaError(f"Label column '{label_column}' not found")
    raw = frame[label_column].astype(str).str.strip()
    unknown = sorted(set(raw) - set(LABEL_MAP))
    if unknown:
        raise SchemaError(f"Unknown labels in '{label_column}': {unknown}")
    return raw.map(LABEL_MAP).to_numpy(dtype=np.int32)
