"""
Exploratory Data Analysis on the weight-lifting exercise corpus.
Look at class balance, per-subject coverage and column missingness before
choosing the missing-value cutoff for predictor selection.
"""
import sys

import numpy as np
import pandas as pd

sys.path.insert(0, ".")

from lift_quality.data.loader import EVALUATION_URL, TRAINING_URL, load_datasets  # noqa: E402
from lift_quality.training.features import (  # noqa: E402
    ID_COLUMNS, LABEL_COLUMN, MISSING_CUTOFF, missing_fractions,
)


def describe_corpus(frame: pd.DataFrame, cutoff: float = MISSING_CUTOFF) -> dict:
    """Summary numbers for a labeled table."""
    fractions = missing_fractions(frame.drop(columns=[LABEL_COLUMN], errors="ignore"))
    sensor_fractions = fractions[[c for c in fractions.index if c not in ID_COLUMNS]]
    class_counts = frame[LABEL_COLUMN].value_counts().sort_index()
    by_user = (
        frame.groupby(["user_name", LABEL_COLUMN]).size().unstack(fill_value=0)
        if "user_name" in frame.columns else pd.DataFrame()
    )
    return {
        "rows": len(frame),
        "columns": len(frame.columns),
        "class_counts": {str(k): int(v) for k, v in class_counts.items()},
        "by_user": by_user,
        "complete_columns": int((sensor_fractions == 0).sum()),
        "mostly_missing_columns": int((sensor_fractions > cutoff).sum()),
        "partly_missing_columns": int(((sensor_fractions > 0) & (sensor_fractions <= cutoff)).sum()),
        "missing_fractions": sensor_fractions,
    }


def main(training: str = TRAINING_URL, evaluation: str = EVALUATION_URL):
    labeled, unlabeled = load_datasets(training, evaluation)
    info = describe_corpus(labeled)

    print(f"Labeled rows: {info['rows']}  columns: {info['columns']}")
    print(f"Evaluation rows: {len(unlabeled)}")
    print()

    print("=" * 70)
    print("CLASS DISTRIBUTION")
    print("=" * 70)
    for name, count in info["class_counts"].items():
        print(f"  {name}: {count:>6}  ({count / info['rows']:.1%})")

    print()
    print("=" * 70)
    print("ROWS PER SUBJECT AND CLASS")
    print("=" * 70)
    print(info["by_user"].to_string())

    print()
    print("=" * 70)
    print(f"SENSOR COLUMN MISSINGNESS (cutoff {MISSING_CUTOFF:.0%})")
    print("=" * 70)
    print(f"  Complete:        {info['complete_columns']}")
    print(f"  Partly missing:  {info['partly_missing_columns']}")
    print(f"  Mostly missing:  {info['mostly_missing_columns']}")
    fractions = info["missing_fractions"]
    for p in [0, 25, 50, 75, 100]:
        print(f"  P{p:>3}: {np.percentile(fractions, p):.2%}")


if __name__ == "__main__":
    main(*sys.argv[1:3])
