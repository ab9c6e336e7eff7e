"""
Pytest configuration and fixtures.
"""
import os
import sys

import numpy as np
import pandas as pd
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

CLASSES = ["A", "B", "C", "D", "E"]


def make_corpus(n_per_class=20, n_predictors=10, seed=42):
    """Synthetic labeled corpus shaped like the exercise data.

    Each predictor carries the class index plus noise, so a booster can learn
    it. Identifier columns mirror the real file.
    """
    rng = np.random.RandomState(seed)
    labels = np.repeat(np.arange(len(CLASSES)), n_per_class)
    rng.shuffle(labels)
    n = len(labels)
    data = {
        "X": np.arange(1, n + 1),
        "user_name": rng.choice(["carlitos", "pedro", "adelmo"], size=n),
        "raw_timestamp_part_1": 1323084231 + np.arange(n),
        "new_window": rng.choice(["no", "yes"], size=n, p=[0.9, 0.1]),
        "num_window": rng.randint(1, 800, size=n),
    }
    for j in range(n_predictors):
        data[f"sensor_{j}"] = labels * (1.0 + j * 0.1) + rng.randn(n) * 0.8
    data["classe"] = [CLASSES[i] for i in labels]
    return pd.DataFrame(data)


def make_evaluation(n_rows=20, n_predictors=10, seed=7):
    """Synthetic unlabeled evaluation table with problem_id."""
    rng = np.random.RandomState(seed)
    data = {
        "X": np.arange(1, n_rows + 1),
        "user_name": rng.choice(["carlitos", "pedro"], size=n_rows),
        "raw_timestamp_part_1": 1323095000 + np.arange(n_rows),
        "new_window": ["no"] * n_rows,
        "num_window": rng.randint(1, 800, size=n_rows),
    }
    labels = rng.randint(0, len(CLASSES), size=n_rows)
    for j in range(n_predictors):
        data[f"sensor_{j}"] = labels * (1.0 + j * 0.1) + rng.randn(n_rows) * 0.8
    data["problem_id"] = np.arange(1, n_rows + 1)
    return pd.DataFrame(data)


@pytest.fixture
def corpus():
    """100-row, 5-class, 10-predictor labeled table with no missing values."""
    return make_corpus()


@pytest.fixture
def evaluation():
    return make_evaluation()
