"""
Stratified partitioning of labeled rows.

Both the training/validation split and the cross-validation folds preserve
each class's relative frequency and are reproducible for a fixed seed.
"""
import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from sklearn.model_selection import StratifiedKFold, train_test_split

from ..errors import DegenerateFoldError
from .features import LABEL_NAMES, N_CLASSES

logger = logging.getLogger(__name__)

SEED = 32343
TRAIN_FRACTION = 0.7
N_FOLDS = 5


@dataclass(frozen=True)
class Fold:
    """One cross-validation round: positional row indices into the training set."""
    index: int
    held_in: np.ndarray
    held_out: np.ndarray


def stratified_split(
    labels: np.ndarray,
    train_fraction: float = TRAIN_FRACTION,
    seed: int = SEED,
) -> Tuple[np.ndarray, np.ndarray]:
    """Split rows into training and validation index sets.

    Args:
        labels: Integer class label per row.
        train_fraction: Share of rows assigned to training (default 0.7).
        seed: Random seed; identical inputs and seed give identical splits.

    Returns:
        (train_idx, valid_idx): sorted, disjoint, and together covering
        every row.
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")
    labels = np.asarray(labels)
    indices = np.arange(len(labels))
    train_idx, valid_idx = train_test_split(
        indices,
        train_size=train_fraction,
        stratify=labels,
        random_state=seed,
        shuffle=True,
    )
    train_idx = np.sort(train_idx)
    valid_idx = np.sort(valid_idx)
    logger.info(
        "Stratified split: %d training rows, %d validation rows (seed=%d)",
        len(train_idx), len(valid_idx), seed,
    )
    return train_idx, valid_idx


def stratified_folds(
    labels: np.ndarray,
    k: int = N_FOLDS,
    seed: int = SEED,
    n_classes: int = N_CLASSES,
) -> List[Fold]:
    """Partition rows into k stratified cross-validation folds.

    Args:
        labels: Integer class label per training row.
        k: Number of folds (default 5).
        seed: Shuffle seed.
        n_classes: Classes every held-in set must contain.

    Returns:
        List of k Folds whose held_out sets are disjoint and exhaustive.

    Raises:
        DegenerateFoldError: If a class has no rows at all, a held-in set
            lacks a class, or a held-out set is empty. A class rarer than k
            only leaves some held-out sets without it, which is allowed.
    """
    labels = np.asarray(labels)
    if k < 2:
        raise ValueError(f"Need at least 2 folds, got {k}")

    counts = np.bincount(labels, minlength=n_classes)
    absent = [LABEL_NAMES.get(c, str(c)) for c in range(n_classes) if counts[c] == 0]
    if absent:
        raise DegenerateFoldError(f"Classes {absent} have no training rows")

    skf = StratifiedKFold(n_splits=k, shuffle=True, random_state=seed)
    folds: List[Fold] = []
    for fold_idx, (held_in, held_out) in enumerate(skf.split(np.zeros(len(labels)), labels)):
        if len(held_out) == 0:
            raise DegenerateFoldError(f"Fold {fold_idx} has an empty held-out set")
        present = set(np.unique(labels[held_in]).tolist())
        absent = [LABEL_NAMES.get(c, str(c)) for c in range(n_classes) if c not in present]
        if absent:
            raise DegenerateFoldError(
                f"Fold {fold_idx} held-in set has no rows of class(es) {absent}"
            )
        folds.append(Fold(index=fold_idx, held_in=held_in, held_out=held_out))

    logger.info(
        "Built %d stratified folds (held-out sizes: %s)",
        k, ", ".join(str(len(f.held_out)) for f in folds),
    )
    return folds
