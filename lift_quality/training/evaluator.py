"""
Model evaluation and metrics reporting.

  - Cross-entropy in bits: the tuning score (lower is better).
  - Classification report: confusion matrix, accuracy with exact binomial CI,
    no-information rate, kappa, and per-class sensitivity/specificity.
"""
import json
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
from scipy import stats
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix

from ..errors import ZeroProbabilityError
from .features import CLASS_NAMES

PROBA_EPS = 1e-15


def cross_entropy(
    proba: np.ndarray,
    labels: np.ndarray,
    eps: Optional[float] = PROBA_EPS,
) -> float:
    """Mean base-2 negative log-probability of the true class.

    score = -(1/n) * sum(log2(P[row, label[row]]))

    Args:
        proba: Array (n_rows, n_classes) of predicted probabilities.
        labels: True integer labels, shape (n_rows,).
        eps: Clip probabilities into [eps, 1] so the score stays finite
            (at most -log2(eps)). With None nothing is clipped and a zero
            true-class probability raises instead of returning infinity.

    Returns:
        Cross-entropy in bits; 0.0 for confident, correct predictions.

    Raises:
        ValueError: On empty input, shape mismatch, or out-of-range labels.
        ZeroProbabilityError: If eps is None and a true-class probability is 0.
    """
    proba = np.asarray(proba, dtype=float)
    labels = np.asarray(labels)
    if proba.ndim != 2:
        raise ValueError(f"proba must be 2-D, got shape {proba.shape}")
    n = proba.shape[0]
    if n == 0:
        raise ValueError("Cannot score an empty prediction set")
    if labels.shape != (n,):
        raise ValueError(f"labels shape {labels.shape} does not match {n} prediction rows")
    if labels.min() < 0 or labels.max() >= proba.shape[1]:
        raise ValueError(f"labels must lie in [0, {proba.shape[1]})")

    p_true = proba[np.arange(n), labels.astype(int)]
    if eps is None:
        zero_rows = np.flatnonzero(p_true <= 0.0)
        if len(zero_rows):
            raise ZeroProbabilityError(zero_rows.tolist())
    else:
        p_true = np.clip(p_true, eps, 1.0)

    return float(-np.mean(np.log2(p_true)))


def _ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, NaN when the denominator is zero."""
    if denominator == 0:
        return float("nan")
    return numerator / denominator


def _clean(value):
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def accuracy_interval(correct: int, total: int, confidence: float = 0.95):
    """Exact (Clopper-Pearson) binomial confidence interval for accuracy."""
    alpha = 1.0 - confidence
    lower = 0.0 if correct == 0 else float(stats.beta.ppf(alpha / 2, correct, total - correct + 1))
    upper = 1.0 if correct == total else float(stats.beta.ppf(1 - alpha / 2, correct + 1, total - correct))
    return lower, upper


@dataclass
class ClassStatistics:
    """One-vs-rest statistics for a single class."""
    sensitivity: float
    specificity: float
    pos_pred_value: float
    neg_pred_value: float
    prevalence: float
    detection_rate: float
    detection_prevalence: float
    balanced_accuracy: float

    def to_dict(self) -> dict:
        return {k: _clean(v) for k, v in self.__dict__.items()}


@dataclass
class ClassificationReport:
    """Evaluation report for the multiclass model on a held-out set."""
    accuracy: float
    accuracy_ci: List[float]
    no_information_rate: float
    p_value_acc_gt_nir: float
    kappa: float
    cross_entropy: float
    # rows = predicted class, columns = reference class
    confusion: List[List[int]]
    per_class: Dict[str, ClassStatistics]
    test_samples: int
    class_names: List[str] = field(default_factory=lambda: list(CLASS_NAMES))

    @property
    def out_of_sample_error(self) -> float:
        return 1.0 - self.accuracy

    def summary(self) -> str:
        width = max(len(n) for n in self.class_names) + 2
        lines = ["Confusion Matrix (rows = prediction, columns = reference):", ""]
        header = " " * 12 + "".join(f"{n:>{width + 4}}" for n in self.class_names)
        lines.append(header)
        for name, row in zip(self.class_names, self.confusion):
            lines.append(f"{name:>12}" + "".join(f"{v:>{width + 4}d}" for v in row))
        lines += [
            "",
            f"Accuracy:        {self.accuracy:.4f}",
            f"95% CI:          ({self.accuracy_ci[0]:.4f}, {self.accuracy_ci[1]:.4f})",
            f"No Info Rate:    {self.no_information_rate:.4f}",
            f"P-Value [Acc > NIR]: {self.p_value_acc_gt_nir:.3g}",
            f"Kappa:           {self.kappa:.4f}",
            f"Cross-entropy:   {self.cross_entropy:.4f} bits",
            f"Out-of-sample error: {self.out_of_sample_error:.2%}",
            f"Test samples:    {self.test_samples}",
            "",
            "Statistics by Class:",
        ]
        stat_names = [
            ("Sensitivity", "sensitivity"),
            ("Specificity", "specificity"),
            ("Pos Pred Value", "pos_pred_value"),
            ("Neg Pred Value", "neg_pred_value"),
            ("Prevalence", "prevalence"),
            ("Detection Rate", "detection_rate"),
            ("Detection Prevalence", "detection_prevalence"),
            ("Balanced Accuracy", "balanced_accuracy"),
        ]
        lines.append(" " * 22 + "".join(f"{'Class: ' + n:>{width + 8}}" for n in self.class_names))
        for label, attr in stat_names:
            values = [getattr(self.per_class[n], attr) for n in self.class_names]
            lines.append(f"{label:<22}" + "".join(f"{v:>{width + 8}.4f}" for v in values))
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "accuracy": self.accuracy,
            "accuracy_ci": list(self.accuracy_ci),
            "no_information_rate": self.no_information_rate,
            "p_value_acc_gt_nir": self.p_value_acc_gt_nir,
            "kappa": _clean(self.kappa),
            "cross_entropy": self.cross_entropy,
            "out_of_sample_error": self.out_of_sample_error,
            "confusion_matrix": self.confusion,
            "per_class": {name: s.to_dict() for name, s in self.per_class.items()},
            "test_samples": self.test_samples,
            "class_names": self.class_names,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def evaluate_classifier(
    proba: np.ndarray,
    y_test: np.ndarray,
    class_names: Optional[List[str]] = None,
) -> ClassificationReport:
    """Evaluate predicted class probabilities against true labels.

    Args:
        proba: Array (n_samples, n_classes) of predicted probabilities.
        y_test: True labels (integer encoded).
        class_names: Display names per class index (default A..E).

    Returns:
        ClassificationReport with all metrics.
    """
    proba = np.asarray(proba, dtype=float)
    y_test = np.asarray(y_test).astype(int)
    class_names = list(class_names or CLASS_NAMES)
    num_classes = len(class_names)
    labels = list(range(num_classes))

    n = len(y_test)
    if n == 0:
        raise ValueError("Cannot evaluate an empty test set")
    y_pred = np.argmax(proba, axis=1)

    accuracy = float(accuracy_score(y_test, y_pred))
    correct = int(np.sum(y_pred == y_test))
    ci_low, ci_high = accuracy_interval(correct, n)

    reference_counts = np.bincount(y_test, minlength=num_classes)
    nir = float(reference_counts.max() / n)
    p_value = float(stats.binomtest(correct, n, nir, alternative="greater").pvalue)

    # sklearn puts reference on rows; report prediction on rows
    cm = confusion_matrix(y_test, y_pred, labels=labels).T

    if len(np.unique(np.concatenate([y_test, y_pred]))) > 1:
        kappa = float(cohen_kappa_score(y_test, y_pred, labels=labels))
    else:
        kappa = float("nan")

    per_class: Dict[str, ClassStatistics] = {}
    for i, name in enumerate(class_names):
        tp = int(cm[i, i])
        predicted_pos = int(cm[i, :].sum())
        reference_pos = int(cm[:, i].sum())
        fp = predicted_pos - tp
        fn = reference_pos - tp
        tn = n - tp - fp - fn
        sensitivity = _ratio(tp, reference_pos)
        specificity = _ratio(tn, n - reference_pos)
        per_class[name] = ClassStatistics(
            sensitivity=sensitivity,
            specificity=specificity,
            pos_pred_value=_ratio(tp, predicted_pos),
            neg_pred_value=_ratio(tn, n - predicted_pos),
            prevalence=reference_pos / n,
            detection_rate=tp / n,
            detection_prevalence=predicted_pos / n,
            balanced_accuracy=(sensitivity + specificity) / 2,
        )

    return ClassificationReport(
        accuracy=accuracy,
        accuracy_ci=[ci_low, ci_high],
        no_information_rate=nir,
        p_value_acc_gt_nir=p_value,
        kappa=kappa,
        cross_entropy=cross_entropy(proba, y_test),
        confusion=cm.tolist(),
        per_class=per_class,
        test_samples=n,
        class_names=class_names,
    )


def format_predictions(
    proba: np.ndarray,
    problem_ids=None,
    class_names: Optional[List[str]] = None,
) -> List[Dict]:
    """Per-row predicted class and class probabilities for the evaluation set."""
    proba = np.asarray(proba, dtype=float)
    class_names = list(class_names or CLASS_NAMES)
    if problem_ids is None:
        problem_ids = range(1, len(proba) + 1)
    rows = []
    for pid, p in zip(problem_ids, proba):
        rows.append({
            "problem_id": int(pid) if isinstance(pid, (int, np.integer)) else pid,
            "prediction": class_names[int(np.argmax(p))],
            "probabilities": {name: float(v) for name, v in zip(class_names, p)},
        })
    return rows


def predictions_summary(rows: List[Dict]) -> str:
    if not rows:
        return "No evaluation rows."
    names = list(rows[0]["probabilities"])
    lines = [f"{'problem_id':>10} {'pred':>5} " + " ".join(f"{n:>7}" for n in names)]
    for row in rows:
        probs = " ".join(f"{row['probabilities'][n]:7.4f}" for n in names)
        lines.append(f"{str(row['problem_id']):>10} {row['prediction']:>5} {probs}")
    return "\n".join(lines)
