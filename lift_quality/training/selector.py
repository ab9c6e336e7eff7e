"""
Pick the winning grid point from cross-validation scores.
"""
import logging
from typing import Mapping, Sequence, Tuple, Union

from .tuner import GridPoint, TuningResult

logger = logging.getLogger(__name__)


def select_best(grid: Sequence[GridPoint], mean_scores: Sequence[float]) -> GridPoint:
    """Return the grid point with the lowest mean cross-entropy.

    Exact ties go to the point that comes first in enumeration order.

    Raises:
        ValueError: On an empty grid or a grid/score length mismatch.
    """
    if len(grid) == 0:
        raise ValueError("Cannot select from an empty grid")
    if len(grid) != len(mean_scores):
        raise ValueError(f"{len(grid)} grid points but {len(mean_scores)} scores")

    best_idx = 0
    for j in range(1, len(grid)):
        if mean_scores[j] < mean_scores[best_idx]:
            best_idx = j

    best = grid[best_idx]
    logger.info(
        "Best grid point: mcw=%.3g lambda_rel=%.3g (lambda=%.3g), mean %.4f bits",
        best.min_child_weight, best.lambda_relative, best.reg_lambda, mean_scores[best_idx],
    )
    return best


def select_best_from(scores: Mapping[Union[GridPoint, Tuple[float, float]], float]) -> GridPoint:
    """select_best over an insertion-ordered {point: mean score} mapping."""
    grid = [p if isinstance(p, GridPoint) else GridPoint(*p) for p in scores]
    return select_best(grid, list(scores.values()))


def select_best_result(result: TuningResult) -> GridPoint:
    return select_best(result.grid, result.mean_scores)
