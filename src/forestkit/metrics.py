"""Scoring functions for binary classifiers; higher is better for every metric."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Literal

import numpy as np

from forestkit.exceptions import InvalidInputError

type Metric = Callable[[np.ndarray, np.ndarray], float]
"""Scores `(labels, class-1 probabilities)`; larger values are better."""

type MetricName = Literal["roc_auc", "accuracy"]


def roc_auc(labels: Sequence[int] | np.ndarray, scores: Sequence[float] | np.ndarray) -> float:
    """Area under the ROC curve via the rank-sum (Mann-Whitney U) formulation.

    Tied scores receive their average rank, so a tie between a positive and a
    negative counts as half a correctly ordered pair. Runs in O(n log n).

    Args:
        labels (Sequence[int] | np.ndarray): True 0/1 labels.
        scores (Sequence[float] | np.ndarray): Predicted class-1 scores,
            parallel to `labels`.

    Returns:
        float: AUC in `[0, 1]`.

    Raises:
        InvalidInputError: If the inputs are empty, differ in length, hold
            non-binary labels, or contain only one class.

    Examples:
        >>> roc_auc([0, 0, 1, 1], [0.1, 0.4, 0.35, 0.8])
        0.75
    """
    label_array, score_array = _check_pair(labels, scores)
    n_positive = int(label_array.sum())
    n_negative = int(label_array.size) - n_positive
    if n_positive == 0 or n_negative == 0:
        raise InvalidInputError("ROC-AUC is undefined when only one class is present")

    ranks = _average_ranks(score_array)
    positive_rank_sum = float(ranks[label_array == 1].sum())
    u_statistic = positive_rank_sum - n_positive * (n_positive + 1) / 2.0
    return u_statistic / (n_positive * n_negative)


def accuracy(labels: Sequence[int] | np.ndarray, scores: Sequence[float] | np.ndarray) -> float:
    """Fraction of rows whose thresholded score matches the label.

    Scores of exactly 0.5 are assigned to class 1.

    Args:
        labels (Sequence[int] | np.ndarray): True 0/1 labels.
        scores (Sequence[float] | np.ndarray): Predicted class-1 probabilities.

    Returns:
        float: Accuracy in `[0, 1]`.

    Raises:
        InvalidInputError: If the inputs are empty, differ in length, or hold
            non-binary labels.
    """
    label_array, score_array = _check_pair(labels, scores)
    predictions = (score_array >= 0.5).astype(np.int8)
    return float(np.mean(predictions == label_array))


_METRICS: dict[str, Metric] = {
    "roc_auc": roc_auc,
    "accuracy": accuracy,
}


def resolve_metric(metric: MetricName | Metric) -> Metric:
    """Return the scoring function for a metric name, or the callable unchanged.

    Args:
        metric (MetricName | Metric): `"roc_auc"`, `"accuracy"`, or a callable
            taking `(labels, probabilities)`.

    Returns:
        Metric: The scoring function.

    Raises:
        InvalidInputError: If `metric` is an unknown name.
    """
    if callable(metric):
        return metric
    try:
        return _METRICS[metric]
    except KeyError:
        raise InvalidInputError(f"unknown metric {metric!r}; expected one of {sorted(_METRICS)}") from None


def metric_name(metric: MetricName | Metric) -> str:
    """Return a display name for a metric name or callable."""
    if isinstance(metric, str):
        return metric
    return getattr(metric, "__name__", type(metric).__name__)


def _check_pair(
    labels: Sequence[int] | np.ndarray,
    scores: Sequence[float] | np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    label_array = np.asarray(labels)
    score_array = np.asarray(scores, dtype=np.float64)
    if label_array.ndim != 1 or score_array.ndim != 1:
        raise InvalidInputError("labels and scores must be 1-D")
    if label_array.size == 0:
        raise InvalidInputError("labels and scores must not be empty")
    if label_array.size != score_array.size:
        raise InvalidInputError(f"labels ({label_array.size}) and scores ({score_array.size}) differ in length")
    if not np.isin(label_array, (0, 1)).all():
        raise InvalidInputError("labels must be binary (0/1)")
    return label_array.astype(np.int8), score_array


def _average_ranks(values: np.ndarray) -> np.ndarray:
    """1-based ranks of `values`, with tied values sharing their average rank."""
    n_values = values.size
    order = np.argsort(values, kind="mergesort")
    sorted_values = values[order]
    group_starts = np.flatnonzero(np.r_[True, sorted_values[1:] != sorted_values[:-1]])
    group_ends = np.r_[group_starts[1:], n_values]
    # Ranks start + 1 .. end (inclusive) average to (start + 1 + end) / 2.
    group_ranks = (group_starts + 1 + group_ends) / 2.0
    ranks = np.empty(n_values, dtype=np.float64)
    ranks[order] = np.repeat(group_ranks, group_ends - group_starts)
    return ranks
