"""Gini impurity and best-split search over candidate features."""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

import numpy as np

from forestkit.dataset import Dataset, RowIndices, midpoints
from forestkit.decision_tree.models import gini_from_counts

# Gains closer than this are treated as equal, so the lower feature index and
# then the lower threshold win regardless of floating-point noise.
_GAIN_TOLERANCE: float = 1e-12


class SplitCandidate(NamedTuple):
    """The best split found for a row subset.

    Attributes:
        feature (int): Feature index to split on.
        threshold (float): Rows with `feature <= threshold` go left.
        gain (float): Parent impurity minus the size-weighted child impurity;
            always strictly positive.
    """

    feature: int
    threshold: float
    gain: float


def gini_impurity(labels: np.ndarray) -> float:
    """Gini impurity `1 - p0**2 - p1**2` of a 0/1 label array.

    Args:
        labels (np.ndarray): Binary labels; must be non-empty.

    Returns:
        float: Impurity in `[0, 0.5]`; 0 for a pure set.

    Examples:
        >>> gini_impurity(np.array([0, 0, 1, 1]))
        0.5
        >>> gini_impurity(np.array([1, 1, 1]))
        0.0
    """
    return gini_from_counts(int(labels.size), int(labels.sum()))


def best_split(
    dataset: Dataset,
    rows: RowIndices,
    candidate_features: Sequence[int],
    *,
    min_node_size: int = 1,
) -> SplitCandidate | None:
    """Find the impurity-maximizing threshold split among candidate features.

    Candidate thresholds are midpoints between consecutive sorted distinct
    values of each feature among `rows`. A split is admissible when both
    children hold at least `min_node_size` rows and the gain is strictly
    positive. Among equal gains the lower feature index wins, then the lower
    threshold.

    Args:
        dataset (Dataset): Source data.
        rows (RowIndices): Row positions reaching the node (repeats allowed).
        candidate_features (Sequence[int]): Feature indices to consider, in
            any order.
        min_node_size (int): Minimum rows in each child.

    Returns:
        SplitCandidate | None: The best admissible split, or `None` when the
            rows are pure or no admissible split exists.
    """
    labels = dataset.labels[rows]
    n_rows = int(labels.size)
    positives = int(labels.sum())
    if n_rows < 2 or positives in (0, n_rows):
        return None

    parent_impurity = gini_from_counts(n_rows, positives)
    best: SplitCandidate | None = None
    for feature in sorted(candidate_features):
        candidate = _best_split_for_feature(
            dataset.features[rows, feature],
            labels,
            parent_impurity=parent_impurity,
            min_node_size=min_node_size,
        )
        if candidate is None:
            continue
        threshold, gain = candidate
        if best is None or gain > best.gain + _GAIN_TOLERANCE:
            best = SplitCandidate(feature=int(feature), threshold=threshold, gain=gain)
    return best


def _best_split_for_feature(
    values: np.ndarray,
    labels: np.ndarray,
    *,
    parent_impurity: float,
    min_node_size: int,
) -> tuple[float, float] | None:
    """Scan every admissible boundary of one feature in a single sorted pass.

    Args:
        values (np.ndarray): Feature values of the node's rows.
        labels (np.ndarray): Labels parallel to `values`.
        parent_impurity (float): Gini impurity of the node.
        min_node_size (int): Minimum rows in each child.

    Returns:
        tuple[float, float] | None: `(threshold, gain)` of the best boundary,
            or `None` when the feature admits no positive-gain split.
    """
    order = np.argsort(values, kind="stable")
    sorted_values = values[order]
    sorted_labels = labels[order].astype(np.int64)
    n_rows = sorted_values.size

    # Position i splits rows [0, i] left and [i + 1, n) right.
    left_sizes = np.arange(1, n_rows, dtype=np.float64)
    right_sizes = n_rows - left_sizes
    left_positives = np.cumsum(sorted_labels)[:-1].astype(np.float64)
    right_positives = sorted_labels.sum() - left_positives

    admissible = (
        (sorted_values[1:] > sorted_values[:-1]) & (left_sizes >= min_node_size) & (right_sizes >= min_node_size)
    )
    if not admissible.any():
        return None

    left_p = left_positives / left_sizes
    right_p = right_positives / right_sizes
    weighted_child_impurity = (
        left_sizes * 2.0 * left_p * (1.0 - left_p) + right_sizes * 2.0 * right_p * (1.0 - right_p)
    ) / n_rows
    gains = np.where(admissible, parent_impurity - weighted_child_impurity, -np.inf)

    top_gain = gains.max()
    if top_gain <= _GAIN_TOLERANCE:
        return None
    # First position within tolerance of the maximum, i.e. the lowest threshold.
    position = int(np.flatnonzero(gains >= top_gain - _GAIN_TOLERANCE)[0])
    threshold = float(midpoints(sorted_values[position : position + 1], sorted_values[position + 1 : position + 2])[0])
    return threshold, float(gains[position])
