"""Recursive partitioning: grows a `DecisionTree` from a dataset and row selection."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import NamedTuple

import numpy as np
from loguru import logger

from forestkit.dataset import Dataset, RowIndices
from forestkit.decision_tree.models import (
    ConvergenceNotice,
    DecisionTree,
    InternalNode,
    LeafNode,
    TreeParams,
    compute_feature_importances,
    gini_from_counts,
    make_leaf,
)
from forestkit.decision_tree.pruning import prune_tree
from forestkit.decision_tree.splitting import SplitCandidate, best_split
from forestkit.exceptions import InvalidHyperparameterError, require_at_least

type FeatureSelector = Callable[[], Sequence[int]]
"""Called once per attempted split; returns the feature indices offered to that split."""


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


def fit_tree(
    dataset: Dataset,
    rows: Sequence[int] | np.ndarray | None = None,
    *,
    max_depth: int | None,
    min_node_size: int = 1,
    cost_complexity_alpha: float = 0.0,
    candidate_features: Sequence[int] | None = None,
) -> DecisionTree:
    """Fit a Gini decision tree, optionally followed by cost-complexity pruning.

    Growth is depth-first from depth 0. A node becomes a leaf when it reaches
    `max_depth`, holds fewer than `min_node_size` rows, is pure, or admits no
    positive-gain split that leaves `min_node_size` rows on each side.

    Args:
        dataset (Dataset): Training data.
        rows (Sequence[int] | np.ndarray | None): Row positions to train on,
            repeats allowed (bootstrap draws). `None` uses every row.
        max_depth (int | None): Maximum depth; `0` yields a single leaf and
            `None` grows until the other stopping rules apply.
        min_node_size (int): Minimum rows per node and per child of a split.
        cost_complexity_alpha (float): Pruning strength; `0.0` skips pruning.
        candidate_features (Sequence[int] | None): Feature indices every split
            may use. `None` offers all features.

    Returns:
        DecisionTree: The fitted (and possibly pruned) tree.

    Raises:
        InvalidInputError: If `rows` is empty or out of range, or
            `candidate_features` is empty or out of range.
        InvalidHyperparameterError: If `max_depth < 0`, `min_node_size < 1`,
            or `cost_complexity_alpha` is negative or not finite.
    """
    validate_tree_hyperparameters(
        max_depth=max_depth,
        min_node_size=min_node_size,
        cost_complexity_alpha=cost_complexity_alpha,
    )
    row_indices = dataset.check_rows(rows)
    features = dataset.check_features(candidate_features)

    tree = grow_tree(
        dataset,
        row_indices,
        max_depth=max_depth,
        min_node_size=min_node_size,
        feature_selector=lambda: features,
    )
    if cost_complexity_alpha > 0.0:
        tree = prune_tree(tree, cost_complexity_alpha)
    return tree


def grow_tree(
    dataset: Dataset,
    rows: RowIndices,
    *,
    max_depth: int | None,
    min_node_size: int,
    feature_selector: FeatureSelector,
) -> DecisionTree:
    """Grow an unpruned tree, asking `feature_selector` for candidates at each split.

    Inputs are assumed validated; `fit_tree` and `fit_forest` are the public
    entry points. The selector is invoked once per attempted split, in
    depth-first order (left subtree before right), so a selector backed by a
    seeded generator yields a reproducible tree.

    Args:
        dataset (Dataset): Training data.
        rows (RowIndices): Validated, non-empty row positions.
        max_depth (int | None): Maximum depth, or `None` for unbounded.
        min_node_size (int): Minimum rows per node and per child of a split.
        feature_selector (FeatureSelector): Supplies candidate features per split.

    Returns:
        DecisionTree: The grown tree, with convergence notices recorded.
    """
    grower = _TreeGrower(
        dataset,
        max_depth=max_depth,
        min_node_size=min_node_size,
        feature_selector=feature_selector,
    )
    root = grower.grow(rows)
    tree = DecisionTree(
        root=root,
        params=TreeParams(max_depth=max_depth, min_node_size=min_node_size),
        feature_names=dataset.feature_names,
        feature_importances=compute_feature_importances(root, dataset.n_features),
        notices=tuple(grower.notices),
    )
    logger.debug(
        "Decision tree grown",
        rows=int(rows.size),
        depth=tree.depth,
        leaves=tree.leaf_count,
        early_pure_leaves=len(tree.notices),
    )
    return tree


def validate_tree_hyperparameters(
    *,
    max_depth: int | None,
    min_node_size: int,
    cost_complexity_alpha: float = 0.0,
) -> None:
    """Raise `InvalidHyperparameterError` for out-of-range tree settings.

    Args:
        max_depth (int | None): Must be `None` or `>= 0`.
        min_node_size (int): Must be `>= 1`.
        cost_complexity_alpha (float): Must be finite and `>= 0`.

    Raises:
        InvalidHyperparameterError: If any value is out of range.
    """
    if max_depth is not None:
        require_at_least("max_depth", max_depth, 0)
    require_at_least("min_node_size", min_node_size, 1)
    if not math.isfinite(cost_complexity_alpha) or cost_complexity_alpha < 0.0:
        raise InvalidHyperparameterError(
            "cost_complexity_alpha", cost_complexity_alpha, "a finite cost_complexity_alpha >= 0"
        )


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


class _PlannedSplit(NamedTuple):
    """An internal node whose children are not built yet."""

    split: SplitCandidate
    sample_count: int
    positive_count: int


class _TreeGrower:
    """Holds the stopping rules and accumulates notices during one growth pass.

    Growth uses an explicit work stack, so an unbounded `max_depth` is limited
    only by the row count and never by the interpreter's recursion limit.
    """

    def __init__(
        self,
        dataset: Dataset,
        *,
        max_depth: int | None,
        min_node_size: int,
        feature_selector: FeatureSelector,
    ) -> None:
        self._dataset = dataset
        self._max_depth = max_depth
        self._min_node_size = min_node_size
        self._feature_selector = feature_selector
        self.notices: list[ConvergenceNotice] = []

    def grow(self, rows: RowIndices) -> LeafNode | InternalNode:
        """Build the tree for `rows`, rooted at depth 0.

        Nodes are planned in pre-order (left subtree before right), which is
        the order `feature_selector` is consulted in. The frozen node models
        are then assembled bottom-up.

        Args:
            rows (RowIndices): Row positions reaching the root.

        Returns:
            LeafNode | InternalNode: The root node.
        """
        plan: list[LeafNode | _PlannedSplit] = []
        children: list[list[int]] = []
        # (rows, depth, parent plan position); -1 marks the root.
        stack: list[tuple[RowIndices, int, int]] = [(rows, 0, -1)]
        while stack:
            node_rows, depth, parent = stack.pop()
            position = len(plan)
            children.append([])
            if parent >= 0:
                children[parent].append(position)

            planned = self._plan_node(node_rows, depth)
            plan.append(planned)
            if isinstance(planned, LeafNode):
                continue
            goes_left = self._dataset.features[node_rows, planned.split.feature] <= planned.split.threshold
            stack.append((node_rows[~goes_left], depth + 1, position))
            stack.append((node_rows[goes_left], depth + 1, position))

        # Children always sit after their parent in the plan.
        built: list[LeafNode | InternalNode | None] = [None] * len(plan)
        for position in range(len(plan) - 1, -1, -1):
            entry = plan[position]
            if isinstance(entry, LeafNode):
                built[position] = entry
                continue
            left, right = children[position]
            built[position] = InternalNode(
                feature=entry.split.feature,
                threshold=entry.split.threshold,
                left=built[left],
                right=built[right],
                sample_count=entry.sample_count,
                positive_count=entry.positive_count,
                impurity=gini_from_counts(entry.sample_count, entry.positive_count),
                gain=entry.split.gain,
            )
            built[left] = built[right] = None
        return built[0]

    def _plan_node(self, rows: RowIndices, depth: int) -> LeafNode | _PlannedSplit:
        n_rows = int(rows.size)
        positives = int(self._dataset.labels[rows].sum())

        if positives in (0, n_rows):
            if self._max_depth is None or depth < self._max_depth:
                self.notices.append(ConvergenceNotice(depth=depth, sample_count=n_rows))
                logger.trace("Pure node reached before max depth", depth=depth, rows=n_rows)
            return make_leaf(n_rows, positives)
        if (self._max_depth is not None and depth >= self._max_depth) or n_rows < self._min_node_size:
            return make_leaf(n_rows, positives)

        split = best_split(
            self._dataset,
            rows,
            self._feature_selector(),
            min_node_size=self._min_node_size,
        )
        if split is None:
            return make_leaf(n_rows, positives)
        return _PlannedSplit(split=split, sample_count=n_rows, positive_count=positives)
