"""Bagged random-forest fitting with per-node feature subsampling."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from loguru import logger

from forestkit.dataset import Dataset, RowIndices
from forestkit.decision_tree.fitting import grow_tree, validate_tree_hyperparameters
from forestkit.exceptions import InvalidHyperparameterError, require_at_least
from forestkit.forest.models import ForestMember, ForestParams, RandomForest
from forestkit.forest.sampling import derive_seed, draw_bootstrap, sample_features
from forestkit.logging import PROGRESS_LEVEL, bind_run_context
from forestkit.metrics import roc_auc
from forestkit.parallel import map_ordered


def fit_forest(
    dataset: Dataset,
    rows: Sequence[int] | np.ndarray | None = None,
    *,
    tree_count: int,
    mtry: int,
    min_node_size: int = 1,
    max_depth: int | None = None,
    base_seed: int = 0,
    compute_oob: bool = False,
    max_workers: int | None = None,
) -> RandomForest:
    """Fit a random forest of Gini trees on bootstrap samples.

    Member `i` owns one generator seeded with `derive_seed(base_seed, i)`. It
    first draws the member's bootstrap sample, then a fresh `mtry`-sized
    feature subset at every attempted split (depth-first, left before right).
    Members are independent, so they may be fitted on a worker pool; the
    result is identical to a sequential fit.

    Args:
        dataset (Dataset): Training data.
        rows (Sequence[int] | np.ndarray | None): Rows eligible for bootstrap
            draws. `None` uses every row.
        tree_count (int): Number of member trees; at least 1.
        mtry (int): Features offered to each split; `1 <= mtry <= n_features`.
        min_node_size (int): Minimum rows per node and per child of a split.
        max_depth (int | None): Maximum member depth; `None` for unbounded.
        base_seed (int): Seed all member seeds derive from.
        compute_oob (bool): When True, compute the out-of-bag ROC-AUC.
        max_workers (int | None): Worker-pool size; `None` uses settings.

    Returns:
        RandomForest: The fitted ensemble.

    Raises:
        InvalidHyperparameterError: If `tree_count < 1`, `mtry` is outside
            `[1, n_features]`, `min_node_size < 1` or `max_depth < 0`.
        InvalidInputError: If `rows` is empty or out of range.
    """
    require_at_least("tree_count", tree_count, 1)
    if not 1 <= mtry <= dataset.n_features:
        raise InvalidHyperparameterError("mtry", mtry, f"1 <= mtry <= {dataset.n_features}")
    validate_tree_hyperparameters(max_depth=max_depth, min_node_size=min_node_size)
    require_at_least("base_seed", base_seed, 0)
    row_indices = dataset.check_rows(rows)
    forest_logger = bind_run_context("forest", base_seed=base_seed, tree_count=tree_count)

    def fit_member(index: int) -> ForestMember:
        seed = derive_seed(base_seed, index)
        rng = np.random.default_rng(seed)
        sample = draw_bootstrap(row_indices, rng)
        tree = grow_tree(
            dataset,
            sample.in_bag,
            max_depth=max_depth,
            min_node_size=min_node_size,
            feature_selector=lambda: sample_features(rng, dataset.n_features, mtry),
        )
        forest_logger.debug("Forest member fitted", index=index, seed=seed, leaves=tree.leaf_count)
        return ForestMember(
            tree=tree,
            seed=seed,
            split_features=tree.split_features(),
            out_of_bag=tuple(int(row) for row in sample.out_of_bag),
        )

    members = map_ordered(fit_member, range(tree_count), max_workers=max_workers)
    oob_score = _out_of_bag_score(dataset, members) if compute_oob else None
    forest = RandomForest(
        members=tuple(members),
        params=ForestParams(
            tree_count=tree_count,
            mtry=mtry,
            min_node_size=min_node_size,
            max_depth=max_depth,
            base_seed=base_seed,
        ),
        feature_names=dataset.feature_names,
        oob_score=oob_score,
    )
    forest_logger.log(
        PROGRESS_LEVEL,
        "Random forest fitted",
        mtry=mtry,
        rows=int(row_indices.size),
        oob_score=oob_score,
    )
    return forest


def out_of_bag_probabilities(dataset: Dataset, members: Sequence[ForestMember]) -> tuple[RowIndices, np.ndarray]:
    """Average each row's class-1 probability over the members that did not draw it.

    Args:
        dataset (Dataset): The training data the members were fitted on.
        members (Sequence[ForestMember]): Fitted members.

    Returns:
        tuple[RowIndices, np.ndarray]: Rows with at least one out-of-bag
            member, and their mean out-of-bag probabilities.
    """
    totals = np.zeros(dataset.n_rows, dtype=np.float64)
    counts = np.zeros(dataset.n_rows, dtype=np.int64)
    for member in members:
        oob_rows = np.asarray(member.out_of_bag, dtype=np.intp)
        if oob_rows.size == 0:
            continue
        totals[oob_rows] += member.tree.predict_proba_many(dataset.features[oob_rows])
        counts[oob_rows] += 1
    scored = np.flatnonzero(counts)
    return scored, totals[scored] / counts[scored]


def _out_of_bag_score(dataset: Dataset, members: Sequence[ForestMember]) -> float | None:
    """Out-of-bag ROC-AUC, or `None` when fewer than two classes are out of bag."""
    scored, probabilities = out_of_bag_probabilities(dataset, members)
    labels = dataset.labels[scored]
    if scored.size == 0 or labels.min() == labels.max():
        logger.debug("Out-of-bag score undefined", scored_rows=int(scored.size))
        return None
    return roc_auc(labels, probabilities)
