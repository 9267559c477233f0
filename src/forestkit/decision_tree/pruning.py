"""Minimal cost-complexity ("weakest link") pruning of fitted trees.

For an internal node `t` with subtree `T_t`, the effective alpha is

    (R(t) - R(T_t)) / (|leaves(T_t)| - 1)

where `R` is the Gini impurity of a node weighted by its share of the root's
training rows, and `R(T_t)` sums `R` over the subtree's leaves. Pruning
repeatedly collapses the node with the smallest effective alpha (first in
pre-order on ties), producing a nested sequence of trees that ends in a single
leaf.
"""

from __future__ import annotations

import math
from typing import Literal, NamedTuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from forestkit.decision_tree.models import (
    DecisionTree,
    InternalNode,
    LeafNode,
    compute_feature_importances,
    iter_nodes,
    make_leaf,
)
from forestkit.exceptions import InvalidHyperparameterError

type Branch = Literal["left", "right"]


class PruningPath(BaseModel):
    """Nested sequence of trees produced by weakest-link pruning.

    `trees[0]` is the unpruned tree and `trees[-1]` a single leaf. `alphas[i]`
    is the effective alpha at which `trees[i]` became optimal (`alphas[0]` is
    0), and `impurities[i]` the total weighted leaf impurity of `trees[i]`.

    Attributes:
        alphas (tuple[float, ...]): Effective alphas, non-decreasing.
        impurities (tuple[float, ...]): Total leaf impurity per tree, non-decreasing.
        trees (tuple[DecisionTree, ...]): The nested trees.
    """

    model_config = ConfigDict(frozen=True)

    alphas: tuple[float, ...] = Field(min_length=1)
    impurities: tuple[float, ...] = Field(min_length=1)
    trees: tuple[DecisionTree, ...] = Field(min_length=1)

    def tree_for(self, alpha: float) -> DecisionTree:
        """Return the smallest tree on the path whose effective alpha does not exceed `alpha`.

        Args:
            alpha (float): Pruning strength.

        Returns:
            DecisionTree: The selected tree.
        """
        selected = self.trees[0]
        for effective_alpha, tree in zip(self.alphas[1:], self.trees[1:], strict=True):
            if effective_alpha > alpha:
                break
            selected = tree
        return selected


class _WeakestLink(NamedTuple):
    alpha: float
    preorder_index: int
    path: tuple[Branch, ...]


def cost_complexity_pruning_path(tree: DecisionTree) -> PruningPath:
    """Compute the full minimal cost-complexity pruning path of a tree.

    Args:
        tree (DecisionTree): A fitted tree.

    Returns:
        PruningPath: Alphas, impurities and trees from unpruned to a single leaf.
    """
    alphas = [0.0]
    impurities = [_total_leaf_impurity(tree.root)]
    trees = [tree]
    current = tree
    while isinstance(current.root, InternalNode):
        link = _weakest_link(current.root)
        current = _collapse_tree(current, link.path, link.alpha)
        alphas.append(link.alpha)
        impurities.append(_total_leaf_impurity(current.root))
        trees.append(current)
    return PruningPath(alphas=tuple(alphas), impurities=tuple(impurities), trees=tuple(trees))


def prune_tree(tree: DecisionTree, alpha: float) -> DecisionTree:
    """Collapse weakest links while their effective alpha is at most `alpha`.

    Equivalent to `cost_complexity_pruning_path(tree).tree_for(alpha)` but
    stops as soon as the next weakest link exceeds `alpha`.

    Args:
        tree (DecisionTree): A fitted tree.
        alpha (float): Pruning strength; must be finite and non-negative.

    Returns:
        DecisionTree: The pruned tree, with `params.cost_complexity_alpha`
            set to `alpha`.

    Raises:
        InvalidHyperparameterError: If `alpha` is negative or not finite.
    """
    if not math.isfinite(alpha) or alpha < 0.0:
        raise InvalidHyperparameterError("cost_complexity_alpha", alpha, "a finite cost_complexity_alpha >= 0")

    leaves_before = tree.leaf_count
    current = tree
    while isinstance(current.root, InternalNode):
        link = _weakest_link(current.root)
        if link.alpha > alpha:
            break
        current = _collapse_tree(current, link.path, alpha)
    if current is tree:
        current = tree.model_copy(update={"params": tree.params.model_copy(update={"cost_complexity_alpha": alpha})})
    logger.debug("Tree pruned", alpha=alpha, leaves_before=leaves_before, leaves_after=current.leaf_count)
    return current


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _total_leaf_impurity(root: LeafNode | InternalNode) -> float:
    """Sum of leaf impurities weighted by each leaf's share of the root's rows."""
    weighted = sum(node.impurity * node.sample_count for node in iter_nodes(root) if isinstance(node, LeafNode))
    return weighted / root.sample_count


def _weakest_link(root: InternalNode) -> _WeakestLink:
    """Find the internal node with the smallest effective alpha.

    Nodes are listed in pre-order with an explicit stack; subtree risks and
    leaf counts are then accumulated in reverse pre-order, so every child is
    folded into its parent before the parent is scored.

    Args:
        root (InternalNode): Root of a tree with at least one split.

    Returns:
        _WeakestLink: Effective alpha, pre-order position and branch path of
            the weakest link; the earliest node in pre-order wins exact ties.
    """
    total = root.sample_count
    nodes: list[LeafNode | InternalNode] = []
    parents: list[tuple[int, Branch] | None] = []
    stack: list[tuple[LeafNode | InternalNode, tuple[int, Branch] | None]] = [(root, None)]
    while stack:
        node, parent = stack.pop()
        nodes.append(node)
        parents.append(parent)
        if isinstance(node, InternalNode):
            position = len(nodes) - 1
            stack.append((node.right, (position, "right")))
            stack.append((node.left, (position, "left")))

    risks = [0.0] * len(nodes)
    leaves = [0] * len(nodes)
    best_alpha = math.inf
    best_position = 0
    for position in range(len(nodes) - 1, -1, -1):
        node = nodes[position]
        node_risk = node.impurity * node.sample_count / total
        if isinstance(node, LeafNode):
            risks[position] = node_risk
            leaves[position] = 1
        else:
            alpha = (node_risk - risks[position]) / (leaves[position] - 1)
            # Reverse pre-order: `<=` lets the earlier node win exact ties.
            if alpha <= best_alpha:
                best_alpha, best_position = alpha, position
        parent = parents[position]
        if parent is not None:
            risks[parent[0]] += risks[position]
            leaves[parent[0]] += leaves[position]

    path: list[Branch] = []
    link = parents[best_position]
    while link is not None:
        path.append(link[1])
        link = parents[link[0]]
    return _WeakestLink(best_alpha, best_position, tuple(reversed(path)))


def _collapse_tree(tree: DecisionTree, path: tuple[Branch, ...], alpha: float) -> DecisionTree:
    """Return a copy of `tree` with the node at `path` replaced by a leaf."""
    root = _collapse_node(tree.root, path)
    return DecisionTree(
        root=root,
        params=tree.params.model_copy(update={"cost_complexity_alpha": alpha}),
        feature_names=tree.feature_names,
        feature_importances=compute_feature_importances(root, tree.n_features),
        notices=tree.notices,
    )


def _collapse_node(root: LeafNode | InternalNode, path: tuple[Branch, ...]) -> LeafNode | InternalNode:
    """Replace the node at `path` with a leaf and copy its ancestors on the way back up."""
    ancestors: list[tuple[InternalNode, Branch]] = []
    node = root
    for branch in path:
        if not isinstance(node, InternalNode):
            raise ValueError(f"pruning path {path} does not lead to an internal node")
        ancestors.append((node, branch))
        node = getattr(node, branch)
    replacement: LeafNode | InternalNode = make_leaf(node.sample_count, node.positive_count)
    for ancestor, branch in reversed(ancestors):
        replacement = ancestor.model_copy(update={branch: replacement})
    return replacement
