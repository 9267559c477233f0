"""Decision tree sub-package: node models, split search, growth, and pruning."""

from __future__ import annotations

from forestkit.decision_tree.fitting import fit_tree
from forestkit.decision_tree.models import (
    ClassificationRule,
    ConvergenceNotice,
    DecisionTree,
    InternalNode,
    LeafNode,
    NodeRecord,
    Predicate,
    PredicateOp,
    TreeNode,
    TreeParams,
)
from forestkit.decision_tree.pruning import PruningPath, cost_complexity_pruning_path, prune_tree
from forestkit.decision_tree.splitting import SplitCandidate, best_split, gini_impurity

__all__ = [
    "ClassificationRule",
    "ConvergenceNotice",
    "DecisionTree",
    "InternalNode",
    "LeafNode",
    "NodeRecord",
    "Predicate",
    "PredicateOp",
    "PruningPath",
    "SplitCandidate",
    "TreeNode",
    "TreeParams",
    "best_split",
    "cost_complexity_pruning_path",
    "fit_tree",
    "gini_impurity",
    "prune_tree",
]
