"""forestkit: Gini decision trees, random forests, and cross-validated model selection."""

from loguru import logger

from forestkit.dataset import Dataset
from forestkit.decision_tree import DecisionTree, fit_tree, prune_tree
from forestkit.exceptions import ForestKitError, InvalidHyperparameterError, InvalidInputError
from forestkit.forest import RandomForest, fit_forest
from forestkit.logging import PACKAGE_NAME, enable_logging
from forestkit.metrics import accuracy, roc_auc
from forestkit.selection import (
    DecisionTreeSpec,
    RandomForestSpec,
    grid_search,
    random_search,
    refit_best,
    score_model,
    spec_factory,
    stratified_folds,
    stratified_split,
)
from forestkit.settings import ForestKitSettings

logger.disable(PACKAGE_NAME)  # noqa: RUF067 - Disable logging for the forestkit module by default

__all__ = [
    "Dataset",
    "DecisionTree",
    "DecisionTreeSpec",
    "ForestKitError",
    "ForestKitSettings",
    "InvalidHyperparameterError",
    "InvalidInputError",
    "RandomForest",
    "RandomForestSpec",
    "accuracy",
    "enable_logging",
    "fit_forest",
    "fit_tree",
    "grid_search",
    "prune_tree",
    "random_search",
    "refit_best",
    "roc_auc",
    "score_model",
    "spec_factory",
    "stratified_folds",
    "stratified_split",
]
