"""Model selection sub-package: folds, cross-validation, search spaces, and search."""

from __future__ import annotations

from forestkit.selection.cross_validation import cross_validate
from forestkit.selection.estimators import (
    Classifier,
    DecisionTreeSpec,
    Estimator,
    ModelFactory,
    ModelSpec,
    RandomForestSpec,
    build_spec,
    spec_factory,
)
from forestkit.selection.folds import FoldAssignment, TrainTestSplit, stratified_folds, stratified_split
from forestkit.selection.search import (
    ConfigScore,
    SearchResult,
    grid_search,
    random_search,
    refit_best,
    run_search,
    score_model,
)
from forestkit.selection.space import (
    Choice,
    Distribution,
    FloatRange,
    HyperparameterConfig,
    IntRange,
    grid_configs,
    random_configs,
    regular_grid,
)

__all__ = [
    "Choice",
    "Distribution",
    "Classifier",
    "ConfigScore",
    "DecisionTreeSpec",
    "Estimator",
    "FloatRange",
    "FoldAssignment",
    "HyperparameterConfig",
    "IntRange",
    "ModelFactory",
    "ModelSpec",
    "RandomForestSpec",
    "SearchResult",
    "TrainTestSplit",
    "build_spec",
    "cross_validate",
    "grid_configs",
    "grid_search",
    "random_configs",
    "random_search",
    "refit_best",
    "regular_grid",
    "run_search",
    "score_model",
    "spec_factory",
    "stratified_folds",
    "stratified_split",
]
