"""Model family interface: estimator specifications and the factories search uses.

Each model family is a frozen pydantic model tagged by `model_type`. A spec
holds validated hyperparameters and knows how to fit itself; fitted models
satisfy the `Classifier` protocol, so cross-validation and search never need
to know which family they are driving.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import Annotated, Any, Literal, Protocol, runtime_checkable

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from forestkit.dataset import Dataset
from forestkit.decision_tree.fitting import fit_tree
from forestkit.decision_tree.models import DecisionTree
from forestkit.exceptions import InvalidHyperparameterError
from forestkit.forest.fitting import fit_forest
from forestkit.forest.models import RandomForest
from forestkit.selection.space import HyperparameterConfig

type ModelType = Literal["decision_tree", "random_forest"]

# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Classifier(Protocol):
    """A fitted binary classifier."""

    def predict(self, row: Sequence[float] | np.ndarray) -> int: ...

    def predict_proba(self, row: Sequence[float] | np.ndarray) -> float: ...

    def predict_many(self, features: np.ndarray) -> np.ndarray: ...

    def predict_proba_many(self, features: np.ndarray) -> np.ndarray: ...

    def feature_importance(self) -> dict[str, float]: ...


@runtime_checkable
class Estimator(Protocol):
    """An unfitted model that can be trained on a row selection of a dataset."""

    def fit(self, dataset: Dataset, rows: Sequence[int] | np.ndarray | None = None) -> Classifier: ...


type ModelFactory = Callable[[HyperparameterConfig], Estimator]
"""Builds an estimator from one hyperparameter configuration."""

# ---------------------------------------------------------------------------
# Specifications
# ---------------------------------------------------------------------------


class DecisionTreeSpec(BaseModel):
    """Hyperparameters of a single Gini decision tree.

    Attributes:
        model_type (Literal["decision_tree"]): Discriminator field.
        max_depth (int | None): Maximum depth; `None` for unbounded.
        min_node_size (int): Minimum rows per node and per child of a split.
        cost_complexity_alpha (float): Pruning strength; `0.0` disables pruning.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    model_type: Literal["decision_tree"] = "decision_tree"
    max_depth: int | None = Field(default=None, ge=0, description="Maximum tree depth.")
    min_node_size: int = Field(default=1, ge=1, description="Minimum rows per node.")
    cost_complexity_alpha: float = Field(default=0.0, ge=0.0, description="Cost-complexity pruning strength.")

    def fit(self, dataset: Dataset, rows: Sequence[int] | np.ndarray | None = None) -> DecisionTree:
        """Fit a tree with these hyperparameters.

        Args:
            dataset (Dataset): Training data.
            rows (Sequence[int] | np.ndarray | None): Training rows; `None` uses all.

        Returns:
            DecisionTree: The fitted tree.
        """
        return fit_tree(
            dataset,
            rows,
            max_depth=self.max_depth,
            min_node_size=self.min_node_size,
            cost_complexity_alpha=self.cost_complexity_alpha,
        )


class RandomForestSpec(BaseModel):
    """Hyperparameters of a bagged random forest.

    Attributes:
        model_type (Literal["random_forest"]): Discriminator field.
        tree_count (int): Number of member trees.
        mtry (int | None): Features offered to each split. `None` resolves to
            `floor(sqrt(n_features))` (at least 1) when fitting.
        min_node_size (int): Minimum rows per node and per child of a split.
        max_depth (int | None): Maximum member depth; `None` for unbounded.
        seed (int): Base seed member seeds derive from.
        max_workers (int | None): Worker pool size for member fitting.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    model_type: Literal["random_forest"] = "random_forest"
    tree_count: int = Field(default=100, ge=1, description="Number of member trees.")
    mtry: int | None = Field(default=None, ge=1, description="Features offered to each split.")
    min_node_size: int = Field(default=1, ge=1, description="Minimum rows per node.")
    max_depth: int | None = Field(default=None, ge=0, description="Maximum member depth.")
    seed: int = Field(default=0, ge=0, description="Base seed for member generators.")
    max_workers: int | None = Field(default=None, ge=1, description="Worker pool size.")

    def resolved_mtry(self, n_features: int) -> int:
        """Return `mtry`, or the square-root default for `n_features` features."""
        if self.mtry is not None:
            return self.mtry
        return max(1, math.isqrt(n_features))

    def fit(self, dataset: Dataset, rows: Sequence[int] | np.ndarray | None = None) -> RandomForest:
        """Fit a forest with these hyperparameters.

        Args:
            dataset (Dataset): Training data.
            rows (Sequence[int] | np.ndarray | None): Rows eligible for
                bootstrap draws; `None` uses all.

        Returns:
            RandomForest: The fitted forest.

        Raises:
            InvalidHyperparameterError: If `mtry` exceeds the feature count.
        """
        return fit_forest(
            dataset,
            rows,
            tree_count=self.tree_count,
            mtry=self.resolved_mtry(dataset.n_features),
            min_node_size=self.min_node_size,
            max_depth=self.max_depth,
            base_seed=self.seed,
            max_workers=self.max_workers,
        )


ModelSpec = Annotated[DecisionTreeSpec | RandomForestSpec, Field(discriminator="model_type")]

_MODEL_SPEC_ADAPTER: TypeAdapter[DecisionTreeSpec | RandomForestSpec] = TypeAdapter(ModelSpec)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def build_spec(model_type: ModelType, values: dict[str, Any]) -> DecisionTreeSpec | RandomForestSpec:
    """Validate hyperparameter values into the spec for `model_type`.

    Args:
        model_type (ModelType): `"decision_tree"` or `"random_forest"`.
        values (dict[str, Any]): Hyperparameter values by name.

    Returns:
        DecisionTreeSpec | RandomForestSpec: The validated spec.

    Raises:
        InvalidHyperparameterError: If a name is unknown, a value has the
            wrong type, or a value is out of range. Only the first problem
            is reported.
    """
    try:
        return _MODEL_SPEC_ADAPTER.validate_python({**values, "model_type": model_type})
    except ValidationError as exc:
        error = exc.errors()[0]
        # Locations are (model_type, field, ...); report the top-level field.
        name = str(error["loc"][1]) if len(error["loc"]) > 1 else model_type
        raise InvalidHyperparameterError(name, error.get("input"), error["msg"]) from None


def spec_factory(model_type: ModelType, **fixed: Any) -> ModelFactory:
    """Return a model factory that merges `fixed` settings with each config.

    Searched values take precedence over fixed ones with the same name.

    Args:
        model_type (ModelType): `"decision_tree"` or `"random_forest"`.
        **fixed (Any): Hyperparameters held constant across the search.

    Returns:
        ModelFactory: Callable mapping a `HyperparameterConfig` to a spec.

    Raises:
        InvalidHyperparameterError: If `fixed` alone is invalid for `model_type`.

    Examples:
        >>> factory = spec_factory("random_forest", tree_count=25, seed=7)
        >>> spec = factory(HyperparameterConfig.from_mapping({"mtry": 2}))
        >>> spec.tree_count, spec.mtry, spec.seed
        (25, 2, 7)
    """
    build_spec(model_type, fixed)

    def factory(config: HyperparameterConfig) -> DecisionTreeSpec | RandomForestSpec:
        return build_spec(model_type, {**fixed, **config.as_dict()})

    return factory
