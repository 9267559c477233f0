"""Pydantic models for a fitted random forest."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from forestkit.decision_tree.models import DecisionTree, check_feature_matrix
from forestkit.exceptions import InvalidInputError


class ForestParams(BaseModel):
    """Hyperparameters a forest was fitted with.

    Attributes:
        tree_count (int): Number of member trees.
        mtry (int): Features offered to each split.
        min_node_size (int): Minimum rows per node and per child of a split.
        max_depth (int | None): Maximum member depth; `None` means unbounded.
        base_seed (int): Seed every member seed is derived from.
    """

    model_config = ConfigDict(frozen=True)

    tree_count: int = Field(ge=1)
    mtry: int = Field(ge=1)
    min_node_size: int = Field(ge=1)
    max_depth: int | None = Field(default=None)
    base_seed: int = Field(ge=0)


class ForestMember(BaseModel):
    """One tree of the ensemble and how it was drawn.

    Attributes:
        tree (DecisionTree): The member tree.
        seed (int): Seed of the member's generator (bootstrap and feature draws).
        split_features (tuple[int, ...]): Features the tree actually splits on.
        out_of_bag (tuple[int, ...]): Training rows the member never drew.
    """

    model_config = ConfigDict(frozen=True)

    tree: DecisionTree
    seed: int
    split_features: tuple[int, ...]
    out_of_bag: tuple[int, ...]


class RandomForest(BaseModel):
    """A fitted bagged ensemble of decision trees.

    Class predictions are a majority vote of the members; an exact tie is
    resolved toward class 1 (the positive, e.g. churn, class). Probabilities
    are the mean of the members' leaf class-1 probabilities.

    Attributes:
        members (tuple[ForestMember, ...]): Member trees in fit order.
        params (ForestParams): Hyperparameters of the fit.
        feature_names (tuple[str, ...]): Names of the dataset's features.
        oob_score (float | None): Out-of-bag ROC-AUC when requested and defined.
    """

    model_config = ConfigDict(frozen=True)

    members: tuple[ForestMember, ...] = Field(min_length=1)
    params: ForestParams
    feature_names: tuple[str, ...] = Field(min_length=1)
    oob_score: float | None = Field(default=None)

    @model_validator(mode="after")
    def _validate_member_count(self) -> RandomForest:
        """Validate that the member count equals `params.tree_count`.

        Returns:
            RandomForest: The validated model instance.

        Raises:
            ValueError: If the counts differ.
        """
        if len(self.members) != self.params.tree_count:
            raise ValueError(f"expected {self.params.tree_count} members, got {len(self.members)}")
        return self

    @property
    def trees(self) -> tuple[DecisionTree, ...]:
        """Member trees in fit order."""
        return tuple(member.tree for member in self.members)

    @property
    def feature_importances(self) -> tuple[float, ...]:
        """Mean of the members' normalized importances, per feature."""
        stacked = np.array([member.tree.feature_importances for member in self.members], dtype=np.float64)
        return tuple(float(value) for value in stacked.mean(axis=0))

    def feature_importance(self) -> dict[str, float]:
        """Map feature names to mean importance, most important first.

        Returns:
            dict[str, float]: Importance per feature, sorted descending.
        """
        paired = zip(self.feature_names, self.feature_importances, strict=True)
        return dict(sorted(paired, key=lambda item: item[1], reverse=True))

    def predict_proba_many(self, features: np.ndarray) -> np.ndarray:
        """Mean member class-1 probability for every row.

        Args:
            features (np.ndarray): Matrix with shape `(n_rows, n_features)`.

        Returns:
            np.ndarray: `float64` vector of length `n_rows`.

        Raises:
            InvalidInputError: If the column count differs from the training feature count.
        """
        matrix = check_feature_matrix(features, len(self.feature_names))
        total = np.zeros(matrix.shape[0], dtype=np.float64)
        for member in self.members:
            total += member.tree.predict_proba_many(matrix)
        return total / len(self.members)

    def predict_many(self, features: np.ndarray) -> np.ndarray:
        """Majority-vote class for every row; ties go to class 1.

        Args:
            features (np.ndarray): Matrix with shape `(n_rows, n_features)`.

        Returns:
            np.ndarray: `int8` vector of 0/1 predictions.

        Raises:
            InvalidInputError: If the column count differs from the training feature count.
        """
        matrix = check_feature_matrix(features, len(self.feature_names))
        votes = np.zeros(matrix.shape[0], dtype=np.int64)
        for member in self.members:
            votes += member.tree.predict_many(matrix)
        return (2 * votes >= len(self.members)).astype(np.int8)

    def predict_proba(self, row: Sequence[float] | np.ndarray) -> float:
        """Mean member class-1 probability for one row."""
        return float(self.predict_proba_many(self._row_matrix(row))[0])

    def predict(self, row: Sequence[float] | np.ndarray) -> int:
        """Majority-vote class for one row; ties go to class 1."""
        return int(self.predict_many(self._row_matrix(row))[0])

    def _row_matrix(self, row: Sequence[float] | np.ndarray) -> np.ndarray:
        vector = np.asarray(row, dtype=np.float64)
        if vector.ndim != 1:
            raise InvalidInputError(f"expected a 1-D row of feature values, got shape {vector.shape}")
        return vector.reshape(1, -1)
