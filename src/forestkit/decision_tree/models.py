"""Pydantic node, rule and tree models for the decision tree module."""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterator, Sequence
from typing import Annotated, Any, Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from forestkit.exceptions import InvalidInputError

# ---------------------------------------------------------------------------
# Public type aliases
# ---------------------------------------------------------------------------

type PredicateOp = Literal["<=", ">"]

type NodeType = Literal["internal", "leaf"]

# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------


class LeafNode(BaseModel):
    """Terminal node holding the class prediction for the rows that reach it.

    Attributes:
        node_type (Literal["leaf"]): Discriminator field; always `"leaf"`.
        prediction (int): Majority class; exact ties predict class 1.
        probability (float): Proportion of class-1 training rows at this leaf.
        sample_count (int): Number of training rows that reached this leaf.
        positive_count (int): Number of those rows labelled 1.
        impurity (float): Gini impurity of the leaf's training rows.
    """

    model_config = ConfigDict(frozen=True)

    node_type: Literal["leaf"] = Field(default="leaf", description='Discriminator field. Always "leaf".')
    prediction: Literal[0, 1] = Field(description="Majority class; exact ties predict class 1.")
    probability: float = Field(ge=0.0, le=1.0, description="Proportion of class-1 training rows at this leaf.")
    sample_count: int = Field(ge=1, description="Number of training rows that reached this leaf.")
    positive_count: int = Field(ge=0, description="Number of training rows at this leaf labelled 1.")
    impurity: float = Field(ge=0.0, description="Gini impurity of the leaf's training rows.")


class InternalNode(BaseModel):
    """Decision node routing rows by `feature <= threshold`.

    Rows whose feature value is `<= threshold` go to `left`; all others go to
    `right`. The node keeps its own class counts so it can be collapsed into a
    leaf during cost-complexity pruning.

    Attributes:
        node_type (Literal["internal"]): Discriminator field; always `"internal"`.
        feature (int): Index of the feature tested at this node.
        threshold (float): Split threshold.
        left (TreeNode): Subtree for rows with `feature <= threshold`.
        right (TreeNode): Subtree for rows with `feature > threshold`.
        sample_count (int): Number of training rows that reached this node.
        positive_count (int): Number of those rows labelled 1.
        impurity (float): Gini impurity of the node's training rows.
        gain (float): Impurity decrease achieved by the split.
    """

    model_config = ConfigDict(frozen=True)

    node_type: Literal["internal"] = Field(default="internal", description='Discriminator field. Always "internal".')
    feature: int = Field(ge=0, description="Index of the feature tested at this node.")
    threshold: float = Field(description="Rows with feature <= threshold go left, the rest go right.")
    left: TreeNode = Field(description="Subtree for rows with feature <= threshold.")
    right: TreeNode = Field(description="Subtree for rows with feature > threshold.")
    sample_count: int = Field(ge=2, description="Number of training rows that reached this node.")
    positive_count: int = Field(ge=0, description="Number of training rows at this node labelled 1.")
    impurity: float = Field(ge=0.0, description="Gini impurity of the node's training rows.")
    gain: float = Field(gt=0.0, description="Impurity decrease achieved by the split.")

    @model_validator(mode="after")
    def _validate_children_partition_samples(self) -> InternalNode:
        """Validate that the children's sample counts add up to this node's.

        Returns:
            InternalNode: The validated node.

        Raises:
            ValueError: If the child sample or positive counts do not sum to
                this node's counts.
        """
        if self.left.sample_count + self.right.sample_count != self.sample_count:
            raise ValueError(
                f"children sample counts ({self.left.sample_count} + {self.right.sample_count}) "
                f"must equal node sample count ({self.sample_count})"
            )
        if self.left.positive_count + self.right.positive_count != self.positive_count:
            raise ValueError("children positive counts must sum to the node positive count")
        return self


# Use this alias wherever either node kind is accepted; pydantic selects the concrete model from `node_type`.
TreeNode = Annotated[LeafNode | InternalNode, Field(discriminator="node_type")]

InternalNode.model_rebuild()


def make_leaf(sample_count: int, positive_count: int) -> LeafNode:
    """Build a leaf from its class counts.

    Args:
        sample_count (int): Rows reaching the leaf.
        positive_count (int): Rows labelled 1 among them.

    Returns:
        LeafNode: Leaf predicting the majority class (class 1 on exact ties).
    """
    probability = positive_count / sample_count
    return LeafNode(
        prediction=1 if 2 * positive_count >= sample_count else 0,
        probability=probability,
        sample_count=sample_count,
        positive_count=positive_count,
        impurity=gini_from_counts(sample_count, positive_count),
    )


def gini_from_counts(sample_count: int, positive_count: int) -> float:
    """Gini impurity `1 - p0**2 - p1**2` of a binary label set.

    Args:
        sample_count (int): Size of the label set; must be positive.
        positive_count (int): Number of class-1 labels.

    Returns:
        float: Impurity in `[0, 0.5]`.
    """
    p1 = positive_count / sample_count
    return 2.0 * p1 * (1.0 - p1)


# ---------------------------------------------------------------------------
# Reporting models
# ---------------------------------------------------------------------------


class Predicate(BaseModel):
    """A single threshold condition on one feature.

    Represents a comparison such as `tenure_months <= 6.5`. Each rule holds
    the ordered predicates describing the path from the root to a leaf.

    Attributes:
        variable (str): Feature name the condition applies to.
        operator (PredicateOp): `"<="` for left branches, `">"` for right branches.
        value (float): Split threshold.

    Examples:
        >>> p = Predicate(variable="tenure_months", operator=">", value=6.5)
        >>> str(p)
        'tenure_months > 6.5'
        >>> p.eval(12.0)
        True
    """

    model_config = ConfigDict(frozen=True)

    variable: str = Field(description="Feature name the condition applies to, e.g. 'tenure_months'.")
    operator: PredicateOp = Field(description="'<=' for left branches, '>' for right branches.")
    value: float = Field(description="Split threshold.")

    def __str__(self) -> str:
        """Return the predicate as `"<variable> <operator> <value>"`.

        Returns:
            str: Human-readable predicate.
        """
        return f"{self.variable} {self.operator} {self.value}"

    def eval(self, x: float) -> bool:
        """Evaluate this predicate against a feature value.

        Args:
            x (float): The feature value to test.

        Returns:
            bool: `True` if the predicate holds for `x`.
        """
        return _SCALAR_OPS[self.operator](x, self.value)


class ClassificationRule(BaseModel):
    """A decision rule extracted from one leaf of a fitted tree.

    Attributes:
        predicates (list[Predicate]): Predicates along the path from root to
            this leaf. Empty for a single-leaf tree.
        prediction (int): Predicted class at the leaf.
        probability (float): Class-1 probability at the leaf.
        samples (int): Number of training rows that reached the leaf.

    Examples:
        >>> rule = ClassificationRule(
        ...     predicates=[Predicate(variable="tenure_months", operator="<=", value=6.5)],
        ...     prediction=1,
        ...     probability=0.87,
        ...     samples=210,
        ... )
        >>> str(rule)
        'IF tenure_months <= 6.5 THEN class=1 (p=0.87, n=210)'
    """

    predicates: list[Predicate] = Field(
        description="Predicates along the path from root to this leaf; empty for a single-leaf tree.",
    )
    prediction: int = Field(ge=0, le=1, description="Predicted class at the leaf.")
    probability: float = Field(ge=0.0, le=1.0, description="Class-1 probability at the leaf.")
    samples: int = Field(ge=1, description="Number of training rows that reached the leaf.")

    def __str__(self) -> str:
        """Return the rule in `IF ... THEN ...` form.

        Returns:
            str: Human-readable rule.
        """
        condition = " AND ".join(str(p) for p in self.predicates) or "TRUE"
        return f"IF {condition} THEN class={self.prediction} (p={self.probability:.2f}, n={self.samples})"

    def matches(self, row: Sequence[float], feature_names: Sequence[str]) -> bool:
        """Return whether a row satisfies every predicate of this rule.

        Args:
            row (Sequence[float]): Feature values in dataset order.
            feature_names (Sequence[str]): Names parallel to `row`.

        Returns:
            bool: `True` if the row reaches this rule's leaf.
        """
        positions = {name: i for i, name in enumerate(feature_names)}
        return all(p.eval(row[positions[p.variable]]) for p in self.predicates)


class NodeRecord(BaseModel):
    """Flat, read-only view of one node for reporting and plotting.

    Attributes:
        node_id (int): Pre-order position of the node (root is 0).
        parent_id (int | None): Pre-order position of the parent; `None` for the root.
        depth (int): Distance from the root.
        node_type (NodeType): `"internal"` or `"leaf"`.
        feature (int | None): Split feature index for internal nodes.
        feature_name (str | None): Split feature name for internal nodes.
        threshold (float | None): Split threshold for internal nodes.
        prediction (int | None): Predicted class for leaves.
        probability (float): Class-1 proportion of the node's training rows.
        sample_count (int): Training rows reaching the node.
    """

    node_id: int = Field(ge=0)
    parent_id: int | None = Field(default=None)
    depth: int = Field(ge=0)
    node_type: NodeType
    feature: int | None = Field(default=None)
    feature_name: str | None = Field(default=None)
    threshold: float | None = Field(default=None)
    prediction: int | None = Field(default=None)
    probability: float = Field(ge=0.0, le=1.0)
    sample_count: int = Field(ge=1)


class ConvergenceNotice(BaseModel):
    """Signal that a pure node was reached before `max_depth`.

    Not an error: it tells the caller that growth stopped early because a node
    contained a single class.

    Attributes:
        depth (int): Depth of the pure leaf.
        sample_count (int): Training rows at the pure leaf.
    """

    model_config = ConfigDict(frozen=True)

    depth: int = Field(ge=0)
    sample_count: int = Field(ge=1)


class TreeParams(BaseModel):
    """Hyperparameters a tree was grown with.

    Attributes:
        max_depth (int | None): Maximum depth; `None` means unbounded.
        min_node_size (int): Nodes with fewer rows become leaves, and splits
            must leave at least this many rows on each side.
        cost_complexity_alpha (float): Pruning strength; `0.0` disables pruning.
    """

    model_config = ConfigDict(frozen=True)

    max_depth: int | None = Field(description="Maximum depth; None means unbounded.")
    min_node_size: int = Field(description="Minimum rows per node and per child of a split.")
    cost_complexity_alpha: float = Field(default=0.0, description="Pruning strength; 0.0 disables pruning.")


# ---------------------------------------------------------------------------
# Fitted tree
# ---------------------------------------------------------------------------


class DecisionTree(BaseModel):
    """A fitted binary-classification tree.

    Created by `fit_tree` (or `prune_tree`) and immutable afterwards.
    Serialize with `model_dump()` / `model_dump_json()`; the node tree dumps
    as a nested record.

    Attributes:
        root (TreeNode): Root node.
        params (TreeParams): Hyperparameters the tree was grown with.
        feature_names (tuple[str, ...]): Names of the dataset's features.
        feature_importances (tuple[float, ...]): Normalized importance per
            feature; all zeros for a single-leaf tree.
        notices (tuple[ConvergenceNotice, ...]): Pure leaves reached before
            `max_depth` during growth.
    """

    model_config = ConfigDict(frozen=True)

    root: TreeNode
    params: TreeParams
    feature_names: tuple[str, ...] = Field(min_length=1)
    feature_importances: tuple[float, ...]
    notices: tuple[ConvergenceNotice, ...] = Field(default=())

    @model_validator(mode="after")
    def _validate_importances_match_features(self) -> DecisionTree:
        """Validate that there is exactly one importance per feature.

        Returns:
            DecisionTree: The validated model instance.

        Raises:
            ValueError: If the lengths differ.
        """
        if len(self.feature_importances) != len(self.feature_names):
            raise ValueError(
                f"feature_importances length ({len(self.feature_importances)}) must equal "
                f"the number of features ({len(self.feature_names)})"
            )
        return self

    @property
    def n_features(self) -> int:
        """Number of features the tree was trained on."""
        return len(self.feature_names)

    @property
    def depth(self) -> int:
        """Length of the longest root-to-leaf path."""
        return _node_depth(self.root)

    @property
    def leaf_count(self) -> int:
        """Number of leaves."""
        return sum(1 for node in iter_nodes(self.root) if isinstance(node, LeafNode))

    @property
    def internal_count(self) -> int:
        """Number of internal (split) nodes."""
        return sum(1 for node in iter_nodes(self.root) if isinstance(node, InternalNode))

    def split_features(self) -> tuple[int, ...]:
        """Return the sorted indices of features the tree splits on.

        Returns:
            tuple[int, ...]: Feature indices used by at least one internal node.
        """
        return tuple(sorted({node.feature for node in iter_nodes(self.root) if isinstance(node, InternalNode)}))

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def leaf_for(self, row: Sequence[float] | np.ndarray) -> LeafNode:
        """Route one row to its leaf.

        Args:
            row (Sequence[float] | np.ndarray): Feature values in dataset order.

        Returns:
            LeafNode: The leaf the row lands in.

        Raises:
            InvalidInputError: If the row length differs from the training feature count.
        """
        vector = _check_row(row, self.n_features)
        node = self.root
        while isinstance(node, InternalNode):
            node = node.left if vector[node.feature] <= node.threshold else node.right
        return node

    def predict(self, row: Sequence[float] | np.ndarray) -> int:
        """Predict the class of one row.

        Args:
            row (Sequence[float] | np.ndarray): Feature values in dataset order.

        Returns:
            int: 0 or 1.
        """
        return self.leaf_for(row).prediction

    def predict_proba(self, row: Sequence[float] | np.ndarray) -> float:
        """Predict the class-1 probability of one row.

        Args:
            row (Sequence[float] | np.ndarray): Feature values in dataset order.

        Returns:
            float: The class-1 proportion at the row's leaf.
        """
        return self.leaf_for(row).probability

    def predict_proba_many(self, features: np.ndarray) -> np.ndarray:
        """Predict class-1 probabilities for every row of a feature matrix.

        Args:
            features (np.ndarray): Matrix with shape `(n_rows, n_features)`.

        Returns:
            np.ndarray: `float64` vector of length `n_rows`.

        Raises:
            InvalidInputError: If the column count differs from the training feature count.
        """
        matrix = check_feature_matrix(features, self.n_features)
        probabilities = np.empty(matrix.shape[0], dtype=np.float64)
        _fill_leaf_values(self.root, matrix, probabilities, "probability")
        return probabilities

    def predict_many(self, features: np.ndarray) -> np.ndarray:
        """Predict classes for every row of a feature matrix.

        Args:
            features (np.ndarray): Matrix with shape `(n_rows, n_features)`.

        Returns:
            np.ndarray: `int8` vector of 0/1 predictions.

        Raises:
            InvalidInputError: If the column count differs from the training feature count.
        """
        matrix = check_feature_matrix(features, self.n_features)
        predictions = np.empty(matrix.shape[0], dtype=np.float64)
        _fill_leaf_values(self.root, matrix, predictions, "prediction")
        return predictions.astype(np.int8)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def feature_importance(self) -> dict[str, float]:
        """Map feature names to normalized importance, most important first.

        Returns:
            dict[str, float]: Importance per feature, sorted descending.
        """
        paired = zip(self.feature_names, self.feature_importances, strict=True)
        return dict(sorted(paired, key=lambda item: item[1], reverse=True))

    def nodes(self) -> list[NodeRecord]:
        """Flatten the tree into pre-order node records.

        Returns:
            list[NodeRecord]: One record per node; the root has `node_id` 0.
        """
        records: list[NodeRecord] = []
        stack: list[tuple[Any, int | None, int]] = [(self.root, None, 0)]
        while stack:
            node, parent_id, depth = stack.pop()
            node_id = len(records)
            probability = node.positive_count / node.sample_count
            if isinstance(node, InternalNode):
                records.append(
                    NodeRecord(
                        node_id=node_id,
                        parent_id=parent_id,
                        depth=depth,
                        node_type="internal",
                        feature=node.feature,
                        feature_name=self.feature_names[node.feature],
                        threshold=node.threshold,
                        probability=probability,
                        sample_count=node.sample_count,
                    )
                )
                # Right is pushed first so the left subtree is numbered first.
                stack.append((node.right, node_id, depth + 1))
                stack.append((node.left, node_id, depth + 1))
            else:
                records.append(
                    NodeRecord(
                        node_id=node_id,
                        parent_id=parent_id,
                        depth=depth,
                        node_type="leaf",
                        prediction=node.prediction,
                        probability=node.probability,
                        sample_count=node.sample_count,
                    )
                )
        return records

    def rules(self) -> list[ClassificationRule]:
        """Extract one root-to-leaf rule per leaf, left to right.

        Returns:
            list[ClassificationRule]: Rules in leaf order.
        """
        return _walk_rules(self.root, self.feature_names)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

_SCALAR_OPS: dict[str, Callable[[Any, Any], bool]] = {
    "<=": operator.le,
    ">": operator.gt,
}


def iter_nodes(root: LeafNode | InternalNode) -> Iterator[LeafNode | InternalNode]:
    """Yield every node in pre-order (node, left subtree, right subtree)."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, InternalNode):
            stack.append(node.right)
            stack.append(node.left)


def _node_depth(root: LeafNode | InternalNode) -> int:
    deepest = 0
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if isinstance(node, InternalNode):
            stack.append((node.left, depth + 1))
            stack.append((node.right, depth + 1))
        else:
            deepest = max(deepest, depth)
    return deepest


def _fill_leaf_values(
    root: LeafNode | InternalNode,
    features: np.ndarray,
    out: np.ndarray,
    attribute: Literal["probability", "prediction"],
) -> None:
    """Route every row of `features` down the tree and write its leaf's value into `out`.

    Args:
        root (LeafNode | InternalNode): Root of the tree.
        features (np.ndarray): Feature matrix.
        out (np.ndarray): Output vector written in place, one entry per row.
        attribute (Literal["probability", "prediction"]): Leaf field to write.
    """
    stack = [(root, np.arange(features.shape[0]))]
    while stack:
        node, positions = stack.pop()
        if positions.size == 0:
            continue
        if isinstance(node, LeafNode):
            out[positions] = getattr(node, attribute)
            continue
        goes_left = features[positions, node.feature] <= node.threshold
        stack.append((node.right, positions[~goes_left]))
        stack.append((node.left, positions[goes_left]))


def _walk_rules(root: LeafNode | InternalNode, feature_names: tuple[str, ...]) -> list[ClassificationRule]:
    """Build one rule per leaf, leaves ordered left to right.

    Args:
        root (LeafNode | InternalNode): Root of the tree.
        feature_names (tuple[str, ...]): Names used for predicate variables.

    Returns:
        list[ClassificationRule]: The rules.
    """
    rules: list[ClassificationRule] = []
    stack: list[tuple[LeafNode | InternalNode, list[Predicate]]] = [(root, [])]
    while stack:
        node, path_predicates = stack.pop()
        if isinstance(node, LeafNode):
            rules.append(
                ClassificationRule(
                    predicates=path_predicates,
                    prediction=node.prediction,
                    probability=node.probability,
                    samples=node.sample_count,
                )
            )
            continue
        name = feature_names[node.feature]
        left_predicate = Predicate(variable=name, operator="<=", value=node.threshold)
        right_predicate = Predicate(variable=name, operator=">", value=node.threshold)
        stack.append((node.right, [*path_predicates, right_predicate]))
        stack.append((node.left, [*path_predicates, left_predicate]))
    return rules


def _check_row(row: Sequence[float] | np.ndarray, n_features: int) -> np.ndarray:
    """Return `row` as a 1-D float vector of length `n_features`.

    Raises:
        InvalidInputError: If the row is not 1-D or has the wrong length.
    """
    vector = np.asarray(row, dtype=np.float64)
    if vector.ndim != 1 or vector.shape[0] != n_features:
        raise InvalidInputError(f"expected a row of {n_features} feature values, got shape {vector.shape}")
    return vector


def check_feature_matrix(features: np.ndarray, n_features: int) -> np.ndarray:
    """Return `features` as a 2-D float matrix with `n_features` columns.

    Args:
        features (np.ndarray): Rows to score.
        n_features (int): Feature count the model was trained on.

    Returns:
        np.ndarray: The matrix as `float64`.

    Raises:
        InvalidInputError: If the matrix is not 2-D or its column count differs.
    """
    matrix = np.asarray(features, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != n_features:
        raise InvalidInputError(f"expected a matrix with {n_features} feature columns, got shape {matrix.shape}")
    return matrix


def compute_feature_importances(root: LeafNode | InternalNode, n_features: int) -> tuple[float, ...]:
    """Sum `sample_count * gain` per split feature and normalize to 1.

    Args:
        root (LeafNode | InternalNode): Root of the tree.
        n_features (int): Number of features in the training data.

    Returns:
        tuple[float, ...]: One importance per feature; all zeros when the tree
            is a single leaf.
    """
    totals = np.zeros(n_features, dtype=np.float64)
    for node in iter_nodes(root):
        if isinstance(node, InternalNode):
            totals[node.feature] += node.sample_count * node.gain
    grand_total = totals.sum()
    if grand_total <= 0.0:
        return tuple(0.0 for _ in range(n_features))
    return tuple(float(value) for value in totals / grand_total)
