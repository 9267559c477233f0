"""Tests for `fit_tree`: growth, stopping rules, convergence notices and validation."""

from __future__ import annotations

import numpy as np
import pytest
from pytest_check import check

from forestkit.dataset import Dataset
from forestkit.decision_tree import InternalNode, LeafNode, fit_tree, prune_tree
from forestkit.exceptions import InvalidHyperparameterError, InvalidInputError


class TestFitTree:
    """Tests for tree growth on small, hand-checkable datasets."""

    def test_separable_example_gives_one_split(self, separable_dataset: Dataset) -> None:
        """Six separable rows yield one split on feature 0 at 2.5 and two pure leaves."""
        # Act
        tree = fit_tree(separable_dataset, max_depth=3)

        # Assert
        root = tree.root
        assert isinstance(root, InternalNode)
        with check:
            assert (root.feature, root.threshold) == (0, 2.5)
        with check:
            assert isinstance(root.left, LeafNode) and root.left.prediction == 0
        with check:
            assert isinstance(root.right, LeafNode) and root.right.prediction == 1
        with check:
            assert (tree.depth, tree.leaf_count) == (1, 2)
        with check:
            assert tree.predict_many(separable_dataset.features).tolist() == separable_dataset.labels.tolist()

    def test_single_label_gives_single_leaf(self) -> None:
        """A dataset with one label is a single leaf regardless of `max_depth`."""
        # Arrange
        dataset = Dataset.from_arrays([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]], [1, 1, 1])

        # Act
        tree = fit_tree(dataset, max_depth=10)

        # Assert
        with check:
            assert isinstance(tree.root, LeafNode)
        with check:
            assert tree.root.prediction == 1 and tree.root.probability == 1.0
        with check:
            assert tree.feature_importances == (0.0, 0.0)

    def test_max_depth_zero_is_majority_leaf(self, churn_dataset: Dataset) -> None:
        """Depth 0 produces a single leaf holding the class-1 proportion."""
        # Act
        tree = fit_tree(churn_dataset, max_depth=0)

        # Assert
        assert isinstance(tree.root, LeafNode)
        assert tree.root.probability == pytest.approx(churn_dataset.labels.mean())

    def test_leaf_tie_predicts_class_one(self) -> None:
        """An exact 50/50 leaf predicts the positive class."""
        # Arrange
        dataset = Dataset.from_arrays([[1.0], [1.0]], [0, 1])

        # Act
        tree = fit_tree(dataset, max_depth=5)

        # Assert
        with check:
            assert tree.predict([1.0]) == 1
        with check:
            assert tree.predict_proba([1.0]) == 0.5

    def test_respects_max_depth_and_min_node_size(self, churn_dataset: Dataset) -> None:
        """No path is longer than `max_depth` and no leaf holds fewer than `min_node_size` rows."""
        # Act
        tree = fit_tree(churn_dataset, max_depth=4, min_node_size=10)

        # Assert
        with check:
            assert tree.depth <= 4
        leaf_sizes = [record.sample_count for record in tree.nodes() if record.node_type == "leaf"]
        with check:
            assert min(leaf_sizes) >= 10
        with check:
            assert sum(leaf_sizes) == churn_dataset.n_rows

    def test_repeated_fits_are_identical(self, churn_dataset: Dataset) -> None:
        """Fitting twice on the same input yields the same tree."""
        # Act
        first = fit_tree(churn_dataset, max_depth=None, min_node_size=3)
        second = fit_tree(churn_dataset, max_depth=None, min_node_size=3)

        # Assert
        assert first == second

    def test_convergence_notices_for_early_pure_leaves(self, separable_dataset: Dataset) -> None:
        """Pure leaves above `max_depth` are reported; leaves at `max_depth` are not."""
        # Act
        deep = fit_tree(separable_dataset, max_depth=5)
        shallow = fit_tree(separable_dataset, max_depth=1)

        # Assert
        with check:
            assert [(n.depth, n.sample_count) for n in deep.notices] == [(1, 3), (1, 3)]
        with check:
            assert shallow.notices == ()

    def test_row_subset_and_candidate_features(self, separable_dataset: Dataset) -> None:
        """Only the given rows train the tree and only candidate features are split on."""
        # Act
        tree = fit_tree(separable_dataset, rows=[0, 1, 4, 5], max_depth=2, candidate_features=[1])

        # Assert
        assert isinstance(tree.root, InternalNode)
        with check:
            assert tree.root.feature == 1
        with check:
            assert tree.root.sample_count == 4
        with check:
            assert tree.split_features() == (1,)

    def test_importances_sum_to_one(self, churn_dataset: Dataset) -> None:
        """Importances of a tree with splits are non-negative and sum to one."""
        # Act
        tree = fit_tree(churn_dataset, max_depth=5)

        # Assert
        with check:
            assert sum(tree.feature_importances) == pytest.approx(1.0)
        with check:
            assert min(tree.feature_importances) >= 0.0
        with check:
            assert list(tree.feature_importance().values()) == sorted(tree.feature_importances, reverse=True)

    def test_learns_signal(self, churn_dataset: Dataset) -> None:
        """An unbounded tree with unit leaves memorizes distinct training rows."""
        # Act
        tree = fit_tree(churn_dataset, max_depth=None)

        # Assert
        accuracy = float(np.mean(tree.predict_many(churn_dataset.features) == churn_dataset.labels))
        assert accuracy == 1.0


class TestDeepTrees:
    """Tests for trees deeper than the interpreter's default recursion limit."""

    def test_unbounded_chain_tree(self, alternating_chain_dataset: Dataset) -> None:
        """A 2399-split chain grows, reports, predicts and prunes without recursion."""
        # Act
        tree = fit_tree(alternating_chain_dataset, max_depth=None)

        # Assert
        with check:
            assert tree.depth == 2399
        with check:
            assert tree.leaf_count == 2400
        with check:
            assert len(tree.nodes()) == 4799
        with check:
            assert tree.predict_many(alternating_chain_dataset.features).tolist() == (
                alternating_chain_dataset.labels.tolist()
            )
        with check:
            assert prune_tree(tree, 0.0).leaf_count == 2400
        with check:
            assert prune_tree(tree, 1.0).leaf_count == 1


class TestFitTreeValidation:
    """Tests for input and hyperparameter validation at the entry point."""

    @pytest.mark.parametrize(
        ("kwargs", "name"),
        [
            ({"max_depth": -1}, "max_depth"),
            ({"max_depth": 3, "min_node_size": 0}, "min_node_size"),
            ({"max_depth": 3, "cost_complexity_alpha": -0.1}, "cost_complexity_alpha"),
        ],
        ids=["negative_depth", "zero_min_node_size", "negative_alpha"],
    )
    def test_invalid_hyperparameters(self, separable_dataset: Dataset, kwargs: dict, name: str) -> None:
        """Out-of-range hyperparameters raise with the offending name."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError) as exc_info:
            fit_tree(separable_dataset, **kwargs)
        assert exc_info.value.name == name

    def test_invalid_rows_and_features(self, separable_dataset: Dataset) -> None:
        """Empty rows and out-of-range candidate features raise `InvalidInputError`."""
        # Act & Assert
        with pytest.raises(InvalidInputError):
            fit_tree(separable_dataset, rows=[], max_depth=2)
        with pytest.raises(InvalidInputError):
            fit_tree(separable_dataset, max_depth=2, candidate_features=[5])
