"""Tests for stratified fold assignment and train/test splitting."""

from __future__ import annotations

import numpy as np
import pytest
from pytest_check import check

from forestkit.dataset import Dataset
from forestkit.exceptions import InvalidHyperparameterError, InvalidInputError
from forestkit.selection.folds import FoldAssignment, stratified_folds, stratified_split


class TestStratifiedFolds:
    """Tests for `stratified_folds`."""

    def test_balanced_hundred_rows_five_folds(self) -> None:
        """Every fold holds 20 rows, ten of each class; folds are disjoint and cover all rows."""
        # Arrange
        labels = np.array([0] * 50 + [1] * 50)

        # Act
        folds = stratified_folds(labels, k=5, seed=0)

        # Assert
        held_out = [folds.held_out_rows(fold) for fold in range(5)]
        with check:
            assert all(abs(rows.size - 20) <= 1 for rows in held_out)
        with check:
            assert sorted(np.concatenate(held_out).tolist()) == list(range(100))
        for rows in held_out:
            with check:
                assert int(labels[rows].sum()) == 10

    @pytest.mark.parametrize(("n_negative", "n_positive", "k"), [(37, 13, 4), (9, 2, 3), (5, 5, 10)])
    def test_sizes_and_class_counts_differ_by_at_most_one(self, n_negative: int, n_positive: int, k: int) -> None:
        """Fold sizes and per-class counts per fold differ by at most one."""
        # Arrange
        labels = np.array([0] * n_negative + [1] * n_positive)

        # Act
        folds = stratified_folds(labels, k=k, seed=3)

        # Assert
        sizes = folds.fold_sizes()
        positives = [int(labels[folds.held_out_rows(f)].sum()) for f in range(k)]
        negatives = [size - pos for size, pos in zip(sizes, positives, strict=True)]
        with check:
            assert max(sizes) - min(sizes) <= 1
        with check:
            assert max(positives) - min(positives) <= 1
        with check:
            assert max(negatives) - min(negatives) <= 1

    def test_seeded_and_training_rows_complement(self, churn_dataset: Dataset) -> None:
        """Same seed gives the same folds; training rows are the complement of held-out rows."""
        # Act
        first = stratified_folds(churn_dataset, k=5, seed=7)
        second = stratified_folds(churn_dataset, k=5, seed=7)

        # Assert
        with check:
            assert np.array_equal(first.fold_ids, second.fold_ids)
        for training_rows, held_out_rows in first.splits():
            with check:
                assert np.intersect1d(training_rows, held_out_rows).size == 0
            with check:
                assert training_rows.size + held_out_rows.size == churn_dataset.n_rows

    def test_invalid_fold_counts(self) -> None:
        """k < 2 is a hyperparameter error; more folds than rows is an input error."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            stratified_folds([0, 1, 0, 1], k=1, seed=0)
        with pytest.raises(InvalidInputError):
            stratified_folds([0, 1, 0], k=4, seed=0)

    def test_assignment_validation(self) -> None:
        """Hand-built assignments must use ids in range and leave no fold empty."""
        # Act & Assert
        with pytest.raises(InvalidInputError):
            FoldAssignment(fold_ids=np.array([0, 0, 2]), k=2)
        with pytest.raises(InvalidInputError):
            FoldAssignment(fold_ids=np.array([0, 0, 0]), k=2)


class TestStratifiedSplit:
    """Tests for `stratified_split`."""

    def test_partition_preserves_class_balance(self, churn_dataset: Dataset) -> None:
        """The test side takes the requested share of each class; sides are disjoint and complete."""
        # Act
        split = stratified_split(churn_dataset, test_fraction=0.25, seed=1)

        # Assert
        negatives, positives = churn_dataset.class_counts()
        with check:
            assert int(churn_dataset.labels[split.test_rows].sum()) == round(positives * 0.25)
        with check:
            assert split.test_rows.size == round(negatives * 0.25) + round(positives * 0.25)
        with check:
            assert np.union1d(split.train_rows, split.test_rows).size == churn_dataset.n_rows
        with check:
            assert np.intersect1d(split.train_rows, split.test_rows).size == 0

    @pytest.mark.parametrize("fraction", [0.0, 1.0, -0.5])
    def test_fraction_must_be_open_interval(self, churn_dataset: Dataset, fraction: float) -> None:
        """Fractions outside (0, 1) are invalid."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            stratified_split(churn_dataset, test_fraction=fraction)
