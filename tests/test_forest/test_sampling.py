"""Tests for bootstrap draws, seed derivation and per-split feature subsets."""

from __future__ import annotations

import numpy as np
import pytest
from pytest_check import check

from forestkit.dataset import Dataset
from forestkit.exceptions import InvalidHyperparameterError, InvalidInputError
from forestkit.forest.sampling import bootstrap_sample, derive_seed, sample_features


class TestBootstrapSample:
    """Tests for `bootstrap_sample`."""

    def test_same_seed_same_draw(self, churn_dataset: Dataset) -> None:
        """Identical seeds reproduce the draw; different seeds differ."""
        # Act
        first = bootstrap_sample(churn_dataset, seed=11)
        second = bootstrap_sample(churn_dataset, seed=11)
        other = bootstrap_sample(churn_dataset, seed=12)

        # Assert
        with check:
            assert np.array_equal(first.in_bag, second.in_bag)
        with check:
            assert np.array_equal(first.out_of_bag, second.out_of_bag)
        with check:
            assert not np.array_equal(first.in_bag, other.in_bag)

    def test_in_bag_and_out_of_bag_partition_the_source(self, churn_dataset: Dataset) -> None:
        """In-bag has the source size; out-of-bag is exactly the sorted rows never drawn."""
        # Act
        sample = bootstrap_sample(churn_dataset, seed=3)

        # Assert
        with check:
            assert sample.in_bag.size == churn_dataset.n_rows
        with check:
            assert np.intersect1d(sample.in_bag, sample.out_of_bag).size == 0
        with check:
            assert np.array_equal(np.union1d(sample.in_bag, sample.out_of_bag), churn_dataset.all_rows())
        with check:
            assert np.array_equal(sample.out_of_bag, np.unique(sample.out_of_bag))

    def test_explicit_row_source(self) -> None:
        """Drawing from a row array only ever returns those rows."""
        # Arrange
        source = np.array([4, 9, 17, 30])

        # Act
        sample = bootstrap_sample(source, seed=0)

        # Assert
        with check:
            assert set(sample.in_bag.tolist()) <= set(source.tolist())
        with check:
            assert set(sample.out_of_bag.tolist()) <= set(source.tolist())

    def test_empty_source_rejected(self) -> None:
        """An empty source cannot be bootstrapped."""
        # Act & Assert
        with pytest.raises(InvalidInputError):
            bootstrap_sample(np.array([], dtype=np.intp), seed=0)


class TestDeriveSeed:
    """Tests for `derive_seed`."""

    def test_deterministic_and_distinct(self) -> None:
        """Seeds are stable for a `(base, index)` pair and distinct across indices."""
        # Act
        seeds = [derive_seed(42, index) for index in range(50)]

        # Assert
        with check:
            assert seeds == [derive_seed(42, index) for index in range(50)]
        with check:
            assert len(set(seeds)) == 50
        with check:
            assert derive_seed(42, 0) != derive_seed(43, 0)

    def test_negative_inputs_rejected(self) -> None:
        """Negative base seeds or indices are invalid."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            derive_seed(-1, 0)


class TestSampleFeatures:
    """Tests for `sample_features`."""

    def test_subset_size_and_order(self) -> None:
        """`mtry` distinct sorted indices are drawn."""
        # Arrange
        rng = np.random.default_rng(5)

        # Act
        subset = sample_features(rng, n_features=10, mtry=4)

        # Assert
        with check:
            assert len(set(subset)) == 4
        with check:
            assert list(subset) == sorted(subset)
        with check:
            assert all(0 <= f < 10 for f in subset)

    def test_all_features_consume_no_randomness(self) -> None:
        """Offering every feature returns them all without advancing the generator."""
        # Arrange
        rng = np.random.default_rng(5)
        untouched = np.random.default_rng(5)

        # Act
        subset = sample_features(rng, n_features=3, mtry=3)

        # Assert
        with check:
            assert subset == (0, 1, 2)
        with check:
            assert rng.integers(1_000_000) == untouched.integers(1_000_000)
