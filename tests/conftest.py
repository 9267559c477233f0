"""Shared datasets for forestkit tests."""

from __future__ import annotations

import numpy as np
import pytest

from forestkit.dataset import Dataset


def make_churn_dataset(n_rows: int = 200, seed: int = 13) -> Dataset:
    """Synthetic churn table: four numeric features, label driven by two of them plus noise.

    Args:
        n_rows (int): Number of customers.
        seed (int): Generator seed.

    Returns:
        Dataset: Features `tenure_months`, `monthly_charges`, `support_calls`,
            `contract_length`; label 1 means the customer churned.
    """
    rng = np.random.default_rng(seed)
    tenure = rng.integers(1, 72, size=n_rows).astype(np.float64)
    charges = rng.uniform(20.0, 120.0, size=n_rows).round(2)
    support_calls = rng.poisson(2.0, size=n_rows).astype(np.float64)
    contract = rng.choice([1.0, 12.0, 24.0], size=n_rows)
    risk = -0.05 * tenure + 0.03 * charges + 0.4 * support_calls + rng.normal(0.0, 0.8, size=n_rows)
    labels = (risk > np.median(risk)).astype(np.int8)
    return Dataset.from_arrays(
        np.column_stack([tenure, charges, support_calls, contract]),
        labels,
        feature_names=["tenure_months", "monthly_charges", "support_calls", "contract_length"],
    )


@pytest.fixture
def churn_dataset() -> Dataset:
    """Two hundred synthetic customers with a learnable churn signal."""
    return make_churn_dataset()


@pytest.fixture
def separable_dataset() -> Dataset:
    """Six rows perfectly separated by `x0 <= 2.5`."""
    return Dataset.from_arrays(
        [[0.0, 5.0], [1.0, 3.0], [2.0, 4.0], [3.0, 0.0], [4.0, 2.0], [5.0, 1.0]],
        [0, 0, 0, 1, 1, 1],
    )


@pytest.fixture
def twin_feature_dataset() -> Dataset:
    """Two identical columns whose best split has gain 0.32 at 5.5 on either feature."""
    values = np.arange(1.0, 11.0)
    return Dataset.from_arrays(np.column_stack([values, values]), [0, 0, 0, 0, 0, 1, 1, 1, 1, 0])


@pytest.fixture
def alternating_chain_dataset() -> Dataset:
    """2400 rows of `x0 = 0..2399` with alternating labels.

    Every best split peels off the lowest row, so an unbounded tree is a
    chain 2399 splits deep.
    """
    values = np.arange(2400, dtype=np.float64)
    return Dataset.from_arrays(values.reshape(-1, 1), (np.arange(2400) % 2).astype(np.int8))
