"""Seeded bootstrap draws and per-unit seed derivation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

import numpy as np

from forestkit.dataset import Dataset, RowIndices
from forestkit.exceptions import InvalidInputError, require_at_least


class BootstrapSample(NamedTuple):
    """Rows drawn for one ensemble member.

    Attributes:
        in_bag (RowIndices): `len(source)` row positions drawn with replacement,
            in draw order.
        out_of_bag (RowIndices): Sorted source rows never drawn.
    """

    in_bag: RowIndices
    out_of_bag: RowIndices


def derive_seed(base_seed: int, index: int) -> int:
    """Derive an independent, reproducible seed for unit `index` of a run.

    Uses `numpy.random.SeedSequence` so neighbouring indices yield
    statistically independent streams.

    Args:
        base_seed (int): Seed of the whole run (forest, search, ...).
        index (int): Position of the unit within the run.

    Returns:
        int: A 32-bit seed.

    Raises:
        InvalidHyperparameterError: If either argument is negative.
    """
    require_at_least("base_seed", base_seed, 0)
    require_at_least("index", index, 0)
    return int(np.random.SeedSequence([base_seed, index]).generate_state(1)[0])


def bootstrap_sample(source: Dataset | Sequence[int] | np.ndarray, seed: int) -> BootstrapSample:
    """Draw a bootstrap sample of the same size as `source`.

    Same `seed` and source always give the same draw.

    Args:
        source (Dataset | Sequence[int] | np.ndarray): A dataset (every row is
            eligible) or an explicit array of eligible row positions.
        seed (int): Seed for the generator.

    Returns:
        BootstrapSample: The in-bag draw and the out-of-bag rows.

    Raises:
        InvalidInputError: If `source` holds no rows.
    """
    return draw_bootstrap(source, np.random.default_rng(seed))


def draw_bootstrap(source: Dataset | Sequence[int] | np.ndarray, rng: np.random.Generator) -> BootstrapSample:
    """Draw a bootstrap sample using an existing generator.

    `fit_forest` uses this so a member's bootstrap draw and its per-node
    feature subsets come from one generator stream.

    Args:
        source (Dataset | Sequence[int] | np.ndarray): Dataset or eligible rows.
        rng (np.random.Generator): Generator to draw from.

    Returns:
        BootstrapSample: The in-bag draw and the out-of-bag rows.

    Raises:
        InvalidInputError: If `source` holds no rows.
    """
    rows = source.all_rows() if isinstance(source, Dataset) else np.asarray(source, dtype=np.intp)
    if rows.size == 0:
        raise InvalidInputError("cannot bootstrap an empty row set")
    positions = rng.integers(0, rows.size, size=rows.size)
    in_bag = rows[positions]
    drawn = np.zeros(rows.size, dtype=bool)
    drawn[positions] = True
    out_of_bag = np.unique(rows[~drawn])
    # A row listed more than once in `source` is out of bag only if no copy was drawn.
    out_of_bag = np.setdiff1d(out_of_bag, in_bag, assume_unique=False)
    return BootstrapSample(in_bag=in_bag, out_of_bag=out_of_bag)


def sample_features(rng: np.random.Generator, n_features: int, mtry: int) -> tuple[int, ...]:
    """Draw `mtry` distinct feature indices uniformly without replacement.

    Args:
        rng (np.random.Generator): Generator to draw from.
        n_features (int): Total number of features.
        mtry (int): Number of features to draw.

    Returns:
        tuple[int, ...]: Sorted feature indices.
    """
    if mtry >= n_features:
        return tuple(range(n_features))
    return tuple(sorted(int(f) for f in rng.choice(n_features, size=mtry, replace=False)))
