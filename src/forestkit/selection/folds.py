"""Class-stratified fold assignment and train/test splitting."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from forestkit.dataset import Dataset, RowIndices
from forestkit.exceptions import InvalidHyperparameterError, InvalidInputError, require_at_least
from forestkit.settings import get_settings


@dataclass(frozen=True)
class FoldAssignment:
    """Mapping from row position to fold id in `[0, k)`.

    Every row belongs to exactly one fold and every fold is non-empty.

    Attributes:
        fold_ids (np.ndarray): Read-only `int64` vector, one fold id per row.
        k (int): Number of folds.
    """

    fold_ids: np.ndarray
    k: int

    def __post_init__(self) -> None:
        """Validate the assignment and freeze the array.

        Raises:
            InvalidHyperparameterError: If `k < 2`.
            InvalidInputError: If ids fall outside `[0, k)` or a fold is empty.
        """
        require_at_least("k", self.k, 2)
        fold_ids = np.array(self.fold_ids, dtype=np.int64, copy=True)
        if fold_ids.ndim != 1 or fold_ids.size == 0:
            raise InvalidInputError("fold ids must be a non-empty 1-D vector")
        if fold_ids.min() < 0 or fold_ids.max() >= self.k:
            raise InvalidInputError(f"fold ids must lie in [0, {self.k})")
        if np.bincount(fold_ids, minlength=self.k).min() == 0:
            raise InvalidInputError("every fold must contain at least one row")
        fold_ids.setflags(write=False)
        object.__setattr__(self, "fold_ids", fold_ids)

    @property
    def n_rows(self) -> int:
        """Number of assigned rows."""
        return int(self.fold_ids.size)

    def fold_sizes(self) -> tuple[int, ...]:
        """Return the number of rows in each fold."""
        return tuple(int(count) for count in np.bincount(self.fold_ids, minlength=self.k))

    def held_out_rows(self, fold: int) -> RowIndices:
        """Rows assigned to `fold`, in ascending order."""
        return np.flatnonzero(self.fold_ids == fold)

    def training_rows(self, fold: int) -> RowIndices:
        """Rows assigned to every fold except `fold`, in ascending order."""
        return np.flatnonzero(self.fold_ids != fold)

    def splits(self) -> Iterator[tuple[RowIndices, RowIndices]]:
        """Yield `(training_rows, held_out_rows)` for each fold in order."""
        for fold in range(self.k):
            yield self.training_rows(fold), self.held_out_rows(fold)


class TrainTestSplit(NamedTuple):
    """Row positions of a stratified train/test partition.

    Attributes:
        train_rows (RowIndices): Sorted training rows.
        test_rows (RowIndices): Sorted held-out test rows.
    """

    train_rows: RowIndices
    test_rows: RowIndices


def stratified_folds(
    source: Dataset | Sequence[int] | np.ndarray,
    k: int,
    seed: int | None = None,
) -> FoldAssignment:
    """Assign rows to `k` class-stratified folds.

    Each class's rows are shuffled with a seeded generator; the class-0 rows
    followed by the class-1 rows are then dealt fold ids round-robin. Fold
    sizes differ by at most one, and so do the per-fold counts of each class.

    Args:
        source (Dataset | Sequence[int] | np.ndarray): Dataset or its 0/1 labels.
        k (int): Number of folds; at least 2 and at most the row count.
        seed (int | None): Shuffle seed; `None` uses `ForestKitSettings.default_seed`.

    Returns:
        FoldAssignment: The assignment.

    Raises:
        InvalidHyperparameterError: If `k < 2`.
        InvalidInputError: If there are fewer rows than folds or labels are
            not binary.
    """
    require_at_least("k", k, 2)
    labels = _labels_of(source)
    if labels.size < k:
        raise InvalidInputError(f"cannot split {labels.size} rows into {k} folds")
    rng = np.random.default_rng(get_settings().default_seed if seed is None else seed)

    ordered_rows = np.concatenate([rng.permutation(np.flatnonzero(labels == label)) for label in (0, 1)])
    fold_ids = np.empty(labels.size, dtype=np.int64)
    fold_ids[ordered_rows] = np.arange(labels.size) % k
    return FoldAssignment(fold_ids=fold_ids, k=k)


def stratified_split(dataset: Dataset, test_fraction: float = 0.25, seed: int | None = None) -> TrainTestSplit:
    """Hold out a class-stratified fraction of rows as a test partition.

    Args:
        dataset (Dataset): Data to split.
        test_fraction (float): Share of each class sent to the test side,
            strictly between 0 and 1.
        seed (int | None): Shuffle seed; `None` uses `ForestKitSettings.default_seed`.

    Returns:
        TrainTestSplit: Sorted training and test rows.

    Raises:
        InvalidHyperparameterError: If `test_fraction` is not in `(0, 1)`.
        InvalidInputError: If either side would be empty.
    """
    if not 0.0 < test_fraction < 1.0:
        raise InvalidHyperparameterError("test_fraction", test_fraction, "0 < test_fraction < 1")
    rng = np.random.default_rng(get_settings().default_seed if seed is None else seed)

    test_parts: list[np.ndarray] = []
    for label in (0, 1):
        class_rows = rng.permutation(np.flatnonzero(dataset.labels == label))
        test_parts.append(class_rows[: int(round(class_rows.size * test_fraction))])
    test_rows = np.sort(np.concatenate(test_parts))
    train_rows = np.setdiff1d(dataset.all_rows(), test_rows)
    if test_rows.size == 0 or train_rows.size == 0:
        raise InvalidInputError(
            f"test_fraction={test_fraction} leaves an empty partition for a dataset of {dataset.n_rows} rows"
        )
    return TrainTestSplit(train_rows=train_rows, test_rows=test_rows)


def _labels_of(source: Dataset | Sequence[int] | np.ndarray) -> np.ndarray:
    if isinstance(source, Dataset):
        return np.asarray(source.labels)
    labels = np.asarray(source)
    if labels.ndim != 1 or not np.isin(labels, (0, 1)).all():
        raise InvalidInputError("labels must be a 1-D vector of 0/1 values")
    return labels
