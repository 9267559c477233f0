"""Immutable in-memory table of numeric features with binary labels."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
import polars as pl

from forestkit.exceptions import InvalidInputError

# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------

type RowIndices = np.ndarray
"""1-D integer array of row positions into a `Dataset`; may contain repeats."""


@dataclass(frozen=True)
class Dataset:
    """Read-only feature matrix plus binary label vector.

    Row subsets are passed around as integer index arrays (`RowIndices`) so
    recursive partitioning never copies the underlying data. Both arrays are
    copied once on construction and flagged non-writeable.

    Attributes:
        features (np.ndarray): `float64` matrix with shape `(n_rows, n_features)`.
        labels (np.ndarray): `int8` vector with shape `(n_rows,)` holding 0 or 1.
        feature_names (tuple[str, ...]): Column names parallel to the feature
            axis. Defaults to `("x0", "x1", ...)`.

    Examples:
        >>> ds = Dataset.from_arrays([[1.0, 2.0], [3.0, 4.0]], [0, 1])
        >>> ds.n_rows, ds.n_features
        (2, 2)
        >>> ds.feature_names
        ('x0', 'x1')
    """

    features: np.ndarray
    labels: np.ndarray
    feature_names: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate shapes, label values and finiteness, then freeze the arrays.

        Raises:
            InvalidInputError: If any dataset invariant is violated.
        """
        features = np.array(self.features, dtype=np.float64, copy=True)
        labels = np.array(self.labels, copy=True)

        if features.ndim != 2:
            raise InvalidInputError(f"features must be a 2-D matrix, got {features.ndim} dimension(s)")
        n_rows, n_features = features.shape
        if n_rows < 1:
            raise InvalidInputError("dataset must contain at least one row")
        if n_features < 1:
            raise InvalidInputError("dataset must contain at least one feature")
        if labels.ndim != 1 or labels.shape[0] != n_rows:
            raise InvalidInputError(f"labels must be a 1-D vector of length {n_rows}, got shape {labels.shape}")
        if not np.all(np.isfinite(features)):
            raise InvalidInputError("features must be finite (no NaN or infinite values)")
        if not np.isin(labels, (0, 1)).all():
            unexpected = sorted({v.item() for v in np.unique(labels)} - {0, 1})
            raise InvalidInputError(f"labels must be binary (0/1), found {unexpected}")

        names = tuple(self.feature_names) if self.feature_names else tuple(f"x{i}" for i in range(n_features))
        if len(names) != n_features:
            raise InvalidInputError(f"expected {n_features} feature names, got {len(names)}")
        if len(set(names)) != len(names):
            raise InvalidInputError("feature names must be unique")

        labels = labels.astype(np.int8)
        features.setflags(write=False)
        labels.setflags(write=False)
        # Frozen dataclass: assign the normalized values through object.__setattr__.
        object.__setattr__(self, "features", features)
        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "feature_names", names)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_arrays(
        cls,
        features: Sequence[Sequence[float]] | np.ndarray,
        labels: Sequence[int] | np.ndarray,
        feature_names: Sequence[str] | None = None,
    ) -> Dataset:
        """Build a dataset from row-major feature values and labels.

        Args:
            features (Sequence[Sequence[float]] | np.ndarray): One sequence of
                feature values per row.
            labels (Sequence[int] | np.ndarray): One 0/1 label per row.
            feature_names (Sequence[str] | None): Optional column names.

        Returns:
            Dataset: The validated dataset.
        """
        return cls(
            features=np.asarray(features, dtype=np.float64),
            labels=np.asarray(labels),
            feature_names=tuple(feature_names) if feature_names is not None else (),
        )

    @classmethod
    def from_polars(cls, df: pl.DataFrame, target: str, features: list[str] | None = None) -> Dataset:
        """Build a dataset from a polars DataFrame of pre-encoded numeric columns.

        Boolean columns are cast to 0/1. Categorical or string columns are
        rejected; encoding them is the caller's responsibility.

        Args:
            df (pl.DataFrame): Source frame.
            target (str): Name of the 0/1 (or boolean) label column.
            features (list[str] | None): Feature columns in order. When `None`,
                every column except `target` is used.

        Returns:
            Dataset: The validated dataset.

        Raises:
            InvalidInputError: If columns are missing, non-numeric, or contain
                nulls, or if the target is not binary.
        """
        feature_columns = features if features is not None else [col for col in df.columns if col != target]
        missing = [col for col in [target, *feature_columns] if col not in df.columns]
        if missing:
            raise InvalidInputError(f"columns not found in DataFrame: {missing}")

        non_numeric = [
            col for col in [target, *feature_columns] if not (df[col].dtype.is_numeric() or df[col].dtype == pl.Boolean)
        ]
        if non_numeric:
            raise InvalidInputError(f"columns must be numeric or boolean, got non-numeric columns: {non_numeric}")

        null_columns = [col for col in [target, *feature_columns] if df[col].null_count() > 0]
        if null_columns:
            raise InvalidInputError(f"columns must not contain nulls: {null_columns}")

        feature_matrix = df.select(pl.col(feature_columns).cast(pl.Float64)).to_numpy()
        label_vector = df[target].cast(pl.Int64).to_numpy()
        return cls(features=feature_matrix, labels=label_vector, feature_names=tuple(feature_columns))

    # ------------------------------------------------------------------
    # Shape and row access
    # ------------------------------------------------------------------

    @property
    def n_rows(self) -> int:
        """Number of rows."""
        return int(self.features.shape[0])

    @property
    def n_features(self) -> int:
        """Number of feature columns."""
        return int(self.features.shape[1])

    def __len__(self) -> int:
        return self.n_rows

    def all_rows(self) -> RowIndices:
        """Return the index array selecting every row.

        Returns:
            RowIndices: `np.arange(n_rows)`.
        """
        return np.arange(self.n_rows, dtype=np.intp)

    def check_rows(self, rows: Sequence[int] | np.ndarray | None) -> RowIndices:
        """Validate a row selection and return it as an integer index array.

        Args:
            rows (Sequence[int] | np.ndarray | None): Row positions, possibly
                with repeats. `None` selects every row.

        Returns:
            RowIndices: The selection as a 1-D `intp` array.

        Raises:
            InvalidInputError: If the selection is empty, not 1-D, or holds
                positions outside `[0, n_rows)`.
        """
        if rows is None:
            return self.all_rows()
        indices = np.asarray(rows)
        if indices.ndim != 1:
            raise InvalidInputError("row selection must be a 1-D sequence of row indices")
        if indices.size == 0:
            raise InvalidInputError("row selection must not be empty")
        if not np.issubdtype(indices.dtype, np.integer):
            raise InvalidInputError(f"row indices must be integers, got dtype {indices.dtype}")
        if indices.min() < 0 or indices.max() >= self.n_rows:
            raise InvalidInputError(f"row indices must lie in [0, {self.n_rows})")
        return indices.astype(np.intp, copy=False)

    def check_features(self, candidate_features: Sequence[int] | None) -> tuple[int, ...]:
        """Validate candidate feature indices and return them sorted and deduplicated.

        Args:
            candidate_features (Sequence[int] | None): Feature positions.
                `None` selects every feature.

        Returns:
            tuple[int, ...]: Sorted unique feature indices.

        Raises:
            InvalidInputError: If the selection is empty or out of range.
        """
        if candidate_features is None:
            return tuple(range(self.n_features))
        selected = sorted({int(f) for f in candidate_features})
        if not selected:
            raise InvalidInputError("candidate feature selection must not be empty")
        if selected[0] < 0 or selected[-1] >= self.n_features:
            raise InvalidInputError(f"candidate feature indices must lie in [0, {self.n_features})")
        return tuple(selected)

    def take(self, rows: Sequence[int] | np.ndarray) -> Dataset:
        """Materialize a partition (e.g. the training side of a train/test split).

        Tree growth never calls this; it works on index arrays instead.

        Args:
            rows (Sequence[int] | np.ndarray): Row positions to copy.

        Returns:
            Dataset: A new dataset holding only the selected rows.
        """
        indices = self.check_rows(rows)
        return Dataset(
            features=self.features[indices],
            labels=self.labels[indices],
            feature_names=self.feature_names,
        )

    def class_counts(self, rows: RowIndices | None = None) -> tuple[int, int]:
        """Count class-0 and class-1 labels among `rows`.

        Args:
            rows (RowIndices | None): Row selection; `None` counts every row.

        Returns:
            tuple[int, int]: `(negatives, positives)`.
        """
        labels = self.labels if rows is None else self.labels[rows]
        positives = int(labels.sum())
        return int(labels.size) - positives, positives

    # ------------------------------------------------------------------
    # Split thresholds
    # ------------------------------------------------------------------

    def candidate_thresholds(self, feature: int, rows: RowIndices | None = None) -> np.ndarray:
        """Return candidate split thresholds for one feature among `rows`.

        Thresholds are midpoints between consecutive sorted distinct values.
        When floating-point rounding places a midpoint on the upper value, the
        lower value is used instead so the split still separates the pair.

        Args:
            feature (int): Feature index.
            rows (RowIndices | None): Row selection; `None` uses every row.

        Returns:
            np.ndarray: Ascending thresholds; empty when the feature is
                constant among `rows`.
        """
        values = self.features[:, feature] if rows is None else self.features[rows, feature]
        distinct = np.unique(values)
        return midpoints(distinct[:-1], distinct[1:])


def midpoints(lower: np.ndarray, upper: np.ndarray) -> np.ndarray:
    """Midpoints between paired lower/upper values, kept strictly below `upper`.

    Args:
        lower (np.ndarray): Lower values.
        upper (np.ndarray): Upper values, element-wise greater than `lower`.

    Returns:
        np.ndarray: Thresholds `t` with `lower <= t < upper`.
    """
    mids = lower + (upper - lower) / 2.0
    return np.where(mids >= upper, lower, mids)
