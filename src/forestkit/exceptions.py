"""Custom exceptions for forestkit.

All package errors subclass `ForestKitError`, itself a `ValueError`, so callers
can catch either the package base class or the builtin:

- ForestKitError: Base class for every forestkit validation failure.
- InvalidInputError: Raised when a dataset, row selection or label/score
  array is malformed (empty, mismatched lengths, non-binary labels,
  non-finite values, out-of-range indices).
- InvalidHyperparameterError: Raised when a hyperparameter is outside its
  valid range or unknown to the model family (mtry out of range, negative
  depth, fewer than two folds).

Validation failures are raised at the entry point of fit/evaluate/search and
values are never clamped or coerced into range.
"""

from __future__ import annotations


class ForestKitError(ValueError):
    """Base exception for all forestkit validation errors.

    Catching this exception catches every error raised deliberately by the
    package. Hyperparameter search uses it to decide which failures abort only
    the current configuration.
    """


class InvalidInputError(ForestKitError):
    """Raised when input data violates the dataset or row-selection invariants.

    Attributes:
        reason (str): Human-readable explanation of the violated invariant.

    Examples:
        >>> err = InvalidInputError("dataset must contain at least one row")
        >>> err.reason
        'dataset must contain at least one row'
    """

    reason: str

    def __init__(self, reason: str) -> None:
        """Initialize InvalidInputError.

        Args:
            reason (str): Human-readable explanation of the violated invariant.
        """
        super().__init__(reason)
        self.reason = reason


class InvalidHyperparameterError(ForestKitError):
    """Raised when a hyperparameter value is outside its valid range.

    Attributes:
        name (str): Name of the offending hyperparameter, e.g. `"mtry"`.
        value (object): The rejected value.
        constraint (str): Description of the valid range, e.g. `"1 <= mtry <= 4"`.

    Examples:
        >>> err = InvalidHyperparameterError("mtry", 7, "1 <= mtry <= 4")
        >>> str(err)
        'Invalid hyperparameter mtry=7: expected 1 <= mtry <= 4'
        >>> err.name
        'mtry'
    """

    name: str
    value: object
    constraint: str

    def __init__(self, name: str, value: object, constraint: str) -> None:
        """Initialize InvalidHyperparameterError.

        Args:
            name (str): Name of the offending hyperparameter.
            value (object): The rejected value.
            constraint (str): Description of the valid range.
        """
        super().__init__(f"Invalid hyperparameter {name}={value!r}: expected {constraint}")
        self.name = name
        self.value = value
        self.constraint = constraint

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Representation including the name, value and constraint.
        """
        return f"{self.__class__.__name__}(name={self.name!r}, value={self.value!r}, constraint={self.constraint!r})"


def require_at_least(name: str, value: int | float, minimum: int | float) -> None:
    """Raise `InvalidHyperparameterError` unless `value >= minimum`.

    Args:
        name (str): Hyperparameter name used in the error message.
        value (int | float): Value to check.
        minimum (int | float): Inclusive lower bound.

    Raises:
        InvalidHyperparameterError: If `value` is below `minimum`.
    """
    if value < minimum:
        raise InvalidHyperparameterError(name, value, f"{name} >= {minimum}")
