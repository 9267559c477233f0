"""Tests for custom exceptions.

This module tests the forestkit exception hierarchy, ensuring proper
inheritance, attribute storage, and catchability patterns.
"""

from __future__ import annotations

import pytest
from pytest_check import check

from forestkit.exceptions import (
    ForestKitError,
    InvalidHyperparameterError,
    InvalidInputError,
    require_at_least,
)


class TestForestKitErrorBase:
    """Tests for the ForestKitError base class."""

    def test_subclasses_share_the_base(self) -> None:
        """Verify both concrete errors can be caught as ForestKitError and ValueError.

        Hyperparameter search relies on catching the package base class to
        record a failed configuration without aborting.
        """
        errors = [
            InvalidInputError("dataset must contain at least one row"),
            InvalidHyperparameterError("mtry", 0, "1 <= mtry <= 4"),
        ]

        for error in errors:
            with check:
                assert isinstance(error, ForestKitError), f"{type(error).__name__} should subclass ForestKitError"
            with check:
                assert isinstance(error, ValueError), f"{type(error).__name__} should subclass ValueError"


class TestInvalidInputError:
    """Tests for InvalidInputError."""

    def test_stores_reason(self) -> None:
        """Verify the reason is stored and used as the message."""
        error = InvalidInputError("labels must be binary (0/1), found [2]")

        with check:
            assert error.reason == "labels must be binary (0/1), found [2]"
        with check:
            assert str(error) == error.reason


class TestInvalidHyperparameterError:
    """Tests for InvalidHyperparameterError."""

    def test_stores_context_and_formats_message(self) -> None:
        """Verify name, value and constraint are stored and appear in the message."""
        error = InvalidHyperparameterError("max_depth", -1, "max_depth >= 0")

        with check:
            assert (error.name, error.value, error.constraint) == ("max_depth", -1, "max_depth >= 0")
        with check:
            assert str(error) == "Invalid hyperparameter max_depth=-1: expected max_depth >= 0"
        with check:
            assert repr(error) == (
                "InvalidHyperparameterError(name='max_depth', value=-1, constraint='max_depth >= 0')"
            )

    def test_require_at_least(self) -> None:
        """Verify values at the bound pass and values below it raise with the bound in the constraint."""
        require_at_least("k", 2, 2)

        with pytest.raises(InvalidHyperparameterError) as exc_info:
            require_at_least("k", 1, 2)

        with check:
            assert exc_info.value.name == "k"
        with check:
            assert exc_info.value.value == 1
        with check:
            assert exc_info.value.constraint == "k >= 2"
