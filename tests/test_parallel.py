"""Tests for the ordered worker-pool helper."""

from __future__ import annotations

import threading
import time
from unittest import mock

import pytest
from pytest_check import check

from forestkit.exceptions import InvalidHyperparameterError
from forestkit.parallel import map_ordered, resolve_max_workers


class TestResolveMaxWorkers:
    """Tests for worker-count resolution."""

    def test_explicit_value_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An explicit worker count overrides the environment."""
        # Arrange
        monkeypatch.setenv("FORESTKIT_MAX_WORKERS", "8")

        # Act & Assert
        with check:
            assert resolve_max_workers(2) == 2
        with check:
            assert resolve_max_workers(None) == 8

    def test_rejects_zero(self) -> None:
        """Zero workers is an invalid hyperparameter, never clamped."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            resolve_max_workers(0)


class TestMapOrdered:
    """Tests for `map_ordered`."""

    def test_results_follow_input_order_with_threads(self) -> None:
        """Results come back in submission order even when later items finish first."""
        # Arrange
        def slow_for_small(value: int) -> int:
            time.sleep(0.01 * (5 - value))
            return value * value

        # Act
        results = map_ordered(slow_for_small, range(5), max_workers=4)

        # Assert
        assert results == [0, 1, 4, 9, 16]

    def test_single_worker_runs_in_calling_thread(self) -> None:
        """With one worker no pool is created."""
        # Arrange
        caller = threading.get_ident()

        # Act
        threads = map_ordered(lambda _: threading.get_ident(), range(3), max_workers=1)

        # Assert
        assert set(threads) == {caller}

    def test_exceptions_propagate(self) -> None:
        """The first exception raised by the function reaches the caller."""
        # Arrange
        def fail_on_two(value: int) -> int:
            if value == 2:
                raise InvalidHyperparameterError("value", value, "value != 2")
            return value

        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            map_ordered(fail_on_two, range(4), max_workers=2)

    def test_multiple_workers_dispatch_to_joblib_threads(self) -> None:
        """More than one worker runs through joblib's thread backend, capped at the item count."""
        # Arrange
        with mock.patch("forestkit.parallel.Parallel") as parallel_cls:
            parallel_cls.return_value.return_value = [10, 20, 30]

            # Act
            results = map_ordered(lambda value: value * 10, [1, 2, 3], max_workers=8)

        # Assert
        with check:
            assert results == [10, 20, 30]
        with check:
            parallel_cls.assert_called_once_with(n_jobs=3, prefer="threads")

    def test_single_worker_never_builds_a_pool(self) -> None:
        """The sequential path does not touch joblib."""
        # Arrange
        with mock.patch("forestkit.parallel.Parallel") as parallel_cls:
            # Act
            results = map_ordered(lambda value: value + 1, [1, 2], max_workers=1)

        # Assert
        with check:
            assert results == [2, 3]
        with check:
            parallel_cls.assert_not_called()
