"""Tests for hyperparameter configurations and config enumeration."""

from __future__ import annotations

import numpy as np
import pytest
from pydantic import ValidationError
from pytest_check import check

from forestkit.exceptions import InvalidHyperparameterError
from forestkit.selection.space import (
    Choice,
    FloatRange,
    HyperparameterConfig,
    IntRange,
    grid_configs,
    random_configs,
    regular_grid,
)


class TestHyperparameterConfig:
    """Tests for the immutable config record."""

    def test_equality_and_hash_by_value(self) -> None:
        """Configs with the same pairs are equal and usable as the same dict key."""
        # Arrange
        first = HyperparameterConfig.from_mapping({"mtry": 2, "min_node_size": 5})
        second = HyperparameterConfig(items=(("mtry", 2), ("min_node_size", 5)))

        # Act
        lookup = {first: "scored"}

        # Assert
        with check:
            assert first == second
        with check:
            assert lookup[second] == "scored"
        with check:
            assert first != HyperparameterConfig.from_mapping({"min_node_size": 5, "mtry": 2})

    def test_access_and_display(self) -> None:
        """Values are reachable by name and rendered in declaration order."""
        # Arrange
        config = HyperparameterConfig.from_mapping({"max_depth": 4, "criterion": "gini"})

        # Act & Assert
        with check:
            assert config["criterion"] == "gini"
        with check:
            assert config.names == ("max_depth", "criterion")
        with check:
            assert config.as_dict() == {"max_depth": 4, "criterion": "gini"}
        with check:
            assert str(config) == "max_depth=4, criterion=gini"
        with pytest.raises(KeyError):
            config["mtry"]

    def test_duplicate_names_rejected(self) -> None:
        """A name may appear only once."""
        # Act & Assert
        with pytest.raises(ValidationError):
            HyperparameterConfig(items=(("mtry", 1), ("mtry", 2)))


class TestGridConfigs:
    """Tests for Cartesian grid enumeration."""

    def test_two_by_two_by_two_grid(self) -> None:
        """Three binary hyperparameters give eight configs, last declared varying fastest."""
        # Act
        configs = grid_configs({"max_depth": [2, 4], "min_node_size": [1, 5], "mtry": [1, 2]})

        # Assert
        with check:
            assert len(configs) == 8
        with check:
            assert len(set(configs)) == 8
        with check:
            assert configs[0].as_dict() == {"max_depth": 2, "min_node_size": 1, "mtry": 1}
        with check:
            assert configs[1].as_dict() == {"max_depth": 2, "min_node_size": 1, "mtry": 2}
        with check:
            assert configs[-1].as_dict() == {"max_depth": 4, "min_node_size": 5, "mtry": 2}

    def test_empty_space_or_candidates_rejected(self) -> None:
        """Empty spaces and empty candidate lists are invalid."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            grid_configs({})
        with pytest.raises(InvalidHyperparameterError) as exc_info:
            grid_configs({"mtry": [1, 2], "max_depth": []})
        assert exc_info.value.name == "max_depth"

    def test_regular_grid_levels(self) -> None:
        """Regular grids space integer, float and log ranges evenly."""
        # Act
        configs = regular_grid(
            {"min_node_size": IntRange(low=1, high=9), "cost_complexity_alpha": FloatRange(low=0.001, high=0.1, log=True)},
            levels=3,
        )

        # Assert
        with check:
            assert sorted({c["min_node_size"] for c in configs}) == [1, 5, 9]
        with check:
            assert sorted({c["cost_complexity_alpha"] for c in configs}) == pytest.approx([0.001, 0.01, 0.1])


class TestRandomConfigs:
    """Tests for random config draws."""

    def test_size_and_ranges(self) -> None:
        """Exactly `size` configs are drawn, each inside its declared range."""
        # Arrange
        distributions = {
            "mtry": IntRange(low=1, high=4),
            "cost_complexity_alpha": FloatRange(low=1e-4, high=1e-1, log=True),
            "max_depth": Choice(values=(3, 6, 9)),
        }

        # Act
        configs = random_configs(distributions, size=10, seed=0)

        # Assert
        with check:
            assert len(configs) == 10
        for config in configs:
            with check:
                assert 1 <= config["mtry"] <= 4
            with check:
                assert 1e-4 <= config["cost_complexity_alpha"] <= 1e-1
            with check:
                assert config["max_depth"] in (3, 6, 9)
            with check:
                assert config.names == ("mtry", "cost_complexity_alpha", "max_depth")

    def test_seeded_and_duplicates_kept(self) -> None:
        """Same seed reproduces the draws; repeats of a tiny space are kept."""
        # Arrange
        distributions = {"mtry": Choice(values=(1, 2))}

        # Act
        first = random_configs(distributions, size=12, seed=5)
        second = random_configs(distributions, size=12, seed=5)

        # Assert
        with check:
            assert first == second
        with check:
            assert len(first) == 12 and len(set(first)) <= 2

    def test_invalid_requests(self) -> None:
        """Zero draws, no distributions and inverted ranges are rejected."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            random_configs({"mtry": IntRange(low=1, high=3)}, size=0, seed=0)
        with pytest.raises(InvalidHyperparameterError):
            random_configs({}, size=3, seed=0)
        with pytest.raises(ValidationError):
            IntRange(low=5, high=1)
        with pytest.raises(ValidationError):
            FloatRange(low=0.0, high=1.0, log=True)

    def test_int_range_covers_both_ends(self) -> None:
        """Integer draws include both bounds."""
        # Arrange
        rng = np.random.default_rng(0)
        distribution = IntRange(low=2, high=3)

        # Act
        values = {distribution.sample(rng) for _ in range(50)}

        # Assert
        assert values == {2, 3}
