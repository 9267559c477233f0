"""Tests for estimator specifications and `spec_factory`."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter
from pytest_check import check

from forestkit.dataset import Dataset
from forestkit.decision_tree import DecisionTree
from forestkit.exceptions import InvalidHyperparameterError
from forestkit.forest import RandomForest
from forestkit.selection.estimators import (
    Classifier,
    DecisionTreeSpec,
    Estimator,
    ModelSpec,
    RandomForestSpec,
    spec_factory,
)
from forestkit.selection.space import HyperparameterConfig


class TestModelSpecs:
    """Tests for the tagged union of model families."""

    def test_specs_fit_classifiers(self, churn_dataset: Dataset) -> None:
        """Both specs fit models satisfying the `Classifier` protocol."""
        # Arrange
        specs = [DecisionTreeSpec(max_depth=3), RandomForestSpec(tree_count=3, mtry=2)]

        for spec in specs:
            # Act
            model = spec.fit(churn_dataset)

            # Assert
            with check:
                assert isinstance(spec, Estimator)
            with check:
                assert isinstance(model, Classifier)

    def test_discriminator_selects_family(self) -> None:
        """Plain records validate into the spec named by `model_type`."""
        # Arrange
        adapter = TypeAdapter(ModelSpec)

        # Act
        tree_spec = adapter.validate_python({"model_type": "decision_tree", "max_depth": 2})
        forest_spec = adapter.validate_python({"model_type": "random_forest", "tree_count": 10})

        # Assert
        with check:
            assert isinstance(tree_spec, DecisionTreeSpec)
        with check:
            assert isinstance(forest_spec, RandomForestSpec) and forest_spec.tree_count == 10

    def test_forest_mtry_defaults_to_square_root(self, churn_dataset: Dataset) -> None:
        """Without `mtry` a forest offers floor(sqrt(p)) features per split."""
        # Act
        forest = RandomForestSpec(tree_count=2).fit(churn_dataset)

        # Assert
        with check:
            assert RandomForestSpec().resolved_mtry(10) == 3
        with check:
            assert forest.params.mtry == 2

    def test_fit_uses_rows(self, churn_dataset: Dataset) -> None:
        """A spec fits only the rows it is given."""
        # Act
        tree = DecisionTreeSpec(max_depth=2).fit(churn_dataset, list(range(50)))

        # Assert
        assert isinstance(tree, DecisionTree)
        assert tree.root.sample_count == 50


class TestSpecFactory:
    """Tests for `spec_factory`."""

    def test_merges_fixed_and_searched_values(self) -> None:
        """Searched values join fixed ones and override them on name clashes."""
        # Arrange
        factory = spec_factory("random_forest", tree_count=25, seed=7, mtry=1)

        # Act
        spec = factory(HyperparameterConfig.from_mapping({"mtry": 2, "max_depth": 5}))

        # Assert
        assert isinstance(spec, RandomForestSpec)
        with check:
            assert (spec.tree_count, spec.seed, spec.mtry, spec.max_depth) == (25, 7, 2, 5)

    @pytest.mark.parametrize(
        ("values", "name"),
        [
            ({"max_depth": -1}, "max_depth"),
            ({"n_estimators": 10}, "n_estimators"),
            ({"min_node_size": "5"}, "min_node_size"),
        ],
        ids=["out_of_range", "unknown_name", "wrong_type"],
    )
    def test_invalid_values_raise_hyperparameter_error(self, values: dict, name: str) -> None:
        """Range, name and type problems surface as `InvalidHyperparameterError`, never coerced."""
        # Arrange
        factory = spec_factory("decision_tree")

        # Act & Assert
        with pytest.raises(InvalidHyperparameterError) as exc_info:
            factory(HyperparameterConfig.from_mapping(values))
        assert exc_info.value.name == name

    def test_invalid_fixed_values_fail_early(self) -> None:
        """Bad fixed settings are reported when the factory is built."""
        # Act & Assert
        with pytest.raises(InvalidHyperparameterError):
            spec_factory("random_forest", tree_count=0)

    def test_forest_factory_fits(self, churn_dataset: Dataset) -> None:
        """A factory-built forest spec fits a `RandomForest`."""
        # Arrange
        factory = spec_factory("random_forest", tree_count=3)

        # Act
        model = factory(HyperparameterConfig.from_mapping({"mtry": 1})).fit(churn_dataset)

        # Assert
        assert isinstance(model, RandomForest)
