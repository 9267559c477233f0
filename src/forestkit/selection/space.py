"""Hyperparameter configurations, search-space declarations, and config enumeration."""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Mapping, Sequence
from typing import Annotated, Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from forestkit.exceptions import InvalidHyperparameterError, require_at_least

type ParamValue = int | float | str | None

# ---------------------------------------------------------------------------
# Configurations
# ---------------------------------------------------------------------------


class HyperparameterConfig(BaseModel):
    """Immutable, ordered record of named hyperparameter values.

    Equality and hashing use the `(name, value)` pairs, so two configs built
    independently from the same values are interchangeable as dict keys.

    Attributes:
        items (tuple[tuple[str, ParamValue], ...]): Name/value pairs in
            declaration order.

    Examples:
        >>> a = HyperparameterConfig.from_mapping({"mtry": 2, "min_node_size": 5})
        >>> b = HyperparameterConfig.from_mapping({"mtry": 2, "min_node_size": 5})
        >>> a == b, hash(a) == hash(b)
        (True, True)
        >>> a["mtry"]
        2
        >>> str(a)
        'mtry=2, min_node_size=5'
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[tuple[str, ParamValue], ...] = Field(
        default=(),
        description="Name/value pairs in declaration order.",
    )

    @model_validator(mode="after")
    def _validate_unique_names(self) -> HyperparameterConfig:
        """Validate that every hyperparameter name appears once.

        Returns:
            HyperparameterConfig: The validated model instance.

        Raises:
            ValueError: If a name is repeated.
        """
        names = [name for name, _ in self.items]
        if len(names) != len(set(names)):
            raise ValueError(f"hyperparameter names must be unique, got {names}")
        return self

    @classmethod
    def from_mapping(cls, values: Mapping[str, ParamValue]) -> HyperparameterConfig:
        """Build a config from a mapping, keeping its iteration order.

        Args:
            values (Mapping[str, ParamValue]): Hyperparameter values by name.

        Returns:
            HyperparameterConfig: The config.
        """
        return cls(items=tuple(values.items()))

    @property
    def names(self) -> tuple[str, ...]:
        """Hyperparameter names in declaration order."""
        return tuple(name for name, _ in self.items)

    def as_dict(self) -> dict[str, ParamValue]:
        """Return the values as an insertion-ordered dict."""
        return dict(self.items)

    def __getitem__(self, name: str) -> ParamValue:
        for key, value in self.items:
            if key == name:
                return value
        raise KeyError(name)

    def __str__(self) -> str:
        return ", ".join(f"{name}={value}" for name, value in self.items)


# ---------------------------------------------------------------------------
# Distributions
# ---------------------------------------------------------------------------


class IntRange(BaseModel):
    """Uniform distribution over the integers `low..high` (inclusive).

    Attributes:
        kind (Literal["int"]): Discriminator field; always `"int"`.
        low (int): Smallest value.
        high (int): Largest value.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["int"] = "int"
    low: int
    high: int

    @model_validator(mode="after")
    def _validate_bounds(self) -> IntRange:
        if self.low > self.high:
            raise ValueError(f"low ({self.low}) must not exceed high ({self.high})")
        return self

    def sample(self, rng: np.random.Generator) -> int:
        """Draw one value uniformly."""
        return int(rng.integers(self.low, self.high, endpoint=True))

    def levels(self, count: int) -> tuple[int, ...]:
        """Return up to `count` evenly spaced, distinct integers from `low` to `high`."""
        spaced = np.linspace(self.low, self.high, num=count)
        return tuple(dict.fromkeys(int(round(value)) for value in spaced))


class FloatRange(BaseModel):
    """Uniform (or log-uniform) distribution over `[low, high]`.

    Attributes:
        kind (Literal["float"]): Discriminator field; always `"float"`.
        low (float): Lower bound.
        high (float): Upper bound.
        log (bool): Sample uniformly in log space; requires `low > 0`.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["float"] = "float"
    low: float
    high: float
    log: bool = False

    @model_validator(mode="after")
    def _validate_bounds(self) -> FloatRange:
        if self.low > self.high:
            raise ValueError(f"low ({self.low}) must not exceed high ({self.high})")
        if self.log and self.low <= 0.0:
            raise ValueError("log-uniform ranges require low > 0")
        return self

    def sample(self, rng: np.random.Generator) -> float:
        """Draw one value uniformly (in log space when `log` is set)."""
        if self.log:
            return float(math.exp(rng.uniform(math.log(self.low), math.log(self.high))))
        return float(rng.uniform(self.low, self.high))

    def levels(self, count: int) -> tuple[float, ...]:
        """Return `count` evenly spaced values from `low` to `high` (geometric when `log` is set)."""
        if self.log:
            return tuple(float(value) for value in np.geomspace(self.low, self.high, num=count))
        return tuple(float(value) for value in np.linspace(self.low, self.high, num=count))


class Choice(BaseModel):
    """Uniform distribution over a finite set of values.

    Attributes:
        kind (Literal["choice"]): Discriminator field; always `"choice"`.
        values (tuple[ParamValue, ...]): Candidate values, at least one.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["choice"] = "choice"
    values: tuple[ParamValue, ...] = Field(min_length=1)

    def sample(self, rng: np.random.Generator) -> ParamValue:
        """Draw one value uniformly."""
        return self.values[int(rng.integers(len(self.values)))]

    def levels(self, count: int) -> tuple[ParamValue, ...]:
        """Return the first `count` values."""
        return self.values[:count]


type Distribution = Annotated[IntRange | FloatRange | Choice, Field(discriminator="kind")]

# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------


def grid_configs(space: Mapping[str, Sequence[ParamValue]]) -> list[HyperparameterConfig]:
    """Enumerate the Cartesian product of per-hyperparameter candidate values.

    Enumeration is nested iteration in declaration order: the first declared
    hyperparameter varies slowest and the last varies fastest.

    Args:
        space (Mapping[str, Sequence[ParamValue]]): Candidate values per name.

    Returns:
        list[HyperparameterConfig]: One config per grid point.

    Raises:
        InvalidHyperparameterError: If the space is empty or any candidate
            list is empty.

    Examples:
        >>> [str(c) for c in grid_configs({"a": [1, 2], "b": ["x", "y"]})]
        ['a=1, b=x', 'a=1, b=y', 'a=2, b=x', 'a=2, b=y']
    """
    if not space:
        raise InvalidHyperparameterError("space", dict(space), "at least one hyperparameter")
    for name, candidates in space.items():
        if len(candidates) == 0:
            raise InvalidHyperparameterError(name, list(candidates), f"at least one candidate value for {name}")
    names = list(space)
    return [
        HyperparameterConfig(items=tuple(zip(names, combination, strict=True)))
        for combination in itertools.product(*(space[name] for name in names))
    ]


def regular_grid(distributions: Mapping[str, Distribution], levels: int) -> list[HyperparameterConfig]:
    """Build a regular grid with `levels` evenly spaced values per hyperparameter.

    Args:
        distributions (Mapping[str, Distribution]): Ranges per name.
        levels (int): Values per hyperparameter; at least 1.

    Returns:
        list[HyperparameterConfig]: The grid in `grid_configs` order.

    Raises:
        InvalidHyperparameterError: If `levels < 1`.
    """
    require_at_least("levels", levels, 1)
    return grid_configs({name: distribution.levels(levels) for name, distribution in distributions.items()})


def random_configs(
    distributions: Mapping[str, Distribution],
    size: int,
    seed: int,
) -> list[HyperparameterConfig]:
    """Draw `size` configurations independently and uniformly.

    Values are drawn config by config, hyperparameters in declaration order,
    from one generator seeded with `seed`. Duplicate configurations are kept.

    Args:
        distributions (Mapping[str, Distribution]): Ranges per name.
        size (int): Number of configurations; at least 1.
        seed (int): Generator seed.

    Returns:
        list[HyperparameterConfig]: Exactly `size` configs.

    Raises:
        InvalidHyperparameterError: If `size < 1` or no distributions are declared.
    """
    require_at_least("size", size, 1)
    if not distributions:
        raise InvalidHyperparameterError("distributions", dict(distributions), "at least one hyperparameter")
    rng = np.random.default_rng(seed)
    return list(_draw_configs(distributions, size, rng))


def _draw_configs(
    distributions: Mapping[str, Distribution],
    size: int,
    rng: np.random.Generator,
) -> Iterator[HyperparameterConfig]:
    for _ in range(size):
        yield HyperparameterConfig(
            items=tuple((name, distribution.sample(rng)) for name, distribution in distributions.items())
        )
