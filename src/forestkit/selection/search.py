"""Grid and random hyperparameter search driven by stratified cross-validation."""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np
import polars as pl
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from forestkit.dataset import Dataset
from forestkit.exceptions import ForestKitError, InvalidHyperparameterError, InvalidInputError
from forestkit.logging import PROGRESS_LEVEL, bind_run_context
from forestkit.metrics import Metric, MetricName, metric_name, resolve_metric
from forestkit.selection.cross_validation import cross_validate
from forestkit.selection.estimators import Classifier, ModelFactory
from forestkit.selection.folds import FoldAssignment, stratified_folds
from forestkit.selection.space import (
    Distribution,
    HyperparameterConfig,
    ParamValue,
    grid_configs,
    random_configs,
)
from forestkit.settings import get_settings

if TYPE_CHECKING:
    from loguru import Logger

# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class ConfigScore(BaseModel):
    """Cross-validation outcome of one configuration.

    Attributes:
        config (HyperparameterConfig): The evaluated configuration.
        fold_scores (tuple[float, ...] | None): Per-fold scores; `None` when
            the configuration failed.
        mean_score (float | None): Mean of `fold_scores`; `None` when failed.
        error (str | None): Error message of a failed configuration.
    """

    model_config = ConfigDict(frozen=True)

    config: HyperparameterConfig
    fold_scores: tuple[float, ...] | None = None
    mean_score: float | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """True when the configuration raised instead of producing scores."""
        return self.error is not None


class SearchResult(BaseModel):
    """Read-only record of a hyperparameter search.

    Attributes:
        entries (tuple[ConfigScore, ...]): One entry per evaluated
            configuration, in enumeration order.
        best_config (HyperparameterConfig | None): Highest mean score; the
            first-enumerated configuration wins exact ties. `None` when no
            configuration succeeded.
        best_score (float | None): Mean score of `best_config`.
        metric (str): Display name of the metric.
        k (int): Number of folds.
        interrupted (bool): True when the search stopped before evaluating
            every configuration.
    """

    model_config = ConfigDict(frozen=True)

    entries: tuple[ConfigScore, ...] = Field(default=())
    best_config: HyperparameterConfig | None = None
    best_score: float | None = None
    metric: str = "roc_auc"
    k: int = Field(ge=2)
    interrupted: bool = False

    @property
    def scores(self) -> Mapping[HyperparameterConfig, ConfigScore]:
        """Read-only mapping from configuration to its entry.

        Repeated configurations (possible in random search) map to their
        first entry.
        """
        mapping: dict[HyperparameterConfig, ConfigScore] = {}
        for entry in self.entries:
            mapping.setdefault(entry.config, entry)
        return MappingProxyType(mapping)

    @property
    def failures(self) -> tuple[ConfigScore, ...]:
        """Entries whose configuration raised."""
        return tuple(entry for entry in self.entries if entry.failed)

    def to_polars(self) -> pl.DataFrame:
        """Return one row per entry for reporting.

        Columns are the hyperparameter names (first-seen order), then
        `mean_score`, `std_score`, `fold_scores` (list column) and `error`.

        Returns:
            pl.DataFrame: The report; empty when nothing was evaluated.
        """
        names = list(dict.fromkeys(name for entry in self.entries for name in entry.config.names))
        records = []
        for entry in self.entries:
            values = entry.config.as_dict()
            record: dict[str, object] = {name: values.get(name) for name in names}
            record["mean_score"] = entry.mean_score
            record["std_score"] = None if entry.fold_scores is None else float(np.std(entry.fold_scores))
            record["fold_scores"] = None if entry.fold_scores is None else list(entry.fold_scores)
            record["error"] = entry.error
            records.append(record)
        if not records:
            return pl.DataFrame(
                schema={
                    "mean_score": pl.Float64,
                    "std_score": pl.Float64,
                    "fold_scores": pl.List(pl.Float64),
                    "error": pl.String,
                }
            )
        return pl.DataFrame(records, infer_schema_length=None, strict=False)


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


def run_search(
    dataset: Dataset,
    configs: Sequence[HyperparameterConfig],
    model_factory: ModelFactory,
    *,
    folds: FoldAssignment | None = None,
    k: int | None = None,
    seed: int | None = None,
    metric: MetricName | Metric = "roc_auc",
    max_workers: int | None = None,
    stop_event: threading.Event | None = None,
) -> SearchResult:
    """Cross-validate each configuration in order and select the best.

    All configurations share one fold assignment. A configuration raising
    `ForestKitError` is recorded with missing scores and the search moves on;
    any other exception propagates. `stop_event` is checked before each
    configuration; once set, the partial result is returned.

    Args:
        dataset (Dataset): Training partition.
        configs (Sequence[HyperparameterConfig]): Configurations in evaluation order.
        model_factory (ModelFactory): Builds an estimator from a configuration.
        folds (FoldAssignment | None): Fold assignment; built with
            `stratified_folds(dataset, k, seed)` when `None`.
        k (int | None): Fold count when `folds` is `None`; defaults to
            `ForestKitSettings.default_folds`.
        seed (int | None): Fold shuffle seed when `folds` is `None`.
        metric (MetricName | Metric): Metric name or scoring callable.
        max_workers (int | None): Pool size used for the folds of each configuration.
        stop_event (threading.Event | None): Interruption flag.

    Returns:
        SearchResult: Every evaluated configuration and the winner.

    Raises:
        InvalidHyperparameterError: If `configs` is empty or `k < 2`.
        InvalidInputError: If `folds` does not match `dataset`, or `metric` is unknown.
    """
    if len(configs) == 0:
        raise InvalidHyperparameterError("configs", list(configs), "at least one configuration")
    resolve_metric(metric)
    if folds is None:
        folds = stratified_folds(dataset, get_settings().default_folds if k is None else k, seed)
    elif folds.n_rows != dataset.n_rows:
        raise InvalidInputError(f"fold assignment covers {folds.n_rows} rows but the dataset has {dataset.n_rows}")

    search_logger = bind_run_context("search", metric=metric_name(metric), k=folds.k, total=len(configs))
    entries: list[ConfigScore] = []
    best: ConfigScore | None = None
    interrupted = False
    for position, config in enumerate(configs):
        if stop_event is not None and stop_event.is_set():
            interrupted = True
            search_logger.log(PROGRESS_LEVEL, "Search interrupted", evaluated=position)
            break
        entry = _evaluate(dataset, folds, model_factory, config, metric, max_workers, search_logger)
        entries.append(entry)
        if entry.mean_score is not None and (best is None or entry.mean_score > best.mean_score):
            best = entry
        search_logger.log(
            PROGRESS_LEVEL,
            "Configuration evaluated",
            position=position + 1,
            config=str(config),
            mean_score=entry.mean_score,
            best_score=None if best is None else best.mean_score,
        )

    return SearchResult(
        entries=tuple(entries),
        best_config=None if best is None else best.config,
        best_score=None if best is None else best.mean_score,
        metric=metric_name(metric),
        k=folds.k,
        interrupted=interrupted,
    )


def grid_search(
    dataset: Dataset,
    space: Mapping[str, Sequence[ParamValue]],
    model_factory: ModelFactory,
    **kwargs,
) -> SearchResult:
    """Exhaustively search the Cartesian product of `space`.

    Args:
        dataset (Dataset): Training partition.
        space (Mapping[str, Sequence[ParamValue]]): Candidate values per hyperparameter.
        model_factory (ModelFactory): Builds an estimator from a configuration.
        **kwargs: Forwarded to `run_search`.

    Returns:
        SearchResult: The search outcome.
    """
    return run_search(dataset, grid_configs(space), model_factory, **kwargs)


def random_search(
    dataset: Dataset,
    distributions: Mapping[str, Distribution],
    model_factory: ModelFactory,
    *,
    size: int,
    sample_seed: int | None = None,
    **kwargs,
) -> SearchResult:
    """Search `size` configurations drawn uniformly from `distributions`.

    Args:
        dataset (Dataset): Training partition.
        distributions (Mapping[str, Distribution]): Ranges per hyperparameter.
        model_factory (ModelFactory): Builds an estimator from a configuration.
        size (int): Number of draws.
        sample_seed (int | None): Seed for the draws; `None` uses
            `ForestKitSettings.default_seed`.
        **kwargs: Forwarded to `run_search`.

    Returns:
        SearchResult: The search outcome.
    """
    seed = get_settings().default_seed if sample_seed is None else sample_seed
    return run_search(dataset, random_configs(distributions, size, seed), model_factory, **kwargs)


def refit_best(result: SearchResult, dataset: Dataset, model_factory: ModelFactory) -> Classifier:
    """Fit the winning configuration on every row of `dataset`.

    Args:
        result (SearchResult): A completed or interrupted search.
        dataset (Dataset): Full training partition.
        model_factory (ModelFactory): The factory the search used.

    Returns:
        Classifier: The refitted model.

    Raises:
        InvalidInputError: If the search has no successful configuration.
    """
    if result.best_config is None:
        raise InvalidInputError("search produced no successful configuration to refit")
    model = model_factory(result.best_config).fit(dataset)
    logger.log(PROGRESS_LEVEL, "Best configuration refitted", config=str(result.best_config), rows=dataset.n_rows)
    return model


def score_model(model: Classifier, dataset: Dataset, metric: MetricName | Metric = "roc_auc") -> float:
    """Score a fitted model once on a held-out partition.

    Args:
        model (Classifier): Fitted model.
        dataset (Dataset): Held-out test partition.
        metric (MetricName | Metric): Metric name or scoring callable.

    Returns:
        float: The metric value.
    """
    return float(resolve_metric(metric)(dataset.labels, model.predict_proba_many(dataset.features)))


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _evaluate(
    dataset: Dataset,
    folds: FoldAssignment,
    model_factory: ModelFactory,
    config: HyperparameterConfig,
    metric: MetricName | Metric,
    max_workers: int | None,
    search_logger: Logger,
) -> ConfigScore:
    try:
        fold_scores = cross_validate(dataset, folds, model_factory, config, metric, max_workers=max_workers)
    except ForestKitError as exc:
        search_logger.warning("Configuration failed", config=str(config), error=str(exc))
        return ConfigScore(config=config, error=str(exc))
    return ConfigScore(config=config, fold_scores=tuple(fold_scores), mean_score=float(np.mean(fold_scores)))
