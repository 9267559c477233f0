"""K-fold cross-validation of one hyperparameter configuration."""

from __future__ import annotations

from loguru import logger

from forestkit.dataset import Dataset
from forestkit.exceptions import InvalidInputError
from forestkit.metrics import Metric, MetricName, metric_name, resolve_metric
from forestkit.parallel import map_ordered
from forestkit.selection.estimators import ModelFactory
from forestkit.selection.folds import FoldAssignment
from forestkit.selection.space import HyperparameterConfig


def cross_validate(
    dataset: Dataset,
    folds: FoldAssignment,
    model_factory: ModelFactory,
    config: HyperparameterConfig,
    metric: MetricName | Metric = "roc_auc",
    *,
    max_workers: int | None = None,
) -> list[float]:
    """Score one configuration on every fold.

    For fold `f` a fresh estimator from `model_factory(config)` is fitted on
    the rows outside `f` and scored on the rows inside `f` using the class-1
    probabilities. Any per-fold preprocessing statistics are the caller's to
    compute on the training rows only.

    Args:
        dataset (Dataset): Data the folds index into.
        folds (FoldAssignment): Fold id per row of `dataset`.
        model_factory (ModelFactory): Builds an estimator from `config`.
        config (HyperparameterConfig): Hyperparameters under evaluation.
        metric (MetricName | Metric): Metric name or scoring callable.
        max_workers (int | None): Pool size for folds; `None` uses settings.

    Returns:
        list[float]: One score per fold, in fold order.

    Raises:
        InvalidInputError: If `folds` does not cover exactly the dataset's
            rows, or the metric is undefined on a held-out fold.
        InvalidHyperparameterError: If `config` is invalid for the model family.
    """
    if folds.n_rows != dataset.n_rows:
        raise InvalidInputError(f"fold assignment covers {folds.n_rows} rows but the dataset has {dataset.n_rows}")
    scorer = resolve_metric(metric)
    estimator = model_factory(config)

    def score_fold(fold: int) -> float:
        training_rows = folds.training_rows(fold)
        held_out_rows = folds.held_out_rows(fold)
        model = estimator.fit(dataset, training_rows)
        probabilities = model.predict_proba_many(dataset.features[held_out_rows])
        score = float(scorer(dataset.labels[held_out_rows], probabilities))
        logger.debug(
            "Fold scored",
            fold=fold,
            metric=metric_name(metric),
            score=score,
            train_rows=int(training_rows.size),
            held_out_rows=int(held_out_rows.size),
        )
        return score

    return map_ordered(score_fold, range(folds.k), max_workers=max_workers)
