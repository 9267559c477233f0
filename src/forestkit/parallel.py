"""Bounded worker pool for independent units of work (trees, folds)."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from joblib import Parallel, delayed

from forestkit.exceptions import require_at_least
from forestkit.settings import get_settings


def resolve_max_workers(max_workers: int | None) -> int:
    """Return the effective worker count.

    Args:
        max_workers (int | None): Explicit worker count, or `None` to fall back
            to `ForestKitSettings.max_workers`.

    Returns:
        int: The worker count to use (at least 1).

    Raises:
        InvalidHyperparameterError: If `max_workers` is less than 1.
    """
    if max_workers is None:
        return get_settings().max_workers
    require_at_least("max_workers", max_workers, 1)
    return max_workers


def map_ordered[T, R](func: Callable[[T], R], items: Iterable[T], *, max_workers: int | None = None) -> list[R]:
    """Apply `func` to every item and return results in input order.

    With one worker the items are processed sequentially in the calling
    thread. Otherwise joblib runs them on a thread pool (`prefer="threads"`),
    so workers share the read-only dataset arrays. joblib returns results in
    input order, so both modes give identical lists as long as `func` draws
    randomness only from its own seeded generator. The first exception raised
    by `func` propagates.

    Args:
        func (Callable[[T], R]): Function applied to each item.
        items (Iterable[T]): Work items.
        max_workers (int | None): Pool size; `None` uses the settings default.

    Returns:
        list[R]: One result per item, in input order.
    """
    workers = resolve_max_workers(max_workers)
    work = list(items)
    if workers == 1 or len(work) <= 1:
        return [func(item) for item in work]
    return list(Parallel(n_jobs=min(workers, len(work)), prefer="threads")(delayed(func)(item) for item in work))
