"""Demonstrates how to enable and configure logging in forestkit.

forestkit logging is disabled by default. Users opt in by calling ``enable_logging()``,
which returns a ``LoggingHandle``. The handle can be used as a context manager
(``with enable_logging(): ...``) or disabled manually via ``handle.disable()``.
When the last active handle is disabled, forestkit logging is automatically turned off.

Key concepts shown here:

- ``level``: controls the minimum log level. The custom ``PROGRESS`` level
  (numeric value 25, between INFO and WARNING) reports one line per scored
  configuration and per fitted forest, and is the default.
- ``log_format``: ``"short"`` shows ``timestamp | level | function - message``;
  ``"full"`` adds the module and line number.
- Failure logging: a configuration with invalid hyperparameters is logged as a
  warning and recorded in the search result without stopping the search.
- Automatic cleanup: logging is re-disabled when the context manager exits.
"""

import numpy as np
import polars as pl

from forestkit import Dataset, enable_logging, grid_search, refit_best, score_model, spec_factory, stratified_split

# Synthetic churn table: short tenure and many support calls raise churn risk
rng = np.random.default_rng(7)
tenure = rng.integers(1, 72, size=300)
support_calls = rng.poisson(2.0, size=300)
monthly_charges = rng.uniform(20.0, 120.0, size=300)
risk = -0.05 * tenure + 0.6 * support_calls + 0.01 * monthly_charges + rng.normal(0.0, 0.5, size=300)

df_customers = pl.DataFrame({
    "tenure_months": tenure,
    "support_calls": support_calls,
    "monthly_charges": monthly_charges,
    "churned": risk > np.median(risk),
})

dataset = Dataset.from_polars(df_customers, target="churned")
split = stratified_split(dataset, test_fraction=0.25, seed=7)
train, test = dataset.take(split.train_rows), dataset.take(split.test_rows)

# Enable logging at PROGRESS level (and above) with full log format for better visibility of log details
with enable_logging(
    level="PROGRESS",
    log_format="full",
):
    factory = spec_factory("random_forest", tree_count=50, seed=7)

    # mtry=0 is invalid and shows failure logging
    result = grid_search(
        train,
        {"mtry": [0, 1, 2, 3], "min_node_size": [1, 5]},
        factory,
        k=5,
        seed=7,
    )
    print(f"\nBest: {result.best_config} (mean ROC-AUC {result.best_score:.3f})\n")
    print(result.to_polars())

    model = refit_best(result, train, factory)
    print(f"\nHeld-out ROC-AUC: {score_model(model, test):.3f}")

# Logging automatically disabled here
