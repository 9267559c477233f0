"""Random forest sub-package: bootstrap sampling, ensemble models, and fitting."""

from __future__ import annotations

from forestkit.forest.fitting import fit_forest, out_of_bag_probabilities
from forestkit.forest.models import ForestMember, ForestParams, RandomForest
from forestkit.forest.sampling import BootstrapSample, bootstrap_sample, derive_seed

__all__ = [
    "BootstrapSample",
    "ForestMember",
    "ForestParams",
    "RandomForest",
    "bootstrap_sample",
    "derive_seed",
    "fit_forest",
    "out_of_bag_probabilities",
]
