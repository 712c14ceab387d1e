"""resampling_models — Bootstrap inference and cross-validation for
regression models.

Fits linear, logistic and additive (regression-spline) models from a
declarative term list, tidies their output, checks residuals, compares
nested models by likelihood ratio, fits models per group, and runs the
resample → fit → summarize → aggregate loop behind bootstrap standard
errors and Monte-Carlo cross-validation.

Public API:
    .. autosummary::
        bootstrap_coefficients
        cross_validate
        compare_errors
        bootstrap_sample
        train_test_split
        kfold_splits
        repeat_resample
        Resamples
        Split
        fit_all
        score_all
        extract_coefficients
        extract_prediction_error
        aggregate
        quantile
        summarize_bootstrap
        summarize_errors
        ModelSpec
        Linear
        Interaction
        Smooth
        Changepoint
        fit_model
        FittedModel
        tidy
        glance
        augment
        compute_breusch_pagan
        compute_cooks_distance
        residual_summary
        likelihood_ratio_test
        nest
        fit_by_group
        tidy_groups
        glance_groups
        GroupData
        GroupFit
        load_dataset
        get_n_jobs
        set_n_jobs
        ModelFamily
        LinearFamily
        AdditiveFamily
        LogisticFamily
        resolve_family
        register_family
        BootstrapResult
        CrossValidationResult
        LikelihoodRatioResult
        ResamplingError
        InvalidInputError
        FitError
        SchemaMismatchError
"""

from ._config import get_n_jobs, set_n_jobs
from ._results import BootstrapResult, CrossValidationResult, LikelihoodRatioResult
from .comparison import likelihood_ratio_test
from .core import bootstrap_coefficients, compare_errors, cross_validate
from .datasets import load_dataset
from .diagnostics import compute_breusch_pagan, compute_cooks_distance, residual_summary
from .engine import (
    aggregate,
    extract_coefficients,
    extract_prediction_error,
    fit_all,
    score_all,
)
from .errors import FitError, InvalidInputError, ResamplingError, SchemaMismatchError
from .families import (
    AdditiveFamily,
    LinearFamily,
    LogisticFamily,
    ModelFamily,
    register_family,
    resolve_family,
)
from .intervals import quantile, summarize_bootstrap, summarize_errors
from .models import FittedModel, augment, fit_model, glance, tidy
from .nested import GroupData, GroupFit, fit_by_group, glance_groups, nest, tidy_groups
from .resampling import (
    Resamples,
    Split,
    bootstrap_sample,
    kfold_splits,
    repeat_resample,
    train_test_split,
)
from .terms import Changepoint, Interaction, Linear, ModelSpec, Smooth

__version__ = "0.1.0"

__all__ = [
    # Core
    "bootstrap_coefficients",
    "cross_validate",
    "compare_errors",
    # Resampling
    "Resamples",
    "Split",
    "bootstrap_sample",
    "kfold_splits",
    "repeat_resample",
    "train_test_split",
    # Fit-and-summarize loop
    "aggregate",
    "extract_coefficients",
    "extract_prediction_error",
    "fit_all",
    "score_all",
    "quantile",
    "summarize_bootstrap",
    "summarize_errors",
    # Model specification and fitting
    "Changepoint",
    "Interaction",
    "Linear",
    "ModelSpec",
    "Smooth",
    "FittedModel",
    "augment",
    "fit_model",
    "glance",
    "tidy",
    # Diagnostics and comparison
    "compute_breusch_pagan",
    "compute_cooks_distance",
    "residual_summary",
    "likelihood_ratio_test",
    # Grouped modeling
    "GroupData",
    "GroupFit",
    "fit_by_group",
    "glance_groups",
    "nest",
    "tidy_groups",
    # Data and configuration
    "load_dataset",
    "get_n_jobs",
    "set_n_jobs",
    # Families
    "AdditiveFamily",
    "LinearFamily",
    "LogisticFamily",
    "ModelFamily",
    "register_family",
    "resolve_family",
    # Results
    "BootstrapResult",
    "CrossValidationResult",
    "LikelihoodRatioResult",
    # Errors
    "FitError",
    "InvalidInputError",
    "ResamplingError",
    "SchemaMismatchError",
]
