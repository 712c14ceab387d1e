"""Bootstrap inference and Monte-Carlo cross-validation.

Both procedures are the same loop run over a different resampling
scheme and reduced with a different summary:

1. **Bootstrap inference** — draw B samples of n rows with replacement,
   fit the model to each, and collect the B coefficient vectors.  The
   spread of the replicates across samples estimates the sampling
   variability of each estimate without assuming constant error
   variance or normal errors:

       SE*(β̂_j) = sd(β*_j1, …, β*_jB)
       CI_{1−α}(β_j) = [Q(α/2), Q(1 − α/2)]   (percentile interval)

   Under heteroscedastic errors the bootstrap SE is typically larger
   than the classical OLS SE, which assumes a single σ².

2. **Monte-Carlo cross-validation** — draw N independent random
   train/test partitions, fit every candidate model to the training
   side, and score it on the held-out side.  Each candidate receives a
   distribution of N held-out errors.  Candidates are compared on the
   mean (expected accuracy) and the spread (stability): an
   over-flexible model fits noise in each training half and so scores
   erratically across splits.

All candidates are scored on the *same* N splits, so differences
between them are paired comparisons.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import pandas as pd

from ._compat import DataFrameLike, _ensure_pandas_df
from ._results import BootstrapResult, CrossValidationResult
from ._typing import RandomState
from .engine import (
    ERROR_METRICS,
    aggregate,
    collect_coefficients,
    fit_all,
    score_all,
)
from .errors import FitError, InvalidInputError
from .intervals import summarize_bootstrap, summarize_errors
from .models import fit_model
from .resampling import repeat_resample
from .terms import ModelSpec

logger = logging.getLogger(__name__)


def bootstrap_coefficients(
    dataset: DataFrameLike,
    spec: ModelSpec,
    n_bootstrap: int = 1000,
    conf_level: float = 0.95,
    random_state: RandomState = None,
    *,
    n_jobs: int | None = None,
    on_error: str = "raise",
) -> BootstrapResult:
    """Bootstrap the coefficients of *spec* on *dataset*.

    Args:
        dataset: Source rows.  Accepts pandas or Polars DataFrames.
        spec: Model to fit.
        n_bootstrap: Number of bootstrap samples B.
        conf_level: Coverage of the percentile intervals.
        random_state: Master seed for the resampling stream.
        n_jobs: Worker threads for the fits (``None``: configured
            default).
        on_error: ``"raise"`` aborts on the first failed fit;
            ``"skip"`` drops failed samples from the summary and counts
            them in ``n_failed``.

    Returns:
        A :class:`~resampling_models.BootstrapResult`.

    Raises:
        InvalidInputError: On invalid arguments or an unfittable full
            dataset.
        SchemaMismatchError: If *dataset* lacks a model column.
        FitError: If a bootstrap fit fails (``on_error="raise"``), or
            every fit failed (``on_error="skip"``).
    """
    dataset = _ensure_pandas_df(dataset)
    if not 0.0 < conf_level < 1.0:
        raise InvalidInputError(f"conf_level must be in (0, 1), got {conf_level!r}.")

    # Configuration problems surface here, before any resampling.
    observed_fit = fit_model(spec, dataset)
    samples = repeat_resample(
        dataset, n_bootstrap, mode="bootstrap", random_state=random_state
    )
    fits = fit_all(samples, spec, n_jobs=n_jobs, on_error=on_error)
    n_failed = sum(f is None for f in fits)
    if n_failed == len(fits):
        raise FitError(f"all {len(fits)} bootstrap fits failed for {spec}.")
    if n_failed:
        logger.warning("%d of %d bootstrap fits failed and were skipped", n_failed, len(fits))

    replicates = collect_coefficients(fits)
    summary = summarize_bootstrap(replicates, conf_level)
    observed = observed_fit.coefficients()
    summary.insert(1, "observed", summary["term"].map(observed).astype(float))

    return BootstrapResult(
        spec=spec,
        replicates=replicates,
        summary=summary,
        conf_level=float(conf_level),
        n_bootstrap=int(n_bootstrap),
        n_failed=n_failed,
        observed_fit=observed_fit,
    )


def _check_candidates(candidates: Mapping[str, ModelSpec]) -> dict[str, ModelSpec]:
    if not isinstance(candidates, Mapping) or not candidates:
        raise InvalidInputError(
            "candidates must be a non-empty mapping of name -> ModelSpec."
        )
    for name, spec in candidates.items():
        if not isinstance(name, str) or not name:
            raise InvalidInputError(f"candidate names must be non-empty strings, got {name!r}.")
        if not isinstance(spec, ModelSpec):
            raise InvalidInputError(
                f"candidate {name!r} must be a ModelSpec, got {type(spec).__name__}."
            )
    outcomes = {spec.outcome for spec in candidates.values()}
    if len(outcomes) > 1:
        raise InvalidInputError(
            f"candidates predict different outcomes {sorted(outcomes)}; held-out "
            f"errors would not be comparable."
        )
    return dict(candidates)


def cross_validate(
    dataset: DataFrameLike,
    candidates: Mapping[str, ModelSpec],
    n_repetitions: int = 100,
    train_fraction: float = 0.8,
    metric: str = "rmse",
    random_state: RandomState = None,
    *,
    n_jobs: int | None = None,
    on_error: str = "raise",
) -> CrossValidationResult:
    """Compare candidate models by Monte-Carlo cross-validation.

    Args:
        dataset: Source rows.
        candidates: Candidate models by name; they must share an
            outcome.  Non-nested candidates (e.g. linear, spline and
            piecewise-linear fits) are the intended use.
        n_repetitions: Number of random train/test splits N.
        train_fraction: Fraction of rows used for training in each
            split.
        metric: ``"rmse"`` or ``"mae"``.
        random_state: Master seed for the split stream.
        n_jobs: Worker threads for the fits.
        on_error: ``"raise"`` or ``"skip"`` (see
            :func:`~resampling_models.fit_all`).

    Returns:
        A :class:`~resampling_models.CrossValidationResult` whose
        ``errors`` table has one row per (replicate, model).

    Raises:
        InvalidInputError: On invalid arguments.
        FitError: If a fit or a held-out evaluation fails
            (``on_error="raise"``); ``candidate`` names the model.
    """
    dataset = _ensure_pandas_df(dataset)
    candidates = _check_candidates(candidates)
    if metric not in ERROR_METRICS:
        raise InvalidInputError(
            f"Unknown metric {metric!r}. Choose from: {sorted(ERROR_METRICS)}"
        )

    # Every candidate sees the same splits; draw them once.
    splits = list(
        repeat_resample(
            dataset,
            n_repetitions,
            mode="split",
            train_fraction=train_fraction,
            random_state=random_state,
        )
    )
    train_sets = [s.train for s in splits]
    test_sets = [s.test for s in splits]

    scores: dict[str, list[float | None]] = {}
    for name, spec in candidates.items():
        fits = fit_all(train_sets, spec, n_jobs=n_jobs, on_error=on_error, candidate=name)
        scores[name] = score_all(fits, test_sets, metric, on_error=on_error, candidate=name)
        logger.debug("cross_validate: scored candidate %r", name)

    records = (
        (i, {name: s[i - 1] for name, s in scores.items() if s[i - 1] is not None})
        for i in range(1, len(splits) + 1)
    )
    errors = aggregate(records, key_name="model", value_name=metric)
    missing = [name for name in candidates if name not in set(errors["model"])]
    if missing:
        raise FitError(f"every repetition failed for candidate(s) {missing}.")

    summary = summarize_errors(errors, key_name="model", value_name=metric)
    # Candidate order, not first-appearance order in the error table.
    summary = (
        summary.set_index("model").loc[list(candidates)].reset_index()
    )
    return CrossValidationResult(
        candidates=candidates,
        errors=errors,
        summary=summary,
        metric=metric,
        n_repetitions=int(n_repetitions),
        train_fraction=float(train_fraction),
    )


def compare_errors(result: CrossValidationResult) -> pd.DataFrame:
    """Wide view of a cross-validation run: one row per replicate,
    one column per candidate."""
    return result.errors.pivot(
        index="replicate", columns="model", values=result.metric
    ).loc[:, list(result.candidates)]


__all__ = ["bootstrap_coefficients", "compare_errors", "cross_validate"]
