"""Fit-and-summarize loop.

The loop is the shared core of bootstrap inference and Monte-Carlo
cross-validation:

1. :func:`fit_all` — fit one :class:`~resampling_models.terms.ModelSpec`
   to every dataset of a sequence.
2. :func:`extract_coefficients` / :func:`extract_prediction_error` —
   reduce each fit to a fixed numeric summary.
3. :func:`aggregate` — stack the per-repetition summaries into a single
   long-format table keyed by the 1-based repetition index.

Parallelism
~~~~~~~~~~~
Repetitions are independent, so when ``n_jobs != 1`` the fits run on a
``joblib.Parallel(prefer="threads")`` pool.  Threads rather than
processes avoid pickling every resampled frame; the heavy lifting
(LAPACK least squares, IRLS) releases the GIL.  joblib consumes the
input lazily and stops dispatching once a task raises, so the
fail-fast policy below does not pay for the remaining repetitions.

Failure policy
~~~~~~~~~~~~~~
By default the first failing fit aborts the batch with a
:class:`~resampling_models.errors.FitError` carrying the repetition
index and candidate name.  Silently dropping a repetition would shrink
the effective number of replicates and change the meaning of every
downstream standard deviation and quantile.  Callers that want partial
results must opt in with ``on_error="skip"``: failed repetitions are
logged at WARNING level and returned as ``None``, and
:func:`aggregate` leaves them out of the table.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable, Mapping, Sequence
from typing import Any

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ._compat import DataFrameLike, _ensure_pandas_df
from ._config import resolve_n_jobs
from .errors import FitError, InvalidInputError, SchemaMismatchError
from .models import FittedModel, fit_model
from .terms import ModelSpec

logger = logging.getLogger(__name__)

_ON_ERROR = ("raise", "skip")

SUMMARY_INDEX = "replicate"


# ------------------------------------------------------------------ #
# Fitting
# ------------------------------------------------------------------ #


def _fit_one(
    index: int,
    data: DataFrameLike,
    spec: ModelSpec,
    candidate: Hashable | None,
    on_error: str,
) -> FittedModel | None:
    try:
        return fit_model(spec, data)
    except SchemaMismatchError:
        # Missing columns are a configuration problem, identical for
        # every repetition; report it as such.
        raise
    except Exception as exc:
        if on_error == "skip":
            logger.warning(
                "skipping repetition %d%s: %s",
                index,
                f" (candidate {candidate!r})" if candidate is not None else "",
                exc,
            )
            return None
        raise FitError(
            f"model fit failed: {exc}", index=index, candidate=candidate
        ) from exc


def _dispatch(
    jobs: Iterable[tuple[int, DataFrameLike, ModelSpec, Hashable | None, str]],
    n_jobs: int,
) -> list[FittedModel | None]:
    """Run ``_fit_one`` over *jobs*, on a thread pool when ``n_jobs != 1``."""
    # Sequential path: avoids joblib overhead for the default n_jobs=1.
    if n_jobs == 1:
        return [_fit_one(*job) for job in jobs]
    return list(
        Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(_fit_one)(*job) for job in jobs
        )
    )


def _check_on_error(on_error: str) -> None:
    if on_error not in _ON_ERROR:
        raise InvalidInputError(
            f"on_error must be one of {list(_ON_ERROR)}, got {on_error!r}."
        )


def fit_all(
    datasets: Iterable[DataFrameLike],
    model_spec: ModelSpec,
    *,
    n_jobs: int | None = None,
    on_error: str = "raise",
    candidate: Hashable | None = None,
) -> list[FittedModel | None]:
    """Fit *model_spec* to every dataset in *datasets*.

    Args:
        datasets: Training datasets, e.g. a bootstrap
            :class:`~resampling_models.resampling.Resamples` sequence.
            Consumed lazily.
        model_spec: Specification fitted to each dataset.
        n_jobs: Worker threads (joblib convention).  ``None`` uses the
            configured default (see :func:`~resampling_models.set_n_jobs`).
        on_error: ``"raise"`` (default) aborts on the first failure;
            ``"skip"`` logs the failure and records ``None``.
        candidate: Identifier attached to any ``FitError`` (e.g. the
            candidate model name in cross-validation).

    Returns:
        One entry per input dataset, in input order.

    Raises:
        FitError: When a fit fails and ``on_error="raise"``.  ``index``
            is the 1-based position of the failing dataset.
        SchemaMismatchError: If the datasets lack a column the spec
            names.
        InvalidInputError: On an unknown *on_error* value.
    """
    _check_on_error(on_error)
    n_jobs = resolve_n_jobs(n_jobs)

    fits = _dispatch(
        (
            (i, data, model_spec, candidate, on_error)
            for i, data in enumerate(datasets, start=1)
        ),
        n_jobs,
    )
    n_failed = sum(f is None for f in fits)
    logger.debug(
        "fit_all: %d fit(s) of %s, %d skipped", len(fits), model_spec, n_failed
    )
    return fits


# ------------------------------------------------------------------ #
# Per-fit summaries
# ------------------------------------------------------------------ #


def extract_coefficients(fit: FittedModel) -> dict[str, float]:
    """Flatten a fit to ``{term label: estimate}``."""
    return {str(k): float(v) for k, v in fit.coefficients().items()}


def _rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def _mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(mean_absolute_error(y_true, y_pred))


ERROR_METRICS = {"rmse": _rmse, "mae": _mae}
"""Held-out error metrics by name; lower is better for all of them."""


def extract_prediction_error(
    fit: FittedModel,
    held_out: DataFrameLike,
    metric: str = "rmse",
) -> float:
    """Prediction error of *fit* on rows it was not trained on.

    Args:
        fit: A fitted model.
        held_out: Rows with the outcome and every predictor column.
            Rows with a missing outcome are ignored.
        metric: ``"rmse"`` (root-mean-squared error, default) or
            ``"mae"`` (mean absolute error).  For logistic fits the
            error is computed on the probability scale.

    Returns:
        The scalar error.

    Raises:
        SchemaMismatchError: If *held_out* lacks the outcome or a
            predictor column, or has an unseen category level.
        InvalidInputError: On an unknown *metric* or when no rows have
            an observed outcome.
    """
    if metric not in ERROR_METRICS:
        raise InvalidInputError(
            f"Unknown metric {metric!r}. Choose from: {sorted(ERROR_METRICS)}"
        )
    held_out = _ensure_pandas_df(held_out, name="held_out")
    outcome = fit.spec.outcome
    if outcome not in held_out.columns:
        raise SchemaMismatchError(
            f"held-out data is missing the outcome column {outcome!r}",
            missing=[outcome],
        )
    y_pred = fit.predict(held_out)
    y_true = held_out[outcome].to_numpy(dtype=float)
    observed = ~np.isnan(y_true)
    if not observed.any():
        raise InvalidInputError("held-out data has no observed outcome values.")
    return ERROR_METRICS[metric](y_true[observed], y_pred[observed])


def score_all(
    fits: Sequence[FittedModel | None],
    held_out: Sequence[DataFrameLike],
    metric: str = "rmse",
    *,
    on_error: str = "raise",
    candidate: Hashable | None = None,
) -> list[float | None]:
    """Held-out error of ``fits[i]`` on ``held_out[i]`` for every *i*.

    A ``None`` fit (skipped earlier) scores ``None``.  Scoring failures
    (e.g. a category level absent from the training half) follow the
    same *on_error* policy as :func:`fit_all`.
    """
    _check_on_error(on_error)
    if metric not in ERROR_METRICS:
        raise InvalidInputError(
            f"Unknown metric {metric!r}. Choose from: {sorted(ERROR_METRICS)}"
        )
    if len(fits) != len(held_out):
        raise InvalidInputError(
            f"got {len(fits)} fit(s) but {len(held_out)} held-out set(s)."
        )
    scores: list[float | None] = []
    for i, (fit, test) in enumerate(zip(fits, held_out), start=1):
        if fit is None:
            scores.append(None)
            continue
        try:
            scores.append(extract_prediction_error(fit, test, metric))
        except (SchemaMismatchError, InvalidInputError) as exc:
            if on_error == "skip":
                logger.warning(
                    "skipping repetition %d (candidate %r): %s", i, candidate, exc
                )
                scores.append(None)
                continue
            raise FitError(
                f"scoring held-out rows failed: {exc}", index=i, candidate=candidate
            ) from exc
    return scores


# ------------------------------------------------------------------ #
# Aggregation
# ------------------------------------------------------------------ #


def aggregate(
    records: Iterable[tuple[int, Mapping[str, float] | None]] | pd.DataFrame,
    *,
    key_name: str = "term",
    value_name: str = "estimate",
) -> pd.DataFrame:
    """Stack per-repetition summaries into one long-format table.

    Args:
        records: ``(index, {key: value})`` pairs in repetition order.
            A ``None`` mapping (a skipped repetition) contributes no
            rows.  An already-aggregated table is accepted and returned
            unchanged (as a copy), which makes the operation
            idempotent.
        key_name: Name of the key column (``"term"`` for coefficients,
            ``"model"`` for cross-validation).
        value_name: Name of the value column.

    Returns:
        DataFrame with columns ``replicate``, *key_name*, *value_name*,
        one row per ``(index, key)`` in input order.

    Raises:
        InvalidInputError: If an index is not a positive integer, or an
            ``(index, key)`` pair occurs twice.
    """
    columns = [SUMMARY_INDEX, key_name, value_name]

    if isinstance(records, pd.DataFrame):
        missing = [c for c in columns if c not in records.columns]
        if missing:
            raise InvalidInputError(
                f"summary table is missing column(s) {missing}; expected {columns}."
            )
        table = records[columns].reset_index(drop=True).copy()
    else:
        rows: list[tuple[int, Any, float]] = []
        for index, mapping in records:
            if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
                raise InvalidInputError(
                    f"'{SUMMARY_INDEX}' values must be positive integers "
                    f"(1-based), got {index!r}."
                )
            if mapping is None:
                continue
            for key, value in mapping.items():
                rows.append((index, key, float(value)))
        table = pd.DataFrame(rows, columns=columns)
        table[SUMMARY_INDEX] = table[SUMMARY_INDEX].astype(np.int64)
        table[value_name] = table[value_name].astype(float)

    if len(table):
        idx = table[SUMMARY_INDEX]
        if not np.issubdtype(idx.dtype, np.integer) or (idx < 1).any():
            raise InvalidInputError(
                f"'{SUMMARY_INDEX}' values must be positive integers (1-based)."
            )
        if table.duplicated(subset=[SUMMARY_INDEX, key_name]).any():
            raise InvalidInputError(
                f"duplicate ({SUMMARY_INDEX}, {key_name}) pairs in summary records."
            )
    return table


def collect_coefficients(fits: Iterable[FittedModel | None]) -> pd.DataFrame:
    """Coefficient summary table (``replicate, term, estimate``)."""
    return aggregate(
        (i, None if fit is None else extract_coefficients(fit))
        for i, fit in enumerate(fits, start=1)
    )


__all__ = [
    "ERROR_METRICS",
    "aggregate",
    "collect_coefficients",
    "extract_coefficients",
    "extract_prediction_error",
    "fit_all",
    "score_all",
]
