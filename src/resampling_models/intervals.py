"""Summary statistics over replicate tables.

Bootstrap percentile intervals
------------------------------
Given B bootstrap replicates θ*₁ … θ*_B of a coefficient, the
percentile interval at level 1 − α is

    [ Q(α/2), Q(1 − α/2) ]

where Q is the empirical quantile function of the replicates.  The
bootstrap standard error is the sample standard deviation of the
replicates (``ddof=1``).

Quantile definition
-------------------
Quantiles use linear interpolation between order statistics (Hyndman &
Fan type 7, numpy's ``method="linear"``): for sorted values
x₍₁₎ ≤ … ≤ x₍ₙ₎ the q-quantile is

    h = (n − 1)·q,   Q(q) = x₍⌊h⌋+1₎ + (h − ⌊h⌋)·(x₍⌊h⌋+2₎ − x₍⌊h⌋+1₎)

For the integers 1..100 this gives Q(0.025) = 3.475 and
Q(0.975) = 97.525.

Reference:
    Hyndman, R. J. & Fan, Y. (1996). Sample quantiles in statistical
    packages. *The American Statistician*, 50(4), 361–365.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd

from .errors import InvalidInputError

QUANTILE_METHOD = "linear"


def quantile(values: Sequence[float] | np.ndarray, q: float | Sequence[float]) -> np.ndarray | float:
    """Linear-interpolation quantile(s) of *values*.

    Args:
        values: One-dimensional sample.  NaNs are not allowed.
        q: Probability or sequence of probabilities in ``[0, 1]``.

    Returns:
        A float for scalar *q*, else an array matching *q*.

    Raises:
        InvalidInputError: If *values* is empty or contains NaN, or a
            probability lies outside ``[0, 1]``.
    """
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        raise InvalidInputError("quantile of an empty sample is undefined.")
    if np.isnan(arr).any():
        raise InvalidInputError("quantile sample contains NaN.")
    q_arr = np.asarray(q, dtype=float)
    if ((q_arr < 0) | (q_arr > 1)).any():
        raise InvalidInputError(f"quantile probabilities must be in [0, 1], got {q!r}.")
    out = np.quantile(arr, q_arr, method=QUANTILE_METHOD)
    if q_arr.ndim == 0:
        return float(out)
    return out


def _check_conf_level(conf_level: float) -> float:
    if not 0.0 < conf_level < 1.0:
        raise InvalidInputError(f"conf_level must be in (0, 1), got {conf_level!r}.")
    return float(conf_level)


def _check_columns(table: pd.DataFrame, columns: list[str]) -> None:
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise InvalidInputError(f"replicate table is missing column(s) {missing}.")


def summarize_bootstrap(
    table: pd.DataFrame,
    conf_level: float = 0.95,
    *,
    key_name: str = "term",
    value_name: str = "estimate",
) -> pd.DataFrame:
    """Per-term bootstrap mean, standard error and percentile interval.

    Args:
        table: Long-format replicate table with *key_name* and
            *value_name* columns (see :func:`~resampling_models.aggregate`).
        conf_level: Interval coverage; 0.95 gives the 2.5% and 97.5%
            quantiles.
        key_name: Grouping column.
        value_name: Value column.

    Returns:
        DataFrame with columns *key_name*, ``mean``, ``std_error``,
        ``conf_low``, ``conf_high``, ``n_replicates``, one row per key
        in first-appearance order.  ``std_error`` is NaN for a key with
        a single replicate.
    """
    alpha = 1.0 - _check_conf_level(conf_level)
    _check_columns(table, [key_name, value_name])
    rows = []
    for key, values in table.groupby(key_name, sort=False)[value_name]:
        v = values.to_numpy(dtype=float)
        low, high = quantile(v, [alpha / 2, 1 - alpha / 2])
        rows.append(
            {
                key_name: key,
                "mean": float(v.mean()),
                "std_error": float(v.std(ddof=1)) if v.size > 1 else float("nan"),
                "conf_low": float(low),
                "conf_high": float(high),
                "n_replicates": int(v.size),
            }
        )
    return pd.DataFrame(
        rows,
        columns=[key_name, "mean", "std_error", "conf_low", "conf_high", "n_replicates"],
    )


def summarize_errors(
    table: pd.DataFrame,
    *,
    key_name: str = "model",
    value_name: str = "rmse",
) -> pd.DataFrame:
    """Per-model mean, standard deviation and median of held-out error."""
    _check_columns(table, [key_name, value_name])
    grouped = table.groupby(key_name, sort=False)[value_name]
    out = pd.DataFrame(
        {
            "mean": grouped.mean(),
            "sd": grouped.std(ddof=1),
            "median": grouped.median(),
            "n_replicates": grouped.size(),
        }
    )
    return out.reset_index()


__all__ = ["quantile", "summarize_bootstrap", "summarize_errors"]
