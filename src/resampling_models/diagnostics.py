"""Residual diagnostics for a fitted model.

Resampling answers "how variable is this estimate?" but a fitted
model should still be checked against its own assumptions before the
answer is trusted:

* **Heteroscedasticity** — :func:`compute_breusch_pagan` regresses the
  squared residuals on the design and tests whether they are
  explained by it.  A significant result means the classical OLS
  standard errors (which assume one σ²) are unreliable; the bootstrap
  SE does not make that assumption.

* **Influential observations** — :func:`compute_cooks_distance` flags
  rows whose removal would move the coefficients substantially.  A
  handful of such rows can dominate both the point estimate and its
  bootstrap distribution.

* **Residual shape** — :func:`residual_summary` reports the moments
  of the residuals and the number of large standardized residuals.
"""

from __future__ import annotations

import warnings

import numpy as np
from scipy import stats
from statsmodels.stats.diagnostic import het_breuschpagan

from .errors import InvalidInputError
from .models import FittedModel


def compute_breusch_pagan(fit: FittedModel) -> dict:
    """Run the Breusch-Pagan test for heteroscedasticity.

    Tests H₀: the error variances are all equal (homoscedasticity).

    Args:
        fit: A fitted Gaussian-family model with an intercept.

    Returns:
        Dictionary with ``lm_stat``, ``lm_p_value``, ``f_stat``,
        ``f_p_value``, and a ``warning`` string (empty if no issue).

    Raises:
        InvalidInputError: For non-Gaussian families, or a model
            without an intercept (the auxiliary regression needs one).
    """
    if not fit.family.gaussian:
        raise InvalidInputError(
            f"Breusch-Pagan applies to Gaussian families, not {fit.family.name!r}."
        )
    if not fit.spec.intercept:
        raise InvalidInputError("Breusch-Pagan requires a model with an intercept.")
    if len(fit.term_names) < 2:
        raise InvalidInputError("Breusch-Pagan requires at least one predictor term.")

    res = fit.results
    # Two versions are returned:
    #   LM: n · R²_aux ~ χ²(p − 1)
    #   F:  the auxiliary regression's overall F test
    lm_stat, lm_p, f_stat, f_p = het_breuschpagan(
        np.asarray(res.resid), np.asarray(res.model.exog)
    )
    warning = ""
    if lm_p < 0.05:
        warning = (
            f"Breusch-Pagan p = {lm_p:.4f}: residual variance depends on the "
            f"predictors; prefer bootstrap standard errors."
        )
    return {
        "lm_stat": float(lm_stat),
        "lm_p_value": float(lm_p),
        "f_stat": float(f_stat),
        "f_p_value": float(f_p),
        "warning": warning,
    }


def compute_cooks_distance(fit: FittedModel) -> dict:
    """Compute Cook's distance and flag influential observations.

    Uses the statsmodels influence API (``OLSInfluence`` or
    ``GLMInfluence``):

        D_i = (r*²_i · h_i) / (p · (1 − h_i))

    with r*_i the internally studentized residual and h_i the leverage.
    Observations with D_i > 4/n are flagged.

    Returns:
        Dictionary with ``cooks_d`` (array), ``n_influential``,
        ``threshold`` (4/n), ``influential_indices`` (row positions in
        ``fit.data``), ``influential_labels`` (index labels) and a
        ``warning`` string.
    """
    n = fit.nobs
    threshold = 4.0 / n
    with warnings.catch_warnings():
        # h_i = 1 makes D_i a 0/0; it is reported as NaN.
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        cooks_d = np.asarray(fit.results.get_influence().cooks_distance[0], dtype=float)

    influential_mask = np.nan_to_num(cooks_d, nan=0.0) > threshold
    positions = np.flatnonzero(influential_mask)
    n_influential = int(positions.size)

    warning = ""
    if n_influential > 0:
        warning = (
            f"{n_influential} observation(s) with Cook's D > {threshold:.4f} "
            f"(4/n); estimates may be driven by influential points."
        )
    return {
        "cooks_d": cooks_d,
        "n_influential": n_influential,
        "threshold": threshold,
        "influential_indices": [int(p) for p in positions],
        "influential_labels": list(fit.data.index[positions]),
        "warning": warning,
    }


def residual_summary(fit: FittedModel) -> dict:
    """Moments of the residuals and count of large standardized residuals.

    Residuals are response-scale (``y − ŷ``) for Gaussian families and
    deviance residuals for the logistic family.  Standardized residuals
    beyond ±2 occur about 5% of the time under normal errors.
    """
    res = fit.results
    if fit.family.gaussian:
        resid = np.asarray(res.resid, dtype=float)
    else:
        resid = np.asarray(res.resid_deviance, dtype=float)
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        influence = res.get_influence()
        std_resid = np.asarray(
            influence.resid_studentized_internal
            if fit.family.gaussian
            else influence.resid_studentized,
            dtype=float,
        )
    n_large = int(np.sum(np.abs(np.nan_to_num(std_resid, nan=0.0)) > 2.0))
    return {
        "n": int(resid.size),
        "mean": float(resid.mean()),
        "sd": float(resid.std(ddof=1)) if resid.size > 1 else float("nan"),
        "skewness": float(stats.skew(resid)),
        "excess_kurtosis": float(stats.kurtosis(resid)),
        "n_large_std_resid": n_large,
        "fraction_large_std_resid": n_large / resid.size,
    }


__all__ = ["compute_breusch_pagan", "compute_cooks_distance", "residual_summary"]
