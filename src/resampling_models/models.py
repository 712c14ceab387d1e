"""Fitting a :class:`~resampling_models.terms.ModelSpec` to a dataset.

:func:`fit_model` is the single entry point from a data frame to a
fitted model.  It builds the design matrix with patsy, hands it to the
spec's family, and wraps the statsmodels results in a
:class:`FittedModel` that exposes the two capabilities the resampling
loop relies on:

* :meth:`FittedModel.coefficients` — term label → estimate.
* :meth:`FittedModel.predict` — one response-scale prediction per row
  of new data, using the category levels and spline knots memorised on
  the training data.

The module also provides the "tidy" family of flatteners:

* :func:`tidy` — one row per term (estimate, SE, statistic, p-value,
  confidence interval).
* :func:`glance` — one row per model (fit statistics).
* :func:`augment` — one row per observation (fitted value, residual,
  leverage, Cook's distance).
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from patsy import DesignInfo, PatsyError, build_design_matrices, dmatrices

from ._compat import DataFrameLike, _ensure_pandas_df
from .errors import InvalidInputError, SchemaMismatchError
from .families import ModelFamily
from .terms import FORMULA_ENV, ModelSpec

logger = logging.getLogger(__name__)


def _relabel(columns: list[str], labels: dict[str, str]) -> list[str]:
    """Replace patsy factor codes in design column names with labels.

    Longer codes are substituted first so that a bare column name never
    clobbers part of a longer expression that contains it.
    """
    ordered = sorted(labels.items(), key=lambda kv: len(kv[0]), reverse=True)
    renamed = []
    for col in columns:
        for code, label in ordered:
            if code != label and code in col:
                col = col.replace(code, label)
        renamed.append(col)
    return renamed


def _missing_columns(data: pd.DataFrame, required: tuple[str, ...]) -> list[str]:
    present = set(data.columns)
    return [c for c in required if c not in present]


@dataclass(frozen=True)
class FittedModel:
    """A model specification fitted to one dataset.

    Attributes:
        spec: The specification that was fitted.
        results: The statsmodels results object (``OLSResults`` or
            ``GLMResults``).
        design_info: patsy design info for the predictors, used to
            rebuild the design on held-out data.
        data: The training rows actually used (rows with missing values
            in a model column are dropped).
        term_names: Readable design column labels, in design order.
    """

    spec: ModelSpec
    results: Any
    design_info: DesignInfo
    data: pd.DataFrame
    term_names: tuple[str, ...]

    @property
    def family(self) -> ModelFamily:
        return self.spec.family  # type: ignore[return-value]

    @property
    def nobs(self) -> int:
        return int(self.results.nobs)

    def coefficients(self) -> pd.Series:
        """Estimates indexed by term label."""
        coefs = self.family.coefs(self.results)
        coefs.index = list(self.term_names)
        coefs.index.name = "term"
        return coefs

    def design_matrix(self, data: DataFrameLike) -> pd.DataFrame:
        """Rebuild the design matrix for *data* with the training state.

        Raises:
            SchemaMismatchError: If *data* lacks a predictor column, or
                contains a category level (or missing value) that the
                training design cannot encode.
        """
        data = _ensure_pandas_df(data, name="data")
        missing = _missing_columns(data, self.spec.predictor_columns)
        if missing:
            raise SchemaMismatchError(
                f"data is missing column(s) required by the model: {missing}",
                missing=missing,
            )
        try:
            (X,) = build_design_matrices(
                [self.design_info], data, NA_action="raise", return_type="dataframe"
            )
        except PatsyError as exc:
            raise SchemaMismatchError(
                f"data cannot be encoded with the training design: {exc}"
            ) from exc
        return pd.DataFrame(
            X.to_numpy(dtype=float), index=X.index, columns=list(self.term_names)
        )

    def predict(self, data: DataFrameLike) -> np.ndarray:
        """Response-scale predictions for every row of *data*."""
        X = self.design_matrix(data)
        return self.family.predict(self.results, X)


def fit_model(spec: ModelSpec, data: DataFrameLike) -> FittedModel:
    """Fit *spec* to *data*.

    Rows with a missing value in any model column are dropped before
    fitting (the usual regression convention).

    Args:
        spec: Validated model specification.
        data: Training rows.  Accepts pandas or Polars DataFrames.

    Returns:
        A :class:`FittedModel`.

    Raises:
        SchemaMismatchError: If *data* lacks a column named by *spec*.
        InvalidInputError: If the response is unsuitable for the family
            or no complete rows remain.
        numpy.linalg.LinAlgError, RuntimeError: Propagated from the
            family when the fit itself fails.
    """
    data = _ensure_pandas_df(data, name="data")
    missing = _missing_columns(data, spec.columns)
    if missing:
        raise SchemaMismatchError(
            f"data is missing column(s) named in the model: {missing}",
            missing=missing,
        )
    # patsy aligns the design on index labels.
    if not data.index.is_unique:
        data = data.reset_index(drop=True)

    # Boolean outcomes would be expanded to two indicator columns.
    if data[spec.outcome].dtype == bool:
        data = data.assign(**{spec.outcome: data[spec.outcome].astype(int)})

    try:
        y_df, X = dmatrices(
            spec.formula,
            data,
            eval_env=FORMULA_ENV,
            NA_action="drop",
            return_type="dataframe",
        )
    except PatsyError as exc:
        raise InvalidInputError(
            f"could not build the design for {spec.formula!r}: {exc}"
        ) from exc

    if y_df.shape[1] != 1:
        raise InvalidInputError(
            f"outcome {spec.outcome!r} must be numeric (0/1 for logistic), "
            f"got an encoding with columns {list(y_df.columns)}."
        )
    if len(X) == 0:
        raise InvalidInputError("no complete rows remain after dropping missing values.")

    design_info = X.design_info
    y = y_df.iloc[:, 0]
    family = spec.family
    family.validate_y(y.to_numpy())  # type: ignore[union-attr]

    term_names = tuple(_relabel(list(X.columns), spec.term_labels()))
    X = pd.DataFrame(X.to_numpy(dtype=float), index=X.index, columns=list(term_names))
    n_dropped = len(data) - len(X)
    if n_dropped:
        logger.debug("fit_model: dropped %d incomplete row(s)", n_dropped)

    results = family.fit(X, y)  # type: ignore[union-attr]
    return FittedModel(
        spec=spec,
        results=results,
        design_info=design_info,
        data=data.loc[X.index],
        term_names=term_names,
    )


# ------------------------------------------------------------------ #
# Tidy / glance / augment
# ------------------------------------------------------------------ #


def tidy(fit: FittedModel, conf_level: float = 0.95) -> pd.DataFrame:
    """Flatten a fitted model to one row per term.

    Args:
        fit: A fitted model.
        conf_level: Coverage of the Wald confidence interval.

    Returns:
        DataFrame with columns ``term, estimate, std_error, statistic,
        p_value, conf_low, conf_high``.
    """
    if not 0 < conf_level < 1:
        raise InvalidInputError(f"conf_level must be in (0, 1), got {conf_level!r}.")
    res = fit.results
    ci = np.asarray(res.conf_int(alpha=1 - conf_level))
    return pd.DataFrame(
        {
            "term": list(fit.term_names),
            "estimate": np.asarray(res.params, dtype=float),
            "std_error": np.asarray(res.bse, dtype=float),
            "statistic": np.asarray(res.tvalues, dtype=float),
            "p_value": np.asarray(res.pvalues, dtype=float),
            "conf_low": ci[:, 0],
            "conf_high": ci[:, 1],
        }
    )


def glance(fit: FittedModel) -> pd.DataFrame:
    """One-row summary of model fit.

    Gaussian families add ``r_squared``, ``adj_r_squared`` and
    ``sigma``; ``deviance`` is the residual sum of squares for them and
    the binomial deviance for logistic fits.
    """
    res = fit.results
    row: dict[str, Any] = {}
    if fit.family.gaussian:
        row["r_squared"] = float(res.rsquared)
        row["adj_r_squared"] = float(res.rsquared_adj)
        row["sigma"] = float(np.sqrt(res.scale))
        deviance = float(res.ssr)
    else:
        deviance = float(res.deviance)
    row.update(
        {
            "nobs": int(res.nobs),
            "df_model": float(res.df_model),
            "df_resid": float(res.df_resid),
            "loglik": float(res.llf),
            "aic": float(res.aic),
            "bic": float(_bic(res)),
            "deviance": deviance,
        }
    )
    return pd.DataFrame([row])


def _bic(res: Any) -> float:
    # GLMResults.bic is deviance-based by default and warns about it;
    # bic_llf is the likelihood-based value comparable with OLS.
    if hasattr(res, "bic_llf"):
        return float(res.bic_llf)
    return float(res.bic)


def augment(fit: FittedModel, data: DataFrameLike | None = None) -> pd.DataFrame:
    """Add per-observation fit columns to the data.

    With ``data=None`` the training rows are augmented with
    ``.fitted``, ``.resid``, ``.std_resid`` (internally studentized),
    ``.hat`` (leverage) and ``.cooksd``.  For new data only
    ``.fitted`` and, when the outcome column is present, ``.resid``
    are available.

    Residuals are on the response scale (``y − ŷ``; for logistic
    ``y − p̂``).
    """
    if data is not None:
        new = _ensure_pandas_df(data, name="data").copy()
        new[".fitted"] = fit.predict(new)
        if fit.spec.outcome in new.columns:
            new[".resid"] = new[fit.spec.outcome].to_numpy(dtype=float) - new[".fitted"]
        return new

    out = fit.data.copy()
    res = fit.results
    # GLM fitted values are already on the response scale (μ̂).
    fitted = np.asarray(res.fittedvalues, dtype=float)
    y = out[fit.spec.outcome].to_numpy(dtype=float)
    with warnings.catch_warnings():
        # Leverage of exactly 1 gives a 0/0 studentized residual.
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        influence = res.get_influence()
        std_resid = (
            influence.resid_studentized_internal
            if fit.family.gaussian
            else influence.resid_studentized
        )
        out[".fitted"] = fitted
        out[".resid"] = y - fitted
        out[".std_resid"] = np.asarray(std_resid, dtype=float)
        out[".hat"] = np.asarray(influence.hat_matrix_diag, dtype=float)
        out[".cooksd"] = np.asarray(influence.cooks_distance[0], dtype=float)
    return out


__all__ = ["FittedModel", "augment", "fit_model", "glance", "tidy"]
