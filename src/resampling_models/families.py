"""Model family protocol and resolution logic.

The ``ModelFamily`` protocol defines the interface that every model
family must implement.  It decouples family-specific behaviour
(response validation, fitting, prediction, coefficient extraction) from
the fit-and-summarize loop in ``engine.py``, which dispatches to the
active family via generic method calls instead of branching on the
family name.

Each concrete family is a ``@dataclass`` that carries no mutable state
and communicates exclusively through the protocol methods.  The
``resolve_family`` helper maps a user-facing string (``"linear"``,
``"logistic"``, ``"additive"``) to the appropriate family instance.

Fitting is delegated to statsmodels on a design matrix that has already
been built (by patsy, see ``models.py``), so families never see
formulas or raw data frames — only an ``(n, p)`` design and an ``(n,)``
response.

Failure policy
~~~~~~~~~~~~~~
Inside a bootstrap or cross-validation loop a silently degenerate fit
is worse than a loud one: a rank-deficient design or a logistic model
with perfectly separated classes produces coefficients that are
arbitrary (pseudoinverse minimum-norm solutions) or infinite.  Families
therefore *raise* on these conditions; the engine wraps the exception
in a :class:`~resampling_models.errors.FitError` carrying the
repetition index.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning as SmConvergenceWarning,
)
from statsmodels.tools.sm_exceptions import (
    PerfectSeparationWarning,
)

from .errors import InvalidInputError

# ------------------------------------------------------------------ #
# ModelFamily protocol
# ------------------------------------------------------------------ #
#
# ``runtime_checkable`` enables isinstance() checks against the
# protocol at runtime, which register_family() uses to reject classes
# that do not implement the interface.


@runtime_checkable
class ModelFamily(Protocol):
    """Interface that every model family must implement.

    Attributes:
        name: Short identifier used in result tables and error messages
            (e.g. ``"linear"``, ``"logistic"``).
        gaussian: Whether the family has Gaussian errors, which enables
            R²-type summaries and the Breusch-Pagan test.
        supports_smooth: Whether ``Smooth`` terms are allowed.
    """

    @property
    def name(self) -> str: ...

    @property
    def gaussian(self) -> bool: ...

    @property
    def supports_smooth(self) -> bool: ...

    def validate_y(self, y: np.ndarray) -> None:
        """Raise ``InvalidInputError`` if *y* is unsuitable for this family.

        Args:
            y: Response vector of shape ``(n,)``.
        """
        ...

    def fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        """Fit the model and return the statsmodels results object.

        Args:
            X: Design matrix of shape ``(n, p)`` including any
                intercept column.
            y: Response vector of shape ``(n,)``.

        Raises:
            numpy.linalg.LinAlgError: If the design is rank-deficient.
            RuntimeError: If the optimiser fails to converge or the
                classes are perfectly separated.
        """
        ...

    def predict(self, results: Any, X: pd.DataFrame) -> np.ndarray:
        """Predictions on the response scale, shape ``(n,)``."""
        ...

    def coefs(self, results: Any) -> pd.Series:
        """Coefficient estimates indexed by design column name."""
        ...


def _check_full_rank(X: pd.DataFrame) -> None:
    """Raise ``LinAlgError`` unless *X* has full column rank."""
    n, p = X.shape
    if p == 0:
        return
    rank = int(np.linalg.matrix_rank(X.to_numpy(dtype=float)))
    if rank < p:
        raise np.linalg.LinAlgError(
            f"design matrix is rank-deficient (rank {rank} < {p} columns, "
            f"{n} rows)"
        )


# ------------------------------------------------------------------ #
# Linear (OLS)
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class LinearFamily:
    """OLS linear regression family.

    Continuous outcomes, Gaussian errors, identity link.  Fitting is
    statsmodels ``OLS``; predictions are ``Xβ̂``.
    """

    @property
    def name(self) -> str:
        return "linear"

    @property
    def gaussian(self) -> bool:
        return True

    @property
    def supports_smooth(self) -> bool:
        return False

    def validate_y(self, y: np.ndarray) -> None:
        """Reject non-numeric Y and constant Y.

        A constant outcome leaves zero residual variance, so every
        standard error would be NaN.
        """
        y = np.asarray(y)
        if not np.issubdtype(y.dtype, np.number):
            msg = f"{type(self).__name__} requires numeric Y values."
            raise InvalidInputError(msg)
        if y.size and np.ptp(y) == 0:
            msg = f"{type(self).__name__} requires non-constant Y (zero variance)."
            raise InvalidInputError(msg)

    def fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        """Fit by ordinary least squares after a full-rank check."""
        _check_full_rank(X)
        with warnings.catch_warnings():
            # Near-singular X'X can trigger floating-point warnings even
            # when the rank check passes; the estimates are still the
            # least-squares solution.
            warnings.filterwarnings("ignore", category=RuntimeWarning)
            return sm.OLS(y, X).fit()

    def predict(self, results: Any, X: pd.DataFrame) -> np.ndarray:
        """Return ``ŷ = Xβ̂``."""
        return np.asarray(results.predict(X), dtype=float).ravel()

    def coefs(self, results: Any) -> pd.Series:
        return pd.Series(results.params, dtype=float)


# ------------------------------------------------------------------ #
# Additive (spline regression)
# ------------------------------------------------------------------ #
#
# An additive model replaces some linear terms with smooth functions
# f_j(x_j).  Each smooth is represented by a centred cubic regression
# spline basis (built by patsy from a ``Smooth`` term), so the fit
# itself is still least squares on an expanded design matrix.  The
# basis dimension ``df`` fixes the flexibility: small df gives a
# gentle curve, large df a wiggly one.  No smoothing penalty is
# estimated; ``df`` is the only flexibility setting.


@dataclass(frozen=True)
class AdditiveFamily(LinearFamily):
    """Gaussian additive model fitted on a regression-spline basis."""

    @property
    def name(self) -> str:
        return "additive"

    @property
    def supports_smooth(self) -> bool:
        return True


# ------------------------------------------------------------------ #
# Logistic (binomial GLM)
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class LogisticFamily:
    """Logistic regression family for binary {0, 1} outcomes.

    Fitting is statsmodels ``GLM`` with a ``Binomial`` family (IRLS).
    Predictions are probabilities ``P̂(Y=1|X)``.
    """

    @property
    def name(self) -> str:
        return "logistic"

    @property
    def gaussian(self) -> bool:
        return False

    @property
    def supports_smooth(self) -> bool:
        return False

    def validate_y(self, y: np.ndarray) -> None:
        """Check that *y* is binary with values in {0, 1}."""
        unique = np.unique(np.asarray(y))
        if not (len(unique) == 2 and np.all(np.isin(unique, [0, 1]))):
            msg = (
                "LogisticFamily requires binary Y with exactly two "
                "unique values in {0, 1}."
            )
            raise InvalidInputError(msg)

    def fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        """Fit by IRLS; separation and non-convergence are errors.

        statsmodels reports both conditions as warnings and returns
        coefficients that drift towards ±∞.  They are promoted to
        exceptions here so that a replicate with separated classes
        cannot quietly contribute an absurd estimate.
        """
        _check_full_rank(X)
        model = sm.GLM(y, X, family=sm.families.Binomial())
        with warnings.catch_warnings():
            warnings.simplefilter("error", PerfectSeparationWarning)
            warnings.simplefilter("error", SmConvergenceWarning)
            try:
                results = model.fit()
            except (PerfectSeparationWarning, SmConvergenceWarning) as exc:
                raise RuntimeError(f"logistic fit failed: {exc}") from exc
        if not getattr(results, "converged", True):
            raise RuntimeError("logistic fit did not converge")
        # IRLS can stop on a flat deviance before the warning fires.
        if np.allclose(np.asarray(results.fittedvalues), np.asarray(y), atol=1e-6):
            raise RuntimeError(
                "logistic fit failed: perfect separation, fitted probabilities "
                "reproduce the outcome exactly"
            )
        return results

    def predict(self, results: Any, X: pd.DataFrame) -> np.ndarray:
        """Return predicted probabilities ``P̂(Y=1|X)``."""
        return np.asarray(results.predict(X), dtype=float).ravel()

    def coefs(self, results: Any) -> pd.Series:
        return pd.Series(results.params, dtype=float)


# ------------------------------------------------------------------ #
# Family resolution
# ------------------------------------------------------------------ #
#
# Name -> family class.  resolve_family() instantiates on every call.

_FAMILIES: dict[str, type] = {}
"""Registry mapping family name strings to concrete ModelFamily classes."""


def register_family(name: str, cls: type) -> None:
    """Register a concrete ``ModelFamily`` class under *name*.

    Args:
        name: Lookup key (e.g. ``"linear"``, ``"logistic"``).
        cls: A class implementing the ``ModelFamily`` protocol.

    Raises:
        TypeError: If *cls* does not satisfy the ``ModelFamily``
            protocol.
    """
    # runtime_checkable protocols with non-method members do not
    # support issubclass(); use isinstance() on a sentinel instance.
    try:
        instance = cls()
    except Exception:  # noqa: BLE001
        msg = f"{cls!r} could not be instantiated for protocol check."
        raise TypeError(msg) from None
    if not isinstance(instance, ModelFamily):
        msg = f"{cls!r} does not implement the ModelFamily protocol."
        raise TypeError(msg)
    _FAMILIES[name] = cls


def resolve_family(family: str | ModelFamily) -> ModelFamily:
    """Resolve a family string or instance to a concrete ``ModelFamily``.

    When *family* is already a ``ModelFamily`` instance, it is returned
    as-is (pass-through).

    Args:
        family: Family identifier string **or** a ``ModelFamily``
            instance.

    Returns:
        A ``ModelFamily`` instance.

    Raises:
        ValueError: If *family* is a string that is not found in the
            registry.
    """
    if isinstance(family, ModelFamily) and not isinstance(family, str):
        return family
    if not isinstance(family, str) or family not in _FAMILIES:
        available = ", ".join(sorted(_FAMILIES)) or "(none registered)"
        msg = f"Unknown family {family!r}.  Available families: {available}."
        raise ValueError(msg)
    instance: ModelFamily = _FAMILIES[family]()
    return instance


# ------------------------------------------------------------------ #
# Register built-in families
# ------------------------------------------------------------------ #

register_family("linear", LinearFamily)
register_family("additive", AdditiveFamily)
register_family("logistic", LogisticFamily)


__all__ = [
    "AdditiveFamily",
    "LinearFamily",
    "LogisticFamily",
    "ModelFamily",
    "register_family",
    "resolve_family",
]
