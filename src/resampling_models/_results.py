"""Typed result objects for resampling runs.

Frozen dataclasses that provide:

* **Attribute access** — ``result.summary``, ``result.conf_level``, etc.
* **Dict-like access** — ``result["summary"]``, ``result.get("key")``,
  ``"key" in result`` for consumers that prefer bracket syntax.
* **Serialisation** — ``.to_dict()`` returns a plain ``dict[str, Any]``
  with DataFrames flattened to lists of records and all NumPy types
  converted to native Python.

Three concrete result types:

* :class:`BootstrapResult` — replicate coefficient table plus per-term
  percentile intervals.
* :class:`CrossValidationResult` — replicate held-out error table plus
  per-model summary.
* :class:`LikelihoodRatioResult` — nested-model comparison.

All are frozen to communicate that a result is a snapshot of a
completed run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .models import FittedModel
    from .terms import ModelSpec

# ------------------------------------------------------------------ #
# Serialisation helpers
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return type(obj)(_numpy_to_python(item) for item in obj)
    return obj


def _records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return frame.to_dict(orient="records")


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Subclasses may override ``_SERIALIZERS`` to register conversion
    functions for non-primitive fields, and ``_EXCLUDE_FROM_DICT`` to
    leave heavy objects (fitted models) out of :meth:`to_dict`.
    """

    _SERIALIZERS: ClassVar[dict[str, Any]] = {}

    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset()

    def __getitem__(self, key: str) -> Any:
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return hasattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain, JSON-serialisable dictionary."""
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            if f.name in self._EXCLUDE_FROM_DICT:
                continue
            val = getattr(self, f.name)
            if f.name in self._SERIALIZERS:
                val = self._SERIALIZERS[f.name](val)
            result[f.name] = _numpy_to_python(val)
        return result


# ------------------------------------------------------------------ #
# BootstrapResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class BootstrapResult(_DictAccessMixin):
    """Result of :func:`~resampling_models.bootstrap_coefficients`."""

    _SERIALIZERS: ClassVar[dict[str, Any]] = {
        "spec": str,
        "replicates": _records,
        "summary": _records,
    }
    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset({"observed_fit"})

    spec: ModelSpec
    """The model fitted to every bootstrap sample."""

    replicates: pd.DataFrame
    """Long table ``replicate, term, estimate``, one row per
    (bootstrap sample, term)."""

    summary: pd.DataFrame
    """Per-term ``observed``, ``mean``, ``std_error``, ``conf_low``,
    ``conf_high`` and ``n_replicates``."""

    conf_level: float
    """Coverage of the percentile intervals."""

    n_bootstrap: int
    """Number of bootstrap samples requested."""

    n_failed: int = 0
    """Samples whose fit failed (only non-zero with ``on_error="skip"``)."""

    observed_fit: FittedModel | None = field(default=None, repr=False, compare=False)
    """Fit on the full dataset.  Excluded from ``to_dict()``."""

    def std_errors(self) -> pd.Series:
        """Bootstrap standard error per term."""
        return self.summary.set_index("term")["std_error"]

    def conf_int(self) -> pd.DataFrame:
        """Percentile interval per term (``conf_low``, ``conf_high``)."""
        return self.summary.set_index("term")[["conf_low", "conf_high"]]


# ------------------------------------------------------------------ #
# CrossValidationResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class CrossValidationResult(_DictAccessMixin):
    """Result of :func:`~resampling_models.cross_validate`."""

    _SERIALIZERS: ClassVar[dict[str, Any]] = {
        "candidates": lambda c: {name: str(spec) for name, spec in c.items()},
        "errors": _records,
        "summary": _records,
    }

    candidates: dict[str, ModelSpec]
    """Candidate models by name, in comparison order."""

    errors: pd.DataFrame
    """Long table ``replicate, model, <metric>``, one row per
    (split, candidate)."""

    summary: pd.DataFrame
    """Per-model ``mean``, ``sd``, ``median`` and ``n_replicates`` of
    the held-out error."""

    metric: str
    """Error metric name (``"rmse"`` or ``"mae"``)."""

    n_repetitions: int
    """Number of random train/test splits."""

    train_fraction: float
    """Fraction of rows used for training in each split."""

    @property
    def best_model(self) -> str:
        """Candidate with the lowest mean held-out error."""
        ranked = self.summary.sort_values("mean", kind="stable")
        return str(ranked["model"].iloc[0])


# ------------------------------------------------------------------ #
# LikelihoodRatioResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class LikelihoodRatioResult(_DictAccessMixin):
    """Result of :func:`~resampling_models.likelihood_ratio_test`."""

    statistic: float
    """``2 · (ℓ_full − ℓ_reduced)``."""

    df: int
    """Difference in the number of estimated coefficients."""

    p_value: float
    """Upper-tail χ²(df) probability of the statistic."""

    loglik_reduced: float
    loglik_full: float

    reduced: str
    """Formula of the reduced model."""

    full: str
    """Formula of the full model."""


__all__ = ["BootstrapResult", "CrossValidationResult", "LikelihoodRatioResult"]
