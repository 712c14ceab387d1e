"""Declarative model specifications.

A :class:`ModelSpec` describes *what* to fit — an outcome column, a list
of predictor terms, a model family and whether to estimate an
intercept — without committing to *how* the design matrix is built.
Terms are a small closed set of variants:

==========================  ============================================
Term                        Design-matrix contribution
==========================  ============================================
``Linear(col)``             ``col`` as-is (numeric) or treatment-coded
                            dummies (categorical), optionally with an
                            explicit reference level.
``Interaction(a, b)``       Element-wise product of the encodings of
                            ``a`` and ``b`` (``a:b``).
``Smooth(col, df, basis)``  Penalty-free cubic regression spline basis
                            with ``df`` columns, centred so that it is
                            identifiable alongside the intercept.
``Changepoint(col, t)``     Hinge ``max(col − t, 0)``; together with
                            ``Linear(col)`` it gives a piecewise-linear
                            fit with a kink at ``t``.
==========================  ============================================

Every term is validated when it is constructed, and the spec as a whole
is validated when the ``ModelSpec`` is constructed, so a typo in a
column name or an impossible basis size is reported before any
resampling starts rather than on the first of a thousand fits.

Internally the term list is rendered to a patsy formula.  patsy owns
the stateful parts of design construction — category levels and spline
knots are memorised on the training data and re-applied verbatim to
held-out data — which is exactly the behaviour cross-validation needs.
The formula is generated, never parsed from user text.
"""

from __future__ import annotations

import keyword
import math
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

import numpy as np
from patsy import EvalEnvironment, EvalFactor

from .errors import InvalidInputError

if TYPE_CHECKING:
    from .families import ModelFamily

# Names that the generated formulas call as functions.  A data column
# with one of these names would shadow the function during evaluation.
_RESERVED_NAMES = frozenset({"C", "I", "Q", "Treatment", "cc", "cr", "hinge"})

_SMOOTH_BASES = frozenset({"cr", "cc"})


def hinge(x: np.ndarray, threshold: float) -> np.ndarray:
    """Return ``max(x − threshold, 0)`` element-wise.

    Stateless, so patsy applies it identically to training and
    held-out rows.
    """
    return np.maximum(np.asarray(x, dtype=float) - threshold, 0.0)


# Namespace visible to generated formulas.  patsy stores it on the
# design info, so held-out data is evaluated in the same environment.
FORMULA_ENV = EvalEnvironment([{"hinge": hinge}])


def _check_column(name: object, role: str) -> str:
    if not isinstance(name, str) or not name:
        raise InvalidInputError(f"{role} must be a non-empty string, got {name!r}.")
    if not name.isidentifier() or keyword.iskeyword(name):
        raise InvalidInputError(
            f"{role} {name!r} is not a valid identifier; rename the column "
            f"(e.g. df.rename(columns=...)) before building a ModelSpec."
        )
    if name in _RESERVED_NAMES:
        raise InvalidInputError(
            f"{role} {name!r} collides with a formula helper name; rename "
            f"the column."
        )
    return name


def _normalise(code: str) -> str:
    """patsy's canonical spelling of a factor expression."""
    return EvalFactor(code).code


# ------------------------------------------------------------------ #
# Term variants
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class Linear:
    """A main effect.

    Attributes:
        column: Predictor column name.
        reference: Reference level for a categorical column.  ``None``
            uses the first level in sorted order.
    """

    column: str
    reference: str | int | float | None = None

    def __post_init__(self) -> None:
        _check_column(self.column, "Linear column")

    @property
    def columns(self) -> tuple[str, ...]:
        return (self.column,)

    def factor_codes(self) -> dict[str, str]:
        if self.reference is None:
            return {self.column: self.column}
        code = f"C({self.column}, Treatment(reference={self.reference!r}))"
        return {_normalise(code): self.column}

    def render(self) -> str:
        if self.reference is None:
            return self.column
        return f"C({self.column}, Treatment(reference={self.reference!r}))"


@dataclass(frozen=True)
class Interaction:
    """Product of two main-effect encodings (``left:right``)."""

    left: str
    right: str

    def __post_init__(self) -> None:
        _check_column(self.left, "Interaction left column")
        _check_column(self.right, "Interaction right column")
        if self.left == self.right:
            raise InvalidInputError(
                f"Interaction of {self.left!r} with itself is not an "
                f"interaction; use a Smooth term for curvature."
            )

    @property
    def columns(self) -> tuple[str, ...]:
        return (self.left, self.right)

    def factor_codes(self) -> dict[str, str]:
        return {self.left: self.left, self.right: self.right}

    def render(self) -> str:
        return f"{self.left}:{self.right}"


@dataclass(frozen=True)
class Smooth:
    """Cubic regression spline of one numeric column.

    Attributes:
        column: Predictor column name.
        df: Number of design columns the smooth contributes (after
            centring).  Larger values give a more flexible (and more
            variable) curve.
        basis: ``"cr"`` (natural cubic regression spline) or ``"cc"``
            (cyclic cubic spline, for a periodic predictor such as hour
            of day; its ends join smoothly).
    """

    column: str
    df: int = 4
    basis: str = "cr"

    def __post_init__(self) -> None:
        _check_column(self.column, "Smooth column")
        if isinstance(self.df, bool) or not isinstance(self.df, int) or self.df < 3:
            raise InvalidInputError(
                f"Smooth df must be an integer >= 3, got {self.df!r}."
            )
        if self.basis not in _SMOOTH_BASES:
            raise InvalidInputError(
                f"Unknown smooth basis {self.basis!r}. "
                f"Choose from: {sorted(_SMOOTH_BASES)}"
            )

    @property
    def columns(self) -> tuple[str, ...]:
        return (self.column,)

    def factor_codes(self) -> dict[str, str]:
        return {_normalise(self.render()): f"s({self.column})"}

    def render(self) -> str:
        return f"{self.basis}({self.column}, df={self.df}, constraints='center')"


@dataclass(frozen=True)
class Changepoint:
    """Hinge term ``max(column − threshold, 0)``."""

    column: str
    threshold: float

    def __post_init__(self) -> None:
        _check_column(self.column, "Changepoint column")
        try:
            value = float(self.threshold)
        except (TypeError, ValueError):
            raise InvalidInputError(
                f"Changepoint threshold must be a number, got {self.threshold!r}."
            ) from None
        if not math.isfinite(value):
            raise InvalidInputError(
                f"Changepoint threshold must be finite, got {self.threshold!r}."
            )
        object.__setattr__(self, "threshold", value)

    @property
    def columns(self) -> tuple[str, ...]:
        return (self.column,)

    def factor_codes(self) -> dict[str, str]:
        code = _normalise(self.render())
        return {code: code}

    def render(self) -> str:
        return f"hinge({self.column}, {self.threshold!r})"


Term = Union[Linear, Interaction, Smooth, Changepoint]

_TERM_TYPES = (Linear, Interaction, Smooth, Changepoint)


# ------------------------------------------------------------------ #
# ModelSpec
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class ModelSpec:
    """Outcome, terms, family and intercept of a model to fit.

    Attributes:
        outcome: Response column name.
        terms: Predictor terms in the order they should appear in the
            formula.  A list is accepted and stored as a tuple.
        family: Registered family name (``"linear"``, ``"logistic"``,
            ``"additive"``) or a ``ModelFamily`` instance.
        intercept: Whether to estimate an intercept.

    Raises:
        InvalidInputError: On any invalid term, duplicate term, unknown
            family, or a smooth term in a family that cannot fit one.
    """

    outcome: str
    terms: tuple[Term, ...] = field(default_factory=tuple)
    family: str | ModelFamily = "linear"
    intercept: bool = True

    def __post_init__(self) -> None:
        from .families import resolve_family

        _check_column(self.outcome, "Outcome")
        terms = tuple(self.terms)
        for term in terms:
            if not isinstance(term, _TERM_TYPES):
                raise InvalidInputError(
                    f"Unsupported term {term!r}; use Linear, Interaction, "
                    f"Smooth or Changepoint."
                )
            if self.outcome in term.columns:
                raise InvalidInputError(
                    f"Outcome {self.outcome!r} cannot also be a predictor."
                )
        if len(set(terms)) != len(terms):
            raise InvalidInputError(f"Duplicate terms in {terms!r}.")
        if not terms and not self.intercept:
            raise InvalidInputError("A model needs at least one term or an intercept.")
        object.__setattr__(self, "terms", terms)

        try:
            family = resolve_family(self.family)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        object.__setattr__(self, "family", family)

        has_smooth = any(isinstance(t, Smooth) for t in terms)
        if has_smooth and not family.supports_smooth:
            raise InvalidInputError(
                f"Smooth terms require an additive family; family "
                f"{family.name!r} fits parametric terms only."
            )
        if family.supports_smooth and not has_smooth:
            warnings.warn(
                f"family={family.name!r} without Smooth terms is an ordinary "
                f"parametric fit.",
                UserWarning,
                stacklevel=3,
            )

    # ---- Derived views ---------------------------------------------

    @property
    def family_name(self) -> str:
        return self.family.name  # type: ignore[union-attr]

    @property
    def predictor_columns(self) -> tuple[str, ...]:
        """Distinct predictor columns, in first-use order."""
        seen: dict[str, None] = {}
        for term in self.terms:
            for col in term.columns:
                seen.setdefault(col, None)
        return tuple(seen)

    @property
    def columns(self) -> tuple[str, ...]:
        """Outcome followed by the predictor columns."""
        return (self.outcome, *self.predictor_columns)

    @property
    def formula(self) -> str:
        """The patsy formula this spec renders to."""
        rhs = [t.render() for t in self.terms]
        if not self.intercept:
            rhs.append("0")
        elif not rhs:
            rhs.append("1")
        return f"{self.outcome} ~ " + " + ".join(rhs)

    def term_labels(self) -> dict[str, str]:
        """Map patsy factor code → readable label used in tidy output."""
        labels: dict[str, str] = {}
        for term in self.terms:
            labels.update(term.factor_codes())
        return labels

    def is_nested_in(self, other: ModelSpec) -> bool:
        """``True`` when this spec's terms are a strict subset of *other*'s."""
        return (
            self.outcome == other.outcome
            and self.family_name == other.family_name
            and self.intercept == other.intercept
            and set(self.terms) < set(other.terms)
        )

    def __str__(self) -> str:
        return f"{self.formula} [{self.family_name}]"


__all__ = [
    "Changepoint",
    "Interaction",
    "Linear",
    "ModelSpec",
    "Smooth",
    "Term",
    "hinge",
]
