"""Exception taxonomy for resampling and model fitting.

Three failure classes cover the whole pipeline:

* :class:`InvalidInputError` — malformed resampling parameters or model
  specifications (empty dataset, out-of-range fraction, unknown term
  column).  Raised immediately; the caller must fix the configuration.
* :class:`FitError` — the underlying model fit failed for one
  repetition (rank-deficient design, perfect separation,
  non-convergence).  Carries the 1-based repetition ``index`` and the
  ``candidate`` identifier so the failing case can be re-drawn with the
  same seed.  The original exception is chained as ``__cause__``.
* :class:`SchemaMismatchError` — held-out data lacks a column (or a
  categorical level) that the fitted model requires.

Both :class:`InvalidInputError` and :class:`SchemaMismatchError`
subclass :class:`ValueError` so callers that already catch
``ValueError`` keep working.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence


class ResamplingError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInputError(ResamplingError, ValueError):
    """Resampling parameters or model specification are malformed."""


class FitError(ResamplingError, RuntimeError):
    """A model fit failed inside a batch of repetitions.

    Attributes:
        index: 1-based repetition index of the failing fit, or ``None``
            for a standalone fit.
        candidate: Identifier of the candidate model or group key, or
            ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        candidate: Hashable | None = None,
    ) -> None:
        self.index = index
        self.candidate = candidate
        context = []
        if index is not None:
            context.append(f"repetition {index}")
        if candidate is not None:
            context.append(f"candidate {candidate!r}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class SchemaMismatchError(ResamplingError, ValueError):
    """Held-out data does not match the schema the model was fit on.

    Attributes:
        missing: Column names required by the model but absent from the
            data (empty when the mismatch is an unseen category level).
    """

    def __init__(self, message: str, *, missing: Sequence[str] = ()) -> None:
        self.missing = tuple(missing)
        super().__init__(message)


__all__ = [
    "FitError",
    "InvalidInputError",
    "ResamplingError",
    "SchemaMismatchError",
]
