"""DataFrame normalisation at the public boundary.

Every public function takes a dataset as pandas or, when Polars is
installed, as a ``polars.DataFrame`` / ``polars.LazyFrame``.  The
dataset is turned into a pandas frame once, on entry, because
resampling selects rows by position (``iloc``) and patsy builds
design matrices from pandas columns.

Polars frames are converted with ``to_pandas()``, which goes through
pyarrow; both live in the ``polars`` extra.  Polars ``Categorical`` and
``Enum`` columns arrive as pandas ``category`` columns, so a
categorical predictor keeps its levels across the conversion.

Column labels must be unique.  With a duplicated label, ``data[col]``
returns a frame instead of a column and a model term would silently
refer to two different variables.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import pandas as pd

from .errors import InvalidInputError

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _from_polars(obj: object) -> pd.DataFrame | None:
    if not _HAS_POLARS:
        return None
    if isinstance(obj, pl.LazyFrame):
        obj = obj.collect()
    if isinstance(obj, pl.DataFrame):
        return obj.to_pandas()
    return None


def _ensure_pandas_df(obj: DataFrameLike, *, name: str = "dataset") -> pd.DataFrame:
    """Return *obj* as a pandas DataFrame with unique column labels.

    A pandas frame is returned as-is (not copied); callers that modify
    it must copy first.

    Args:
        obj: pandas DataFrame, Polars DataFrame or Polars LazyFrame.
        name: Argument name used in error messages (``"dataset"``,
            ``"data"``, ``"held_out"``).

    Raises:
        TypeError: If *obj* is not a supported frame type.
        InvalidInputError: If a column label occurs more than once.
    """
    if isinstance(obj, pd.DataFrame):
        frame = obj
    else:
        frame = _from_polars(obj)
        if frame is None:
            accepted = "a pandas DataFrame"
            if _HAS_POLARS:
                accepted += " or Polars DataFrame/LazyFrame"
            raise TypeError(f"'{name}' must be {accepted}, got {type(obj).__name__}.")

    if not frame.columns.is_unique:
        dupes = sorted({str(c) for c in frame.columns[frame.columns.duplicated()]})
        raise InvalidInputError(f"'{name}' has duplicate column labels: {dupes}")
    return frame
