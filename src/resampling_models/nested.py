"""Grouped ("nested data") modeling.

Split a dataset by one or more key columns, fit the same model to each
group, and stack the per-group tidy / glance tables.  Groups are
explicit ordered records, not a frame-of-frames:

    >>> groups = nest(df, "region")
    >>> groups[0].key
    {'region': 'east'}
    >>> fits = fit_by_group(df, "region", ModelSpec("y", [Linear("x")]))
    >>> tidy_groups(fits)            # region, term, estimate, ...

Group order is the sorted order of the key values.  Rows with a missing
key value are not assigned to any group.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from ._compat import DataFrameLike, _ensure_pandas_df
from ._config import resolve_n_jobs
from .engine import _check_on_error, _dispatch
from .errors import InvalidInputError, SchemaMismatchError
from .models import FittedModel, glance, tidy
from .terms import ModelSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupData:
    """Rows of one group.

    Attributes:
        key: Key column → value for this group.
        data: The group's rows without the key columns, with their
            source index labels.
    """

    key: dict[str, Any]
    data: pd.DataFrame


@dataclass(frozen=True)
class GroupFit:
    """A model fitted to one group."""

    key: dict[str, Any]
    fit: FittedModel


def _as_keys(by: str | Sequence[str]) -> list[str]:
    keys = [by] if isinstance(by, str) else list(by)
    if not keys or not all(isinstance(k, str) and k for k in keys):
        raise InvalidInputError(f"by must be a column name or list of names, got {by!r}.")
    if len(set(keys)) != len(keys):
        raise InvalidInputError(f"duplicate key columns in {keys!r}.")
    return keys


def nest(dataset: DataFrameLike, by: str | Sequence[str]) -> list[GroupData]:
    """Split *dataset* into one record per distinct value of *by*.

    Raises:
        SchemaMismatchError: If a key column is missing.
        InvalidInputError: If *by* is empty or the dataset has no
            complete key values.
    """
    dataset = _ensure_pandas_df(dataset)
    keys = _as_keys(by)
    missing = [k for k in keys if k not in dataset.columns]
    if missing:
        raise SchemaMismatchError(f"dataset is missing key column(s) {missing}", missing=missing)

    groups = []
    for values, rows in dataset.groupby(keys, sort=True, dropna=True):
        # groupby yields a tuple key when given a list of columns.
        if not isinstance(values, tuple):
            values = (values,)
        key = dict(zip(keys, values))
        groups.append(GroupData(key=key, data=rows.drop(columns=keys)))

    n_unassigned = len(dataset) - sum(len(g.data) for g in groups)
    if n_unassigned:
        logger.debug("nest: %d row(s) with a missing key were not grouped", n_unassigned)
    if not groups:
        raise InvalidInputError(f"dataset has no rows with complete {keys} values.")
    return groups


def _key_label(key: dict[str, Any]) -> str:
    return ", ".join(f"{k}={v!r}" for k, v in key.items())


def fit_by_group(
    dataset: DataFrameLike,
    by: str | Sequence[str],
    spec: ModelSpec,
    *,
    n_jobs: int | None = None,
    on_error: str = "raise",
) -> list[GroupFit]:
    """Fit *spec* separately to each group of *dataset*.

    Args:
        dataset: Source rows.
        by: Key column(s).  They must not appear in *spec*.
        spec: Model fitted within every group.
        n_jobs: Worker threads.
        on_error: ``"raise"`` aborts on the first failing group with a
            ``FitError`` whose ``candidate`` is the group key; ``"skip"``
            leaves failed groups out of the result.

    Returns:
        One :class:`GroupFit` per successfully fitted group, in group
        order.
    """
    _check_on_error(on_error)
    keys = _as_keys(by)
    clash = sorted(set(keys) & set(spec.columns))
    if clash:
        raise InvalidInputError(
            f"key column(s) {clash} are constant within a group and cannot "
            f"appear in the model."
        )
    groups = nest(dataset, keys)
    fits = _dispatch(
        (
            (i, g.data, spec, _key_label(g.key), on_error)
            for i, g in enumerate(groups, start=1)
        ),
        resolve_n_jobs(n_jobs),
    )
    return [GroupFit(key=g.key, fit=f) for g, f in zip(groups, fits) if f is not None]


def _with_keys(frames: list[tuple[dict[str, Any], pd.DataFrame]]) -> pd.DataFrame:
    parts = []
    for key, frame in frames:
        frame = frame.copy()
        for i, (col, value) in enumerate(key.items()):
            frame.insert(i, col, value)
        parts.append(frame)
    return pd.concat(parts, ignore_index=True)


def tidy_groups(group_fits: Sequence[GroupFit], conf_level: float = 0.95) -> pd.DataFrame:
    """Per-group :func:`~resampling_models.tidy` tables, stacked."""
    if not group_fits:
        raise InvalidInputError("no group fits to tidy.")
    return _with_keys([(g.key, tidy(g.fit, conf_level)) for g in group_fits])


def glance_groups(group_fits: Sequence[GroupFit]) -> pd.DataFrame:
    """Per-group :func:`~resampling_models.glance` rows, stacked."""
    if not group_fits:
        raise InvalidInputError("no group fits to glance.")
    return _with_keys([(g.key, glance(g.fit)) for g in group_fits])


__all__ = ["GroupData", "GroupFit", "fit_by_group", "glance_groups", "nest", "tidy_groups"]
