"""Loading datasets from delimited files."""

from __future__ import annotations

import logging
import os

import pandas as pd

from .errors import InvalidInputError

logger = logging.getLogger(__name__)


def load_dataset(path: str | os.PathLike, **read_csv_kwargs) -> pd.DataFrame:
    """Read a delimited text file into a DataFrame.

    Args:
        path: File path.  Compressed files are handled by pandas.
        **read_csv_kwargs: Passed through to :func:`pandas.read_csv`
            (e.g. ``sep="\\t"``, ``usecols=[...]``).

    Returns:
        The dataset, with a fresh ``0..n-1`` index.

    Raises:
        FileNotFoundError: If *path* does not exist.
        InvalidInputError: If the file parses to zero rows or columns.
    """
    try:
        dataset = pd.read_csv(path, **read_csv_kwargs)
    except pd.errors.EmptyDataError as exc:
        raise InvalidInputError(f"{os.fspath(path)!r} contains no data.") from exc
    if dataset.shape[0] == 0 or dataset.shape[1] == 0:
        raise InvalidInputError(
            f"{os.fspath(path)!r} parsed to an empty table {dataset.shape}."
        )
    logger.debug("load_dataset: %s -> %d rows x %d columns", path, *dataset.shape)
    return dataset.reset_index(drop=True)


__all__ = ["load_dataset"]
