"""Row resampling: bootstrap samples, train/test splits, k-fold splits.

Three primitives draw a single resample:

1. :func:`bootstrap_sample` — *n* rows drawn independently and
   uniformly **with** replacement from a dataset of *n* rows.  A given
   row appears in a bootstrap sample with probability
   ``1 − (1 − 1/n)^n → 1 − 1/e ≈ 0.632``, so roughly a third of the
   rows are left out and some appear several times.

2. :func:`train_test_split` — ``⌊f·n⌋`` distinct rows drawn **without**
   replacement for training; the remaining rows are held out.

3. :func:`kfold_splits` — a shuffled partition into *k* folds, each
   held out once.

:func:`repeat_resample` turns either of the first two into a
:class:`Resamples` sequence of *N* independent draws.

Reproducibility
---------------
No global random state is used.  A :class:`Resamples` object converts
its ``random_state`` into a master :class:`numpy.random.SeedSequence`
and spawns one child sequence per repetition.  Repetition *i* always
draws from a fresh ``default_rng(child_i)``, so:

* iterating the sequence twice yields bit-identical datasets;
* repetition *i* does not depend on how many draws repetitions
  ``0..i-1`` consumed, so fitting them on a thread pool in any order
  gives the same results as fitting them sequentially;
* the same integer seed reproduces the same sequence across runs.

Row identity
------------
Bootstrap samples get a fresh ``0..n-1`` index (they contain duplicate
rows, whose original labels would collide).  Split halves keep the
source index labels, so ``train.index ∪ test.index`` recovers the
source rows.

Category levels
---------------
:func:`repeat_resample` and :func:`kfold_splits` convert text columns
to categoricals whose levels come from the whole source dataset.  A
resample that happens to miss a level still encodes the column with
the same reference level and the same indicator columns; the missing
level's indicator is all zero, which makes the fit rank-deficient and
raises :class:`~resampling_models.errors.FitError` in the batch loop
rather than silently changing what a coefficient means.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence
from typing import NamedTuple, overload

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold

from ._compat import DataFrameLike, _ensure_pandas_df
from ._typing import RandomState
from .errors import InvalidInputError

logger = logging.getLogger(__name__)

_MODES = ("bootstrap", "split")


class Split(NamedTuple):
    """A training / held-out pair of row subsets."""

    train: pd.DataFrame
    test: pd.DataFrame


# ------------------------------------------------------------------ #
# Random-state plumbing
# ------------------------------------------------------------------ #


def _as_seed_sequence(random_state: RandomState) -> np.random.SeedSequence:
    """Convert any accepted seed into a ``SeedSequence``.

    A ``SeedSequence`` is copied, so passing the same object twice
    gives the same children.  A ``Generator`` contributes 128 bits
    drawn from its stream, which advances it deterministically.
    """
    if isinstance(random_state, np.random.SeedSequence):
        # spawn() advances the object it is called on; leave the caller's intact.
        return np.random.SeedSequence(
            random_state.entropy,
            spawn_key=random_state.spawn_key,
            pool_size=random_state.pool_size,
            n_children_spawned=random_state.n_children_spawned,
        )
    if isinstance(random_state, np.random.Generator):
        entropy = random_state.integers(0, 2**32, size=4, dtype=np.uint64)
        return np.random.SeedSequence([int(e) for e in entropy])
    if random_state is not None and (
        isinstance(random_state, bool) or not isinstance(random_state, (int, np.integer))
    ):
        raise InvalidInputError(
            f"random_state must be an int, SeedSequence, Generator or None, "
            f"got {type(random_state).__name__}."
        )
    return np.random.SeedSequence(None if random_state is None else int(random_state))


def _check_fraction(train_fraction: float, n: int) -> int:
    """Validate *train_fraction* for *n* rows and return the train size."""
    if n < 2:
        raise InvalidInputError(
            f"train/test split needs at least 2 rows, got {n}."
        )
    if not 0.0 < train_fraction < 1.0:
        raise InvalidInputError(
            f"train_fraction must be in (0, 1), got {train_fraction!r}."
        )
    n_train = math.floor(train_fraction * n)
    if n_train == 0 or n_train == n:
        raise InvalidInputError(
            f"train_fraction={train_fraction} leaves an empty "
            f"{'training' if n_train == 0 else 'held-out'} set for n={n} rows."
        )
    return n_train


def _fix_levels(dataset: pd.DataFrame) -> pd.DataFrame:
    """Convert text columns to categoricals over the source's levels.

    patsy derives the levels of a text column from the rows it is given.
    A categorical carries the full level set into every resample, so a
    resample that misses a level gets an all-zero indicator column (and
    a rank-deficient fit) instead of a different reference level.
    """
    text = [
        col
        for col, dtype in dataset.dtypes.items()
        if dtype == object or isinstance(dtype, pd.StringDtype)
    ]
    if not text:
        return dataset
    return dataset.astype({col: "category" for col in text})


# ------------------------------------------------------------------ #
# Single draws
# ------------------------------------------------------------------ #


def bootstrap_sample(
    dataset: DataFrameLike,
    random_state: RandomState = None,
) -> pd.DataFrame:
    """Draw *n* rows uniformly with replacement.

    Args:
        dataset: Source rows.  Accepts pandas or Polars DataFrames.
        random_state: Seed, ``SeedSequence`` or ``Generator``.  A
            ``Generator`` is advanced in place.

    Returns:
        A new DataFrame with the same columns and *n* rows, indexed
        ``0..n-1``.

    Raises:
        InvalidInputError: If *dataset* has no rows.
    """
    dataset = _ensure_pandas_df(dataset)
    n = len(dataset)
    if n == 0:
        raise InvalidInputError("cannot bootstrap an empty dataset.")
    rng = np.random.default_rng(random_state)
    idx = rng.integers(0, n, size=n)
    return dataset.iloc[idx].reset_index(drop=True)


def train_test_split(
    dataset: DataFrameLike,
    train_fraction: float = 0.8,
    random_state: RandomState = None,
) -> Split:
    """Partition rows into a random training set and its complement.

    Args:
        dataset: Source rows.
        train_fraction: Fraction of rows used for training; the
            training set has exactly ``⌊train_fraction · n⌋`` rows.
        random_state: Seed, ``SeedSequence`` or ``Generator``.

    Returns:
        ``Split(train, test)``; both halves keep the source order and
        index labels.

    Raises:
        InvalidInputError: If ``train_fraction ∉ (0, 1)``, the dataset
            has fewer than 2 rows, or either side would be empty.
    """
    dataset = _ensure_pandas_df(dataset)
    n = len(dataset)
    n_train = _check_fraction(train_fraction, n)
    rng = np.random.default_rng(random_state)
    chosen = rng.choice(n, size=n_train, replace=False)
    mask = np.zeros(n, dtype=bool)
    mask[chosen] = True
    return Split(train=dataset.iloc[mask], test=dataset.iloc[~mask])


def kfold_splits(
    dataset: DataFrameLike,
    n_folds: int = 5,
    random_state: RandomState = None,
) -> list[Split]:
    """Shuffled k-fold partition; every row is held out exactly once.

    Args:
        dataset: Source rows.
        n_folds: Number of folds, ``2 <= n_folds <= n``.
        random_state: Seed for the shuffle.

    Returns:
        A list of *n_folds* ``Split`` pairs.  Text columns are categoricals
        over the source's levels, as in :func:`repeat_resample`.
    """
    dataset = _ensure_pandas_df(dataset)
    n = len(dataset)
    if isinstance(n_folds, bool) or not isinstance(n_folds, int) or not 2 <= n_folds <= n:
        raise InvalidInputError(
            f"n_folds must be an integer in [2, {n}], got {n_folds!r}."
        )
    # KFold takes a legacy integer seed, not a Generator.
    seed = int(_as_seed_sequence(random_state).generate_state(1)[0])
    kf = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    dataset = _fix_levels(dataset)
    return [
        Split(train=dataset.iloc[np.sort(train_idx)], test=dataset.iloc[np.sort(test_idx)])
        for train_idx, test_idx in kf.split(np.arange(n))
    ]


# ------------------------------------------------------------------ #
# Repeated draws
# ------------------------------------------------------------------ #


class Resamples(Sequence):
    """A lazy, restartable sequence of independent resamples.

    Elements are generated on access — nothing is materialised up
    front — and regenerating element *i* always gives the same rows.
    Construct through :func:`repeat_resample`.

    Attributes:
        mode: ``"bootstrap"`` (elements are DataFrames) or ``"split"``
            (elements are ``Split`` pairs).
        n_repetitions: Sequence length.
        train_fraction: Training fraction for ``"split"`` mode.
    """

    def __init__(
        self,
        dataset: pd.DataFrame,
        n_repetitions: int,
        mode: str,
        train_fraction: float,
        random_state: RandomState,
    ) -> None:
        self._dataset = dataset
        self.n_repetitions = n_repetitions
        self.mode = mode
        self.train_fraction = train_fraction
        # Spawned once: SeedSequence.spawn advances the parent, so the
        # children must be stored rather than re-spawned per iteration.
        self._seeds: tuple[np.random.SeedSequence, ...] = tuple(
            _as_seed_sequence(random_state).spawn(n_repetitions)
        )

    def __len__(self) -> int:
        return self.n_repetitions

    @overload
    def __getitem__(self, i: int) -> pd.DataFrame | Split: ...

    @overload
    def __getitem__(self, i: slice) -> list[pd.DataFrame | Split]: ...

    def __getitem__(self, i):
        if isinstance(i, slice):
            return [self._draw(j) for j in range(*i.indices(self.n_repetitions))]
        if isinstance(i, bool) or not isinstance(i, (int, np.integer)):
            raise TypeError(f"indices must be integers or slices, not {type(i).__name__}")
        if i < 0:
            i += self.n_repetitions
        if not 0 <= i < self.n_repetitions:
            raise IndexError(f"repetition {i} out of range for {self.n_repetitions}")
        return self._draw(int(i))

    def __iter__(self) -> Iterator[pd.DataFrame | Split]:
        for i in range(self.n_repetitions):
            yield self._draw(i)

    def __repr__(self) -> str:
        return (
            f"Resamples(mode={self.mode!r}, n_repetitions={self.n_repetitions}, "
            f"n_rows={len(self._dataset)})"
        )

    def generator(self, i: int) -> np.random.Generator:
        """A fresh generator for repetition *i* (0-based)."""
        return np.random.default_rng(self._seeds[i])

    def _draw(self, i: int) -> pd.DataFrame | Split:
        rng = self.generator(i)
        if self.mode == "bootstrap":
            return bootstrap_sample(self._dataset, rng)
        return train_test_split(self._dataset, self.train_fraction, rng)


def repeat_resample(
    dataset: DataFrameLike,
    n_repetitions: int,
    mode: str = "bootstrap",
    train_fraction: float = 0.8,
    random_state: RandomState = None,
) -> Resamples:
    """Build a sequence of *n_repetitions* independent resamples.

    Args:
        dataset: Source rows.  Never modified.
            Text columns come back as categoricals over the source's
            levels, so every resample codes them against the same
            reference level.
        n_repetitions: Number of resamples, ``>= 1``.
        mode: ``"bootstrap"`` for with-replacement samples, ``"split"``
            for Monte-Carlo cross-validation splits (an independent
            random partition per repetition).
        train_fraction: Training fraction for ``"split"`` mode.
        random_state: Master seed.  ``None`` draws fresh OS entropy
            once, so the returned sequence is still restartable.

    Returns:
        A :class:`Resamples` sequence.

    Raises:
        InvalidInputError: On an unknown *mode*, ``n_repetitions < 1``,
            an empty dataset (bootstrap) or an invalid split fraction.
    """
    dataset = _ensure_pandas_df(dataset)
    if mode not in _MODES:
        raise InvalidInputError(f"Unknown mode {mode!r}. Choose from: {list(_MODES)}")
    if (
        isinstance(n_repetitions, bool)
        or not isinstance(n_repetitions, (int, np.integer))
        or n_repetitions < 1
    ):
        raise InvalidInputError(
            f"n_repetitions must be a positive integer, got {n_repetitions!r}."
        )
    if mode == "bootstrap" and len(dataset) == 0:
        raise InvalidInputError("cannot bootstrap an empty dataset.")
    if mode == "split":
        _check_fraction(train_fraction, len(dataset))

    logger.debug(
        "repeat_resample: mode=%s n_repetitions=%d n_rows=%d",
        mode,
        n_repetitions,
        len(dataset),
    )
    return Resamples(
        _fix_levels(dataset), int(n_repetitions), mode, train_fraction, random_state
    )


__all__ = [
    "Resamples",
    "Split",
    "bootstrap_sample",
    "kfold_splits",
    "repeat_resample",
    "train_test_split",
]
