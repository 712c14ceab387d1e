"""Parallelism configuration for the resampling_models package.

Controls how many worker threads the fit-and-summarize loop uses when
a caller does not pass ``n_jobs`` explicitly.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_n_jobs`.
    2. The ``RESAMPLING_MODELS_N_JOBS`` environment variable.
    3. The default of ``1`` (sequential fitting).

Values follow the joblib convention: a positive integer is the number
of workers, ``-1`` means "all cores".  Zero is rejected.

Examples:
    Use every core from the shell::

        export RESAMPLING_MODELS_N_JOBS=-1

    Use four worker threads programmatically::

        import resampling_models
        resampling_models.set_n_jobs(4)

    Restore the environment / default resolution::

        resampling_models.set_n_jobs(None)
"""

from __future__ import annotations

import os

_ENV_VAR = "RESAMPLING_MODELS_N_JOBS"
_DEFAULT_N_JOBS = 1

# Sentinel indicating "no programmatic override has been set".
_n_jobs_override: int | None = None


def _validate_n_jobs(value: int, source: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"n_jobs from {source} must be an integer, got {value!r}.")
    if value == 0:
        raise ValueError(f"n_jobs from {source} must be non-zero (use 1 or -1).")
    return value


def get_n_jobs() -> int:
    """Return the active default worker count.

    Resolution order:
        1. Value set by :func:`set_n_jobs`.
        2. ``RESAMPLING_MODELS_N_JOBS`` environment variable.
        3. ``1``.

    Returns:
        A non-zero integer in joblib convention.

    Raises:
        ValueError: If the environment variable is not a non-zero
            integer.
    """
    # 1. Programmatic override
    if _n_jobs_override is not None:
        return _n_jobs_override

    # 2. Environment variable
    env = os.environ.get(_ENV_VAR, "").strip()
    if env:
        try:
            parsed = int(env)
        except ValueError:
            raise ValueError(
                f"{_ENV_VAR}={env!r} is not an integer."
            ) from None
        return _validate_n_jobs(parsed, _ENV_VAR)

    # 3. Default
    return _DEFAULT_N_JOBS


def set_n_jobs(n_jobs: int | None) -> None:
    """Override the default worker count.

    Args:
        n_jobs: Number of worker threads (``-1`` for all cores), or
            ``None`` to restore the default resolution order.

    Raises:
        ValueError: If *n_jobs* is zero or not an integer.
    """
    global _n_jobs_override
    if n_jobs is None:
        _n_jobs_override = None
        return
    _n_jobs_override = _validate_n_jobs(n_jobs, "set_n_jobs()")


def resolve_n_jobs(n_jobs: int | None) -> int:
    """Return *n_jobs* if given, else the configured default."""
    if n_jobs is None:
        return get_n_jobs()
    return _validate_n_jobs(n_jobs, "n_jobs argument")
