"""Tests for the n_jobs configuration system."""

import os

import pytest

import resampling_models._config as _cfg
from resampling_models._config import get_n_jobs, resolve_n_jobs, set_n_jobs

ENV = "RESAMPLING_MODELS_N_JOBS"


class TestGetNJobs:
    """Tests for get_n_jobs() resolution order."""

    def setup_method(self):
        """Reset state before each test."""
        _cfg._n_jobs_override = None
        os.environ.pop(ENV, None)

    def teardown_method(self):
        """Reset state after each test."""
        _cfg._n_jobs_override = None
        os.environ.pop(ENV, None)

    def test_default_is_sequential(self):
        assert get_n_jobs() == 1

    def test_env_var_overrides_default(self):
        os.environ[ENV] = "4"
        assert get_n_jobs() == 4

    def test_env_var_all_cores(self):
        os.environ[ENV] = " -1 "
        assert get_n_jobs() == -1

    def test_blank_env_var_ignored(self):
        os.environ[ENV] = "   "
        assert get_n_jobs() == 1

    def test_programmatic_override_wins_over_env(self):
        os.environ[ENV] = "4"
        set_n_jobs(2)
        assert get_n_jobs() == 2

    def test_none_restores_env_resolution(self):
        os.environ[ENV] = "3"
        set_n_jobs(2)
        set_n_jobs(None)
        assert get_n_jobs() == 3

    def test_non_integer_env_rejected(self):
        os.environ[ENV] = "many"
        with pytest.raises(ValueError, match="not an integer"):
            get_n_jobs()

    def test_zero_env_rejected(self):
        os.environ[ENV] = "0"
        with pytest.raises(ValueError, match="non-zero"):
            get_n_jobs()


class TestSetNJobs:
    """Tests for set_n_jobs() validation."""

    def setup_method(self):
        _cfg._n_jobs_override = None

    def teardown_method(self):
        _cfg._n_jobs_override = None

    def test_rejects_zero(self):
        with pytest.raises(ValueError, match="non-zero"):
            set_n_jobs(0)

    def test_rejects_float(self):
        with pytest.raises(ValueError, match="integer"):
            set_n_jobs(2.0)

    def test_rejects_bool(self):
        with pytest.raises(ValueError, match="integer"):
            set_n_jobs(True)


class TestResolveNJobs:
    def setup_method(self):
        _cfg._n_jobs_override = None
        os.environ.pop(ENV, None)

    def teardown_method(self):
        _cfg._n_jobs_override = None

    def test_explicit_value_wins(self):
        set_n_jobs(4)
        assert resolve_n_jobs(2) == 2

    def test_none_uses_configured_default(self):
        set_n_jobs(3)
        assert resolve_n_jobs(None) == 3

    def test_explicit_zero_rejected(self):
        with pytest.raises(ValueError):
            resolve_n_jobs(0)

    def test_top_level_exports(self):
        import resampling_models

        resampling_models.set_n_jobs(2)
        assert resampling_models.get_n_jobs() == 2
