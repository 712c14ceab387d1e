"""Tests for the fit-and-summarize loop."""

import logging

import numpy as np
import pandas as pd
import pytest

from resampling_models import (
    FitError,
    InvalidInputError,
    Linear,
    ModelSpec,
    SchemaMismatchError,
    aggregate,
    extract_coefficients,
    extract_prediction_error,
    fit_all,
    fit_model,
    repeat_resample,
    score_all,
)
from resampling_models.engine import collect_coefficients

SPEC = ModelSpec("y", [Linear("x")])

# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


def _make_linear_data(n=80, seed=42):
    rng = np.random.default_rng(seed)
    x = rng.uniform(0, 5, n)
    return pd.DataFrame({"x": x, "y": 2.0 + 3.0 * x + rng.normal(0, 0.5, n)})


def _constant_outcome(n=10):
    return pd.DataFrame({"x": np.arange(n, dtype=float), "y": np.ones(n)})


# ------------------------------------------------------------------ #
# fit_all
# ------------------------------------------------------------------ #


class TestFitAll:
    def test_one_fit_per_dataset_in_order(self):
        datasets = [_make_linear_data(seed=s) for s in range(4)]
        fits = fit_all(datasets, SPEC)
        assert len(fits) == 4
        for data, fit in zip(datasets, fits):
            expected = fit_model(SPEC, data).coefficients()
            pd.testing.assert_series_equal(fit.coefficients(), expected)

    def test_consumes_lazy_sequence(self):
        seq = repeat_resample(_make_linear_data(), 5, random_state=0)
        assert len(fit_all(seq, SPEC)) == 5

    def test_failure_raises_fit_error_with_index(self):
        datasets = [_make_linear_data(), _make_linear_data(seed=1), _constant_outcome()]
        with pytest.raises(FitError) as exc_info:
            fit_all(datasets, SPEC, candidate="line")
        err = exc_info.value
        assert err.index == 3
        assert err.candidate == "line"
        assert isinstance(err.__cause__, InvalidInputError)
        assert "repetition 3" in str(err)

    def test_skip_records_none_and_logs(self, caplog):
        datasets = [_make_linear_data(), _constant_outcome(), _make_linear_data(seed=1)]
        with caplog.at_level(logging.WARNING, logger="resampling_models.engine"):
            fits = fit_all(datasets, SPEC, on_error="skip")
        assert fits[1] is None
        assert fits[0] is not None and fits[2] is not None
        assert "skipping repetition 2" in caplog.text

    def test_missing_column_not_wrapped(self):
        with pytest.raises(SchemaMismatchError):
            fit_all([_make_linear_data().drop(columns="x")], SPEC)

    def test_rank_deficient_wrapped(self):
        df = _make_linear_data().assign(z=lambda d: 2 * d["x"])
        spec = ModelSpec("y", [Linear("x"), Linear("z")])
        with pytest.raises(FitError) as exc_info:
            fit_all([df], spec)
        assert isinstance(exc_info.value.__cause__, np.linalg.LinAlgError)

    def test_unknown_on_error(self):
        with pytest.raises(InvalidInputError, match="on_error"):
            fit_all([_make_linear_data()], SPEC, on_error="ignore")

    def test_threads_match_sequential(self):
        seq = repeat_resample(_make_linear_data(), 8, random_state=4)
        sequential = collect_coefficients(fit_all(seq, SPEC, n_jobs=1))
        threaded = collect_coefficients(fit_all(seq, SPEC, n_jobs=2))
        pd.testing.assert_frame_equal(sequential, threaded)

    def test_threaded_failure_raises(self):
        datasets = [_make_linear_data(), _constant_outcome()]
        with pytest.raises(FitError):
            fit_all(datasets, SPEC, n_jobs=2)


# ------------------------------------------------------------------ #
# Per-fit summaries
# ------------------------------------------------------------------ #


class TestExtractCoefficients:
    def test_plain_dict_of_floats(self):
        coefs = extract_coefficients(fit_model(SPEC, _make_linear_data()))
        assert list(coefs) == ["Intercept", "x"]
        assert all(isinstance(v, float) for v in coefs.values())


class TestExtractPredictionError:
    def setup_method(self):
        self.fit = fit_model(SPEC, _make_linear_data())

    def test_rmse_of_perfect_prediction_is_zero(self):
        held_out = pd.DataFrame({"x": [1.0, 2.0]})
        held_out["y"] = self.fit.predict(held_out)
        assert extract_prediction_error(self.fit, held_out) == pytest.approx(0.0, abs=1e-12)

    def test_rmse_and_mae(self):
        held_out = pd.DataFrame({"x": [1.0, 2.0]})
        preds = self.fit.predict(held_out)
        held_out["y"] = preds + np.array([1.0, -3.0])
        assert extract_prediction_error(self.fit, held_out, "rmse") == pytest.approx(np.sqrt(5.0))
        assert extract_prediction_error(self.fit, held_out, "mae") == pytest.approx(2.0)

    def test_missing_outcome_values_ignored(self):
        held_out = pd.DataFrame({"x": [1.0, 2.0]})
        held_out["y"] = self.fit.predict(held_out) + np.array([1.0, np.nan])
        assert extract_prediction_error(self.fit, held_out) == pytest.approx(1.0)

    def test_missing_outcome_column(self):
        with pytest.raises(SchemaMismatchError) as exc_info:
            extract_prediction_error(self.fit, pd.DataFrame({"x": [1.0]}))
        assert exc_info.value.missing == ("y",)

    def test_missing_predictor_column(self):
        with pytest.raises(SchemaMismatchError):
            extract_prediction_error(self.fit, pd.DataFrame({"y": [1.0]}))

    def test_unknown_metric(self):
        with pytest.raises(InvalidInputError, match="metric"):
            extract_prediction_error(self.fit, _make_linear_data(), "r2")


class TestScoreAll:
    def test_none_fit_scores_none(self):
        fit = fit_model(SPEC, _make_linear_data())
        test = _make_linear_data(n=10, seed=9)
        scores = score_all([fit, None], [test, test])
        assert scores[1] is None
        assert scores[0] > 0

    def test_length_mismatch(self):
        with pytest.raises(InvalidInputError):
            score_all([None], [])

    def test_unseen_level_raises_fit_error(self):
        train = pd.DataFrame({"g": ["a", "b"] * 10, "y": np.arange(20.0)})
        fit = fit_model(ModelSpec("y", [Linear("g")]), train)
        test = pd.DataFrame({"g": ["c"], "y": [1.0]})
        with pytest.raises(FitError) as exc_info:
            score_all([fit], [test], candidate="by_group")
        assert exc_info.value.candidate == "by_group"
        assert isinstance(exc_info.value.__cause__, SchemaMismatchError)


# ------------------------------------------------------------------ #
# aggregate
# ------------------------------------------------------------------ #


class TestAggregate:
    def test_long_format_in_index_order(self):
        table = aggregate([(1, {"a": 1.0, "b": 2.0}), (2, {"a": 3.0, "b": 4.0})])
        assert list(table.columns) == ["replicate", "term", "estimate"]
        assert table["replicate"].tolist() == [1, 1, 2, 2]
        assert table["term"].tolist() == ["a", "b", "a", "b"]
        assert table["estimate"].tolist() == [1.0, 2.0, 3.0, 4.0]

    def test_idempotent(self):
        table = aggregate([(1, {"a": 1.0}), (2, {"a": 2.0})])
        again = aggregate(table)
        pd.testing.assert_frame_equal(table, again)
        assert again is not table

    def test_skipped_repetitions_omitted(self):
        table = aggregate([(1, {"a": 1.0}), (2, None), (3, {"a": 3.0})])
        assert table["replicate"].tolist() == [1, 3]

    def test_custom_names(self):
        table = aggregate([(1, {"linear": 0.5})], key_name="model", value_name="rmse")
        assert list(table.columns) == ["replicate", "model", "rmse"]

    def test_empty(self):
        table = aggregate([])
        assert list(table.columns) == ["replicate", "term", "estimate"]
        assert len(table) == 0

    def test_duplicate_pairs_rejected(self):
        with pytest.raises(InvalidInputError, match="duplicate"):
            aggregate([(1, {"a": 1.0}), (1, {"a": 2.0})])

    def test_zero_index_rejected(self):
        with pytest.raises(InvalidInputError, match="1-based"):
            aggregate([(0, {"a": 1.0})])

    @pytest.mark.parametrize("index", [1.5, 2.0, True, "1"])
    def test_non_integer_index_rejected(self, index):
        with pytest.raises(InvalidInputError, match="positive integers"):
            aggregate([(index, {"a": 1.0})])

    def test_numpy_integer_index_accepted(self):
        table = aggregate([(np.int64(2), {"a": 1.0})])
        assert table["replicate"].tolist() == [2]

    def test_table_missing_columns(self):
        with pytest.raises(InvalidInputError, match="missing column"):
            aggregate(pd.DataFrame({"term": ["a"], "estimate": [1.0]}))
