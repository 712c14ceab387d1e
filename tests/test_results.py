"""Tests for the typed result objects.

Covers dict-style access, ``to_dict()`` serialisation and the
convenience accessors of each result type.
"""

from __future__ import annotations

import json

import numpy as np
import pandas as pd
import pytest

from resampling_models import (
    BootstrapResult,
    CrossValidationResult,
    FittedModel,
    LikelihoodRatioResult,
    Linear,
    ModelSpec,
    bootstrap_coefficients,
    cross_validate,
)

LINE = ModelSpec("y", [Linear("x")])


def _make_data(n=60, seed=11):
    rng = np.random.default_rng(seed)
    x = rng.uniform(0, 1, n)
    return pd.DataFrame({"x": x, "y": 1.0 + 2.0 * x + rng.normal(0, 0.2, n)})


@pytest.fixture(scope="module")
def boot():
    return bootstrap_coefficients(_make_data(), LINE, n_bootstrap=25, random_state=0)


@pytest.fixture(scope="module")
def cv():
    candidates = {"line": LINE, "mean": ModelSpec("y")}
    return cross_validate(_make_data(), candidates, n_repetitions=5, random_state=0)


class TestDictAccess:
    def test_getitem_matches_attribute(self, boot):
        assert boot["conf_level"] == boot.conf_level
        assert boot["summary"] is boot.summary

    def test_missing_key(self, boot):
        with pytest.raises(KeyError):
            boot["no_such_field"]

    def test_get_and_contains(self, boot):
        assert boot.get("n_bootstrap") == 25
        assert boot.get("no_such_field", "fallback") == "fallback"
        assert "summary" in boot
        assert "no_such_field" not in boot
        assert 3 not in boot

    def test_frozen(self, boot):
        with pytest.raises(AttributeError):
            boot.conf_level = 0.5


class TestBootstrapResult:
    def test_to_dict_is_json_serialisable(self, boot):
        d = boot.to_dict()
        json.dumps(d)
        assert d["spec"] == "y ~ x [linear]"
        assert "observed_fit" not in d
        assert len(d["replicates"]) == 50
        assert d["summary"][0]["term"] == "Intercept"

    def test_observed_fit_kept_on_object(self, boot):
        assert isinstance(boot.observed_fit, FittedModel)
        assert boot.observed_fit.coefficients()["x"] == pytest.approx(
            boot.summary.set_index("term").loc["x", "observed"]
        )

    def test_std_errors_match_replicates(self, boot):
        slopes = boot.replicates.query("term == 'x'")["estimate"]
        assert boot.std_errors()["x"] == pytest.approx(slopes.std(ddof=1))

    def test_type(self, boot):
        assert isinstance(boot, BootstrapResult)


class TestCrossValidationResult:
    def test_to_dict(self, cv):
        d = cv.to_dict()
        json.dumps(d)
        assert d["candidates"] == {"line": "y ~ x [linear]", "mean": "y ~ 1 [linear]"}
        assert d["metric"] == "rmse"
        assert len(d["errors"]) == 10

    def test_best_model(self, cv):
        assert isinstance(cv, CrossValidationResult)
        assert cv.best_model == "line"

    def test_best_model_tie_keeps_candidate_order(self):
        summary = pd.DataFrame({"model": ["b", "a"], "mean": [1.0, 1.0]})
        result = CrossValidationResult(
            candidates={},
            errors=pd.DataFrame(),
            summary=summary,
            metric="rmse",
            n_repetitions=1,
            train_fraction=0.8,
        )
        assert result.best_model == "b"


class TestLikelihoodRatioResult:
    def test_numpy_values_become_native(self):
        result = LikelihoodRatioResult(
            statistic=np.float64(3.5),
            df=np.int64(1),
            p_value=np.float64(0.06),
            loglik_reduced=np.float64(-10.0),
            loglik_full=np.float64(-8.25),
            reduced="y ~ x",
            full="y ~ x + z",
        )
        d = result.to_dict()
        assert type(d["statistic"]) is float
        assert type(d["df"]) is int
        json.dumps(d)
