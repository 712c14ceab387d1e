"""Tests for likelihood-ratio comparison of nested models."""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from resampling_models import (
    InvalidInputError,
    LikelihoodRatioResult,
    Linear,
    ModelSpec,
    fit_model,
    likelihood_ratio_test,
)


def _make_data(n=200, seed=42, z_effect=1.0):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(n)
    z = rng.standard_normal(n)
    y = 1.0 + 2.0 * x + z_effect * z + rng.standard_normal(n)
    p = 1.0 / (1.0 + np.exp(-(x + z_effect * z)))
    return pd.DataFrame({"x": x, "z": z, "y": y, "b": rng.binomial(1, p)})


SMALL = ModelSpec("y", [Linear("x")])
BIG = ModelSpec("y", [Linear("x"), Linear("z")])


class TestLikelihoodRatio:
    def test_real_effect_is_significant(self):
        df = _make_data()
        result = likelihood_ratio_test(fit_model(SMALL, df), fit_model(BIG, df))
        assert isinstance(result, LikelihoodRatioResult)
        assert result.df == 1
        assert result.statistic > 0
        assert result.p_value < 1e-6

    def test_statistic_and_p_value(self):
        df = _make_data()
        small, big = fit_model(SMALL, df), fit_model(BIG, df)
        result = likelihood_ratio_test(small, big)
        expected = 2.0 * (big.results.llf - small.results.llf)
        assert result.statistic == pytest.approx(expected)
        assert result.p_value == pytest.approx(stats.chi2.sf(expected, 1))
        assert result.reduced == "y ~ x"
        assert result.full == "y ~ x + z"

    def test_null_effect_not_significant(self):
        df = _make_data(z_effect=0.0, seed=3)
        result = likelihood_ratio_test(fit_model(SMALL, df), fit_model(BIG, df))
        assert result.p_value > 0.01

    def test_logistic(self):
        df = _make_data()
        small = ModelSpec("b", [Linear("x")], family="logistic")
        big = ModelSpec("b", [Linear("x"), Linear("z")], family="logistic")
        result = likelihood_ratio_test(fit_model(small, df), fit_model(big, df))
        assert result.df == 1
        assert result.p_value < 0.01

    def test_categorical_term_df(self):
        df = _make_data()
        df["g"] = np.repeat(["a", "b", "c", "d"], 50)
        big = ModelSpec("y", [Linear("x"), Linear("g")])
        result = likelihood_ratio_test(fit_model(SMALL, df), fit_model(big, df))
        assert result.df == 3

    def test_not_nested(self):
        df = _make_data()
        other = ModelSpec("y", [Linear("z")])
        with pytest.raises(InvalidInputError, match="not nested"):
            likelihood_ratio_test(fit_model(other, df), fit_model(SMALL, df))

    def test_reversed_order(self):
        df = _make_data()
        with pytest.raises(InvalidInputError, match="not nested"):
            likelihood_ratio_test(fit_model(BIG, df), fit_model(SMALL, df))

    def test_different_rows(self):
        df = _make_data()
        with pytest.raises(InvalidInputError, match="different rows"):
            likelihood_ratio_test(fit_model(SMALL, df.iloc[:150]), fit_model(BIG, df))

    def test_to_dict(self):
        df = _make_data()
        d = likelihood_ratio_test(fit_model(SMALL, df), fit_model(BIG, df)).to_dict()
        assert set(d) == {
            "statistic",
            "df",
            "p_value",
            "loglik_reduced",
            "loglik_full",
            "reduced",
            "full",
        }
