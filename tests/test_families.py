"""Tests for the ModelFamily protocol and the built-in families."""

import numpy as np
import pandas as pd
import pytest

from resampling_models import InvalidInputError
from resampling_models.families import (
    AdditiveFamily,
    LinearFamily,
    LogisticFamily,
    ModelFamily,
    register_family,
    resolve_family,
)

# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def rng():
    return np.random.default_rng(42)


@pytest.fixture()
def linear_design(rng):
    n = 100
    X = pd.DataFrame(
        {"Intercept": np.ones(n), "x1": rng.standard_normal(n), "x2": rng.standard_normal(n)}
    )
    y = pd.Series(1.0 + 2.0 * X["x1"] - 1.0 * X["x2"] + rng.standard_normal(n) * 0.5)
    return X, y


@pytest.fixture()
def binary_design(rng):
    n = 300
    X = pd.DataFrame({"Intercept": np.ones(n), "x1": rng.standard_normal(n)})
    p = 1.0 / (1.0 + np.exp(-(0.5 + 1.5 * X["x1"])))
    y = pd.Series(rng.binomial(1, p).astype(float))
    return X, y


# ------------------------------------------------------------------ #
# Protocol conformance
# ------------------------------------------------------------------ #


class TestProtocolConformance:
    @pytest.mark.parametrize("cls", [LinearFamily, AdditiveFamily, LogisticFamily])
    def test_isinstance_check(self, cls):
        assert isinstance(cls(), ModelFamily)

    def test_flags(self):
        assert LinearFamily().gaussian and not LinearFamily().supports_smooth
        assert AdditiveFamily().gaussian and AdditiveFamily().supports_smooth
        assert not LogisticFamily().gaussian and not LogisticFamily().supports_smooth


# ------------------------------------------------------------------ #
# validate_y
# ------------------------------------------------------------------ #


class TestValidateY:
    def test_linear_accepts_continuous(self, rng):
        LinearFamily().validate_y(rng.standard_normal(50))

    def test_linear_rejects_non_numeric(self):
        with pytest.raises(InvalidInputError, match="numeric"):
            LinearFamily().validate_y(np.array(["a", "b", "c"]))

    def test_linear_rejects_constant(self):
        with pytest.raises(InvalidInputError, match="non-constant"):
            LinearFamily().validate_y(np.ones(50))

    def test_logistic_accepts_binary(self):
        LogisticFamily().validate_y(np.array([0.0, 1.0, 1.0, 0.0]))

    @pytest.mark.parametrize(
        "y", [np.array([0.0, 1.0, 2.0]), np.ones(5), np.array([0.2, 0.8])]
    )
    def test_logistic_rejects_non_binary(self, y):
        with pytest.raises(InvalidInputError, match="binary"):
            LogisticFamily().validate_y(y)


# ------------------------------------------------------------------ #
# Fitting
# ------------------------------------------------------------------ #


class TestLinearFit:
    def test_recovers_coefficients(self, linear_design):
        X, y = linear_design
        family = LinearFamily()
        coefs = family.coefs(family.fit(X, y))
        assert list(coefs.index) == ["Intercept", "x1", "x2"]
        np.testing.assert_allclose(coefs.to_numpy(), [1.0, 2.0, -1.0], atol=0.25)

    def test_predict_matches_fitted(self, linear_design):
        X, y = linear_design
        family = LinearFamily()
        results = family.fit(X, y)
        np.testing.assert_allclose(
            family.predict(results, X), np.asarray(results.fittedvalues)
        )

    def test_rank_deficient_raises(self, linear_design):
        X, y = linear_design
        X = X.assign(x3=2.0 * X["x1"])
        with pytest.raises(np.linalg.LinAlgError, match="rank-deficient"):
            LinearFamily().fit(X, y)


class TestLogisticFit:
    def test_recovers_coefficients(self, binary_design):
        X, y = binary_design
        family = LogisticFamily()
        coefs = family.coefs(family.fit(X, y))
        assert coefs["x1"] == pytest.approx(1.5, abs=0.5)

    def test_predictions_are_probabilities(self, binary_design):
        X, y = binary_design
        family = LogisticFamily()
        preds = family.predict(family.fit(X, y), X)
        assert preds.shape == (len(X),)
        assert np.all((preds > 0) & (preds < 1))

    def test_perfect_separation_raises(self):
        x = np.linspace(-2, 2, 40)
        X = pd.DataFrame({"Intercept": np.ones(40), "x": x})
        y = pd.Series((x > 0).astype(float))
        with pytest.raises(RuntimeError, match="logistic fit"):
            LogisticFamily().fit(X, y)


# ------------------------------------------------------------------ #
# Registry
# ------------------------------------------------------------------ #


class TestRegistry:
    def test_resolve_builtins(self):
        assert isinstance(resolve_family("linear"), LinearFamily)
        assert isinstance(resolve_family("additive"), AdditiveFamily)
        assert isinstance(resolve_family("logistic"), LogisticFamily)

    def test_instance_passthrough(self):
        family = LogisticFamily()
        assert resolve_family(family) is family

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown family"):
            resolve_family("gamma")

    def test_register_rejects_non_family(self):
        class NotAFamily:
            pass

        with pytest.raises(TypeError, match="does not implement"):
            register_family("bogus", NotAFamily)

    def test_register_custom_family(self):
        from resampling_models.families import _FAMILIES

        class RobustLinear(LinearFamily):
            @property
            def name(self):
                return "robust_linear"

        try:
            register_family("robust_linear", RobustLinear)
            assert resolve_family("robust_linear").name == "robust_linear"
        finally:
            _FAMILIES.pop("robust_linear", None)
