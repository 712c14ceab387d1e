"""Likelihood-ratio comparison of nested models.

For models M₀ ⊂ M₁ fitted by maximum likelihood to the same rows, the
statistic

    Λ = 2 · (ℓ₁ − ℓ₀)

is asymptotically χ²(k₁ − k₀) under H₀: the extra terms of M₁ have
zero coefficients (Wilks, 1938).  For OLS the log-likelihood is the
Gaussian profile likelihood, so the test is the large-sample
counterpart of the partial F test.

Non-nested candidates cannot be compared this way; use
:func:`~resampling_models.cross_validate` for them.

Reference:
    Wilks, S. S. (1938). The large-sample distribution of the
    likelihood ratio for testing composite hypotheses. *The Annals of
    Mathematical Statistics*, 9(1), 60–62.
"""

from __future__ import annotations

import logging

from scipy import stats

from ._results import LikelihoodRatioResult
from .errors import InvalidInputError
from .models import FittedModel

logger = logging.getLogger(__name__)


def likelihood_ratio_test(
    reduced: FittedModel, full: FittedModel
) -> LikelihoodRatioResult:
    """Test whether *full* improves significantly on *reduced*.

    Args:
        reduced: The smaller model.
        full: The larger model; its terms must strictly contain those
            of *reduced*.

    Returns:
        A :class:`~resampling_models.LikelihoodRatioResult`.

    Raises:
        InvalidInputError: If the models are not nested (different
            outcome, family or intercept, or terms not a strict subset),
            were fitted to a different number of rows, or *full* does
            not have more coefficients.
    """
    if not reduced.spec.is_nested_in(full.spec):
        raise InvalidInputError(
            f"models are not nested: {reduced.spec} vs {full.spec}. "
            f"The reduced model's terms must be a strict subset of the "
            f"full model's, with the same outcome, family and intercept."
        )
    if reduced.nobs != full.nobs:
        raise InvalidInputError(
            f"models were fitted to different rows ({reduced.nobs} vs "
            f"{full.nobs} observations); refit on the same complete cases."
        )
    df = len(full.term_names) - len(reduced.term_names)
    if df <= 0:
        raise InvalidInputError(
            f"full model has {len(full.term_names)} coefficients, not more "
            f"than the reduced model's {len(reduced.term_names)}."
        )

    ll_reduced = float(reduced.results.llf)
    ll_full = float(full.results.llf)
    # Nested ML fits cannot decrease the likelihood; clip rounding noise.
    statistic = max(2.0 * (ll_full - ll_reduced), 0.0)
    p_value = float(stats.chi2.sf(statistic, df))
    logger.debug("likelihood_ratio_test: LR=%.4f df=%d p=%.4g", statistic, df, p_value)

    return LikelihoodRatioResult(
        statistic=statistic,
        df=int(df),
        p_value=p_value,
        loglik_reduced=ll_reduced,
        loglik_full=ll_full,
        reduced=reduced.spec.formula,
        full=full.spec.formula,
    )


__all__ = ["likelihood_ratio_test"]
