"""Tests for posterior sampling fits.

Sampling is slow; chains are kept short. Deselect with ``-m "not slow"``.
"""

import numpy as np
import pytest

from pymixed.mixed import fit

pytestmark = pytest.mark.slow

SAMPLER = dict(draws=300, tune=300, chains=2)


@pytest.fixture(scope="module")
def bayes_pair(field_table, quad_spec):
    """Two fits of the same model with the same seed."""
    return (
        fit(quad_spec, field_table, method='bayes', seed=11, **SAMPLER),
        fit(quad_spec, field_table, method='bayes', seed=11, **SAMPLER),
    )


class TestBayesFit:

    def test_posterior_shapes(self, bayes_pair):
        model, _ = bayes_pair
        p = model.params
        n_draws = SAMPLER['draws'] * SAMPLER['chains']

        assert model.method == 'bayes'
        assert model.seed == 11
        assert p.beta_draws.shape == (n_draws, 3)
        assert p.group_effect_draws.shape == (n_draws, 4)
        assert p.group_sd_draws.shape == (n_draws,)
        assert p.sigma_draws.shape == (n_draws,)
        assert model.idata is not None
        assert 'log_likelihood' in model.idata.groups()

    def test_same_seed_same_draws(self, bayes_pair):
        a, b = bayes_pair
        np.testing.assert_array_equal(a.params.beta_draws, b.params.beta_draws)
        np.testing.assert_array_equal(a.coefficients, b.coefficients)

    def test_posterior_mean_near_truth(self, bayes_pair):
        model, _ = bayes_pair
        np.testing.assert_allclose(model.fixef['X'], 0.4, atol=0.1)
        np.testing.assert_allclose(model.fixef['X2'], -0.03, atol=0.01)
        assert model.has_residual_variance
        np.testing.assert_allclose(model.residual_variance, 0.09, rtol=0.4)

    def test_no_information_criteria(self, bayes_pair):
        model, _ = bayes_pair
        assert model.aic is None
        assert model.log_likelihood is None

    def test_diagnostics_recorded(self, bayes_pair):
        model, _ = bayes_pair
        assert model.params.max_rhat > 0.99
        assert model.params.n_divergent >= 0
        assert model.info['sampler'] == 'NUTS'
        kinds = {w.kind for w in model.warnings}
        assert kinds <= {'rhat', 'divergences'}

    def test_summary(self, bayes_pair):
        text = bayes_pair[0].summary()
        assert text.startswith("Bayesian mixed model (NUTS)")
        assert "Post. SD" in text
        assert "max R-hat" in text


class TestBayesPoisson:

    def test_poisson_fit(self, count_table, count_spec):
        model = fit(count_spec, count_table, method='bayes', seed=3, **SAMPLER)
        assert model.params.sigma_draws is None
        assert not model.has_residual_variance
        np.testing.assert_allclose(model.fixef['X'], 0.3, atol=0.2)
