"""
Simulated realisations of the linear predictor for interval estimation.

Both simulators return an (n_sims, n_rows) array on the fitted scale. The
sequence of draws depends only on the generator state and the table, never
on the requested level, so quantiles taken from one simulation are
monotone in the level.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pymixed.mixed.solution import FittedModel


def simulate_ml(
    model: FittedModel,
    X: NDArray,
    codes: NDArray,
    n_new: int,
    n_sims: int,
    rng: np.random.Generator,
    include_residual_variance: bool,
) -> NDArray:
    """Draw from the sampling distribution of a likelihood fit.

    β ~ MVN(β̂, V̂), b_j ~ N(b̂_j, Var(b_j | y)) for fitted groups and
    b ~ N(0, σ²_b) for groups first seen here, plus ε ~ N(0, σ²) when the
    residual variance is included.

    Args:
        codes: Group code per row; codes >= J index the n_new unseen groups.
    """
    p = model.params
    beta = rng.multivariate_normal(p.coefficients, p.vcov, size=n_sims)
    b_fit = rng.normal(
        p.random_effects, np.sqrt(np.maximum(p.random_effects_var, 0.0)),
        size=(n_sims, len(p.random_effects)),
    )
    b_new = rng.normal(0.0, np.sqrt(p.group_variance), size=(n_sims, n_new))
    b = np.concatenate([b_fit, b_new], axis=1)

    sims = beta @ X.T + b[:, codes]
    if include_residual_variance:
        sims = sims + rng.normal(0.0, np.sqrt(p.residual_variance), size=sims.shape)
    return sims


def simulate_bayes(
    model: FittedModel,
    X: NDArray,
    codes: NDArray,
    n_new: int,
    n_sims: int,
    rng: np.random.Generator,
    include_residual_variance: bool,
) -> NDArray:
    """Resample posterior draws.

    Each simulation picks one joint posterior draw (β, b, σ_b, σ); unseen
    groups get b ~ N(0, σ_b²) from that draw's σ_b.
    """
    p = model.params
    idx = rng.integers(0, p.beta_draws.shape[0], size=n_sims)
    beta = p.beta_draws[idx]
    b_new = rng.standard_normal((n_sims, n_new)) * p.group_sd_draws[idx][:, np.newaxis]
    b = np.concatenate([p.group_effect_draws[idx], b_new], axis=1)

    sims = np.einsum('sp,np->sn', beta, X) + b[:, codes]
    if include_residual_variance:
        sims = sims + rng.standard_normal(sims.shape) * p.sigma_draws[idx][:, np.newaxis]
    return sims
