"""
Posterior sampling for random-intercept models with PyMC.

The model mirrors the likelihood-based fit:

    η_i = X_i β + σ_b z_{g(i)},   z_j ~ N(0, 1)          (non-centred)
    y_i ~ N(η_i, σ)               (gaussian)
    y_i ~ Poisson(exp(η_i))       (poisson)

Priors are weakly informative and scaled to the data in the manner of
rstanarm's autoscaling: slopes ~ N(0, s·sd(y)/sd(x)), the intercept is
centred on mean(y) with a wide scale, and σ_b, σ ~ HalfNormal(s·sd(y)).
The pointwise log-likelihood is stored so PSIS-LOO can be computed later.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import arviz as az
import numpy as np
import pymc as pm
from numpy.typing import NDArray

from pymixed.mixed.design import MixedDesign
from pymixed.mixed.families import Family

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PosteriorSample:
    """Flattened posterior draws plus the InferenceData they came from."""
    beta: NDArray                  # (S, p)
    group_effect: NDArray          # (S, J)
    group_sd: NDArray              # (S,)
    sigma: NDArray | None          # (S,)
    max_rhat: float
    n_divergent: int
    idata: az.InferenceData


def _prior_scales(design: MixedDesign, family: Family, prior_scale: float):
    """Prior locations/scales for β and the SD parameters."""
    if family.has_dispersion:
        y_center = float(np.mean(design.y))
        y_sd = float(np.std(design.y))
    else:
        y_center = float(np.log(np.mean(design.y) + 0.5))
        y_sd = 1.0
    y_sd = max(y_sd, 1e-8)

    x_sd = np.std(design.X, axis=0)
    beta_mu = np.zeros(design.p)
    beta_sd = np.empty(design.p)
    beta_mu[0] = y_center
    beta_sd[0] = 10.0 * prior_scale * y_sd
    beta_sd[1:] = prior_scale * y_sd / np.maximum(x_sd[1:], 1e-8)
    return beta_mu, beta_sd, prior_scale * y_sd


def _flatten(idata: az.InferenceData, name: str, dim: str | None = None) -> NDArray:
    stacked = idata.posterior[name].stack(sample=("chain", "draw"))
    if dim is None:
        return np.asarray(stacked.values, dtype=np.float64)
    return np.asarray(stacked.transpose("sample", dim).values, dtype=np.float64)


def sample_posterior(
    design: MixedDesign,
    family: Family,
    *,
    draws: int,
    tune: int,
    chains: int,
    target_accept: float,
    prior_scale: float,
    seed: int,
) -> PosteriorSample:
    """Build the PyMC model for ``design`` and run NUTS.

    Chains run sequentially (cores=1) so a given seed reproduces the same
    draws on any machine.
    """
    beta_mu, beta_sd, sd_scale = _prior_scales(design, family, prior_scale)
    coords = {
        "coef": list(design.coef_names),
        "group": [str(level) for level in design.group_levels],
        "obs": np.arange(design.n),
    }
    y_obs = design.y if family.has_dispersion else design.y.astype(np.int64)

    with pm.Model(coords=coords):
        beta = pm.Normal("beta", mu=beta_mu, sigma=beta_sd, dims="coef")
        group_sd = pm.HalfNormal("group_sd", sigma=sd_scale)
        z_group = pm.Normal("z_group", 0.0, 1.0, dims="group")
        group_effect = pm.Deterministic("group_effect", z_group * group_sd, dims="group")

        eta = pm.math.dot(design.X, beta) + group_effect[design.group_codes]
        if family.has_dispersion:
            sigma = pm.HalfNormal("sigma", sigma=sd_scale)
            pm.Normal("y_obs", mu=eta, sigma=sigma, observed=y_obs, dims="obs")
        else:
            pm.Poisson("y_obs", mu=pm.math.exp(eta), observed=y_obs, dims="obs")

        logger.debug(
            "sampling %d chains x (%d tune + %d draws), seed=%d",
            chains, tune, draws, seed,
        )
        idata = pm.sample(
            draws=draws,
            tune=tune,
            chains=chains,
            cores=1,
            target_accept=target_accept,
            random_seed=seed,
            progressbar=False,
            compute_convergence_checks=False,
            idata_kwargs={"log_likelihood": True},
        )

    var_names = ["beta", "group_sd"] + (["sigma"] if family.has_dispersion else [])
    rhat = az.rhat(idata, var_names=var_names)
    max_rhat = float(np.nanmax([float(rhat[v].max()) for v in rhat.data_vars]))
    n_divergent = int(idata.sample_stats["diverging"].sum())

    return PosteriorSample(
        beta=_flatten(idata, "beta", "coef"),
        group_effect=_flatten(idata, "group_effect", "group"),
        group_sd=_flatten(idata, "group_sd"),
        sigma=_flatten(idata, "sigma") if family.has_dispersion else None,
        max_rhat=max_rhat,
        n_divergent=n_divergent,
        idata=idata,
    )
