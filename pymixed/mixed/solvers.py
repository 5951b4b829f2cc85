"""
Solver dispatch for random-intercept models.

Public API:
    fit() — fit one ModelSpecification against an ObservationTable, by
            maximum likelihood (gaussian: profiled ML/REML; poisson:
            Laplace) or by posterior sampling.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.optimize import minimize

from pymixed.core import defaults
from pymixed.core.exceptions import ConvergenceWarning, InvalidSpecificationError
from pymixed.core.result import Result
from pymixed.core.timing import Timer
from pymixed.core.validation import (
    check_level, check_positive_float, check_positive_int, check_seed,
)
from pymixed.data.table import ObservationTable
from pymixed.mixed._common import MLParams, BayesParams, VarCompSummary
from pymixed.mixed._deviance import (
    lmm_deviance, laplace_deviance, profiled_deviance_lmm, profiled_deviance_glmm,
)
from pymixed.mixed._pls import solve_pls
from pymixed.mixed._pirls import solve_pirls
from pymixed.mixed.design import ModelSpecification, MixedDesign, INTERCEPT
from pymixed.mixed.families import resolve_family
from pymixed.mixed.solution import FittedModel, METHODS

logger = logging.getLogger(__name__)


def fit(
    spec: ModelSpecification,
    table: ObservationTable,
    *,
    method: str = 'ml',
    seed: int | None = None,
    reml: bool = False,
    tol: float = defaults.OPTIMIZER_TOL,
    max_iter: int = defaults.OPTIMIZER_MAX_ITER,
    draws: int = defaults.DEFAULT_DRAWS,
    tune: int = defaults.DEFAULT_TUNE,
    chains: int = defaults.DEFAULT_CHAINS,
    target_accept: float = defaults.DEFAULT_TARGET_ACCEPT,
    prior_scale: float = defaults.DEFAULT_PRIOR_SCALE,
) -> FittedModel:
    """Fit one random-intercept model.

    The specification is validated against the table before any fitting
    work. Convergence problems never raise: they are attached to the
    returned handle as ConvergenceWarning instances.

    Args:
        spec: Model specification.
        table: Validated observation table.
        method: 'ml' (maximum likelihood) or 'bayes' (posterior sampling).
        seed: Random seed for the sampler. Ignored by 'ml', which is
            deterministic; 'bayes' uses defaults.DEFAULT_SEED when None.
        reml: Gaussian 'ml' only. REML estimates are not comparable by
            information criteria across different fixed effects.
        tol: Optimizer tolerance ('ml').
        max_iter: Maximum optimizer iterations ('ml').
        draws: Posterior draws per chain ('bayes').
        tune: Tuning steps per chain ('bayes').
        chains: Number of chains ('bayes').
        target_accept: NUTS target acceptance rate ('bayes').
        prior_scale: Prior width multiplier ('bayes').

    Returns:
        FittedModel handle.

    Raises:
        InvalidSpecificationError: Invalid specification, method or options.
        DataValidationError: Response or covariates invalid on this table.
        ValidationError: Invalid seed or fitting option (tol, max_iter,
            draws, tune, chains, target_accept, prior_scale).

    Examples:
        >>> spec = ModelSpecification('y', 'year', terms=quadratic('X', 'X2'))
        >>> model = fit(spec, table)
        >>> model.aic, model.converged
    """
    if method not in METHODS:
        raise InvalidSpecificationError(
            f"Unknown method {method!r}, expected one of {METHODS}",
            spec_label=spec.label,
        )
    if reml and (method != 'ml' or spec.family != 'gaussian'):
        raise InvalidSpecificationError(
            "reml=True applies to gaussian maximum likelihood fits only",
            spec_label=spec.label,
        )
    seed = check_seed(seed)
    tol = check_positive_float(tol, 'tol')
    max_iter = check_positive_int(max_iter, 'max_iter')
    draws = check_positive_int(draws, 'draws')
    tune = check_positive_int(tune, 'tune')
    chains = check_positive_int(chains, 'chains')
    target_accept = check_level(target_accept, 'target_accept')
    prior_scale = check_positive_float(prior_scale, 'prior_scale')

    design = MixedDesign.build(spec, table)
    family = resolve_family(spec.family)
    logger.info(
        "fitting %r by %s (n=%d, p=%d, groups=%d)",
        spec.label, method, design.n, design.p, design.n_groups,
    )

    if method == 'bayes':
        model = _fit_bayes(
            spec, design, family,
            seed=defaults.DEFAULT_SEED if seed is None else seed,
            draws=draws, tune=tune, chains=chains,
            target_accept=target_accept,
            prior_scale=prior_scale,
        )
    elif family.has_dispersion:
        model = _fit_lmm(spec, design, reml=reml, tol=tol, max_iter=max_iter)
    else:
        model = _fit_glmm(spec, design, family, tol=tol, max_iter=max_iter)

    for w in model.warnings:
        logger.warning("%s: %s", spec.label, w.message)
    logger.info("fitted %r", model)
    return model


# =====================================================================
# Maximum likelihood
# =====================================================================

def _optimize_theta(objective, args, tol: float, max_iter: int):
    return minimize(
        objective,
        np.array([defaults.THETA_START]),
        args=args,
        method='L-BFGS-B',
        bounds=[(0.0, None)],
        options={'maxiter': max_iter, 'ftol': tol, 'gtol': tol * 10},
    )


def _fit_lmm(
    spec: ModelSpecification,
    design: MixedDesign,
    *,
    reml: bool,
    tol: float,
    max_iter: int,
) -> FittedModel:
    """Profiled (RE)ML fit of the gaussian random-intercept model."""
    timer = Timer()
    timer.start()

    with timer.section('optimization'):
        opt = _optimize_theta(
            profiled_deviance_lmm,
            (design.X, design.y, design.group_codes, design.n_groups, reml),
            tol, max_iter,
        )
    theta = float(opt.x[0])

    with timer.section('final_solve'):
        pls = solve_pls(
            design.X, design.y, design.group_codes, design.n_groups, theta, reml=reml
        )
        deviance = lmm_deviance(pls, design.n, design.p, reml)

    with timer.section('inference'):
        vcov = pls.sigma_sq * _symmetric_inverse(pls.RtR)
        se = np.sqrt(np.maximum(np.diag(vcov), 0.0))
        group_variance = pls.sigma_sq * theta**2
        cond_var = pls.sigma_sq * theta**2 / pls.d

    # Fixed effects + group variance + residual variance
    n_params = design.p + 2
    ll = -0.5 * deviance
    aic, aicc, bic = _information_criteria(ll, n_params, design.n)

    warn_list = []
    if not opt.success:
        warn_list.append(ConvergenceWarning(
            'optimizer',
            f"Optimizer did not converge after {opt.nit} iterations: {opt.message}",
        ))
    if theta < defaults.SINGULAR_TOLERANCE:
        warn_list.append(ConvergenceWarning(
            'singular',
            f"Singular fit: random intercept SD for '{spec.group}' is "
            f"estimated at or near zero (relative SD {theta:.2e})",
            value=theta,
        ))

    timer.stop()

    params = MLParams(
        coefficients=pls.beta,
        coefficient_names=design.coef_names,
        se=se,
        vcov=vcov,
        var_components=(_var_component(spec.group, group_variance),),
        group_variance=float(group_variance),
        residual_variance=float(pls.sigma_sq),
        random_effects=pls.b,
        random_effects_var=cond_var,
        group_levels=design.group_levels,
        log_likelihood=ll,
        reml=reml,
        n_params=n_params,
        aic=aic,
        aicc=aicc,
        bic=bic,
        n_obs=design.n,
        linear_predictor=pls.fitted,
        fitted_values=pls.fitted,
        residuals=pls.residuals,
        converged=bool(opt.success),
        n_iter=int(opt.nit),
        theta=theta,
    )
    result = Result(
        params=params,
        info={
            'method': 'REML' if reml else 'ML',
            'optimizer': 'L-BFGS-B',
            'converged': bool(opt.success),
            'n_iter': int(opt.nit),
            'deviance': deviance,
        },
        timing=timer.result(),
        backend_name='ml_lmm',
        warnings=tuple(warn_list),
    )
    return FittedModel(
        result, spec, 'ml', design.row_index, response_digest=design.response_digest,
    )


def _fit_glmm(
    spec: ModelSpecification,
    design: MixedDesign,
    family,
    *,
    tol: float,
    max_iter: int,
) -> FittedModel:
    """Laplace-approximated ML fit of the Poisson random-intercept model."""
    timer = Timer()
    timer.start()

    with timer.section('optimization'):
        opt = _optimize_theta(
            profiled_deviance_glmm,
            (design.X, design.y, design.group_codes, design.n_groups, family),
            tol, max_iter,
        )
    theta = float(opt.x[0])

    with timer.section('final_solve'):
        pirls = solve_pirls(
            design.X, design.y, design.group_codes, design.n_groups, theta, family
        )

    with timer.section('inference'):
        pls = pirls.pls
        # σ² = 1 by convention
        vcov = _symmetric_inverse(pls.RtR)
        se = np.sqrt(np.maximum(np.diag(vcov), 0.0))
        group_variance = theta**2
        cond_var = theta**2 / pls.d

    # ll = conditional loglik - ½‖u‖² - ½ log|L|²
    cond_ll = family.log_likelihood(design.y, pirls.mu)
    ll = cond_ll - 0.5 * float(pls.u @ pls.u) - 0.5 * pls.log_det_L
    n_params = design.p + 1
    aic, aicc, bic = _information_criteria(ll, n_params, design.n)

    warn_list = []
    if not opt.success:
        warn_list.append(ConvergenceWarning(
            'optimizer',
            f"Optimizer did not converge after {opt.nit} iterations: {opt.message}",
        ))
    if not pirls.converged:
        warn_list.append(ConvergenceWarning(
            'pirls',
            f"PIRLS did not converge after {pirls.n_iter} iterations",
            value=float(pirls.n_iter),
        ))
    if theta < defaults.SINGULAR_TOLERANCE:
        warn_list.append(ConvergenceWarning(
            'singular',
            f"Singular fit: random intercept SD for '{spec.group}' is "
            f"estimated at or near zero ({theta:.2e})",
            value=theta,
        ))

    timer.stop()

    params = MLParams(
        coefficients=pls.beta,
        coefficient_names=design.coef_names,
        se=se,
        vcov=vcov,
        var_components=(_var_component(spec.group, group_variance),),
        group_variance=float(group_variance),
        residual_variance=None,
        random_effects=pls.b,
        random_effects_var=cond_var,
        group_levels=design.group_levels,
        log_likelihood=float(ll),
        reml=False,
        n_params=n_params,
        aic=aic,
        aicc=aicc,
        bic=bic,
        n_obs=design.n,
        linear_predictor=pirls.eta,
        fitted_values=pirls.mu,
        residuals=design.y - pirls.mu,
        converged=bool(opt.success) and pirls.converged,
        n_iter=int(opt.nit),
        theta=theta,
    )
    result = Result(
        params=params,
        info={
            'method': 'Laplace',
            'family': family.name,
            'link': family.link_name,
            'optimizer': 'L-BFGS-B',
            'converged': bool(opt.success),
            'pirls_converged': pirls.converged,
            'n_iter': int(opt.nit),
            'pirls_iter': pirls.n_iter,
            'deviance': laplace_deviance(pirls),
        },
        timing=timer.result(),
        backend_name='ml_glmm',
        warnings=tuple(warn_list),
    )
    return FittedModel(
        result, spec, 'ml', design.row_index, response_digest=design.response_digest,
    )


# =====================================================================
# Bayesian
# =====================================================================

def _fit_bayes(
    spec: ModelSpecification,
    design: MixedDesign,
    family,
    *,
    seed: int,
    draws: int,
    tune: int,
    chains: int,
    target_accept: float,
    prior_scale: float,
) -> FittedModel:
    """Posterior sampling fit; see pymixed.mixed._bayes for the model."""
    # Imported lazily: PyMC is heavy and only needed on this path.
    from pymixed.mixed._bayes import sample_posterior

    timer = Timer()
    timer.start()

    with timer.section('sampling'):
        post = sample_posterior(
            design, family,
            draws=draws, tune=tune, chains=chains,
            target_accept=target_accept, prior_scale=prior_scale, seed=seed,
        )

    beta_mean = post.beta.mean(axis=0)
    group_mean = post.group_effect.mean(axis=0)
    linear_predictor = design.X @ beta_mean + group_mean[design.group_codes]
    fitted = family.linkinv(linear_predictor)
    group_variance = float(np.mean(post.group_sd**2))
    residual_variance = float(np.mean(post.sigma**2)) if post.sigma is not None else None

    warn_list = []
    if post.max_rhat > defaults.RHAT_THRESHOLD:
        warn_list.append(ConvergenceWarning(
            'rhat',
            f"Chains have not mixed: max R-hat {post.max_rhat:.3f} exceeds "
            f"{defaults.RHAT_THRESHOLD}",
            value=post.max_rhat,
        ))
    if post.n_divergent > 0:
        warn_list.append(ConvergenceWarning(
            'divergences',
            f"{post.n_divergent} divergent transitions after tuning; "
            f"consider a higher target_accept",
            value=float(post.n_divergent),
        ))

    timer.stop()

    params = BayesParams(
        coefficients=beta_mean,
        coefficient_names=design.coef_names,
        se=post.beta.std(axis=0, ddof=1),
        var_components=(_var_component(spec.group, group_variance),),
        group_variance=group_variance,
        residual_variance=residual_variance,
        random_effects=group_mean,
        group_levels=design.group_levels,
        beta_draws=post.beta,
        group_effect_draws=post.group_effect,
        group_sd_draws=post.group_sd,
        sigma_draws=post.sigma,
        n_obs=design.n,
        linear_predictor=linear_predictor,
        fitted_values=fitted,
        residuals=design.y - fitted,
        max_rhat=post.max_rhat,
        n_divergent=post.n_divergent,
        idata=post.idata,
    )
    result = Result(
        params=params,
        info={
            'method': 'Bayes',
            'sampler': 'NUTS',
            'family': family.name,
            'draws': draws,
            'tune': tune,
            'chains': chains,
            'target_accept': target_accept,
            'prior_scale': prior_scale,
            'seed': seed,
        },
        timing=timer.result(),
        backend_name='pymc_nuts',
        warnings=tuple(warn_list),
    )
    return FittedModel(
        result, spec, 'bayes', design.row_index,
        response_digest=design.response_digest, seed=seed,
    )


# =====================================================================
# Helpers
# =====================================================================

def _information_criteria(ll: float, k: int, n: int) -> tuple[float, float, float]:
    """AIC, small-sample corrected AICc and BIC."""
    aic = -2.0 * ll + 2.0 * k
    aicc = aic + 2.0 * k * (k + 1) / (n - k - 1)
    bic = -2.0 * ll + np.log(n) * k
    return float(aic), float(aicc), float(bic)


def _symmetric_inverse(A):
    try:
        inv = np.linalg.inv(A)
    except np.linalg.LinAlgError:
        inv = np.linalg.pinv(A)
    return 0.5 * (inv + inv.T)


def _var_component(group: str, variance: float) -> VarCompSummary:
    return VarCompSummary(
        group=group,
        name=INTERCEPT,
        variance=float(variance),
        std_dev=float(np.sqrt(max(variance, 0.0))),
    )
