"""
Profiled deviance objectives for the outer optimization over θ.

For the gaussian model, β and σ² are profiled out analytically, leaving a
function of the scalar θ only. For the Poisson model, the Laplace
approximation replaces the marginal likelihood integral.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), Sections 2-3.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pymixed.mixed._pls import solve_pls, PLSResult
from pymixed.mixed._pirls import solve_pirls, PIRLSResult


def lmm_deviance(pls: PLSResult, n: int, p: int, reml: bool) -> float:
    """Profiled deviance from a PLS solve.

    ML:   d(θ) = log|L|² + n × [1 + log(2π × pwrss/n)]

    REML: d(θ) = log|L|² + log|RX|² + (n-p) × [1 + log(2π × pwrss/(n-p))]
    """
    if reml:
        log_det_RX = 2.0 * np.sum(np.log(np.maximum(np.abs(np.diag(pls.RX)), 1e-20)))
        df = n - p
        return float(
            pls.log_det_L
            + log_det_RX
            + df * (1.0 + np.log(2.0 * np.pi * pls.pwrss / df))
        )
    return float(pls.log_det_L + n * (1.0 + np.log(2.0 * np.pi * pls.pwrss / n)))


def profiled_deviance_lmm(
    theta: NDArray,
    X: NDArray,
    y: NDArray,
    group_codes: NDArray,
    n_groups: int,
    reml: bool = False,
) -> float:
    """Objective for scipy.optimize.minimize: profiled (RE)ML deviance at θ."""
    n, p = X.shape
    pls = solve_pls(X, y, group_codes, n_groups, float(theta[0]), reml=reml)
    return lmm_deviance(pls, n, p, reml)


def laplace_deviance(pirls: PIRLSResult) -> float:
    """Laplace deviance: deviance(y, μ̂) + ‖û‖² + log|L|²."""
    return pirls.deviance + float(pirls.pls.u @ pirls.pls.u) + pirls.pls.log_det_L


def profiled_deviance_glmm(
    theta: NDArray,
    X: NDArray,
    y: NDArray,
    group_codes: NDArray,
    n_groups: int,
    family,
) -> float:
    """Objective for scipy.optimize.minimize: Laplace deviance at θ."""
    pirls = solve_pirls(X, y, group_codes, n_groups, float(theta[0]), family)
    return laplace_deviance(pirls)
