"""
Penalized Iteratively Reweighted Least Squares (PIRLS) for the Poisson
random-intercept model.

For a given θ, PIRLS finds the conditional modes of the random effects by
solving a sequence of penalized weighted least squares problems. It is the
inner loop of Laplace-approximated estimation; the outer loop optimizes θ.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), Section 3.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from pymixed.core.defaults import PIRLS_TOL, PIRLS_MAX_ITER
from pymixed.mixed._pls import solve_pls, PLSResult
from pymixed.mixed.families import Poisson


@dataclass(frozen=True)
class PIRLSResult:
    """Result from PIRLS convergence.

    Attributes:
        pls: The final PLS result (contains beta, u, b, d, RtR).
        mu: Fitted values on the response scale (n,).
        eta: Linear predictor Xβ + b[group] (n,).
        deviance: Family deviance at convergence.
        converged: Whether PIRLS converged.
        n_iter: Number of PIRLS iterations.
    """
    pls: PLSResult
    mu: NDArray
    eta: NDArray
    deviance: float
    converged: bool
    n_iter: int


def solve_pirls(
    X: NDArray,
    y: NDArray,
    group_codes: NDArray,
    n_groups: int,
    theta: float,
    family: Poisson,
    tol: float = PIRLS_TOL,
    max_iter: int = PIRLS_MAX_ITER,
) -> PIRLSResult:
    """Penalized IRLS for the log-link Poisson model (inner loop).

    Iterates, until the relative deviance change falls below ``tol``:

    1. Working response: z = η + (y - μ) / μ
    2. Working weights: w = μ
    3. Solve penalized WLS for β and u
    4. Update: η = Xβ + θu[group], μ = exp(η)
    """
    mu = family.initialize(y)
    eta = np.log(mu)

    dev_old = family.deviance(y, mu)
    converged = False
    pls_result = None
    n_iter = 0

    for n_iter in range(1, max_iter + 1):
        w = np.maximum(family.variance(mu), 1e-10)
        z = eta + (y - mu) / w

        pls_result = solve_pls(X, z, group_codes, n_groups, theta, weights=w)

        eta = X @ pls_result.beta + pls_result.b[group_codes]
        mu = family.linkinv(eta)

        dev_new = family.deviance(y, mu)
        if abs(dev_new - dev_old) / (abs(dev_old) + 0.1) < tol:
            converged = True
            dev_old = dev_new
            break
        dev_old = dev_new

    if pls_result is None:
        raise RuntimeError("PIRLS failed to produce a result")

    return PIRLSResult(
        pls=pls_result,
        mu=mu,
        eta=eta,
        deviance=dev_old,
        converged=converged,
        n_iter=n_iter,
    )
