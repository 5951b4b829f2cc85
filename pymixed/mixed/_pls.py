"""
Penalized Least Squares (PLS) solver for random-intercept models.

For a fixed relative standard deviation θ = σ_b / σ, this solves

    minimize ‖W^½(y - Xβ - θZu)‖² + ‖u‖²

where Z is the group indicator matrix and u = b / θ are the "spherical"
random effects. With a single random intercept, Λ_θ = θI and
Λ'Z'WZΛ + I is diagonal, so its Cholesky factor L is simply the square
root of d_j = θ² Σ_{i∈j} w_i + 1 and every solve against L is a division.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48. Section 2.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray
import scipy.linalg as sla


@dataclass(frozen=True)
class PLSResult:
    """Result from penalized least squares solve.

    Attributes:
        beta: Fixed effects estimates (p,).
        u: Spherical random effects (J,).
        b: Conditional modes b = θu (J,).
        d: Diagonal of L L' = θ² Σw + 1 per group (J,).
        sigma_sq: Profiled residual variance.
        pwrss: Penalized weighted residual sum of squares.
        log_det_L: log|L|² = Σ log d_j.
        RX: Lower Cholesky factor of the Schur complement (p, p).
        RtR: Schur complement X'WX - CX'CX (p, p).
        fitted: Xβ + b[group] (n,).
        residuals: y - fitted (n,).
    """
    beta: NDArray
    u: NDArray
    b: NDArray
    d: NDArray
    sigma_sq: float
    pwrss: float
    log_det_L: float
    RX: NDArray
    RtR: NDArray
    fitted: NDArray
    residuals: NDArray


def solve_pls(
    X: NDArray,
    y: NDArray,
    group_codes: NDArray,
    n_groups: int,
    theta: float,
    weights: NDArray | None = None,
    reml: bool = False,
) -> PLSResult:
    """Solve the penalized least squares problem for one random intercept.

    Args:
        X: Fixed effects design matrix (n, p).
        y: Response (or PIRLS working response) vector (n,).
        group_codes: 0-indexed group code per observation (n,).
        n_groups: Number of groups J.
        theta: Relative random-intercept standard deviation (≥ 0).
        weights: Observation weights (n,). If None, unit weights.
        reml: If True, divide pwrss by (n-p) for σ²; if False, by n.

    Returns:
        PLSResult with all estimates.
    """
    n, p = X.shape
    w = np.ones(n, dtype=np.float64) if weights is None else weights

    # Group sums of w, w*y and w*X
    w_sum = np.bincount(group_codes, weights=w, minlength=n_groups)
    wy_sum = np.bincount(group_codes, weights=w * y, minlength=n_groups)
    wX_sum = np.zeros((n_groups, p), dtype=np.float64)
    np.add.at(wX_sum, group_codes, w[:, np.newaxis] * X)

    d = theta**2 * w_sum + 1.0
    L = np.sqrt(d)

    ZLam_t_y = theta * wy_sum          # (J,)
    ZLam_t_X = theta * wX_sum          # (J, p)

    cu = ZLam_t_y / L
    CX = ZLam_t_X / L[:, np.newaxis]

    Xt_X = X.T @ (w[:, np.newaxis] * X)
    Xt_y = X.T @ (w * y)

    RtR = Xt_X - CX.T @ CX
    rhs_beta = Xt_y - CX.T @ cu

    try:
        RX = np.linalg.cholesky(RtR)
        tmp = sla.solve_triangular(RX, rhs_beta, lower=True)
        beta = sla.solve_triangular(RX.T, tmp, lower=False)
    except np.linalg.LinAlgError:
        beta, _, _, _ = np.linalg.lstsq(RtR, rhs_beta, rcond=None)
        eigvals = np.maximum(np.linalg.eigvalsh(RtR), 1e-20)
        RX = np.diag(np.sqrt(eigvals))

    u = (ZLam_t_y - ZLam_t_X @ beta) / d
    b = theta * u

    fitted = X @ beta + b[group_codes]
    residuals = y - fitted

    wrss = float(np.sum(w * residuals**2))
    pwrss = wrss + float(u @ u)

    sigma_sq = pwrss / (n - p) if reml else pwrss / n

    return PLSResult(
        beta=beta,
        u=u,
        b=b,
        d=d,
        sigma_sq=sigma_sq,
        pwrss=pwrss,
        log_det_L=float(np.sum(np.log(d))),
        RX=RX,
        RtR=RtR,
        fitted=fitted,
        residuals=residuals,
    )
