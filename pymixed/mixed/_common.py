"""
Common data types for fitted random-intercept models.

Contains the frozen parameter payloads that go inside Result[P] envelopes.
Each payload is a pure data container with no methods.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from numpy.typing import NDArray


@dataclass(frozen=True)
class VarCompSummary:
    """Variance component summary for one random effect term.

    Attributes:
        group: Grouping factor name (e.g. 'year').
        name: Term name within the group ('(Intercept)').
        variance: Estimated variance σ²_b.
        std_dev: Standard deviation (sqrt of variance).
    """
    group: str
    name: str
    variance: float
    std_dev: float


@dataclass(frozen=True)
class MLParams:
    """
    Parameter payload for a maximum likelihood (or REML / Laplace) fit.
    """
    # Fixed effects
    coefficients: NDArray              # β̂ (p,)
    coefficient_names: tuple[str, ...]
    se: NDArray                        # standard errors of β̂ (p,)
    vcov: NDArray                      # Var(β̂) (p, p)

    # Random effects
    var_components: tuple[VarCompSummary, ...]
    group_variance: float              # σ²_b
    residual_variance: float | None    # σ², None for families without one

    # Conditional modes and their conditional variances
    random_effects: NDArray            # b̂ (J,)
    random_effects_var: NDArray        # Var(b | y) (J,)
    group_levels: tuple

    # Model fit
    log_likelihood: float
    reml: bool
    n_params: int
    aic: float
    aicc: float
    bic: float
    n_obs: int

    # Predictions (linear predictor is on the fitted scale)
    linear_predictor: NDArray          # Xβ̂ + b̂[group] (n,)
    fitted_values: NDArray             # g⁻¹(linear predictor) (n,)
    residuals: NDArray                 # y - fitted (n,)

    # Convergence
    converged: bool
    n_iter: int

    # Internal
    theta: float                       # relative random-intercept SD


@dataclass(frozen=True)
class BayesParams:
    """
    Parameter payload for a Bayesian (posterior sample) fit.

    Point summaries are posterior means; draws are flattened over chains
    so the first axis always indexes posterior samples.
    """
    # Fixed effects
    coefficients: NDArray              # posterior mean β (p,)
    coefficient_names: tuple[str, ...]
    se: NDArray                        # posterior SD of β (p,)

    # Random effects
    var_components: tuple[VarCompSummary, ...]
    group_variance: float              # posterior mean σ²_b
    residual_variance: float | None    # posterior mean σ², None without one
    random_effects: NDArray            # posterior mean b (J,)
    group_levels: tuple

    # Posterior draws
    beta_draws: NDArray                # (S, p)
    group_effect_draws: NDArray        # (S, J)
    group_sd_draws: NDArray            # (S,)
    sigma_draws: NDArray | None        # (S,) or None

    # Model fit
    n_obs: int
    linear_predictor: NDArray          # posterior mean linear predictor (n,)
    fitted_values: NDArray
    residuals: NDArray
    max_rhat: float
    n_divergent: int

    # arviz.InferenceData with a pointwise log_likelihood group
    idata: Any
