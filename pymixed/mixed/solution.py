"""
FittedModel: the immutable handle returned by pymixed.mixed.fit().

A FittedModel wraps Result[MLParams] or Result[BayesParams] together with
the specification it was fit from. It is consumed by the Selector and the
Predictor and never mutated after creation.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pymixed.core.exceptions import ConvergenceWarning
from pymixed.core.result import Result
from pymixed.mixed._common import MLParams, BayesParams, VarCompSummary
from pymixed.mixed.design import ModelSpecification, fixed_effects_matrix

METHODS = ('ml', 'bayes')


class FittedModel:
    """Handle for one fitted random-intercept model.

    Attributes exposed as properties; see summary() for an R-style
    printout.
    """

    def __init__(
        self,
        _result: Result[MLParams] | Result[BayesParams],
        spec: ModelSpecification,
        method: str,
        row_index: tuple,
        response_digest: str | None = None,
        seed: int | None = None,
    ):
        self._result = _result
        self._spec = spec
        self._method = method
        self._row_index = row_index
        self._response_digest = response_digest
        self._seed = seed

    # --- Identity ---

    @property
    def spec(self) -> ModelSpecification:
        return self._spec

    @property
    def label(self) -> str:
        return self._spec.label

    @property
    def method(self) -> str:
        """'ml' or 'bayes'."""
        return self._method

    @property
    def is_null(self) -> bool:
        return self._spec.is_null

    @property
    def response_key(self) -> tuple[str, str, str]:
        return self._spec.response_key

    @property
    def row_index(self) -> tuple:
        return self._row_index

    @property
    def response_digest(self) -> str | None:
        """Fingerprint of the response values the model was fit to."""
        return self._response_digest

    @property
    def seed(self) -> int | None:
        return self._seed

    @property
    def params(self) -> MLParams | BayesParams:
        return self._result.params

    @property
    def info(self) -> dict:
        return dict(self._result.info)

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def reml(self) -> bool:
        return bool(getattr(self.params, 'reml', False))

    # --- Diagnostics ---

    @property
    def warnings(self) -> tuple[ConvergenceWarning, ...]:
        return self._result.warnings

    @property
    def converged(self) -> bool:
        """True when no ConvergenceWarning is attached."""
        return not self._result.warnings

    @property
    def is_singular(self) -> bool:
        return self._result.has_warning('singular')

    # --- Estimates ---

    @property
    def coefficients(self) -> NDArray:
        return self.params.coefficients

    @property
    def fixef(self) -> dict[str, float]:
        return dict(zip(self.params.coefficient_names, self.params.coefficients))

    @property
    def se(self) -> NDArray:
        return self.params.se

    @property
    def var_components(self) -> tuple[VarCompSummary, ...]:
        return self.params.var_components

    @property
    def group_variance(self) -> float:
        return self.params.group_variance

    @property
    def residual_variance(self) -> float | None:
        """σ² on the fitted scale, or None when the fit has none."""
        return self.params.residual_variance

    @property
    def has_residual_variance(self) -> bool:
        return self.params.residual_variance is not None

    @property
    def ranef(self) -> dict:
        """Conditional group effects keyed by the original group label."""
        return dict(zip(self.params.group_levels, self.params.random_effects))

    @property
    def group_levels(self) -> tuple:
        return self.params.group_levels

    @property
    def n_obs(self) -> int:
        return self.params.n_obs

    @property
    def fitted_values(self) -> NDArray:
        return self.params.fitted_values

    @property
    def linear_predictor(self) -> NDArray:
        return self.params.linear_predictor

    @property
    def residuals(self) -> NDArray:
        return self.params.residuals

    # --- Information criteria (likelihood fits only) ---

    @property
    def log_likelihood(self) -> float | None:
        return getattr(self.params, 'log_likelihood', None)

    @property
    def n_params(self) -> int | None:
        return getattr(self.params, 'n_params', None)

    @property
    def aic(self) -> float | None:
        return getattr(self.params, 'aic', None)

    @property
    def aicc(self) -> float | None:
        return getattr(self.params, 'aicc', None)

    @property
    def bic(self) -> float | None:
        return getattr(self.params, 'bic', None)

    @property
    def idata(self):
        """arviz.InferenceData for Bayesian fits, else None."""
        return getattr(self.params, 'idata', None)

    # --- Prediction support ---

    def design_matrix(self, frame: pd.DataFrame) -> NDArray:
        """Fixed effects matrix for new rows, in coefficient order."""
        return fixed_effects_matrix(self._spec, frame)

    def group_codes(self, labels) -> NDArray:
        """Codes of ``labels`` in the fitted levels; -1 for unseen groups."""
        lookup = {level: i for i, level in enumerate(self.params.group_levels)}
        return np.array([lookup.get(label, -1) for label in labels], dtype=np.intp)

    def predict_linear(self, frame: pd.DataFrame) -> NDArray:
        """Point predictions on the fitted scale: Xβ + b[group].

        Unseen groups get a zero offset (population-level prediction).
        """
        X = self.design_matrix(frame)
        codes = self.group_codes(frame[self._spec.group])
        offsets = np.where(codes >= 0, self.params.random_effects[np.maximum(codes, 0)], 0.0)
        return X @ self.params.coefficients + offsets

    # --- Summary ---

    def summary(self) -> str:
        """R-style summary of the fit."""
        params = self.params
        if self._method == 'bayes':
            title = "Bayesian mixed model (NUTS)"
        elif self._spec.family == 'poisson':
            title = "Generalized linear mixed model fit by ML (Laplace Approximation)"
        else:
            title = f"Linear mixed model fit by {'REML' if self.reml else 'ML'}"

        lines = [title, f" Formula: {self.label}"]
        if self._spec.family != 'gaussian':
            lines.append(f" Family: {self._spec.family} ( log )")
        lines.append("")

        lines.append("Random effects:")
        lines.append(f" {'Groups':<12s} {'Name':<15s} {'Variance':>10s} {'Std.Dev.':>10s}")
        for vc in params.var_components:
            lines.append(
                f" {vc.group:<12s} {vc.name:<15s} {vc.variance:10.4f} {vc.std_dev:10.4f}"
            )
        if params.residual_variance is not None:
            lines.append(
                f" {'Residual':<12s} {'':<15s} {params.residual_variance:10.4f} "
                f"{np.sqrt(params.residual_variance):10.4f}"
            )
        lines.append(
            f"Number of obs: {params.n_obs}, groups: "
            f"{self._spec.group}: {len(params.group_levels)}"
        )
        lines.append("")

        se_header = 'Post. SD' if self._method == 'bayes' else 'Std. Error'
        lines.append("Fixed effects:")
        lines.append(f" {'':>15s} {'Estimate':>10s} {se_header:>10s}")
        for name, est, se in zip(params.coefficient_names, params.coefficients, params.se):
            lines.append(f" {name:>15s} {est:10.4f} {se:10.4f}")
        lines.append("")

        if self._method == 'ml':
            lines.append(
                f"logLik: {params.log_likelihood:.2f}, AIC: {params.aic:.1f}, "
                f"AICc: {params.aicc:.1f}, BIC: {params.bic:.1f}"
            )
        else:
            lines.append(
                f"max R-hat: {params.max_rhat:.3f}, divergences: {params.n_divergent}"
            )

        for w in self.warnings:
            lines.append(f"WARNING ({w.kind}): {w.message}")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (
            f"FittedModel({self.label!r}, method={self._method!r}, "
            f"n={self.n_obs}, converged={self.converged})"
        )
