"""
Prediction with simulated intervals for fitted random-intercept models.

Public API:
    predict()          — point predictions and simulated intervals
    prediction_grid()  — covariate sweep per group for prediction ribbons
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from pymixed.core import defaults
from pymixed.core.exceptions import (
    InvalidSpecificationError, UnsupportedIntervalError, ValidationError,
)
from pymixed.core.validation import (
    check_level, check_not_null, check_positive_int, check_seed,
)
from pymixed.data.table import ObservationTable, back_transform
from pymixed.mixed.solution import FittedModel
from pymixed.prediction._simulate import simulate_ml, simulate_bayes
from pymixed.prediction.solution import (
    PredictionFrame, FITTED_COLUMNS, NATURAL_COLUMNS,
)

logger = logging.getLogger(__name__)


def predict(
    handle: FittedModel,
    data: ObservationTable | pd.DataFrame,
    *,
    level: float = defaults.DEFAULT_LEVEL,
    interval: bool = True,
    include_residual_variance: bool = False,
    n_sims: int = defaults.DEFAULT_N_SIMS,
    seed: int | None = None,
) -> PredictionFrame:
    """Predict on the fitted and natural scales.

    Point predictions are Xβ + b[group] using the conditional group
    effects; groups not seen at fit time get a zero offset. Interval
    bounds are the empirical (1-level)/2 and 1-(1-level)/2 quantiles of
    ``n_sims`` simulated realisations. On a log scale the point and both
    bounds are exponentiated independently, so natural-scale intervals
    are asymmetric and never negative.

    Args:
        handle: Fitted model.
        data: Table (or DataFrame holding the covariates and group column).
        level: Interval level in (0, 1).
        interval: If False, only point predictions are produced.
        include_residual_variance: Add residual noise to each simulation
            (a prediction interval rather than a confidence interval).
        n_sims: Number of simulated realisations.
        seed: Seed for the simulation generator. The same seed yields the
            same draws at every level.

    Returns:
        PredictionFrame.

    Raises:
        UnsupportedIntervalError: Residual variance requested from a fit
            that has none; raised before any prediction work.
        InvalidSpecificationError: Covariate or group columns missing.
        ValidationError: Invalid level, n_sims, seed or column clash.
    """
    if include_residual_variance and not handle.has_residual_variance:
        raise UnsupportedIntervalError(
            f"{handle.label}: residual variance requested, but a "
            f"{handle.spec.family} fit by {handle.method!r} does not expose one",
            label=handle.label,
            method=handle.method,
        )
    level = check_level(level)
    n_sims = check_positive_int(n_sims, 'n_sims')
    seed = check_seed(seed)

    frame = data.frame if isinstance(data, ObservationTable) else data.copy()
    group = handle.spec.group
    if group not in frame.columns:
        raise InvalidSpecificationError(
            f"{handle.label}: group column {group!r} not found in table",
            spec_label=handle.label,
            missing=(group,),
        )
    check_not_null(frame[group], group)
    clash = [c for c in FITTED_COLUMNS + NATURAL_COLUMNS if c in frame.columns]
    if clash:
        raise ValidationError(f"table already has prediction columns {clash}")

    X = handle.design_matrix(frame)
    fit = handle.predict_linear(frame)
    scale = 'log' if handle.spec.log_scale else 'identity'

    frame['fit'] = fit
    if interval:
        codes, n_new = _simulation_codes(handle, frame[group])
        rng = np.random.default_rng(seed)
        simulate = simulate_bayes if handle.method == 'bayes' else simulate_ml
        sims = simulate(handle, X, codes, n_new, n_sims, rng, include_residual_variance)

        alpha = 1.0 - level
        frame['lower'] = np.quantile(sims, alpha / 2.0, axis=0)
        frame['upper'] = np.quantile(sims, 1.0 - alpha / 2.0, axis=0)
        logger.debug(
            "%s: %d simulations at level %.3f (residual=%s, new groups=%d)",
            handle.label, n_sims, level, include_residual_variance, n_new,
        )

    frame['fit_natural'] = back_transform(frame['fit'], scale)
    if interval:
        frame['lower_natural'] = back_transform(frame['lower'], scale)
        frame['upper_natural'] = back_transform(frame['upper'], scale)

    return PredictionFrame(
        _frame=frame,
        label=handle.label,
        level=level if interval else None,
        n_sims=n_sims if interval else None,
        include_residual_variance=include_residual_variance,
        seed=seed,
        log_scale=handle.spec.log_scale,
    )


def prediction_grid(
    handle: FittedModel,
    table: ObservationTable,
    covariate: str,
    *,
    num: int = 50,
    groups=None,
) -> pd.DataFrame:
    """Sweep one covariate across its observed range, for every group.

    Other first-order covariates are held at their table means. Declared
    second-order terms are recomputed as the square of their first-order
    covariate, so the grid stays consistent with the quadratic pairing.

    Args:
        handle: Fitted model whose specification names ``covariate``.
        table: Table the covariate range and means are taken from.
        covariate: First-order covariate to sweep.
        num: Number of grid points per group.
        groups: Group labels to include; defaults to the fitted levels.

    Returns:
        DataFrame with one row per (group, grid point), accepted by predict().
    """
    spec = handle.spec
    first_order = [t.column for t in spec.terms if t.order == 1]
    if covariate not in first_order:
        raise InvalidSpecificationError(
            f"{spec.label}: {covariate!r} is not a first-order term of this model",
            spec_label=spec.label,
            missing=(covariate,),
        )
    num = check_positive_int(num, 'num')

    values = table.column(covariate)
    sweep = np.linspace(values.min(), values.max(), num)
    levels = list(handle.group_levels if groups is None else groups)

    grid = pd.DataFrame({
        spec.group: np.repeat(np.array(levels, dtype=object), num),
        covariate: np.tile(sweep, len(levels)),
    })
    for col in first_order:
        if col != covariate:
            grid[col] = float(np.mean(table.column(col)))
    for term in spec.terms:
        if term.order == 2:
            grid[term.column] = grid[term.of] ** 2
    return grid


def _simulation_codes(handle: FittedModel, labels: pd.Series) -> tuple[np.ndarray, int]:
    """Group codes for simulation; unseen labels get codes J, J+1, ..."""
    codes = handle.group_codes(labels)
    n_fit = len(handle.group_levels)
    unseen = {}
    for i, label in enumerate(labels):
        if codes[i] < 0:
            codes[i] = n_fit + unseen.setdefault(label, len(unseen))
    return codes, len(unseen)
