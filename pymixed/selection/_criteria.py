"""
Fit-quality scores for model comparison.

Every score is reported twice: on its own scale (what the user asked for)
and on a common deviance scale where lower is better, which is what ranks,
deltas and the indistinguishability threshold are computed on. For
information criteria the two coincide; for PSIS-LOO the deviance scale is
looic = -2 · elpd_loo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import arviz as az
import numpy as np

from pymixed.core.exceptions import IncomparableModelsError
from pymixed.mixed.solution import FittedModel

logger = logging.getLogger(__name__)

INFORMATION_CRITERIA = ('aic', 'aicc', 'bic')
CRITERIA = INFORMATION_CRITERIA + ('loo',)


@dataclass(frozen=True)
class Score:
    """One model's score.

    Attributes:
        value: Score on the criterion's own scale (IC: lower is better;
            elpd_loo: higher is better).
        deviance: Same score on the deviance scale (lower is better).
        se: Standard error of the score, where the criterion provides one.
    """
    value: float
    deviance: float
    se: float | None = None


def information_criterion(model: FittedModel, criterion: str) -> Score:
    """AIC, AICc or BIC of a likelihood fit."""
    value = getattr(model, criterion)
    if value is None:
        raise IncomparableModelsError(
            f"{model.label}: {criterion.upper()} requires a maximum likelihood "
            f"fit, got method={model.method!r}",
            labels=(model.label,),
            reason='method',
        )
    return Score(value=float(value), deviance=float(value))


def loo_score(model: FittedModel) -> Score:
    """PSIS-LOO expected log predictive density of a Bayesian fit."""
    if model.idata is None:
        raise IncomparableModelsError(
            f"{model.label}: leave-one-out scoring requires a Bayesian fit, "
            f"got method={model.method!r}",
            labels=(model.label,),
            reason='method',
        )
    loo = az.loo(model.idata, pointwise=False)
    if bool(loo["warning"]):
        logger.warning(
            "%s: some Pareto k values are high; PSIS-LOO may be unreliable",
            model.label,
        )
    elpd = float(loo["elpd_loo"])
    return Score(value=elpd, deviance=-2.0 * elpd, se=float(loo["se"]))


def score(model: FittedModel, criterion: str) -> Score:
    """Score ``model`` under ``criterion``.

    Raises:
        IncomparableModelsError: Criterion unavailable for this fit, or the
            score is not finite.
    """
    if criterion == 'loo':
        result = loo_score(model)
    else:
        result = information_criterion(model, criterion)
    if not np.isfinite(result.deviance):
        raise IncomparableModelsError(
            f"{model.label}: {criterion} score is not finite ({result.value})",
            labels=(model.label,),
            reason='criterion',
        )
    return result
