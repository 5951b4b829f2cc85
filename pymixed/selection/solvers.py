"""
Model selection across fitted random-intercept models.

Public API:
    select() — score, rank and compare a set of FittedModel handles
"""

from __future__ import annotations

import logging
from typing import Sequence

from pymixed.core import defaults
from pymixed.core.exceptions import IncomparableModelsError, ValidationError
from pymixed.mixed.solution import FittedModel
from pymixed.selection._criteria import CRITERIA, INFORMATION_CRITERIA, score
from pymixed.selection.solution import ReportRow, SelectionReport

logger = logging.getLogger(__name__)


def select(
    handles: Sequence[FittedModel],
    *,
    criterion: str = 'aic',
    threshold: float = defaults.INDISTINGUISHABLE_THRESHOLD,
) -> SelectionReport:
    """Rank fitted models by a fit-quality criterion.

    The null model is not added automatically; include it among
    ``handles`` to get the delta_null column.

    Args:
        handles: Fitted models sharing the same response and rows.
        criterion: 'aic', 'aicc', 'bic' (maximum likelihood fits) or
            'loo' (Bayesian fits, PSIS-LOO elpd).
        threshold: Deviance-unit difference under which models are
            reported as indistinguishable. For 'loo' the deviance scale is
            -2 · elpd.

    Returns:
        SelectionReport ordered by rank; equal scores keep input order.

    Raises:
        ValidationError: Unknown criterion or negative threshold.
        IncomparableModelsError: Empty input, duplicate labels, mismatched
            response/rows, or a criterion the fits cannot provide.
    """
    if criterion not in CRITERIA:
        raise ValidationError(f"criterion: expected one of {CRITERIA}, got {criterion!r}")
    threshold = float(threshold)
    if threshold < 0:
        raise ValidationError(f"threshold: must be >= 0, got {threshold}")

    handles = list(handles)
    _check_comparable(handles, criterion)

    scores = [score(h, criterion) for h in handles]
    order = sorted(range(len(handles)), key=lambda i: scores[i].deviance)
    best_dev = scores[order[0]].deviance

    null_idx = next((i for i, h in enumerate(handles) if h.is_null), None)
    null_dev = scores[null_idx].deviance if null_idx is not None else None

    n_tied = sum(1 for i in order if scores[i].deviance - best_dev < threshold)

    rows = []
    for rank, i in enumerate(order, start=1):
        s = scores[i]
        delta = s.deviance - best_dev
        rows.append(ReportRow(
            label=handles[i].label,
            score=s.value,
            se=s.se,
            rank=rank,
            delta=delta,
            delta_null=(null_dev - s.deviance) if null_dev is not None else None,
            converged=handles[i].converged,
            indistinguishable=n_tied > 1 and delta < threshold,
            deviance=s.deviance,
        ))

    report = SelectionReport(
        rows=tuple(rows),
        criterion=criterion,
        threshold=threshold,
        null_label=handles[null_idx].label if null_idx is not None else None,
    )
    logger.info(
        "selected %r by %s over %d models (sole winner: %s)",
        report.best, criterion, len(rows), report.sole_winner,
    )
    return report


def _check_comparable(handles: list[FittedModel], criterion: str) -> None:
    if not handles:
        raise IncomparableModelsError("No fitted models to compare", reason='empty')

    labels = tuple(h.label for h in handles)
    duplicates = sorted({l for l in labels if labels.count(l) > 1})
    if duplicates:
        raise IncomparableModelsError(
            f"Duplicate model labels {duplicates}; give each specification a "
            f"distinct label",
            labels=tuple(duplicates),
            reason='labels',
        )

    first = handles[0]
    for h in handles[1:]:
        if h.response_key != first.response_key:
            raise IncomparableModelsError(
                f"Models model different responses: {first.label!r} has "
                f"{first.response_key}, {h.label!r} has {h.response_key}",
                labels=(first.label, h.label),
                reason='response',
            )
        if h.row_index != first.row_index:
            raise IncomparableModelsError(
                f"Models were fit on different observation rows: "
                f"{first.label!r} (n={first.n_obs}) vs {h.label!r} (n={h.n_obs})",
                labels=(first.label, h.label),
                reason='rows',
            )
        if h.response_digest != first.response_digest:
            raise IncomparableModelsError(
                f"Models were fit on different response values over the same "
                f"row labels: {first.label!r} vs {h.label!r}",
                labels=(first.label, h.label),
                reason='rows',
            )

    wanted = 'bayes' if criterion == 'loo' else 'ml'
    wrong = tuple(h.label for h in handles if h.method != wanted)
    if wrong:
        raise IncomparableModelsError(
            f"criterion {criterion!r} requires method={wanted!r} fits; "
            f"got other methods for {list(wrong)}",
            labels=wrong,
            reason='method',
        )

    if criterion in INFORMATION_CRITERIA:
        reml = {h.reml for h in handles}
        if len(reml) > 1:
            raise IncomparableModelsError(
                "Cannot compare REML and ML fits",
                labels=labels,
                reason='method',
            )
        fixed = {tuple(h.spec.coefficient_names) for h in handles}
        if reml == {True} and len(fixed) > 1:
            raise IncomparableModelsError(
                "REML likelihoods are not comparable across different fixed "
                "effects; refit with reml=False",
                labels=labels,
                reason='method',
            )
