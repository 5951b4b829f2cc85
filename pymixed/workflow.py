"""
Fit-then-select orchestration.

Public API:
    compare_models()   — fit several specifications and rank the survivors
    ComparisonResult   — fitted handles, per-spec failures and the report
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from pymixed.core.exceptions import DataValidationError, InvalidSpecificationError
from pymixed.data.table import ObservationTable
from pymixed.mixed.design import ModelSpecification
from pymixed.mixed.solution import FittedModel
from pymixed.mixed.solvers import fit
from pymixed.selection.solution import SelectionReport
from pymixed.selection.solvers import select

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of compare_models().

    Attributes:
        handles: Fitted models, in specification order, failures skipped.
        failures: Specification label -> exception raised while fitting.
        report: SelectionReport over ``handles``, or None when nothing fit.
    """
    handles: tuple[FittedModel, ...]
    failures: dict[str, Exception] = field(default_factory=dict)
    report: SelectionReport | None = None

    @property
    def best(self) -> FittedModel | None:
        if self.report is None:
            return None
        return self.handle(self.report.best)

    def handle(self, label: str) -> FittedModel:
        for h in self.handles:
            if h.label == label:
                return h
        raise KeyError(f"No fitted model labelled {label!r}")


def compare_models(
    table: ObservationTable,
    specs: Sequence[ModelSpecification],
    *,
    method: str = 'ml',
    criterion: str | None = None,
    seed: int | None = None,
    **fit_kwargs,
) -> ComparisonResult:
    """Fit every specification, then rank the ones that fit.

    Fits run one after another. A specification rejected by validation is
    logged and recorded in ``failures``; the remaining ones are still fit.

    Args:
        table: Validated observation table.
        specs: Specifications to fit; include the null model to get
            delta_null in the report.
        method: 'ml' or 'bayes', passed to fit().
        criterion: Selection criterion. Defaults to 'aic' for 'ml' and
            'loo' for 'bayes'.
        seed: Sampler seed passed to every fit.
        **fit_kwargs: Further options for fit() (reml, draws, chains, ...).

    Returns:
        ComparisonResult.

    Raises:
        IncomparableModelsError: The surviving fits cannot be ranked.
    """
    if criterion is None:
        criterion = 'loo' if method == 'bayes' else 'aic'

    handles = []
    failures = {}
    for spec in specs:
        try:
            handles.append(fit(spec, table, method=method, seed=seed, **fit_kwargs))
        except (InvalidSpecificationError, DataValidationError) as e:
            logger.error("skipping %r: %s", spec.label, e)
            failures[spec.label] = e

    report = select(handles, criterion=criterion) if handles else None
    return ComparisonResult(handles=tuple(handles), failures=failures, report=report)
