"""
SelectionReport: ranked comparison of fitted models.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

_COLUMNS = (
    'label', 'score', 'se', 'rank', 'delta', 'delta_null',
    'converged', 'indistinguishable',
)


@dataclass(frozen=True)
class ReportRow:
    """One model in a SelectionReport.

    Attributes:
        label: Specification label.
        score: Criterion value on its own scale.
        se: Standard error of the score (LOO only), else None.
        rank: 1 for the best model.
        delta: Distance from the best model in deviance units (≥ 0).
        delta_null: Improvement over the null model in deviance units
            (positive = better than null); None when no null model was
            compared.
        converged: False when the fit carries ConvergenceWarnings.
        indistinguishable: True when this model is part of a tie at the
            top, i.e. it and at least one other model are within the
            threshold of the best.
        deviance: Score on the deviance scale (lower is better).
    """
    label: str
    score: float
    se: float | None
    rank: int
    delta: float
    delta_null: float | None
    converged: bool
    indistinguishable: bool
    deviance: float


@dataclass(frozen=True)
class SelectionReport:
    """Read-only ranked comparison produced by pymixed.selection.select().

    Attributes:
        rows: Rows ordered by rank.
        criterion: 'aic', 'aicc', 'bic' or 'loo'.
        threshold: Deviance-unit difference under which models tie.
        null_label: Label of the null model, if one was compared.
    """
    rows: tuple[ReportRow, ...]
    criterion: str
    threshold: float
    null_label: str | None = None

    @property
    def best(self) -> str:
        """Label of the rank-1 model."""
        return self.rows[0].label

    @property
    def tied_with_best(self) -> tuple[str, ...]:
        """Labels of other models within the threshold of the best."""
        return tuple(r.label for r in self.rows[1:] if r.delta < self.threshold)

    @property
    def sole_winner(self) -> bool:
        """True when no other model is within the threshold of the best."""
        return not self.tied_with_best

    @property
    def higher_is_better(self) -> bool:
        return self.criterion == 'loo'

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(r.label for r in self.rows)

    def row(self, label: str) -> ReportRow:
        for r in self.rows:
            if r.label == label:
                return r
        raise KeyError(f"No model labelled {label!r}. Available: {list(self.labels)}")

    def indistinguishable(self, a: str, b: str) -> bool:
        """Whether two models' scores differ by less than the threshold."""
        return abs(self.row(a).deviance - self.row(b).deviance) < self.threshold

    def to_frame(self) -> pd.DataFrame:
        """One row per model, ordered by rank."""
        return pd.DataFrame(
            [{c: getattr(r, c) for c in _COLUMNS} for r in self.rows],
            columns=list(_COLUMNS),
        )

    def summary(self) -> str:
        """Plain-text comparison table."""
        name = 'elpd_loo' if self.criterion == 'loo' else self.criterion.upper()
        width = max(len('Model'), *(len(r.label) for r in self.rows))
        lines = [
            f"Model comparison by {name} (ties: delta < {self.threshold:g})",
            f" {'Model':<{width}s} {name:>10s} {'rank':>5s} {'delta':>8s} "
            f"{'d_null':>8s} {'conv':>5s}",
        ]
        for r in self.rows:
            d_null = f"{r.delta_null:8.2f}" if r.delta_null is not None else f"{'':>8s}"
            tie = ' *' if r.indistinguishable else ''
            lines.append(
                f" {r.label:<{width}s} {r.score:10.2f} {r.rank:5d} {r.delta:8.2f} "
                f"{d_null} {str(r.converged):>5s}{tie}"
            )
        if self.sole_winner:
            lines.append(f"Best: {self.best}")
        else:
            lines.append(
                f"Best: {self.best} (indistinguishable from: "
                f"{', '.join(self.tied_with_best)})"
            )
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (
            f"SelectionReport(criterion={self.criterion!r}, n_models={len(self.rows)}, "
            f"best={self.best!r}, sole_winner={self.sole_winner})"
        )
