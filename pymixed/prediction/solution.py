"""
PredictionFrame: rows joined with fitted values and interval bounds.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray

FITTED_COLUMNS = ('fit', 'lower', 'upper')
NATURAL_COLUMNS = ('fit_natural', 'lower_natural', 'upper_natural')


@dataclass(frozen=True)
class PredictionFrame:
    """Input rows plus predictions, ready for a plotting layer.

    Columns added to the input rows:
        fit, lower, upper: fitted (possibly log) scale
        fit_natural, lower_natural, upper_natural: natural response scale,
            each back-transformed independently

    lower/upper columns are absent when no interval was requested.

    Attributes:
        label: Label of the model that produced the predictions.
        level: Interval level, or None without intervals.
        n_sims: Number of simulated draws, or None without intervals.
        include_residual_variance: Whether residual noise was simulated.
        seed: Seed of the simulation generator.
        log_scale: Whether the fitted scale is a log scale.
    """
    _frame: pd.DataFrame
    label: str
    level: float | None
    n_sims: int | None
    include_residual_variance: bool
    seed: int | None
    log_scale: bool

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def has_interval(self) -> bool:
        return self.level is not None

    def _col(self, name: str) -> NDArray:
        return self._frame[name].to_numpy(dtype=np.float64)

    @property
    def fit(self) -> NDArray:
        return self._col('fit')

    @property
    def lower(self) -> NDArray:
        return self._col('lower')

    @property
    def upper(self) -> NDArray:
        return self._col('upper')

    @property
    def fit_natural(self) -> NDArray:
        return self._col('fit_natural')

    @property
    def lower_natural(self) -> NDArray:
        return self._col('lower_natural')

    @property
    def upper_natural(self) -> NDArray:
        return self._col('upper_natural')

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        interval = (
            f"level={self.level}, n_sims={self.n_sims}" if self.has_interval
            else "no interval"
        )
        return f"PredictionFrame({self.label!r}, n={len(self)}, {interval})"
