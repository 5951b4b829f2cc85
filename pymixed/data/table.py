"""
ObservationTable: validated tabular data for mixed model fitting.

An ObservationTable is the "I have data" object every later stage
consumes. It wraps a pandas DataFrame and guarantees, at construction:

    - the response column is numeric and finite on every row
    - the grouping column has no missing labels
    - under transform='log', every response is strictly positive and the
      derived column 'log_<response>' is present

Violations raise DataValidationError naming the offending rows instead of
letting a NaN propagate into a fit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pymixed.core.exceptions import ValidationError
from pymixed.core.validation import (
    check_columns, check_numeric, check_finite, check_positive, check_not_null,
)

TRANSFORMS = ('log', 'identity')


def log_transform(values: Any) -> NDArray:
    """Natural log of strictly positive values.

    Callers validate positivity first; this function does not clip.
    """
    return np.log(np.asarray(values, dtype=np.float64))


def back_transform(values: Any, transform: str = 'log') -> NDArray:
    """Map fitted-scale values back to the natural response scale."""
    arr = np.asarray(values, dtype=np.float64)
    if transform == 'log':
        return np.exp(arr)
    if transform == 'identity':
        return arr
    raise ValidationError(f"transform: expected one of {TRANSFORMS}, got {transform!r}")


def transformed_name(response: str, transform: str) -> str:
    """Name of the derived response column for a transform."""
    return f"log_{response}" if transform == 'log' else response


@dataclass(frozen=True)
class ObservationTable:
    """
    Validated observation table. Construct via from_dataframe() or
    pymixed.data.load_table(), not directly.

    Attributes:
        response: Name of the (untransformed) response column
        group: Name of the grouping column used as random intercept
        transform: 'log' or 'identity', the transform derived at load time
    """
    _frame: pd.DataFrame
    response: str
    group: str
    transform: str
    _metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        *,
        response: str,
        group: str,
        transform: str = 'log',
        covariates: Iterable[str] | None = None,
        source_path: str | None = None,
    ) -> ObservationTable:
        """
        Validate a DataFrame and wrap it as an ObservationTable.

        Args:
            df: Source frame; it is copied, never modified
            response: Response column name
            group: Grouping column name
            transform: 'log' derives log_<response>; 'identity' leaves the
                response as is
            covariates: Optional covariate columns to validate up front
                (numeric and finite)
            source_path: Recorded in metadata when loaded from a file

        Raises:
            ValidationError: Unknown transform, absent columns, or an
                existing column named like the derived log response
            DataValidationError: Row-level violations, with offending rows
        """
        if transform not in TRANSFORMS:
            raise ValidationError(
                f"transform: expected one of {TRANSFORMS}, got {transform!r}"
            )
        covariates = list(covariates or [])
        check_columns(df, [response, group, *covariates], 'table')
        derived = transformed_name(response, transform)
        if transform == 'log' and derived in df.columns:
            raise ValidationError(
                f"table already has a column {derived!r}; it would be "
                f"overwritten by the derived log response"
            )

        check_numeric(df[response], response)
        check_finite(df[response], response)
        if transform == 'log':
            check_positive(df[response], response)
        check_not_null(df[group], group)
        for col in covariates:
            check_numeric(df[col], col)
            check_finite(df[col], col)

        frame = df.copy()
        if transform == 'log':
            frame[derived] = log_transform(frame[response])

        metadata = {
            'n_observations': len(frame),
            'columns': list(df.columns),
            'source': 'file' if source_path else 'dataframe',
        }
        if source_path:
            metadata['source_path'] = source_path

        return cls(
            _frame=frame,
            response=response,
            group=group,
            transform=transform,
            _metadata=metadata,
        )

    # === Access ===

    @property
    def frame(self) -> pd.DataFrame:
        """A copy of the underlying frame, derived columns included."""
        return self._frame.copy()

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self._frame.columns)

    @property
    def n_obs(self) -> int:
        return len(self._frame)

    @property
    def row_index(self) -> tuple:
        """Row labels, used to check that two fits saw the same rows."""
        return tuple(self._frame.index.tolist())

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    @property
    def group_labels(self) -> pd.Series:
        return self._frame[self.group].copy()

    def with_frame(self, df: pd.DataFrame) -> ObservationTable:
        """A new table over ``df`` with the same response, group and transform.

        The frame is validated again; derived columns are recomputed.
        """
        derived = transformed_name(self.response, self.transform)
        if self.transform == 'log' and derived in df.columns:
            df = df.drop(columns=[derived])
        return ObservationTable.from_dataframe(
            df,
            response=self.response,
            group=self.group,
            transform=self.transform,
            source_path=self._metadata.get('source_path'),
        )

    def has_column(self, name: str) -> bool:
        return name in self._frame.columns

    def column(self, name: str) -> NDArray:
        """Numeric column as a float64 array."""
        check_columns(self._frame, [name], 'table')
        return self._frame[name].to_numpy(dtype=np.float64)

    def response_values(self, transform: str | None = None) -> NDArray:
        """
        Response on the requested scale.

        A table loaded with transform='identity' may still be asked for the
        log scale; positivity is checked here in that case.

        Raises:
            ValidationError: Unknown transform
            DataValidationError: Non-positive values under 'log'
        """
        transform = self.transform if transform is None else transform
        if transform not in TRANSFORMS:
            raise ValidationError(
                f"transform: expected one of {TRANSFORMS}, got {transform!r}"
            )
        raw = self._frame[self.response]
        if transform == 'identity':
            return raw.to_numpy(dtype=np.float64)
        if self.transform == transform:
            return self._frame[transformed_name(self.response, transform)].to_numpy(dtype=np.float64)
        check_positive(raw, self.response)
        return log_transform(raw)

    def __len__(self) -> int:
        return self.n_obs

    def __repr__(self) -> str:
        n_groups = self._frame[self.group].nunique()
        return (
            f"ObservationTable(n={self.n_obs}, response={self.response!r}, "
            f"group={self.group!r} [{n_groups} levels], transform={self.transform!r})"
        )
