"""
Input validation utilities for pymixed.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - Each function validates ONE thing
    - Parameter names included in all error messages
    - Offending row labels reported, never just counts
"""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np
import pandas as pd

from pymixed.core.exceptions import ValidationError, DataValidationError


def check_columns(df: pd.DataFrame, columns: Iterable[str], name: str) -> None:
    """
    Verify that every named column exists in a frame.

    Args:
        df: Frame to check
        columns: Required column names
        name: Description of the frame for error messages

    Raises:
        ValidationError: If any column is absent
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValidationError(
            f"{name}: missing required columns {missing}. "
            f"Available: {list(df.columns)}"
        )


def check_finite(values: pd.Series, name: str) -> None:
    """
    Verify a numeric column has no NaN or Inf values.

    Raises:
        DataValidationError: Listing the row labels of non-finite values
    """
    arr = values.to_numpy(dtype=np.float64)
    bad = ~np.isfinite(arr)
    if bad.any():
        rows = tuple(values.index[bad].tolist())
        raise DataValidationError(
            f"{name}: {len(rows)} missing or non-finite value(s) at rows {list(rows)}",
            column=name,
            rows=rows,
        )


def check_positive(values: pd.Series, name: str) -> None:
    """
    Verify a numeric column is strictly positive (log-transformable).

    Raises:
        DataValidationError: Listing the row labels of values <= 0
    """
    arr = values.to_numpy(dtype=np.float64)
    bad = arr <= 0
    if bad.any():
        rows = tuple(values.index[bad].tolist())
        raise DataValidationError(
            f"{name}: log transform requires strictly positive values, "
            f"got {int(bad.sum())} value(s) <= 0 at rows {list(rows)}",
            column=name,
            rows=rows,
        )


def check_not_null(values: pd.Series, name: str) -> None:
    """
    Verify a label column has no missing entries.

    Raises:
        DataValidationError: Listing the row labels of missing labels
    """
    bad = values.isna().to_numpy()
    if bad.any():
        rows = tuple(values.index[bad].tolist())
        raise DataValidationError(
            f"{name}: {len(rows)} missing label(s) at rows {list(rows)}",
            column=name,
            rows=rows,
        )


def check_numeric(values: pd.Series, name: str) -> None:
    """Verify a column has a numeric dtype."""
    if not pd.api.types.is_numeric_dtype(values):
        raise ValidationError(
            f"{name}: non-numeric dtype {values.dtype}, expected numeric data"
        )


def check_level(level: float, name: str = 'level') -> float:
    """
    Verify a confidence level lies strictly between 0 and 1.

    Returns:
        The level as a float
    """
    try:
        level = float(level)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name}: expected a number, got {level!r}") from e
    if not 0.0 < level < 1.0:
        raise ValidationError(f"{name}: must be in (0, 1), got {level}")
    return level


def check_positive_int(value: Any, name: str) -> int:
    """Verify value is an integer >= 1."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{name}: expected an integer, got {value!r}")
    if value < 1:
        raise ValidationError(f"{name}: must be >= 1, got {value}")
    return int(value)


def check_positive_float(value: Any, name: str) -> float:
    """Verify value is a finite number > 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ValidationError(f"{name}: expected a number, got {value!r}")
    if not np.isfinite(value) or value <= 0:
        raise ValidationError(f"{name}: must be finite and > 0, got {value}")
    return float(value)


def check_seed(seed: Any, name: str = 'seed') -> int | None:
    """Verify a random seed is None or a non-negative integer."""
    if seed is None:
        return None
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise ValidationError(f"{name}: expected an integer or None, got {seed!r}")
    if seed < 0:
        raise ValidationError(f"{name}: must be non-negative, got {seed}")
    return int(seed)

