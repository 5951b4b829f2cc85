"""
Core infrastructure for pymixed.

Shared abstractions used by every pipeline stage (data, mixed, selection,
prediction).

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy and ConvergenceWarning
    validation: Input validators
    defaults: Named default settings
    timing: Section timer
    log: Console logging helper
"""

from pymixed.core.result import Result
from pymixed.core.exceptions import (
    PyMixedError,
    ValidationError,
    DataValidationError,
    InvalidSpecificationError,
    IncomparableModelsError,
    UnsupportedIntervalError,
    ConvergenceWarning,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "PyMixedError",
    "ValidationError",
    "DataValidationError",
    "InvalidSpecificationError",
    "IncomparableModelsError",
    "UnsupportedIntervalError",
    "ConvergenceWarning",
]
