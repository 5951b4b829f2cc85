"""
Exception hierarchy for pymixed.

All exceptions inherit from PyMixedError to allow catching any
library-specific error. ConvergenceWarning is the one exception to the
rule: it is a warning category that is attached to fitted models, never
raised.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from __future__ import annotations


class PyMixedError(Exception):
    """Base exception for all pymixed errors."""
    pass


class ValidationError(PyMixedError):
    """
    Input validation failed.

    Raised when user-provided inputs (paths, columns, parameter values)
    fail validation checks.
    """
    pass


class DataValidationError(ValidationError):
    """
    Observation data violates a table invariant.

    Raised for non-positive responses ahead of a log transform, missing or
    non-finite responses, and missing grouping labels.

    Attributes:
        column: Name of the offending column
        rows: Row labels (index values) of every offending row
    """

    def __init__(
        self,
        message: str,
        column: str | None = None,
        rows: tuple = (),
    ):
        super().__init__(message)
        self.column = column
        self.rows = tuple(rows)


class InvalidSpecificationError(ValidationError):
    """
    A model specification is invalid for the table it is fit against.

    Raised when a second-order term is declared without its first-order
    term, when a referenced column is absent, or when an option
    (family, transform, method) is not recognised.

    Attributes:
        spec_label: Label of the offending specification, if known
        missing: Names of absent columns or missing first-order terms
    """

    def __init__(
        self,
        message: str,
        spec_label: str | None = None,
        missing: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.spec_label = spec_label
        self.missing = tuple(missing)


class IncomparableModelsError(PyMixedError):
    """
    Fitted models cannot be ranked against each other.

    Raised when models differ in response, observation rows, family or
    estimation method, or when the requested criterion is unavailable for
    one of them.

    Attributes:
        labels: Labels of the models involved
        reason: Short machine-readable reason ('response', 'rows',
            'method', 'criterion', 'labels', 'empty')
    """

    def __init__(
        self,
        message: str,
        labels: tuple[str, ...] = (),
        reason: str | None = None,
    ):
        super().__init__(message)
        self.labels = tuple(labels)
        self.reason = reason


class UnsupportedIntervalError(PyMixedError):
    """
    A prediction interval was requested that the model cannot provide.

    Raised when residual variance is requested from a fit that does not
    expose a residual-variance estimate (e.g. a Poisson family fit).

    Attributes:
        label: Label of the fitted model
        method: Estimation method of the fitted model
    """

    def __init__(
        self,
        message: str,
        label: str | None = None,
        method: str | None = None,
    ):
        super().__init__(message)
        self.label = label
        self.method = method


class ConvergenceWarning(UserWarning):
    """
    Non-fatal fitting diagnostic attached to a fitted model.

    Never raised by pymixed. A fit that produces one is still returned,
    and the caller decides whether a degenerate fit is usable.

    Attributes:
        kind: 'optimizer', 'pirls', 'singular', 'rhat' or 'divergences'
        message: Human-readable description
        value: The diagnostic value that triggered the warning, if any
    """

    def __init__(self, kind: str, message: str, value: float | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.value = value

    def __repr__(self) -> str:
        return f"ConvergenceWarning(kind={self.kind!r}, message={self.message!r})"
