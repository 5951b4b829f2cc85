"""
Tests for the pymixed exception hierarchy.

Validates:
    - Inheritance chain (all errors catchable via PyMixedError)
    - Diagnostic attributes and their defaults
    - ConvergenceWarning is a warning, not an error
"""

import warnings

import pytest

from pymixed.core.exceptions import (
    ConvergenceWarning,
    DataValidationError,
    IncomparableModelsError,
    InvalidSpecificationError,
    PyMixedError,
    UnsupportedIntervalError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every error is catchable via PyMixedError."""

    @pytest.mark.parametrize("exc", [
        ValidationError,
        DataValidationError,
        InvalidSpecificationError,
        IncomparableModelsError,
        UnsupportedIntervalError,
    ])
    def test_catchable_as_base(self, exc):
        with pytest.raises(PyMixedError):
            raise exc("boom")

    def test_data_errors_are_validation_errors(self):
        assert issubclass(DataValidationError, ValidationError)
        assert issubclass(InvalidSpecificationError, ValidationError)

    def test_selection_errors_are_not_validation_errors(self):
        assert not issubclass(IncomparableModelsError, ValidationError)
        assert not issubclass(UnsupportedIntervalError, ValidationError)

    def test_convergence_warning_is_user_warning(self):
        assert issubclass(ConvergenceWarning, UserWarning)
        assert not issubclass(ConvergenceWarning, PyMixedError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestAttributes:

    def test_data_validation_error(self):
        e = DataValidationError("bad rows", column='y', rows=[3, 7])
        assert e.column == 'y'
        assert e.rows == (3, 7)
        assert str(e) == "bad rows"

    def test_data_validation_error_defaults(self):
        e = DataValidationError("bad")
        assert e.column is None
        assert e.rows == ()

    def test_invalid_specification_error(self):
        e = InvalidSpecificationError("unpaired", spec_label='m1', missing=['X'])
        assert e.spec_label == 'm1'
        assert e.missing == ('X',)

    def test_incomparable_models_error(self):
        e = IncomparableModelsError("differ", labels=['a', 'b'], reason='rows')
        assert e.labels == ('a', 'b')
        assert e.reason == 'rows'

    def test_unsupported_interval_error(self):
        e = UnsupportedIntervalError("no sigma", label='m', method='ml')
        assert e.label == 'm'
        assert e.method == 'ml'

    def test_unsupported_interval_error_defaults(self):
        e = UnsupportedIntervalError("no sigma")
        assert e.label is None
        assert e.method is None


class TestConvergenceWarning:

    def test_attributes(self):
        w = ConvergenceWarning('singular', "SD near zero", value=1e-6)
        assert w.kind == 'singular'
        assert w.message == "SD near zero"
        assert w.value == 1e-6

    def test_repr(self):
        w = ConvergenceWarning('rhat', "not mixed")
        assert repr(w) == "ConvergenceWarning(kind='rhat', message='not mixed')"

    def test_can_be_issued_through_warnings(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            warnings.warn(ConvergenceWarning('optimizer', "stalled"))
        assert caught[0].category is ConvergenceWarning
