"""
Model specifications and design validation for random-intercept models.

A ModelSpecification is a structured replacement for a free-form formula
such as ``log(y) ~ X + X2 + (1 | year)``. Because terms are values rather
than parsed text, the first-/second-order pairing rule can be checked
statically before any fitting work is done.

MixedDesign is the validated numeric form of a specification against a
table: response vector, fixed effects matrix and integer group codes.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pymixed.core.exceptions import (
    ValidationError, DataValidationError, InvalidSpecificationError,
)
from pymixed.core.validation import check_finite, check_numeric
from pymixed.data.table import ObservationTable, TRANSFORMS
from pymixed.mixed.families import FAMILIES

INTERCEPT = '(Intercept)'


@dataclass(frozen=True)
class Term:
    """One fixed-effect term.

    Attributes:
        column: Table column holding the covariate values.
        of: For a declared second-order term, the first-order covariate
            it squares (e.g. Term('X2', of='X')). None for first order.
    """
    column: str
    of: str | None = None

    @property
    def order(self) -> int:
        return 1 if self.of is None else 2


def quadratic(base: str, square: str) -> tuple[Term, Term]:
    """First-order term plus its declared second-order pair."""
    return Term(base), Term(square, of=base)


@dataclass(frozen=True)
class ModelSpecification:
    """Random-intercept model specification.

    Attributes:
        response: Untransformed response column.
        group: Grouping column; enters as a random intercept.
        terms: Ordered fixed-effect terms (strings are first-order terms).
        transform: 'log' or 'identity'. Defaults to 'log' for the gaussian
            family and 'identity' for poisson (which uses a log link).
        family: 'gaussian' or 'poisson'.
        label: Display label; defaults to an R-style formula.

    Examples:
        >>> ModelSpecification.null('abundance', 'year')
        >>> ModelSpecification('abundance', 'year', terms=quadratic('temp', 'temp2'))
    """
    response: str
    group: str
    terms: tuple[Term, ...] = ()
    transform: str | None = None
    family: str = 'gaussian'
    label: str | None = field(default=None, compare=False)

    def __post_init__(self):
        terms = tuple(Term(t) if isinstance(t, str) else t for t in self.terms)
        object.__setattr__(self, 'terms', terms)
        if self.transform is None:
            object.__setattr__(
                self, 'transform', 'identity' if self.family == 'poisson' else 'log'
            )
        if self.label is None:
            object.__setattr__(self, 'label', self._formula())

    @classmethod
    def null(cls, response: str, group: str, **kwargs) -> ModelSpecification:
        """Intercept and grouping random effect only."""
        return cls(response, group, terms=(), **kwargs)

    @property
    def is_null(self) -> bool:
        return len(self.terms) == 0

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(t.column for t in self.terms)

    @property
    def coefficient_names(self) -> tuple[str, ...]:
        return (INTERCEPT,) + self.columns

    @property
    def response_key(self) -> tuple[str, str, str]:
        """Identity of the modelled quantity; fits compare only within a key."""
        return (self.response, self.transform, self.family)

    @property
    def log_scale(self) -> bool:
        """True when fitted values live on a log scale (transform or link)."""
        return self.transform == 'log' or self.family == 'poisson'

    def _formula(self) -> str:
        lhs = f"log({self.response})" if self.transform == 'log' else self.response
        rhs = ' + '.join(self.columns) if self.terms else '1'
        return f"{lhs} ~ {rhs} + (1 | {self.group})"

    def validate(self, columns: Iterable[str] | None = None) -> None:
        """Check the specification, optionally against available columns.

        Raises:
            InvalidSpecificationError: Unknown family/transform, a
                second-order term without its first-order term, duplicate
                or misplaced terms, or columns absent from ``columns``.
        """
        if self.family not in FAMILIES:
            raise InvalidSpecificationError(
                f"{self.label}: unknown family {self.family!r}, "
                f"expected one of {tuple(FAMILIES)}",
                spec_label=self.label,
            )
        if self.transform not in TRANSFORMS:
            raise InvalidSpecificationError(
                f"{self.label}: unknown transform {self.transform!r}, "
                f"expected one of {TRANSFORMS}",
                spec_label=self.label,
            )
        if self.family == 'poisson' and self.transform != 'identity':
            raise InvalidSpecificationError(
                f"{self.label}: the poisson family models raw counts through a "
                f"log link; use transform='identity'",
                spec_label=self.label,
            )

        seen = set()
        duplicates = []
        for term in self.terms:
            if term.column in seen:
                duplicates.append(term.column)
            seen.add(term.column)
        if duplicates:
            raise InvalidSpecificationError(
                f"{self.label}: duplicate terms {duplicates}",
                spec_label=self.label,
                missing=tuple(duplicates),
            )
        misplaced = [c for c in seen if c in (self.response, self.group)]
        if misplaced:
            raise InvalidSpecificationError(
                f"{self.label}: response/group columns cannot be fixed-effect "
                f"terms: {misplaced}",
                spec_label=self.label,
                missing=tuple(misplaced),
            )

        first_order = {t.column for t in self.terms if t.order == 1}
        unpaired = [t.of for t in self.terms if t.order == 2 and t.of not in first_order]
        if unpaired:
            raise InvalidSpecificationError(
                f"{self.label}: second-order term(s) declared without their "
                f"first-order term(s) {unpaired}",
                spec_label=self.label,
                missing=tuple(unpaired),
            )

        if columns is not None:
            available = set(columns)
            needed = [self.response, self.group, *self.columns]
            absent = [c for c in needed if c not in available]
            if absent:
                raise InvalidSpecificationError(
                    f"{self.label}: columns {absent} not found in table",
                    spec_label=self.label,
                    missing=tuple(absent),
                )


@dataclass(frozen=True)
class MixedDesign:
    """Validated design for a random-intercept model.

    Attributes:
        y: Response on the fitted scale (n,).
        X: Fixed effects design matrix with intercept column (n, p).
        group_codes: 0-indexed group code per observation (n,).
        group_levels: Original group labels, ordered by code.
        coef_names: Names of the columns of X.
        row_index: Table row labels, in order.
        n: Number of observations.
        p: Number of fixed effect columns.
    """
    y: NDArray
    X: NDArray
    group_codes: NDArray
    group_levels: tuple
    coef_names: tuple[str, ...]
    row_index: tuple
    n: int
    p: int

    @property
    def n_groups(self) -> int:
        return len(self.group_levels)

    @property
    def response_digest(self) -> str:
        """Fingerprint of the fitted-scale response values."""
        y = np.ascontiguousarray(self.y, dtype=np.float64)
        return hashlib.sha1(y.tobytes()).hexdigest()

    @staticmethod
    def build(spec: ModelSpecification, table: ObservationTable) -> 'MixedDesign':
        """Validate ``spec`` against ``table`` and assemble the design.

        Raises:
            InvalidSpecificationError: Invalid specification or absent columns.
            DataValidationError: Response not valid on the requested scale
                or non-finite covariate values.
            ValidationError: Too few groups or observations.
        """
        spec.validate(table.columns)

        y = table.response_values(spec.transform)
        frame = table.frame
        if spec.family == 'poisson':
            _check_counts(frame[spec.response], spec.response)

        X = fixed_effects_matrix(spec, frame)
        codes, levels = pd.factorize(frame[spec.group], sort=True)
        n, p = X.shape

        if len(levels) < 2:
            raise ValidationError(
                f"Group '{spec.group}' has only {len(levels)} level(s), need at least 2"
            )
        # +3 keeps the small-sample AIC correction defined
        if n < p + 4:
            raise ValidationError(
                f"{spec.label}: need at least {p + 4} observations for {p} "
                f"fixed effects, got {n}"
            )

        return MixedDesign(
            y=y,
            X=X,
            group_codes=np.asarray(codes, dtype=np.intp),
            group_levels=tuple(levels.tolist()),
            coef_names=spec.coefficient_names,
            row_index=table.row_index,
            n=n,
            p=p,
        )


def fixed_effects_matrix(spec: ModelSpecification, frame: pd.DataFrame) -> NDArray:
    """Intercept plus one column per term, in specification order.

    Raises:
        InvalidSpecificationError: A term column is absent from ``frame``.
        DataValidationError: A term column has non-finite values.
    """
    absent = [c for c in spec.columns if c not in frame.columns]
    if absent:
        raise InvalidSpecificationError(
            f"{spec.label}: columns {absent} not found in table",
            spec_label=spec.label,
            missing=tuple(absent),
        )
    cols = [np.ones(len(frame), dtype=np.float64)]
    for name in spec.columns:
        check_numeric(frame[name], name)
        check_finite(frame[name], name)
        cols.append(frame[name].to_numpy(dtype=np.float64))
    return np.column_stack(cols)


def _check_counts(values: pd.Series, name: str) -> None:
    arr = values.to_numpy(dtype=np.float64)
    bad = (arr < 0) | (arr != np.round(arr))
    if bad.any():
        rows = tuple(values.index[bad].tolist())
        raise DataValidationError(
            f"{name}: poisson family requires non-negative integer counts, "
            f"got invalid values at rows {list(rows)}",
            column=name,
            rows=rows,
        )
