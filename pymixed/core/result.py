"""
Generic result container for pymixed computations.

The Result class is the envelope every fitted model stores its payload in.
It keeps timing, method metadata and non-fatal diagnostics next to the
parameters while letting each estimation path define its own payload.

Design decisions:
    - Generic over parameter payload P
    - info dict for flexible metadata (method, optimizer, sampler settings)
    - warnings hold ConvergenceWarning instances, not strings
    - Immutable (frozen=True) so a fitted model never changes after creation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

from pymixed.core.exceptions import ConvergenceWarning

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a model fit.

    Type Parameters:
        P: The estimation-specific parameter payload type

    Attributes:
        params: Estimation-specific parameters (coefficients, draws, etc.)
        info: Structured metadata (method, convergence, sampler settings)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the estimation path that produced this
        warnings: Convergence diagnostics encountered during fitting

    Examples:
        >>> Result(
        ...     params=MLParams(...),
        ...     info={'method': 'ML', 'optimizer': 'L-BFGS-B'},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='ml_lmm',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[ConvergenceWarning, ...] = field(default_factory=tuple)

    def has_warning(self, kind: str) -> bool:
        """Check if any attached warning has the given kind."""
        return any(w.kind == kind for w in self.warnings)
