"""
Random-intercept mixed models: specification and fitting.

Public API:
    fit()                — fit one specification (ML, REML, Laplace or Bayes)
    ModelSpecification   — structured model formula
    Term, quadratic()    — fixed-effect terms and declared quadratic pairs
    FittedModel          — immutable handle for a fitted model
"""

from pymixed.mixed.design import ModelSpecification, Term, quadratic
from pymixed.mixed.solvers import fit
from pymixed.mixed.solution import FittedModel

__all__ = [
    "fit",
    "ModelSpecification",
    "Term",
    "quadratic",
    "FittedModel",
]
