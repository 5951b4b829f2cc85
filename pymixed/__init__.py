"""
pymixed: random-intercept mixed models for grouped field data.

Loads a delimited observation table, fits a set of random-intercept
models by maximum likelihood or posterior sampling, ranks them by a
fit-quality criterion and produces predictions with simulated intervals
on the natural response scale.

Submodules:
    data: Table loading and validation
    mixed: Model specifications and fitting
    selection: Model comparison
    prediction: Predictions and intervals
    workflow: Fit-then-select orchestration
"""

__version__ = "0.1.0"

from pymixed import data
from pymixed import mixed
from pymixed import selection
from pymixed import prediction
from pymixed.data import load_table, ObservationTable
from pymixed.mixed import fit, ModelSpecification, Term, quadratic
from pymixed.selection import select
from pymixed.prediction import predict, prediction_grid
from pymixed.workflow import compare_models

__all__ = [
    "__version__",
    "data",
    "mixed",
    "selection",
    "prediction",
    "load_table",
    "ObservationTable",
    "fit",
    "ModelSpecification",
    "Term",
    "quadratic",
    "select",
    "predict",
    "prediction_grid",
    "compare_models",
]
