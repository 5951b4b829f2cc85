"""
Prediction with simulated intervals and natural-scale back-transformation.

Public API:
    predict()          — PredictionFrame for a fitted model and table
    prediction_grid()  — covariate sweep per group, input for predict()
    PredictionFrame    — rows joined with fit/lower/upper on both scales
"""

from pymixed.prediction.solvers import predict, prediction_grid
from pymixed.prediction.solution import PredictionFrame

__all__ = [
    "predict",
    "prediction_grid",
    "PredictionFrame",
]
