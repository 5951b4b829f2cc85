"""
Model selection: information criteria and leave-one-out comparison.

Public API:
    select()          — rank fitted models by AIC, AICc, BIC or PSIS-LOO
    SelectionReport   — ranked, read-only comparison
    ReportRow         — one model's row in a report
"""

from pymixed.selection.solvers import select
from pymixed.selection.solution import SelectionReport, ReportRow

__all__ = [
    "select",
    "SelectionReport",
    "ReportRow",
]
