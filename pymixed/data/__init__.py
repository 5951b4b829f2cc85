"""
Dataset loading: delimited files and DataFrames into validated tables.

Public API:
    load_table()       — read a delimited file into an ObservationTable
    ObservationTable   — validated table (from_dataframe() for in-memory data)
    log_transform()    — natural log of a positive response
    back_transform()   — inverse of a response transform
"""

from pymixed.data.table import (
    ObservationTable, log_transform, back_transform, transformed_name,
)
from pymixed.data.loader import load_table

__all__ = [
    "load_table",
    "ObservationTable",
    "log_transform",
    "back_transform",
    "transformed_name",
]
