"""Shared helpers for processing steps."""
from .helpers import (
    expr_haversine,
    expr_valid_coordinates,
    parse_datetime_column,
)

__all__ = [
    "expr_haversine",
    "expr_valid_coordinates",
    "parse_datetime_column",
]
