"""Pipeline steps for location history processing.

This module imports and exposes all step functions for easy access.
"""

from .read_write import load_data, write_data
from .trips import detect_trips

__all__ = [
    "detect_trips",
    "load_data",
    "write_data",
]
