"""Pipeline module for orchestrating data processing steps."""

from .pipeline import Pipeline

__all__ = ["Pipeline"]
