"""Decorators for pipeline steps with automatic validation."""
import functools
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

import polars as pl

from location_canon import CanonicalData

logger = logging.getLogger(__name__)

# Canonical table names that can be validated
CANONICAL_TABLES = frozenset(CanonicalData.table_names())


def step(
    *,
    validate_input: bool = True,
    validate_output: bool = False,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator for pipeline steps with automatic validation.

    Arguments and returned dict entries named after a canonical table
    (locations, home_locations, existing_trips, trips) are validated against
    the row models in ``location_canon.models`` with the step's field
    requirements.

    The pipeline passes three reserved keywords on each call:
    ``validate_input`` and ``validate_output`` override the decorator
    defaults, and ``canonical_data`` receives the returned tables. A table
    that ``canonical_data`` already validated for this step is not checked
    again. Steps that declare a ``canonical_data`` parameter get it passed
    through.

    Args:
        validate_input: Default for validating canonical input tables
        validate_output: Default for validating canonical tables in a
            returned dict

    Example:
        >>> @step(validate_output=True)
        ... def detect_trips(
        ...     locations: pl.DataFrame, **kwargs
        ... ) -> dict[str, pl.DataFrame]:
        ...     return {"trips": trips}

    Returns:
        Decorated function with validation
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(func)
        passes_container = "canonical_data" in signature.parameters

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            canonical_data = kwargs.pop("canonical_data", None)
            check_inputs = kwargs.pop("validate_input", validate_input)
            check_outputs = kwargs.pop("validate_output", validate_output)
            if passes_container:
                kwargs["canonical_data"] = canonical_data

            if check_inputs:
                bound = signature.bind(*args, **kwargs)
                _validate_tables(
                    bound.arguments, func.__name__, canonical_data, "input"
                )

            result = func(*args, **kwargs)
            if not isinstance(result, Mapping):
                return result

            if canonical_data is not None:
                for name, df in _canonical_tables(result).items():
                    setattr(canonical_data, name, df)

            if check_outputs:
                _validate_tables(
                    result, func.__name__, canonical_data, "output"
                )

            return result

        return wrapper

    return decorator


def _canonical_tables(values: Mapping[str, Any]) -> dict[str, pl.DataFrame]:
    """Entries that are DataFrames named after a canonical table."""
    return {
        name: value for name, value in values.items()
        if name in CANONICAL_TABLES and isinstance(value, pl.DataFrame)
    }


def _validate_tables(
    values: Mapping[str, Any],
    step_name: str,
    canonical_data: CanonicalData | None,
    direction: str,
) -> None:
    """Validate the canonical tables among a step's inputs or outputs.

    Tables held by ``canonical_data`` are validated in place so the result
    is remembered; anything else goes through a throwaway container.
    """
    for name, df in _canonical_tables(values).items():
        held = (
            canonical_data is not None
            and getattr(canonical_data, name) is df
        )
        if held and canonical_data.is_validated(name, step=step_name):
            logger.debug(
                "Skipping %s '%s' for step '%s': already validated",
                direction,
                name,
                step_name,
            )
            continue

        logger.info(
            "Validating %s '%s' for step '%s'", direction, name, step_name
        )
        target = canonical_data if held else CanonicalData(**{name: df})
        target.validate(name, step=step_name)
