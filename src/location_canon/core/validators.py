"""Validation framework for canonical location tables.

Validation runs in layers:
1. Column constraints (uniqueness)
2. Row-level validation (Pydantic models with step-awareness)
3. Custom validators (table-level business rules, see location_canon.checks)

Step-aware validation lets a column be optional when a table is loaded and
required once a step such as ``detect_trips`` consumes it.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any

import polars as pl
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

MAX_ERRORS_TO_COLLECT = 10


@dataclass
class ValidationError(Exception):
    """A canonical table failed validation.

    Attributes:
        table: Table that failed
        rule: Layer or check that rejected it
        message: What was wrong
        row_id: Row index, for row-level failures
        column: Column, for column-level failures
    """

    table: str
    rule: str
    message: str
    row_id: int | None = None
    column: str | None = None

    def __str__(self) -> str:
        """Format as ``[table] row N column 'c' (rule) message``."""
        location = " ".join(
            part for part in (
                f"row {self.row_id}" if self.row_id is not None else "",
                f"column '{self.column}'" if self.column else "",
            )
            if part
        )
        prefix = f"[{self.table}] {location}".rstrip()
        return f"{prefix} ({self.rule}) {self.message}"


def _field_extra(model: type[BaseModel]) -> dict[str, dict[str, Any]]:
    return {
        name: info.json_schema_extra or {}
        for name, info in model.model_fields.items()
    }


# Column constraints -------------------------------------------------------

def get_unique_fields(model: type[BaseModel]) -> list[str]:
    """Fields declared with ``step_field(unique=True)``."""
    return [
        name for name, extra in _field_extra(model).items()
        if extra.get("unique")
    ]


def check_unique_constraints(
    table_name: str,
    df: pl.DataFrame,
    unique_columns: list[str],
) -> None:
    """Reject duplicated non-null values in the given columns.

    Columns the frame does not have yet are skipped.

    Raises:
        ValidationError: On the first column holding duplicates
    """
    for col in unique_columns:
        if col not in df.columns:
            continue
        values = df.get_column(col).drop_nulls()
        dupes = values.filter(values.is_duplicated()).unique(
            maintain_order=True
        )
        if dupes.is_empty():
            continue
        shown = dupes.head(MAX_ERRORS_TO_COLLECT).to_list()
        raise ValidationError(
            table=table_name,
            rule="unique_constraint",
            column=col,
            message=f"{len(dupes)} duplicated values, e.g. {shown}",
        )


# Row validation -----------------------------------------------------------

@functools.cache
def get_required_fields_for_step(
    model: type[BaseModel],
    step_name: str,
) -> frozenset[str]:
    """Fields that must be present in rows handled by ``step_name``.

    A field is required when declared ``required_in_steps="all"`` or when
    the step is listed in its ``required_in_steps``.
    """
    return frozenset(
        name for name, extra in _field_extra(model).items()
        if extra.get("required_in_all_steps")
        or step_name in extra.get("required_in_steps", ())
    )


def validate_row_for_step(
    row_dict: dict[str, Any],
    model: type[BaseModel],
    step_name: str | None = None,
) -> None:
    """Validate one row as seen by a pipeline step.

    Without a step every model field is enforced. With a step, only the
    step's required fields must be present; null values are dropped before
    validation so other fields are checked only when they hold a value.

    Raises:
        PydanticValidationError: If strict validation fails (no step)
        ValueError: If a required field is missing or a present value is
            invalid
    """
    if step_name is None:
        model(**row_dict)
        return

    required = get_required_fields_for_step(model, step_name)
    present = {k: v for k, v in row_dict.items() if v is not None}

    missing = sorted(required.difference(present))
    if missing:
        msg = (
            f"Missing required fields for step '{step_name}': "
            f"{', '.join(missing)}"
        )
        raise ValueError(msg)

    try:
        model.model_validate(present, strict=False)
    except PydanticValidationError as e:
        # Errors on absent optional fields are not this step's concern
        problems = [
            f"{err['loc'][0]}: {err['msg']}"
            for err in e.errors()
            if err["loc"] and err["loc"][0] in present
        ]
        if problems:
            raise ValueError("; ".join(problems)) from e


def validate_dataframe_rows(
    table_name: str,
    df: pl.DataFrame,
    model: type[BaseModel],
    step: str | None = None,
) -> None:
    """Validate every row of a table, reporting up to ten failures at once.

    Raises:
        ValidationError: If any row fails; ``row_id`` is set when exactly one
            row failed
    """
    failures: list[tuple[int, str]] = []
    for row_idx, row in enumerate(df.iter_rows(named=True)):
        try:
            validate_row_for_step(row, model, step)
        except (PydanticValidationError, ValueError) as e:
            failures.append((row_idx, str(e)))
            if len(failures) == MAX_ERRORS_TO_COLLECT:
                break

    if len(failures) == 1:
        row_idx, message = failures[0]
        raise ValidationError(
            table=table_name,
            rule="row_validation",
            row_id=row_idx,
            message=message,
        )
    if failures:
        listing = "\n".join(f"  Row {idx}: {msg}" for idx, msg in failures)
        raise ValidationError(
            table=table_name,
            rule="row_validation",
            message=f"{len(failures)} rows failed validation:\n{listing}",
        )


__all__ = [
    "ValidationError",
    "check_unique_constraints",
    "get_required_fields_for_step",
    "get_unique_fields",
    "validate_dataframe_rows",
    "validate_row_for_step",
]
