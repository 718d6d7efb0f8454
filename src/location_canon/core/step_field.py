"""Pydantic fields annotated with pipeline step metadata."""
from typing import Any

from pydantic import Field


def step_field(
    *,
    required_in_steps: list[str] | str | None = None,
    unique: bool = False,
    **field_kwargs: Any,  # noqa: ANN401
) -> Any:  # noqa: ANN401
    """Create a Field that records where it is required.

    Row models for the canonical location tables use this instead of
    ``Field`` so that a column can be optional while loading and mandatory
    once a step consumes it.

    Args:
        required_in_steps: Step names that require the field, or "all".
            None or empty means the field is optional everywhere.
        unique: Whether values must be unique within the table.
        **field_kwargs: Remaining Field parameters (ge, le, default, ...)

    Returns:
        Field instance carrying the step metadata in json_schema_extra

    Example:
        >>> recorded_at: datetime = step_field(required_in_steps="all")
        >>> latitude: float | None = step_field(
        ...     ge=-90, le=90, default=None
        ... )
    """
    extra = dict(field_kwargs.pop("json_schema_extra", None) or {})

    if isinstance(required_in_steps, str):
        required_in_steps = [required_in_steps]
    required_in_steps = required_in_steps or []

    if unique:
        extra["unique"] = True

    if required_in_steps == ["all"]:
        extra["required_in_all_steps"] = True
    elif required_in_steps:
        extra["required_in_steps"] = list(required_in_steps)

    return Field(json_schema_extra=extra, **field_kwargs)
