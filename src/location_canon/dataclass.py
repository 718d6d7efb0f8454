"""Canonical container for location history and trip tables."""
import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, fields
from typing import ClassVar

import polars as pl
from pydantic import BaseModel

from . import checks
from .core.validators import (
    ValidationError,
    check_unique_constraints,
    validate_dataframe_rows,
)
from .models import (
    ExistingTripModel,
    HomeLocationModel,
    LocationModel,
    TripModel,
)

logger = logging.getLogger(__name__)

StatusKey = str | tuple[str, str]


@dataclass
class CanonicalData:
    """The tables a pipeline run reads and produces.

    Attributes:
        locations: Location history samples
        home_locations: Home addresses and exclusion zones
        existing_trips: Trips already stored, of any status
        trips: Trips detected by this run

    Assigning a table forgets that it was validated; call ``validate`` again
    after changing it.
    """

    locations: pl.DataFrame | None = None
    home_locations: pl.DataFrame | None = None
    existing_trips: pl.DataFrame | None = None
    trips: pl.DataFrame | None = None

    MODELS: ClassVar[dict[str, type[BaseModel]]] = {
        "locations": LocationModel,
        "home_locations": HomeLocationModel,
        "existing_trips": ExistingTripModel,
        "trips": TripModel,
    }
    UNIQUE_COLUMNS: ClassVar[dict[str, list[str]]] = {
        "trips": ["trip_id"],
    }

    # Per-instance so register_validator does not leak between runs
    _custom_validators: dict[str, list[Callable]] = field(
        default_factory=lambda: {
            table: list(funcs)
            for table, funcs in checks.CUSTOM_VALIDATORS.items()
        },
        repr=False,
    )
    _validated: set[StatusKey] = field(default_factory=set, repr=False)

    def __setattr__(self, name: str, value: object) -> None:
        """Set an attribute; replacing a table clears its validation marks."""
        object.__setattr__(self, name, value)
        validated = self.__dict__.get("_validated")
        if name in self.MODELS and validated:
            stale = {
                key for key in validated
                if key == name or (isinstance(key, tuple) and key[0] == name)
            }
            if stale:
                validated.difference_update(stale)
                logger.debug("Table '%s' replaced, validation reset", name)

    @classmethod
    def table_names(cls) -> list[str]:
        """Names of the canonical tables, in declaration order."""
        return [f.name for f in fields(cls) if f.name in cls.MODELS]

    def validate(self, table_name: str, step: str | None = None) -> None:
        """Validate a table: unique columns, rows, then custom checks.

        Args:
            table_name: Canonical table to check
            step: Step whose field requirements apply; None enforces every
                field of the row model

        Raises:
            ValueError: If ``table_name`` is not a canonical table
            ValidationError: If a layer rejects the table
        """
        if table_name not in self.MODELS:
            msg = (
                f"Invalid table name: {table_name}. "
                f"Valid tables: {', '.join(self.MODELS)}"
            )
            raise ValueError(msg)

        df = getattr(self, table_name)
        if df is None:
            logger.warning("Table %s is not loaded, not validated", table_name)
            return

        started = time.perf_counter()
        for_step = f" for step '{step}'" if step else ""
        logger.info(
            "Validating %s%s (%s rows)", table_name, for_step, f"{len(df):,}"
        )

        check_unique_constraints(
            table_name, df, self.UNIQUE_COLUMNS.get(table_name, [])
        )
        validate_dataframe_rows(table_name, df, self.MODELS[table_name], step)
        self._run_custom_validators(table_name)

        self._validated.add((table_name, step) if step else table_name)
        logger.info(
            "Validated %s%s in %.2fs",
            table_name,
            for_step,
            time.perf_counter() - started,
        )

    def _run_custom_validators(self, table_name: str) -> None:
        """Run the checks registered on a table.

        A check's parameters name the tables it receives. Checks needing a
        table that is not loaded are skipped with a warning.
        """
        for check in self._custom_validators.get(table_name, []):
            wanted = list(inspect.signature(check).parameters)
            unknown = [name for name in wanted if name not in self.MODELS]
            if unknown:
                msg = (
                    f"Validator {check.__name__} requires unknown "
                    f"table: {', '.join(unknown)}"
                )
                raise ValueError(msg)

            tables = {name: getattr(self, name) for name in wanted}
            absent = [name for name, df in tables.items() if df is None]
            if absent:
                logger.warning(
                    "Skipping validator %s: table '%s' is not loaded",
                    check.__name__,
                    absent[0],
                )
                continue

            errors = check(**tables)
            if errors:
                raise ValidationError(
                    table=table_name,
                    rule=check.__name__,
                    message="; ".join(errors),
                )

    def register_validator(self, *table_names: str) -> Callable:
        """Decorator registering a table check on this instance.

        Example:
            >>> @data.register_validator("trips")
            ... def check_titles(trips: pl.DataFrame) -> list[str]:
            ...     return []
        """
        if not table_names:
            msg = "Must specify at least one table name"
            raise ValueError(msg)
        unknown = [name for name in table_names if name not in self.MODELS]
        if unknown:
            msg = f"Unknown table: {', '.join(unknown)}"
            raise ValueError(msg)

        def decorator(func: Callable) -> Callable:
            for table_name in table_names:
                self._custom_validators.setdefault(table_name, []).append(func)
            return func

        return decorator

    def is_validated(self, table_name: str, step: str | None = None) -> bool:
        """Whether the table passed ``validate`` and was not replaced since."""
        return ((table_name, step) if step else table_name) in self._validated
