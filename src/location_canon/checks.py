"""Custom validation checks for canonical location and trip tables.

These are DataFrame-level checks that run after row-level validation. Each
check takes one or more tables by name and returns a list of error messages.
Register a check on a table by adding it to CUSTOM_VALIDATORS.
"""

from collections.abc import Callable

import polars as pl

MAX_SAMPLE_IDS = 5


def _check_date_order(df: pl.DataFrame, label: str) -> list[str]:
    if "start_date" not in df.columns or "end_date" not in df.columns:
        return []
    bad = df.filter(pl.col("end_date") < pl.col("start_date"))
    if len(bad) == 0:
        return []
    sample = bad.head(MAX_SAMPLE_IDS).select("start_date", "end_date").rows()
    return [
        f"Found {len(bad)} {label} where end_date < start_date. "
        f"Sample: {sample}"
    ]


def check_trip_dates(trips: pl.DataFrame) -> list[str]:
    """Ensure detected trips end on or after their start date.

    Args:
        trips: DataFrame with detected trip records

    Returns:
        List of error messages (empty if validation passes)
    """
    return _check_date_order(trips, "trips")


def check_existing_trip_dates(existing_trips: pl.DataFrame) -> list[str]:
    """Ensure stored trips have a well-formed date range."""
    return _check_date_order(existing_trips, "existing trips")


def check_home_address_per_user(home_locations: pl.DataFrame) -> list[str]:
    """Ensure each user has at most one home address row."""
    if not {"kind", "user_id"}.issubset(home_locations.columns):
        return []
    dupes = (
        home_locations.filter(pl.col("kind") == "home_address")
        .group_by("user_id")
        .len()
        .filter(pl.col("len") > 1)
    )
    if len(dupes) == 0:
        return []
    users = dupes["user_id"].to_list()[:MAX_SAMPLE_IDS]
    return [f"Found {len(dupes)} users with several home addresses: {users}"]


# Registry of custom validators
# Format: {table_name: [check_function1, check_function2, ...]}
CUSTOM_VALIDATORS: dict[str, list[Callable]] = {
    "trips": [check_trip_dates],
    "existing_trips": [check_existing_trip_dates],
    "home_locations": [check_home_address_per_user],
}
