"""Row models for the canonical location and trip tables.

This module uses Pydantic for data validation. Models describe individual
records (rows); use ``CanonicalData.validate`` to validate a polars
DataFrame row by row.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

from location_canon.core.step_field import step_field

from .codebook.trips import TripStatus, TripType


# Data Models ------------------------------------------------------------------
class LocationModel(BaseModel):
    """A location history sample."""

    user_id: str | int = step_field(required_in_steps=["detect_trips"])
    recorded_at: datetime = step_field(required_in_steps="all")
    # Out-of-range or missing coordinates are tolerated; such samples are
    # matched by city name only
    latitude: float | None = step_field(default=None)
    longitude: float | None = step_field(default=None)
    city_name: str | None = step_field(default=None)
    country_code: str | None = step_field(default=None)
    country_name: str | None = step_field(default=None)
    geocode: dict[str, Any] | str | None = step_field(default=None)


class HomeLocationModel(BaseModel):
    """A configured home address or exclusion zone.

    Rows with ``kind == "home_address"`` define a user's home; rows with
    ``kind == "exclusion"`` add places that also count as home (second homes,
    a partner's flat, the office abroad).
    """

    user_id: str | int = step_field(required_in_steps=["detect_trips"])
    kind: str = step_field(
        pattern="^(home_address|exclusion)$",
        required_in_steps=["detect_trips"],
    )
    name: str | None = step_field(default=None)
    latitude: float | None = step_field(ge=-90, le=90, default=None)
    longitude: float | None = step_field(ge=-180, le=180, default=None)
    city_name: str | None = step_field(default=None)
    country_code: str | None = step_field(
        min_length=2, max_length=2, default=None
    )
    address: dict[str, Any] | str | None = step_field(default=None)


class ExistingTripModel(BaseModel):
    """A trip already stored for a user, in any status."""

    user_id: str | int = step_field(required_in_steps=["detect_trips"])
    start_date: date = step_field(required_in_steps=["detect_trips"])
    end_date: date = step_field(required_in_steps=["detect_trips"])
    status: TripStatus | None = step_field(default=None)
    title: str | None = step_field(default=None)


class TripModel(BaseModel):
    """A trip produced by the detect_trips step."""

    trip_id: int = step_field(ge=1, unique=True, required_in_steps="all")
    user_id: str | int = step_field(required_in_steps="all")
    start_date: date = step_field(required_in_steps="all")
    end_date: date = step_field(required_in_steps="all")
    title: str = step_field(min_length=1, required_in_steps="all")
    description: str | None = step_field(default=None)
    trip_type: TripType = step_field(required_in_steps="all")
    status: TripStatus = step_field(required_in_steps="all")
    visited_cities: list[str] = step_field(default_factory=list)
    visited_countries: list[str] = step_field(default_factory=list)
    total_duration_hours: int = step_field(ge=0, required_in_steps="all")
    data_point_count: int = step_field(ge=1, required_in_steps="all")
    is_international: bool = step_field(required_in_steps="all")
    trip_days: int = step_field(ge=1, required_in_steps="all")
    primary_city: str | None = step_field(default=None)
    primary_country_code: str | None = step_field(default=None)
    is_multi_city: bool | None = step_field(default=None)
    is_multi_country: bool | None = step_field(default=None)
    visited_cities_detailed: list[dict[str, Any]] = step_field(
        default_factory=list
    )
    visited_countries_detailed: list[dict[str, Any]] = step_field(
        default_factory=list
    )
