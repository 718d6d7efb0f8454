"""Record types used by the trip detection engine.

Tables move between pipeline steps as polars DataFrames validated against the
row models in ``location_canon.models``. Inside the engine, samples and trips
are handled one at a time as the plain dataclasses below.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from .codebook.trips import (
    HomeReferenceSource,
    TripStatus,
    TripType,
)

MAX_LATITUDE = 90.0
MAX_LONGITUDE = 180.0


def valid_coordinates(latitude: float | None, longitude: float | None) -> bool:
    """Return True when both coordinates are finite and in range."""
    if latitude is None or longitude is None:
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return abs(latitude) <= MAX_LATITUDE and abs(longitude) <= MAX_LONGITUDE


@dataclass(frozen=True)
class LocationSample:
    """A single timestamped location observation.

    Attributes:
        recorded_at: Time of the observation (timezone-aware, UTC)
        latitude: Latitude in degrees, if known
        longitude: Longitude in degrees, if known
        city_name: Reverse-geocoded locality name, if known
        country_code: Lowercase ISO 3166-1 alpha-2 code, if known
        country_name: Reverse-geocoded country name, if known
    """

    recorded_at: datetime
    latitude: float | None = None
    longitude: float | None = None
    city_name: str | None = None
    country_code: str | None = None
    country_name: str | None = None

    @property
    def has_coordinates(self) -> bool:
        """Whether the sample carries usable coordinates."""
        return valid_coordinates(self.latitude, self.longitude)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LocationSample":
        """Build a sample from a row of a normalized location frame."""
        return cls(
            recorded_at=row["recorded_at"],
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
            city_name=row.get("city_name"),
            country_code=row.get("country_code"),
            country_name=row.get("country_name"),
        )


@dataclass(frozen=True)
class HomeReference:
    """A place that counts as home.

    The first reference of a user is the configured (or inferred) home
    address; the rest are exclusion zones.
    """

    name: str
    latitude: float | None = None
    longitude: float | None = None
    city_name: str | None = None
    country_code: str | None = None
    source: HomeReferenceSource = HomeReferenceSource.HOME_ADDRESS

    @property
    def has_coordinates(self) -> bool:
        """Whether the reference can be matched by distance."""
        return valid_coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar dates."""

    start_date: date
    end_date: date

    def __str__(self) -> str:
        """Format as ``start..end``."""
        return f"{self.start_date.isoformat()}..{self.end_date.isoformat()}"

    @property
    def days(self) -> int:
        """Number of calendar days covered."""
        return (self.end_date - self.start_date).days + 1


@dataclass(frozen=True)
class ExcludedDateRange(DateRange):
    """Date range already claimed by an existing trip."""

    reason: str | None = None


@dataclass
class VisitedLocation:
    """Time spent at one (city, country) pair during an away episode."""

    city_name: str
    country_code: str
    country_name: str | None
    latitude: float | None
    longitude: float | None
    first_visit_time: datetime
    last_visit_time: datetime
    duration_hours: float = 0.0
    data_points: int = 1


@dataclass(frozen=True)
class TripMetadata:
    """Summary statistics attached to a detected trip."""

    visited_cities: list[str]
    visited_countries: list[str]
    total_duration_hours: int
    data_point_count: int
    is_international: bool
    trip_days: int
    primary_city: str | None = None
    primary_country_code: str | None = None
    is_multi_city: bool = False
    is_multi_country: bool = False
    visited_cities_detailed: list[dict[str, Any]] = field(
        default_factory=list
    )
    visited_countries_detailed: list[dict[str, Any]] = field(
        default_factory=list
    )


@dataclass(frozen=True)
class DetectedTrip:
    """A trip found by the detection engine, awaiting user review."""

    user_id: str
    start_date: date
    end_date: date
    title: str
    description: str
    trip_type: TripType
    metadata: TripMetadata
    status: TripStatus = TripStatus.PENDING

    def to_row(self) -> dict[str, Any]:
        """Flatten the trip into a row of the ``trips`` table."""
        meta = self.metadata
        return {
            "user_id": self.user_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "title": self.title,
            "description": self.description,
            "trip_type": str(self.trip_type),
            "status": str(self.status),
            "visited_cities": list(meta.visited_cities),
            "visited_countries": list(meta.visited_countries),
            "total_duration_hours": meta.total_duration_hours,
            "data_point_count": meta.data_point_count,
            "is_international": meta.is_international,
            "trip_days": meta.trip_days,
            "primary_city": meta.primary_city,
            "primary_country_code": meta.primary_country_code,
            "is_multi_city": meta.is_multi_city,
            "is_multi_country": meta.is_multi_country,
            "visited_cities_detailed": [
                dict(entry) for entry in meta.visited_cities_detailed
            ],
            "visited_countries_detailed": [
                dict(entry) for entry in meta.visited_countries_detailed
            ],
        }
