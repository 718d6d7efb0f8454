"""Collaborators of the trip detection engine.

The engine talks to storage only through the protocols below. The
DataFrame-backed implementations serve the pipeline step and the tests; a
database-backed source only needs to provide the same methods.
"""

import logging
from collections.abc import Callable, Iterator, Mapping
from datetime import date, datetime
from typing import Any, Protocol

import polars as pl

from location_canon.records import DateRange, DetectedTrip, ExcludedDateRange

from .date_ranges import range_bounds
from .geocoding import normalize_location_frame

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]
CancelCheck = Callable[[], bool]

VISITED_CITY_STRUCT = pl.Struct({
    "city": pl.Utf8,
    "country_code": pl.Utf8,
    "duration_hours": pl.Int64,
    "data_points": pl.Int64,
    "latitude": pl.Float64,
    "longitude": pl.Float64,
})

VISITED_COUNTRY_STRUCT = pl.Struct({
    "country_code": pl.Utf8,
    "country": pl.Utf8,
    "duration_hours": pl.Int64,
})

TRIP_SCHEMA: dict[str, pl.DataType] = {
    "trip_id": pl.Int64,
    "user_id": pl.Utf8,
    "start_date": pl.Date,
    "end_date": pl.Date,
    "title": pl.Utf8,
    "description": pl.Utf8,
    "trip_type": pl.Utf8,
    "status": pl.Utf8,
    "visited_cities": pl.List(pl.Utf8),
    "visited_countries": pl.List(pl.Utf8),
    "total_duration_hours": pl.Int64,
    "data_point_count": pl.Int64,
    "is_international": pl.Boolean,
    "trip_days": pl.Int64,
    "primary_city": pl.Utf8,
    "primary_country_code": pl.Utf8,
    "is_multi_city": pl.Boolean,
    "is_multi_country": pl.Boolean,
    "visited_cities_detailed": pl.List(VISITED_CITY_STRUCT),
    "visited_countries_detailed": pl.List(VISITED_COUNTRY_STRUCT),
}


# Protocols ----------------------------------------------------------------

class SampleSource(Protocol):
    """Location history, served in ascending time order."""

    def first_sample_time(self, user_id: str) -> datetime | None:
        """Time of the user's earliest sample, None without history."""
        ...

    def count_samples(
        self, user_id: str, date_range: DateRange | None = None
    ) -> int:
        """Number of samples in the range (all history if None)."""
        ...

    def iter_pages(
        self,
        user_id: str,
        date_range: DateRange | None,
        page_size: int,
    ) -> Iterator[pl.DataFrame]:
        """Yield sample pages sorted by ``recorded_at``."""
        ...


class HomeConfigSource(Protocol):
    """User home address and exclusion zones."""

    def home_address(self, user_id: str) -> Mapping[str, Any] | None:
        """Configured home address payload, if any."""
        ...

    def exclusions(self, user_id: str) -> list[Mapping[str, Any]]:
        """Exclusion zone payloads."""
        ...


class TripSource(Protocol):
    """Existing trips, of any status."""

    def excluded_date_ranges(self, user_id: str) -> list[ExcludedDateRange]:
        """Date ranges already claimed by the user's trips."""
        ...


class TripSink(Protocol):
    """Destination for newly detected trips."""

    def save_trip(self, trip: DetectedTrip) -> None:
        """Persist a trip; status stays as created."""
        ...


# DataFrame-backed implementations ------------------------------------------

def _for_user(
    df: pl.DataFrame | pl.LazyFrame,
    user_id: str,
) -> pl.DataFrame | pl.LazyFrame:
    """Restrict a frame to one user when it has a user_id column."""
    schema = df.collect_schema() if isinstance(df, pl.LazyFrame) else df.schema
    if "user_id" not in schema:
        return df
    return df.filter(pl.col("user_id").cast(pl.Utf8) == str(user_id))


def _as_date(df: pl.DataFrame, col: str) -> pl.DataFrame:
    dtype = df.schema[col]
    if dtype == pl.Utf8:
        return df.with_columns(pl.col(col).str.to_date())
    if isinstance(dtype, pl.Datetime):
        return df.with_columns(pl.col(col).dt.date())
    return df


class FrameSampleSource:
    """Sample source over a polars DataFrame or LazyFrame.

    Pages are sliced from a lazy, sorted query, so a LazyFrame scan (for
    example ``pl.scan_parquet``) is never collected in full.
    """

    def __init__(self, samples: pl.DataFrame | pl.LazyFrame) -> None:
        """Initialize source.

        Args:
            samples: Location samples; an optional ``user_id`` column
                selects the user, other columns as accepted by
                ``normalize_location_frame``
        """
        self._samples = normalize_location_frame(samples.lazy())

    def _select(
        self, user_id: str, date_range: DateRange | None
    ) -> pl.LazyFrame:
        lf = _for_user(self._samples, user_id)
        if date_range is not None:
            start, end = range_bounds(date_range)
            lf = lf.filter(
                (pl.col("recorded_at") >= start)
                & (pl.col("recorded_at") < end)
            )
        return lf

    def first_sample_time(self, user_id: str) -> datetime | None:
        """Time of the user's earliest sample, None without history."""
        return (
            self._select(user_id, None)
            .select(pl.col("recorded_at").min())
            .collect()
            .item()
        )

    def count_samples(
        self, user_id: str, date_range: DateRange | None = None
    ) -> int:
        """Number of samples in the range (all history if None)."""
        return (
            self._select(user_id, date_range)
            .select(pl.len())
            .collect()
            .item()
        )

    def iter_pages(
        self,
        user_id: str,
        date_range: DateRange | None,
        page_size: int,
    ) -> Iterator[pl.DataFrame]:
        """Yield sample pages sorted by ``recorded_at``."""
        ordered = (
            self._select(user_id, date_range)
            .filter(pl.col("recorded_at").is_not_null())
            .sort("recorded_at", maintain_order=True)
        )
        offset = 0
        while True:
            page = ordered.slice(offset, page_size).collect()
            if page.is_empty():
                return
            yield page
            if len(page) < page_size:
                return
            offset += page_size


class FrameHomeConfigSource:
    """Home configuration from a ``home_locations`` table."""

    def __init__(self, home_locations: pl.DataFrame | None) -> None:
        """Initialize source.

        Args:
            home_locations: Rows with ``kind`` ("home_address" or
                "exclusion"), ``name``, coordinates, city and country;
                None means nothing is configured
        """
        self._home_locations = home_locations

    def _rows(self, user_id: str, kind: str) -> list[dict[str, Any]]:
        if self._home_locations is None or self._home_locations.is_empty():
            return []
        rows = _for_user(self._home_locations, user_id)
        return rows.filter(pl.col("kind") == kind).to_dicts()

    def home_address(self, user_id: str) -> Mapping[str, Any] | None:
        """First home address row of the user, if any."""
        rows = self._rows(user_id, "home_address")
        return rows[0] if rows else None

    def exclusions(self, user_id: str) -> list[Mapping[str, Any]]:
        """Exclusion rows of the user."""
        return self._rows(user_id, "exclusion")


class FrameTripStore:
    """Trip source and sink over an ``existing_trips`` table.

    Saved trips are kept in memory and exported with ``to_frame``.
    """

    def __init__(self, existing_trips: pl.DataFrame | None = None) -> None:
        """Initialize store.

        Args:
            existing_trips: Stored trips with ``start_date``, ``end_date``
                and optionally ``user_id`` and ``status``
        """
        self._existing = existing_trips
        self.saved: list[DetectedTrip] = []

    def excluded_date_ranges(self, user_id: str) -> list[ExcludedDateRange]:
        """Date ranges of the user's existing and newly saved trips."""
        ranges = [
            ExcludedDateRange(t.start_date, t.end_date, reason=str(t.status))
            for t in self.saved
            if t.user_id == str(user_id)
        ]
        if self._existing is None or self._existing.is_empty():
            return ranges

        rows = _for_user(self._existing, user_id)
        rows = _as_date(_as_date(rows, "start_date"), "end_date")
        has_status = "status" in rows.columns
        for row in rows.iter_rows(named=True):
            start: date | None = row["start_date"]
            end: date | None = row["end_date"]
            if start is None or end is None:
                logger.warning("Skipping existing trip without dates: %s", row)
                continue
            ranges.append(
                ExcludedDateRange(
                    start, end, reason=row["status"] if has_status else None
                )
            )
        return ranges

    def save_trip(self, trip: DetectedTrip) -> None:
        """Keep a detected trip."""
        self.saved.append(trip)

    def to_frame(self) -> pl.DataFrame:
        """Saved trips as a ``trips`` table with sequential trip_id."""
        rows = [
            {"trip_id": i, **trip.to_row()}
            for i, trip in enumerate(self.saved, start=1)
        ]
        for row in rows:
            row["user_id"] = str(row["user_id"])
        return pl.DataFrame(rows, schema=TRIP_SCHEMA)
