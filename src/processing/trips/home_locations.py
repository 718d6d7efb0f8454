"""Home reference resolution.

Turns a user's configured home address and exclusion zones into an ordered
list of HomeReference records. When no home address is configured, a home is
inferred from location history: the city seen on the most distinct days.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import polars as pl

from location_canon.codebook.trips import HomeReferenceSource
from location_canon.records import HomeReference, valid_coordinates
from processing.utils import expr_valid_coordinates

from .configs import TripDetectionConfig
from .geocoding import extract_city_name, extract_country_code, parse_geocode

logger = logging.getLogger(__name__)

INFERRED_HOME_NAME = "Inferred home"


def _as_float(value: Any) -> float | None:  # noqa: ANN401
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _coordinates(payload: Mapping[str, Any]) -> tuple[float | None, ...]:
    """Read (lat, lon) from a nested ``coordinates`` block or flat keys."""
    node = payload.get("coordinates")
    if not isinstance(node, Mapping):
        node = payload
    lat = _as_float(node.get("lat", node.get("latitude")))
    lon = _as_float(
        node.get("lng", node.get("lon", node.get("longitude")))
    )
    if not valid_coordinates(lat, lon):
        return None, None
    return lat, lon


def reference_from_payload(
    payload: Mapping[str, Any],
    name: str,
    source: HomeReferenceSource,
) -> HomeReference | None:
    """Build a HomeReference from a stored home address or exclusion.

    Accepts ``{"coordinates": {"lat", "lng"}, "address": {...}}``, flat
    ``latitude``/``longitude``/``city_name``/``country_code`` keys, and
    exclusions wrapping either shape in a ``location`` key.

    Returns:
        The reference, or None if it has neither coordinates nor a city
    """
    location = payload.get("location")
    if isinstance(location, Mapping):
        payload = location

    lat, lon = _coordinates(payload)
    address = parse_geocode(payload.get("address"))

    # Blank names from CSV cells fall back to the geocoded address
    city_name = (payload.get("city_name") or "").strip()
    city_name = city_name or extract_city_name(address)
    country_code = payload.get("country_code") or extract_country_code(
        address
    )

    if lat is None and not city_name:
        logger.warning(
            "Ignoring %s '%s': no coordinates and no city", source, name
        )
        return None

    return HomeReference(
        name=name,
        latitude=lat,
        longitude=lon,
        city_name=city_name or None,
        country_code=country_code.lower() if country_code else None,
        source=source,
    )


class HomeLocationResolver:
    """Resolves the places that count as home for one user."""

    def __init__(self, config: TripDetectionConfig | None = None) -> None:
        """Initialize resolver.

        Args:
            config: TripDetectionConfig controlling home inference
        """
        self.config = config or TripDetectionConfig()

    def resolve(
        self,
        home_address: Mapping[str, Any] | None,
        exclusions: Iterable[Mapping[str, Any]] = (),
        history: Iterable[pl.DataFrame] | None = None,
    ) -> list[HomeReference]:
        """Return home references, the home address first.

        Args:
            home_address: Configured home address payload, if any
            exclusions: Exclusion zone payloads
            history: Pages of the user's location history, used to infer a
                home when none is configured

        Returns:
            Ordered list of references; empty when nothing is configured
            and nothing could be inferred
        """
        references: list[HomeReference] = []

        home = None
        if home_address:
            home = reference_from_payload(
                home_address,
                str(home_address.get("name") or "Home"),
                HomeReferenceSource.HOME_ADDRESS,
            )

        if home is None and self.config.infer_home_location:
            logger.warning(
                "No usable home address configured, inferring home from "
                "location history (reduced confidence)"
            )
            home = infer_home_location(history or [])
            if home is not None:
                logger.info(
                    "Inferred home city: %s (%s)",
                    home.city_name,
                    home.country_code,
                )

        if home is not None:
            references.append(home)

        for i, exclusion in enumerate(exclusions, start=1):
            ref = reference_from_payload(
                exclusion,
                str(exclusion.get("name") or f"Exclusion {i}"),
                HomeReferenceSource.EXCLUSION,
            )
            if ref is not None:
                references.append(ref)

        if not references:
            logger.warning(
                "No home references available, all samples will be "
                "classified as away (reduced confidence)"
            )

        return references


def infer_home_location(
    pages: Iterable[pl.DataFrame],
) -> HomeReference | None:
    """Infer the home city from location history.

    Each city counts at most once per calendar day. The city with the most
    days wins (ties go to the city observed first) and its reference point is
    the mean of its observed coordinates.

    Args:
        pages: Location sample frames with ``recorded_at``, ``latitude``,
            ``longitude``, ``city_name`` and ``country_code``

    Returns:
        The inferred home reference, or None without any geocoded samples
    """
    valid = expr_valid_coordinates(pl.col("latitude"), pl.col("longitude"))

    # Aggregate page by page so only per-city-day totals are kept
    partials = [
        page.filter(pl.col("city_name").is_not_null())
        .group_by(
            "city_name",
            "country_code",
            pl.col("recorded_at").dt.date().alias("day"),
        )
        .agg(
            lat_sum=pl.col("latitude").filter(valid).sum(),
            lon_sum=pl.col("longitude").filter(valid).sum(),
            n_coords=valid.sum(),
            first_seen=pl.col("recorded_at").min(),
        )
        for page in pages
    ]
    partials = [p for p in partials if len(p) > 0]
    if not partials:
        return None

    summary = (
        pl.concat(partials)
        .group_by("city_name")
        .agg(
            days=pl.col("day").n_unique(),
            first_seen=pl.col("first_seen").min(),
            lat_sum=pl.col("lat_sum").sum(),
            lon_sum=pl.col("lon_sum").sum(),
            n_coords=pl.col("n_coords").sum(),
            country_code=pl.col("country_code")
            .sort_by("first_seen")
            .drop_nulls()
            .first(),
        )
        .sort(["days", "first_seen"], descending=[True, False])
    )

    best = summary.row(0, named=True)
    lat = lon = None
    if best["n_coords"]:
        lat = best["lat_sum"] / best["n_coords"]
        lon = best["lon_sum"] / best["n_coords"]

    return HomeReference(
        name=INFERRED_HOME_NAME,
        latitude=lat,
        longitude=lon,
        city_name=best["city_name"],
        country_code=best["country_code"],
        source=HomeReferenceSource.INFERRED,
    )
