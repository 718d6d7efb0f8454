"""Reading place names out of reverse-geocoding payloads.

Samples arrive either with flat ``city_name``/``country_code`` columns or with
the raw geocoder response in a ``geocode`` column (a JSON string or a
struct). Both shapes are normalized to the flat columns here so the rest of
the engine never looks at provider-specific keys.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

import polars as pl

from location_canon.codebook.geocode import (
    ADDRESS_PATHS,
    CITY_FIELD_CANDIDATES,
    COUNTRY_CODE_FIELD_CANDIDATES,
    COUNTRY_NAME_FIELD_CANDIDATES,
)
from processing.utils import parse_datetime_column

logger = logging.getLogger(__name__)

COLUMN_ALIASES = {
    "lat": "latitude",
    "lon": "longitude",
    "lng": "longitude",
    "timestamp": "recorded_at",
    "city": "city_name",
    "country": "country_name",
}

SAMPLE_COLUMNS: dict[str, pl.DataType] = {
    "latitude": pl.Float64,
    "longitude": pl.Float64,
    "city_name": pl.Utf8,
    "country_code": pl.Utf8,
    "country_name": pl.Utf8,
}

_GEOCODE_STRUCT = pl.Struct({
    "_geo_city_name": pl.Utf8,
    "_geo_country_code": pl.Utf8,
    "_geo_country_name": pl.Utf8,
})


# Payload access ---------------------------------------------------------------

def parse_geocode(raw: Any) -> Mapping[str, Any] | None:  # noqa: ANN401
    """Return the geocode payload as a mapping, or None if unusable."""
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Ignoring unparseable geocode payload: %.80s", raw)
            return None
        return payload if isinstance(payload, Mapping) else None
    return None


def _address_levels(payload: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    levels = []
    for path in ADDRESS_PATHS:
        node: Any = payload
        for key in path:
            node = node.get(key) if isinstance(node, Mapping) else None
        if isinstance(node, Mapping):
            levels.append(node)
    return levels


def first_field(
    payload: Mapping[str, Any] | None,
    candidates: tuple[str, ...],
) -> str | None:
    """Return the first non-blank candidate value found in the payload.

    Address levels are searched most specific first; within a level the
    candidates are tried in order.
    """
    if not payload:
        return None
    for level in _address_levels(payload):
        for key in candidates:
            value = level.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def extract_city_name(payload: Mapping[str, Any] | None) -> str | None:
    """Locality name: city, else town, else village, else municipality."""
    return first_field(payload, CITY_FIELD_CANDIDATES)


def extract_country_code(payload: Mapping[str, Any] | None) -> str | None:
    """Lowercase two-letter country code, if present."""
    code = first_field(payload, COUNTRY_CODE_FIELD_CANDIDATES)
    if code is None or len(code) != 2:  # noqa: PLR2004
        return None
    return code.lower()


def extract_country_name(payload: Mapping[str, Any] | None) -> str | None:
    """Country name as reported by the geocoder."""
    return first_field(payload, COUNTRY_NAME_FIELD_CANDIDATES)


def _geocode_fields(raw: Any) -> dict[str, str | None]:  # noqa: ANN401
    payload = parse_geocode(raw)
    return {
        "_geo_city_name": extract_city_name(payload),
        "_geo_country_code": extract_country_code(payload),
        "_geo_country_name": extract_country_name(payload),
    }


# Frame normalization ------------------------------------------------------

def normalize_location_frame(
    df: pl.DataFrame | pl.LazyFrame,
) -> pl.DataFrame | pl.LazyFrame:
    """Bring a location sample frame into the engine's column layout.

    Renames common column aliases, adds missing optional columns as nulls,
    parses ``recorded_at`` to UTC datetimes, fills place names from a
    ``geocode`` column where the flat columns are empty, lowercases country
    codes, and blanks empty city names.

    Args:
        df: Location samples, eager or lazy

    Returns:
        Frame of the same kind with at least the columns ``recorded_at``,
        ``latitude``, ``longitude``, ``city_name``, ``country_code``,
        ``country_name``
    """
    schema = df.collect_schema() if isinstance(df, pl.LazyFrame) else df.schema

    renames = {
        alias: target
        for alias, target in COLUMN_ALIASES.items()
        if alias in schema and target not in schema
    }
    if renames:
        df = df.rename(renames)
        schema = (
            df.collect_schema() if isinstance(df, pl.LazyFrame) else df.schema
        )

    if "recorded_at" not in schema:
        msg = "Location samples need a recorded_at column"
        raise ValueError(msg)

    df = df.with_columns([
        pl.lit(None, dtype=dtype).alias(col)
        for col, dtype in SAMPLE_COLUMNS.items()
        if col not in schema
    ]).with_columns([
        pl.col(col).cast(dtype) for col, dtype in SAMPLE_COLUMNS.items()
    ])
    df = parse_datetime_column(df, "recorded_at")

    if "geocode" in schema and schema["geocode"] != pl.Null:
        df = (
            df.with_columns(
                pl.col("geocode")
                .map_elements(
                    _geocode_fields,
                    return_dtype=_GEOCODE_STRUCT,
                    skip_nulls=True,
                )
                .alias("_geo")
            )
            .unnest("_geo")
            .with_columns(
                pl.coalesce(
                    pl.col("city_name"), pl.col("_geo_city_name")
                ).alias("city_name"),
                pl.coalesce(
                    pl.col("country_code"), pl.col("_geo_country_code")
                ).alias("country_code"),
                pl.coalesce(
                    pl.col("country_name"), pl.col("_geo_country_name")
                ).alias("country_name"),
            )
            .drop("_geo_city_name", "_geo_country_code", "_geo_country_name")
        )

    return df.with_columns(
        pl.when(pl.col("city_name").str.strip_chars() == "")
        .then(None)
        .otherwise(pl.col("city_name").str.strip_chars())
        .alias("city_name"),
        pl.col("country_code").str.strip_chars().str.to_lowercase(),
    )
