"""Utility expressions shared by the processing steps."""

import logging

import polars as pl

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000.0


def parse_datetime_column(
    df: pl.DataFrame | pl.LazyFrame,
    col_name: str,
    time_zone: str = "UTC",
) -> pl.DataFrame | pl.LazyFrame:
    """Make sure a column holds timezone-aware datetimes.

    String columns are parsed (ISO 8601, with or without offset), naive
    datetimes are assumed to be UTC, and aware datetimes are converted.

    Args:
        df: Frame holding the column
        col_name: Name of the column to normalize
        time_zone: Time zone of the resulting column

    Returns:
        Frame with the column cast to ``Datetime(time_zone=time_zone)``
    """
    schema = df.collect_schema() if isinstance(df, pl.LazyFrame) else df.schema
    dtype = schema[col_name]

    if dtype == pl.Utf8:
        logger.debug("Parsing %s from string...", col_name)
        return df.with_columns(
            pl.col(col_name)
            .str.to_datetime(time_zone=time_zone, strict=False)
        )

    if dtype == pl.Date:
        return df.with_columns(
            pl.col(col_name).cast(pl.Datetime).dt.replace_time_zone(time_zone)
        )

    if isinstance(dtype, pl.Datetime):
        if dtype.time_zone is None:
            return df.with_columns(
                pl.col(col_name).dt.replace_time_zone(time_zone)
            )
        return df.with_columns(
            pl.col(col_name).dt.convert_time_zone(time_zone)
        )

    msg = f"Column {col_name} has unsupported type {dtype} for datetimes"
    raise ValueError(msg)


def expr_valid_coordinates(lat: pl.Expr, lon: pl.Expr) -> pl.Expr:
    """Return a boolean expression, False for null, NaN or out-of-range."""
    return (
        lat.is_not_nan()
        & lon.is_not_nan()
        & lat.is_between(-90.0, 90.0)
        & lon.is_between(-180.0, 180.0)
    ).fill_null(value=False)


def expr_haversine(
    lat1: pl.Expr,
    lon1: pl.Expr,
    lat2: pl.Expr,
    lon2: pl.Expr,
    units: str = "meters",
) -> pl.Expr:
    """Return a Polars expression for Haversine distance."""
    dlat = lat2.radians() - lat1.radians()
    dlon = lon2.radians() - lon1.radians()
    a = (dlat / 2).sin().pow(
        2
    ) + lat1.radians().cos() * lat2.radians().cos() * (dlon / 2).sin().pow(2)

    distance = 2 * EARTH_RADIUS_METERS * a.sqrt().arcsin()

    if units in ["kilometers", "km"]:
        distance = distance / 1000.0
    elif units in ["miles", "mi"]:
        distance = distance / 1609.344

    return distance
