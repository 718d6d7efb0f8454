"""Loads and writes canonical tables."""

import logging
from pathlib import Path

import polars as pl

from location_canon import CanonicalData
from processing.decoration import step

logger = logging.getLogger(__name__)

CSV_LIST_SEPARATOR = "|"


def _read_table(table: str, path: str) -> pl.DataFrame:
    if path.endswith(".csv"):
        return pl.read_csv(path, try_parse_dates=True)
    if path.endswith(".parquet"):
        return pl.read_parquet(path)
    if path.endswith((".ndjson", ".jsonl")):
        return pl.read_ndjson(path)
    if path.endswith(".json"):
        return pl.read_json(path)
    msg = f"Unsupported file format for table {table}: {path}"
    raise ValueError(msg)


def _flatten_list(name: str, dtype: pl.List) -> pl.Expr:
    if isinstance(dtype.inner, pl.Struct):
        # Lists of records become a JSON array
        encoded = pl.col(name).list.eval(pl.element().struct.json_encode())
        return pl.concat_str(
            pl.lit("["), encoded.list.join(","), pl.lit("]")
        ).alias(name)
    return pl.col(name).list.join(CSV_LIST_SEPARATOR)


def _flatten_lists(df: pl.DataFrame) -> pl.DataFrame:
    """Flatten list columns into strings (CSV has no list type).

    Lists of strings are joined with ``CSV_LIST_SEPARATOR``; lists of
    structs are written as JSON arrays.
    """
    return df.with_columns([
        _flatten_list(name, dtype)
        for name, dtype in df.schema.items()
        if isinstance(dtype, pl.List)
    ])


@step(validate_input=False)
def load_data(
    input_paths: dict[str, str],
) -> dict[str, pl.DataFrame]:
    """Load canonical tables from input paths.

    Args:
        input_paths: Table name to CSV, Parquet, JSON or NDJSON path

    Returns:
        Dict of loaded tables
    """
    data = {}

    for table, path in input_paths.items():
        if table not in CanonicalData.table_names():
            msg = f"Unknown table '{table}' in input_paths"
            raise ValueError(msg)
        logger.info("Loading %s from %s...", table, path)
        data[table] = _read_table(table, str(path))

    logger.info("All data loaded successfully.")
    return data


@step(validate_input=False)
def write_data(
    output_paths: dict[str, str],
    canonical_data: CanonicalData,
) -> None:
    """Write canonical tables to output paths."""
    for table, path in output_paths.items():
        df = getattr(canonical_data, table, None)
        if df is None:
            logger.warning("Table %s is empty, not writing %s", table, path)
            continue

        logger.info("Writing %s to %s...", table, path)
        path = str(path)
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        if path.endswith(".csv"):
            _flatten_lists(df).write_csv(path)
        elif path.endswith(".parquet"):
            df.write_parquet(path)
        elif path.endswith((".ndjson", ".jsonl")):
            df.write_ndjson(path)
        elif path.endswith(".json"):
            df.write_json(path)
        else:
            msg = f"Unsupported file format for table {table}: {path}"
            raise ValueError(msg)

    logger.info("All data written successfully.")
