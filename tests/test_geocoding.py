"""Tests for reading place names from geocoding payloads."""

import json
from datetime import UTC, datetime

import polars as pl
import pytest

from processing.trips.geocoding import (
    extract_city_name,
    extract_country_code,
    extract_country_name,
    normalize_location_frame,
    parse_geocode,
)


class TestParseGeocode:
    """Tests for payload parsing."""

    def test_mapping_passes_through(self):
        """Dict payloads are used as they are."""
        payload = {"city": "Paris"}
        assert parse_geocode(payload) is payload

    def test_json_string(self):
        """JSON text is decoded."""
        assert parse_geocode('{"city": "Paris"}') == {"city": "Paris"}

    @pytest.mark.parametrize("raw", [None, "not json", "[1, 2]", 42])
    def test_unusable(self, raw):
        """Anything that is not an object is ignored."""
        assert parse_geocode(raw) is None


class TestExtract:
    """Tests for field extraction."""

    def test_city_priority(self):
        """City wins over town, village and municipality."""
        payload = {
            "address": {
                "municipality": "Brussels-Capital",
                "village": "Uccle",
                "city": "Brussels",
            }
        }
        assert extract_city_name(payload) == "Brussels"

    def test_town_when_no_city(self):
        """Town is used when there is no city."""
        payload = {"address": {"town": "Leuven", "village": "Heverlee"}}
        assert extract_city_name(payload) == "Leuven"

    def test_blank_values_are_skipped(self):
        """Blank candidates fall through to the next one."""
        payload = {"address": {"city": "  ", "village": "Uccle"}}
        assert extract_city_name(payload) == "Uccle"

    def test_nested_feature_properties(self):
        """GeoJSON-style payloads keep the address under properties."""
        payload = {
            "properties": {
                "address": {"city": "Lyon", "country_code": "FR"},
                "country": "France",
            }
        }
        assert extract_city_name(payload) == "Lyon"
        assert extract_country_code(payload) == "fr"
        assert extract_country_name(payload) == "France"

    def test_flat_payload(self):
        """Payloads without an address block are searched directly."""
        payload = {"city": "Berlin", "countryCode": "DE"}
        assert extract_city_name(payload) == "Berlin"
        assert extract_country_code(payload) == "de"

    def test_country_code_must_be_two_letters(self):
        """Three-letter codes are not accepted."""
        assert extract_country_code({"country_code": "BEL"}) is None

    def test_empty_payload(self):
        """Missing payloads yield nothing."""
        assert extract_city_name(None) is None
        assert extract_country_code({}) is None


class TestNormalizeLocationFrame:
    """Tests for normalizing sample frames."""

    def test_aliases_and_missing_columns(self):
        """Aliased columns are renamed and absent ones added."""
        df = pl.DataFrame({
            "timestamp": ["2024-01-01 08:00:00"],
            "lat": [50.85],
            "lng": [4.35],
        })

        out = normalize_location_frame(df)

        assert out["latitude"].to_list() == [50.85]
        assert out["longitude"].to_list() == [4.35]
        assert out["city_name"].to_list() == [None]
        assert out.schema["recorded_at"] == pl.Datetime(
            "us", time_zone="UTC"
        )

    def test_geocode_column_fills_places(self):
        """Places are read from the geocode column where missing."""
        df = pl.DataFrame({
            "recorded_at": [
                datetime(2024, 1, 1, 8, tzinfo=UTC),
                datetime(2024, 1, 1, 9, tzinfo=UTC),
                datetime(2024, 1, 1, 10, tzinfo=UTC),
            ],
            "city_name": ["Antwerp", None, None],
            "geocode": [
                json.dumps({"address": {"city": "Ignored"}}),
                json.dumps({
                    "address": {
                        "town": "Leuven",
                        "country_code": "BE",
                        "country": "Belgium",
                    }
                }),
                "garbage",
            ],
        })

        out = normalize_location_frame(df)

        assert out["city_name"].to_list() == ["Antwerp", "Leuven", None]
        assert out["country_code"].to_list() == [None, "be", None]
        assert out["country_name"].to_list() == [None, "Belgium", None]
        assert "_geo_city_name" not in out.columns

    def test_blank_city_and_country_case(self):
        """Blank cities become null and country codes lowercase."""
        df = pl.DataFrame({
            "recorded_at": [datetime(2024, 1, 1, 8)],
            "city_name": ["  "],
            "country_code": ["FR"],
        })

        out = normalize_location_frame(df)

        assert out["city_name"].to_list() == [None]
        assert out["country_code"].to_list() == ["fr"]
        assert out.schema["recorded_at"].time_zone == "UTC"

    def test_lazy_frame(self):
        """Lazy frames stay lazy."""
        lf = pl.LazyFrame({"recorded_at": [datetime(2024, 1, 1, 8)]})

        out = normalize_location_frame(lf)

        assert isinstance(out, pl.LazyFrame)
        assert out.collect().height == 1

    def test_requires_recorded_at(self):
        """Frames without a timestamp are rejected."""
        with pytest.raises(ValueError, match="recorded_at"):
            normalize_location_frame(pl.DataFrame({"lat": [1.0]}))
