"""Tests for step-aware validation of Pydantic models.

This module tests the selective skip behavior of the pipeline, ensuring that
fields are only required in their designated pipeline steps.
"""

from datetime import UTC, date, datetime

import polars as pl
import pytest

from location_canon import CanonicalData
from location_canon.core.validators import (
    ValidationError,
    get_required_fields_for_step,
    get_unique_fields,
    validate_row_for_step,
)
from location_canon.models import HomeLocationModel, LocationModel, TripModel


def trip_row(**overrides):
    """A valid row of the trips table."""
    row = {
        "trip_id": 1,
        "user_id": "u1",
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 1, 3),
        "title": "Trip to Paris",
        "trip_type": "city",
        "status": "pending",
        "total_duration_hours": 49,
        "data_point_count": 44,
        "is_international": True,
        "trip_days": 3,
    }
    row.update(overrides)
    return row


class TestSelectiveFieldRequirements:
    """Test that fields are only required in specific steps."""

    def test_always_required_fields(self):
        """The timestamp is required in every step."""
        required = get_required_fields_for_step(LocationModel, "any_step")

        assert "recorded_at" in required
        assert "latitude" not in required

    def test_step_specific_fields_required_only_in_that_step(self):
        """The user id is only required once trips are detected."""
        assert "user_id" in get_required_fields_for_step(
            LocationModel, "detect_trips"
        )
        assert "user_id" not in get_required_fields_for_step(
            LocationModel, "load_data"
        )

    def test_unique_fields(self):
        """trip_id is unique within the trips table."""
        assert get_unique_fields(TripModel) == ["trip_id"]


class TestStepValidationBehavior:
    """Test the actual validation behavior across steps."""

    def test_missing_step_field_in_other_step(self):
        """Step-specific fields may be missing in other steps."""
        row = {"recorded_at": datetime(2024, 1, 1, tzinfo=UTC)}
        validate_row_for_step(row, LocationModel, "load_data")

    def test_missing_step_field_in_its_step(self):
        """Step-specific fields are enforced in their step."""
        row = {"recorded_at": datetime(2024, 1, 1, tzinfo=UTC)}
        with pytest.raises(ValueError, match="user_id"):
            validate_row_for_step(row, LocationModel, "detect_trips")

    def test_out_of_range_coordinates_are_accepted(self):
        """Samples with unusable coordinates pass validation."""
        row = {
            "user_id": "u1",
            "recorded_at": datetime(2024, 1, 1, tzinfo=UTC),
            "latitude": 123.0,
            "longitude": None,
        }
        validate_row_for_step(row, LocationModel, "detect_trips")

    def test_present_fields_are_type_checked(self):
        """Invalid values of optional fields are still reported."""
        row = {"user_id": "u1", "kind": "holiday_home"}
        with pytest.raises(ValueError, match="kind"):
            validate_row_for_step(row, HomeLocationModel, "detect_trips")

    def test_trip_row(self):
        """A complete trip row passes in any step."""
        validate_row_for_step(trip_row(), TripModel, "detect_trips")
        validate_row_for_step(trip_row(), TripModel, "write_data")

    def test_invalid_trip_type(self):
        """Trip types come from the codebook."""
        with pytest.raises(ValueError, match="trip_type"):
            validate_row_for_step(
                trip_row(trip_type="continent"), TripModel, "detect_trips"
            )


class TestCanonicalData:
    """Tests for table-level validation."""

    def test_duplicate_trip_ids(self):
        """trip_id must be unique."""
        data = CanonicalData(
            trips=pl.DataFrame([trip_row(), trip_row(title="Again")])
        )
        with pytest.raises(ValidationError, match="unique_constraint"):
            data.validate("trips", step="detect_trips")

    def test_trip_date_order(self):
        """Trips ending before they start are rejected."""
        data = CanonicalData(
            trips=pl.DataFrame([trip_row(end_date=date(2023, 12, 31))])
        )
        with pytest.raises(ValidationError, match="check_trip_dates"):
            data.validate("trips")

    def test_several_home_addresses(self):
        """A user has at most one home address."""
        data = CanonicalData(
            home_locations=pl.DataFrame({
                "user_id": ["u1", "u1"],
                "kind": ["home_address", "home_address"],
                "city_name": ["Brussels", "Ghent"],
            })
        )
        with pytest.raises(ValidationError, match="several home addresses"):
            data.validate("home_locations", step="detect_trips")

    def test_validation_status_reset_on_change(self):
        """Replacing a table invalidates it."""
        data = CanonicalData(trips=pl.DataFrame([trip_row()]))
        data.validate("trips", step="detect_trips")
        assert data.is_validated("trips", step="detect_trips")

        data.trips = pl.DataFrame([trip_row(trip_id=2)])

        assert not data.is_validated("trips", step="detect_trips")

    def test_registered_validator(self):
        """Custom validators registered on a table run on validate."""
        data = CanonicalData(trips=pl.DataFrame([trip_row()]))

        @data.register_validator("trips")
        def no_paris(trips: pl.DataFrame) -> list[str]:
            if trips["title"].str.contains("Paris").any():
                return ["Paris is not allowed"]
            return []

        with pytest.raises(ValidationError, match="Paris is not allowed"):
            data.validate("trips")

    def test_unknown_table(self):
        """Only canonical tables can be validated."""
        with pytest.raises(ValueError, match="Invalid table name"):
            CanonicalData().validate("households")
