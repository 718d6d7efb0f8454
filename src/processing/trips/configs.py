"""Configuration model for trip detection parameters."""

from pydantic import BaseModel, Field


class TripDetectionConfig(BaseModel):
    """Configuration model for trip detection.

    All thresholds of the detection engine live here so they can be tuned
    per pipeline run from the YAML ``params`` of the ``detect_trips`` step.
    """

    # Home matching
    home_radius_km: float = Field(
        default=50.0,
        gt=0,
        description=(
            "Samples within this haversine distance (km) of a home "
            "reference count as home"
        ),
    )
    infer_home_location: bool = Field(
        default=True,
        description=(
            "Infer the home city from location history when no home "
            "address is configured"
        ),
    )

    # State machine
    confirmation_threshold: int = Field(
        default=3,
        ge=1,
        description=(
            "A home/away transition is committed once more than this many "
            "consecutive samples disagree with the current state"
        ),
    )

    # Trip validity
    min_trip_duration_hours: float = Field(
        default=24.0,
        ge=0,
        description="Minimum time away from home for a trip",
    )
    min_trip_data_points: int = Field(
        default=0,
        ge=0,
        description=(
            "Minimum number of aggregated samples for a trip "
            "(0 disables the check)"
        ),
    )

    # Visited location filtering
    min_country_duration_hours: float = Field(
        default=24.0,
        ge=0,
        description="Countries with less total time are dropped from a trip",
    )
    min_city_duration_hours: float = Field(
        default=2.0,
        ge=0,
        description="Cities with less time are dropped from a trip",
    )

    # Titles
    dominance_share: float = Field(
        default=0.5,
        gt=0,
        le=1,
        description=(
            "Share of the total duration at which a single city or "
            "country dominates a trip title"
        ),
    )
    max_title_places: int = Field(
        default=3,
        ge=1,
        description="Maximum number of places listed in a trip title",
    )
    max_cities_for_city_title: int = Field(
        default=3,
        ge=1,
        description=(
            "A single-country trip with more cities than this is titled "
            "by country"
        ),
    )

    # Data access
    page_size: int = Field(
        default=1000,
        ge=1,
        description="Number of samples fetched per page",
    )
