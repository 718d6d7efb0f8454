"""Home/away classification of location samples.

A sample is home when it matches any home reference, either by distance
(haversine, inclusive radius) or by city name. Samples with no usable
coordinates and no city are away; nothing is dropped.
"""

import logging

import polars as pl

from location_canon.codebook.trips import LocationState
from location_canon.records import HomeReference, LocationSample
from processing.utils import expr_haversine, expr_valid_coordinates

from .configs import TripDetectionConfig

logger = logging.getLogger(__name__)


def samples_to_frame(samples: list[LocationSample]) -> pl.DataFrame:
    """Build a sample frame from LocationSample records."""
    return pl.DataFrame(
        {
            "recorded_at": [s.recorded_at for s in samples],
            "latitude": [s.latitude for s in samples],
            "longitude": [s.longitude for s in samples],
            "city_name": [s.city_name for s in samples],
            "country_code": [s.country_code for s in samples],
            "country_name": [s.country_name for s in samples],
        },
        schema={
            "recorded_at": pl.Datetime(time_zone="UTC"),
            "latitude": pl.Float64,
            "longitude": pl.Float64,
            "city_name": pl.Utf8,
            "country_code": pl.Utf8,
            "country_name": pl.Utf8,
        },
    )


class LocationClassifier:
    """Classifies location samples as home or away."""

    def __init__(
        self,
        config: TripDetectionConfig,
        references: list[HomeReference],
    ) -> None:
        """Initialize classifier with config and home references.

        Args:
            config: TripDetectionConfig with the home radius
            references: Places that count as home, home address first
        """
        self.config = config
        self.references = references

    def classify_samples(self, samples: pl.DataFrame) -> pl.DataFrame:
        """Add a ``location_state`` column to a page of samples.

        Args:
            samples: Samples with latitude, longitude and city_name

        Returns:
            Samples with added column ``location_state`` (LocationState
            value as string)
        """
        is_home = self._matches_any_reference()
        return samples.with_columns(
            pl.when(is_home)
            .then(pl.lit(LocationState.HOME.value))
            .otherwise(pl.lit(LocationState.AWAY.value))
            .alias("location_state")
        )

    def classify(self, sample: LocationSample) -> LocationState:
        """Classify a single sample."""
        classified = self.classify_samples(samples_to_frame([sample]))
        return LocationState(classified["location_state"][0])

    def _matches_any_reference(self) -> pl.Expr:
        """Build the combined home-match expression for all references."""
        expr = pl.lit(value=False)
        for ref in self.references:
            expr = expr | self._matches_reference(ref)
        return expr

    def _matches_reference(self, ref: HomeReference) -> pl.Expr:
        """Distance OR city-name match against one reference."""
        match = pl.lit(value=False)

        if ref.has_coordinates:
            distance_km = expr_haversine(
                pl.col("latitude"),
                pl.col("longitude"),
                pl.lit(ref.latitude),
                pl.lit(ref.longitude),
                units="km",
            )
            within = (
                expr_valid_coordinates(pl.col("latitude"), pl.col("longitude"))
                & (distance_km <= self.config.home_radius_km)
            )
            match = match | within.fill_null(value=False)

        # A blank name would be contained in every city
        home_city = (ref.city_name or "").strip().lower()
        if home_city:
            # Containment also covers equality ("Brussels" in "City of
            # Brussels")
            same_city = (
                pl.col("city_name")
                .str.to_lowercase()
                .str.contains(home_city, literal=True)
            )
            match = match | same_city.fill_null(value=False)

        return match
