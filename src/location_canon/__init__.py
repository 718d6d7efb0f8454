"""Canonical tables and record types for location history processing."""
from .dataclass import CanonicalData
from .models import (
    ExistingTripModel,
    HomeLocationModel,
    LocationModel,
    TripModel,
)
from .records import (
    DateRange,
    DetectedTrip,
    ExcludedDateRange,
    HomeReference,
    LocationSample,
    TripMetadata,
    VisitedLocation,
)

__all__ = [
    "CanonicalData",
    "DateRange",
    "DetectedTrip",
    "ExcludedDateRange",
    "ExistingTripModel",
    "HomeLocationModel",
    "HomeReference",
    "LocationModel",
    "LocationSample",
    "TripMetadata",
    "TripModel",
    "VisitedLocation",
]
