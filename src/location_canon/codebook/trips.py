"""Codebook enumerations for detected trips."""

from enum import StrEnum


class LocationState(StrEnum):
    """Home/away classification of a single location sample."""

    HOME = "home"
    AWAY = "away"


class TripType(StrEnum):
    """Trip type derived from the places a trip title names."""

    CITY = "city"
    MULTI_CITY = "multi-city"
    COUNTRY = "country"
    MULTI_COUNTRY = "multi-country"


class TripStatus(StrEnum):
    """Lifecycle status of a trip record.

    Detection only ever creates PENDING trips; the other statuses are set by
    the user and are read back when planning date ranges.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HomeReferenceSource(StrEnum):
    """Where a home reference location came from."""

    HOME_ADDRESS = "home_address"
    EXCLUSION = "exclusion"
    INFERRED = "inferred"


# Sentinel used for missing city or country values in aggregation
UNKNOWN = "Unknown"

# Title templates
TRIP_TITLE_TEMPLATE = "Trip to {places}"
FALLBACK_TRIP_TITLE = "Trip away from home"
TRIP_DESCRIPTION_TEMPLATE = "Trip away from home for {days} days"
