"""Exceptions raised by trip detection."""

from dataclasses import dataclass, field

from location_canon.records import DateRange


class TripDetectionError(Exception):
    """Base class for trip detection failures."""


@dataclass
class DateRangeProcessingError(TripDetectionError):
    """A collaborator failed while a date range was being processed.

    Trips of ranges completed before the failure have already been saved and
    stay saved; trips found in the failed range are discarded.

    Attributes:
        user_id: User being processed
        date_range: Range that failed
        message: Description of the underlying failure
        trips_created: Trips saved before the failure
        completed_ranges: Ranges fully processed before the failure
    """

    user_id: str
    date_range: DateRange
    message: str
    trips_created: int = 0
    completed_ranges: list[DateRange] = field(default_factory=list)

    def __str__(self) -> str:
        """Format error message."""
        return (
            f"Trip detection for user {self.user_id} failed in range "
            f"{self.date_range} after {self.trips_created} trips: "
            f"{self.message}"
        )


class DetectionCancelled(Exception):  # noqa: N818
    """Raised internally when a run is cancelled between suspension points."""
