"""Trip detection from location history.

This module turns a user's chronological location samples into trips:
contiguous spans of time spent away from home.

Algorithm Overview:
-------------------
1. Home Resolution
    - Reads the configured home address and exclusion zones
    - Infers a home city from history when no home address is configured
2. Date Range Planning
    - Detection span runs from the first sample (or a requested start) to
      tomorrow (or a requested end)
    - Dates covered by existing trips of any status are cut out, leaving
      independent date ranges
3. Per-Range Detection (ranges in ascending order)
    - Samples are paged in ascending time order and classified home/away
    - A debounced state machine commits a transition only after more than
      ``confirmation_threshold`` consecutive disagreeing samples
    - While away, time is accounted per (city, country)
    - Returning home (or the end of the range while away) closes the away
      episode; it becomes a trip if it lasted at least a day and some place
      survived duration filtering
4. Persistence
    - Trips of a range go to the sink only after the whole range completed,
      so a cancelled or failed range leaves nothing behind

Configuration:
-------------
Thresholds are defined by TripDetectionConfig (home radius, confirmation
threshold, trip/country/city minimum durations, title dominance share).

Output:
-------
Trips with status "pending", one row per trip in the ``trips`` table.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

import polars as pl

from location_canon.codebook.trips import HomeReferenceSource, LocationState
from location_canon.records import (
    DateRange,
    DetectedTrip,
    HomeReference,
    LocationSample,
)
from processing.decoration import step

from .configs import TripDetectionConfig
from .date_ranges import (
    allocate_date_ranges,
    default_detection_span,
    range_bounds,
    range_end_instant,
)
from .errors import DateRangeProcessingError, DetectionCancelled
from .home_locations import HomeLocationResolver
from .location_classifier import LocationClassifier
from .sources import (
    CancelCheck,
    FrameHomeConfigSource,
    FrameSampleSource,
    FrameTripStore,
    HomeConfigSource,
    ProgressCallback,
    SampleSource,
    TripSink,
    TripSource,
)
from .state_machine import ConfirmationStateMachine, UserDetectionState
from .trip_assembler import TripAssembler

logger = logging.getLogger(__name__)

# Progress milestones (percent)
PROGRESS_INITIALIZING = 5
PROGRESS_FETCHING = 10
PROGRESS_PLANNING = 15
PROGRESS_RANGES_START = 20
PROGRESS_RANGES_END = 95
PROGRESS_COMPLETED = 100


def log_progress(percent: float, message: str) -> None:
    """Default progress callback: write progress to the log."""
    logger.info("[%3.0f%%] %s", percent, message)


def _as_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass
class DetectionResult:
    """Outcome of a detection run for one user.

    Attributes:
        user_id: User processed
        trips: Trips saved during the run
        ranges: Date ranges planned for the run
        completed_ranges: Ranges fully processed
        cancelled: Whether the run stopped on a cancel request
        resume_from: First day not processed when cancelled
    """

    user_id: str
    trips: list[DetectedTrip] = field(default_factory=list)
    ranges: list[DateRange] = field(default_factory=list)
    completed_ranges: list[DateRange] = field(default_factory=list)
    cancelled: bool = False
    resume_from: date | None = None

    @property
    def trips_created(self) -> int:
        """Number of trips saved."""
        return len(self.trips)


@step()
def detect_trips(
    locations: pl.DataFrame,
    home_locations: pl.DataFrame | None = None,
    existing_trips: pl.DataFrame | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    today: date | str | None = None,
    **kwargs: dict[str, Any],
) -> dict[str, pl.DataFrame]:
    """Detect trips for every user in the location table.

    Users are processed one after another.

    Args:
        locations: Location samples with user_id and recorded_at
        home_locations: Home addresses and exclusion zones per user
        existing_trips: Trips already stored, of any status
        start_date: First day to scan (default: each user's first sample)
        end_date: Last day to scan (default: tomorrow)
        today: Reference date for the default end (default: today, UTC)
        **kwargs: Additional configuration parameters for
            TripDetectionConfig

    Returns:
        Dict with the ``trips`` table of newly detected trips
    """
    config = TripDetectionConfig(**kwargs)
    sample_source = FrameSampleSource(locations)
    store = FrameTripStore(existing_trips)
    detector = TripDetector(
        sample_source=sample_source,
        home_config_source=FrameHomeConfigSource(home_locations),
        trip_source=store,
        trip_sink=store,
        config=config,
    )

    user_ids = (
        locations["user_id"].cast(pl.Utf8).unique(maintain_order=True)
        .to_list()
    )
    logger.info("Detecting trips for %d users...", len(user_ids))
    for user_id in user_ids:
        detector.run(
            user_id,
            start_date=_as_date(start_date),
            end_date=_as_date(end_date),
            today=_as_date(today),
        )

    trips = store.to_frame()
    logger.info("Detected %d trips", len(trips))
    return {"trips": trips}


class TripDetector:
    """Runs trip detection for one user at a time."""

    def __init__(  # noqa: PLR0913
        self,
        sample_source: SampleSource,
        home_config_source: HomeConfigSource,
        trip_source: TripSource,
        trip_sink: TripSink,
        config: TripDetectionConfig | None = None,
        progress_callback: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> None:
        """Initialize TripDetector with its collaborators.

        Args:
            sample_source: Location history
            home_config_source: Home address and exclusion zones
            trip_source: Existing trips, used to plan date ranges
            trip_sink: Destination for new trips
            config: Optional detection configuration
            progress_callback: Called with (percent, message)
            should_cancel: Polled between pages and ranges; returning True
                stops the run
        """
        self.sample_source = sample_source
        self.home_config_source = home_config_source
        self.trip_source = trip_source
        self.trip_sink = trip_sink
        self.config = config or TripDetectionConfig()
        self.progress_callback = progress_callback or log_progress
        self.should_cancel = should_cancel or (lambda: False)

    def run(
        self,
        user_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
        today: date | None = None,
    ) -> DetectionResult:
        """Detect and save trips for one user.

        Args:
            user_id: User to process
            start_date: First day to scan (default: first sample's date)
            end_date: Last day to scan (default: tomorrow)
            today: Reference date for the default end

        Returns:
            DetectionResult; ``cancelled`` is set if a cancel request
            stopped the run

        Raises:
            DateRangeProcessingError: If a collaborator fails while a date
                range is processed
        """
        user_id = str(user_id)
        result = DetectionResult(user_id=user_id)
        logger.info("Detecting trips for user %s...", user_id)
        self._report(PROGRESS_INITIALIZING, "Initializing trip detection")

        references = self._resolve_home(user_id)
        home_country_code = next(
            (
                ref.country_code for ref in references
                if ref.source != HomeReferenceSource.EXCLUSION
            ),
            None,
        )

        self._report(PROGRESS_FETCHING, "Fetching location history")
        span = self._detection_span(user_id, start_date, end_date, today)
        if span is None:
            logger.info("User %s has no location history", user_id)
            self._report(PROGRESS_COMPLETED, "No location history")
            return result

        excluded = self.trip_source.excluded_date_ranges(user_id)
        result.ranges = allocate_date_ranges(
            span.start_date, span.end_date, excluded
        )
        logger.info(
            "Planned %d date ranges for %s (%d excluded trips)",
            len(result.ranges),
            span,
            len(excluded),
        )
        self._report(
            PROGRESS_PLANNING, f"Planned {len(result.ranges)} date ranges"
        )

        classifier = LocationClassifier(self.config, references)
        machine = ConfirmationStateMachine(
            self.config, TripAssembler(self.config), home_country_code
        )

        for index, date_range in enumerate(result.ranges):
            try:
                self._check_cancelled()
                found = self._process_range(
                    user_id, date_range, classifier, machine, index,
                    len(result.ranges),
                )
                for trip in found:
                    self.trip_sink.save_trip(trip)
            except DetectionCancelled:
                logger.info(
                    "Trip detection for user %s cancelled in range %s",
                    user_id,
                    date_range,
                )
                result.cancelled = True
                result.resume_from = date_range.start_date
                self._report(
                    self._range_progress(index, 0.0, len(result.ranges)),
                    f"Cancelled, {result.trips_created} trips created",
                )
                return result
            except Exception as e:
                raise DateRangeProcessingError(
                    user_id=user_id,
                    date_range=date_range,
                    message=str(e),
                    trips_created=result.trips_created,
                    completed_ranges=list(result.completed_ranges),
                ) from e

            result.trips.extend(found)
            result.completed_ranges.append(date_range)

        logger.info(
            "Trip detection for user %s complete: %d trips",
            user_id,
            result.trips_created,
        )
        self._report(
            PROGRESS_COMPLETED,
            f"Completed, {result.trips_created} trips created",
        )
        return result

    # =========================================================================
    # SETUP
    # =========================================================================

    def _resolve_home(self, user_id: str) -> list[HomeReference]:
        """Resolve home references, inferring a home if needed."""
        home_address: Mapping[str, Any] | None = (
            self.home_config_source.home_address(user_id)
        )
        exclusions = self.home_config_source.exclusions(user_id)
        history = self.sample_source.iter_pages(
            user_id, None, self.config.page_size
        )
        return HomeLocationResolver(self.config).resolve(
            home_address, exclusions, history
        )

    def _detection_span(
        self,
        user_id: str,
        start_date: date | None,
        end_date: date | None,
        today: date | None,
    ) -> DateRange | None:
        """Requested span, defaulting to first sample through tomorrow."""
        if start_date is None:
            first = self.sample_source.first_sample_time(user_id)
            if first is None:
                return None
            start_date = first.astimezone(UTC).date()

        if end_date is None:
            today = today or datetime.now(UTC).date()
            end_date = default_detection_span(start_date, today).end_date

        return DateRange(start_date, end_date)

    # =========================================================================
    # RANGE PROCESSING
    # =========================================================================

    def _process_range(  # noqa: PLR0913
        self,
        user_id: str,
        date_range: DateRange,
        classifier: LocationClassifier,
        machine: ConfirmationStateMachine,
        index: int,
        n_ranges: int,
    ) -> list[DetectedTrip]:
        """Run the state machine over one date range.

        Returns:
            Trips found in the range, not yet saved
        """
        range_start, _ = range_bounds(date_range)
        state = UserDetectionState.at_home(user_id, range_start, self.config)
        total = self.sample_source.count_samples(user_id, date_range)
        logger.info(
            "Processing range %d/%d (%s): %d samples",
            index + 1,
            n_ranges,
            date_range,
            total,
        )

        found: list[DetectedTrip] = []
        processed = 0
        for page in self.sample_source.iter_pages(
            user_id, date_range, self.config.page_size
        ):
            classified = classifier.classify_samples(page)
            for row in classified.iter_rows(named=True):
                trip = machine.advance(
                    state,
                    LocationSample.from_row(row),
                    LocationState(row["location_state"]),
                )
                if trip is not None:
                    found.append(trip)

            processed += len(page)
            self._report(
                self._range_progress(
                    index, processed / total if total else 1.0, n_ranges
                ),
                f"Range {index + 1}/{n_ranges}: "
                f"{processed}/{total} samples processed",
            )
            self._check_cancelled()

        trip = machine.finish(state, range_end_instant(date_range))
        if trip is not None:
            found.append(trip)
        return found

    # =========================================================================
    # PROGRESS AND CANCELLATION
    # =========================================================================

    def _check_cancelled(self) -> None:
        if self.should_cancel():
            raise DetectionCancelled

    def _report(self, percent: float, message: str) -> None:
        self.progress_callback(min(percent, PROGRESS_COMPLETED), message)

    @staticmethod
    def _range_progress(index: int, fraction: float, n_ranges: int) -> float:
        span = PROGRESS_RANGES_END - PROGRESS_RANGES_START
        return PROGRESS_RANGES_START + span * (index + fraction) / n_ranges
