"""Per-place time accounting for one away episode."""

import logging
from collections import defaultdict

from location_canon.codebook.trips import UNKNOWN
from location_canon.records import LocationSample, VisitedLocation

from .configs import TripDetectionConfig

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


class VisitAggregator:
    """Accumulates time spent per (city, country) while away from home.

    Entries are kept in first-visit order. Time between two samples is
    credited to the place of the later sample; the first sample at a place
    contributes no time.
    """

    def __init__(self, config: TripDetectionConfig | None = None) -> None:
        """Initialize an empty aggregator."""
        self.config = config or TripDetectionConfig()
        self._entries: dict[tuple[str, str], VisitedLocation] = {}

    def __len__(self) -> int:
        """Number of distinct places visited."""
        return len(self._entries)

    @property
    def entries(self) -> list[VisitedLocation]:
        """Visited locations in first-visit order."""
        return list(self._entries.values())

    @property
    def total_data_points(self) -> int:
        """Samples aggregated over all places."""
        return sum(e.data_points for e in self._entries.values())

    def reset(self) -> None:
        """Forget every visited location."""
        self._entries.clear()

    def record(
        self,
        sample: LocationSample,
        previous: LocationSample | None,
    ) -> VisitedLocation | None:
        """Record an away sample.

        Args:
            sample: The sample to record
            previous: The preceding sample of the same away episode, if any

        Returns:
            The updated entry, or None if the sample has no city
        """
        if not sample.city_name:
            logger.debug(
                "Sample at %s has no city, not aggregated", sample.recorded_at
            )
            return None

        key = (sample.city_name, sample.country_code or UNKNOWN)
        entry = self._entries.get(key)

        if entry is None:
            entry = VisitedLocation(
                city_name=key[0],
                country_code=key[1],
                country_name=sample.country_name,
                latitude=sample.latitude,
                longitude=sample.longitude,
                first_visit_time=sample.recorded_at,
                last_visit_time=sample.recorded_at,
            )
            self._entries[key] = entry
            return entry

        entry.data_points += 1
        entry.last_visit_time = sample.recorded_at
        if previous is not None:
            gap = sample.recorded_at - previous.recorded_at
            elapsed = gap.total_seconds()
            entry.duration_hours += max(elapsed, 0.0) / SECONDS_PER_HOUR
        return entry

    def country_totals(self) -> dict[str, float]:
        """Total hours per country code over all entries, unfiltered."""
        totals: dict[str, float] = defaultdict(float)
        for entry in self._entries.values():
            totals[entry.country_code] += entry.duration_hours
        return dict(totals)

    def filter(self) -> list[VisitedLocation]:
        """Return the places significant enough to describe the trip.

        A place is kept when its country totals at least the country
        minimum over all entries and the place itself totals at least the
        city minimum. The working set is left untouched.
        """
        totals = self.country_totals()
        return [
            entry for entry in self._entries.values()
            if totals[entry.country_code]
            >= self.config.min_country_duration_hours
            and entry.duration_hours >= self.config.min_city_duration_hours
        ]
