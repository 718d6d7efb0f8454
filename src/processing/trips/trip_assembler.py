"""Trip validation and record shaping.

An away episode becomes a trip only if it lasted at least the minimum trip
duration and at least one visited location survives duration filtering.
Everything else is a short excursion and produces nothing.
"""

import logging
import math
from datetime import datetime, timedelta

from location_canon.codebook.trips import TRIP_DESCRIPTION_TEMPLATE, UNKNOWN
from location_canon.records import DetectedTrip, TripMetadata

from .configs import TripDetectionConfig
from .title_generator import TripTitleGenerator, country_display_name
from .visit_aggregator import VisitAggregator

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0
ONE_DAY = timedelta(days=1)


def calculate_trip_days(start: datetime, end: datetime) -> int:
    """Count the days a trip touches: whole days between instants, min 1.

    08:00 to 18:00 on the same day is 1 day, through the next day 2 days,
    through the day after 3 days.
    """
    return max(1, math.ceil((end - start) / ONE_DAY))


class TripAssembler:
    """Finalizes away episodes into DetectedTrip records."""

    def __init__(self, config: TripDetectionConfig | None = None) -> None:
        """Initialize assembler.

        Args:
            config: TripDetectionConfig with trip validity thresholds
        """
        self.config = config or TripDetectionConfig()
        self.title_generator = TripTitleGenerator(self.config)

    def assemble(
        self,
        user_id: str,
        visits: VisitAggregator,
        away_start: datetime,
        away_end: datetime,
        home_country_code: str | None = None,
    ) -> DetectedTrip | None:
        """Build a trip for an away episode, if it qualifies.

        Args:
            user_id: Owner of the trip
            visits: Visited locations of the episode
            away_start: Start of the last confirmed home period before
                leaving
            away_end: When the return home began, or the end of the range
            home_country_code: User's home country, if known

        Returns:
            The trip, or None for short or insignificant episodes
        """
        away_hours = (away_end - away_start).total_seconds() / SECONDS_PER_HOUR
        if away_hours < self.config.min_trip_duration_hours:
            logger.debug(
                "Away episode %s - %s too short (%.1fh)",
                away_start,
                away_end,
                away_hours,
            )
            return None

        filtered = visits.filter()
        if not filtered:
            logger.debug(
                "Away episode %s - %s has no significant locations",
                away_start,
                away_end,
            )
            return None

        data_points = visits.total_data_points
        if data_points < self.config.min_trip_data_points:
            logger.debug(
                "Away episode %s - %s has only %d samples",
                away_start,
                away_end,
                data_points,
            )
            return None

        title = self.title_generator.generate(
            filtered, home_country_code, visits.entries
        )
        trip_days = calculate_trip_days(away_start, away_end)

        cities = list(dict.fromkeys(
            loc.city_name for loc in filtered if loc.city_name != UNKNOWN
        ))
        countries = list(dict.fromkeys(
            loc.country_code for loc in filtered if loc.country_code != UNKNOWN
        ))
        if home_country_code:
            is_international = any(c != home_country_code for c in countries)
        else:
            is_international = len(countries) > 1

        country_hours: dict[str, float] = {}
        for loc in filtered:
            country_hours[loc.country_code] = (
                country_hours.get(loc.country_code, 0.0) + loc.duration_hours
            )

        metadata = TripMetadata(
            visited_cities=cities,
            visited_countries=countries,
            total_duration_hours=round(away_hours),
            data_point_count=data_points,
            is_international=is_international,
            trip_days=trip_days,
            primary_city=title.primary_city,
            primary_country_code=title.primary_country_code,
            is_multi_city=len(cities) > 1,
            is_multi_country=len(countries) > 1,
            visited_cities_detailed=[
                {
                    "city": loc.city_name,
                    "country_code": loc.country_code,
                    "duration_hours": round(loc.duration_hours),
                    "data_points": loc.data_points,
                    "latitude": loc.latitude,
                    "longitude": loc.longitude,
                }
                for loc in filtered
            ],
            visited_countries_detailed=[
                {
                    "country_code": code,
                    "country": country_display_name(code),
                    "duration_hours": round(hours),
                }
                for code, hours in country_hours.items()
            ],
        )

        trip = DetectedTrip(
            user_id=user_id,
            start_date=away_start.date(),
            end_date=away_end.date(),
            title=title.title,
            description=TRIP_DESCRIPTION_TEMPLATE.format(days=trip_days),
            trip_type=title.trip_type,
            metadata=metadata,
        )
        logger.info(
            "Detected trip '%s' from %s to %s",
            trip.title,
            trip.start_date,
            trip.end_date,
        )
        return trip
