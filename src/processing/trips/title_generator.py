"""Trip titles from visited locations.

Rules are applied in order and the first that matches wins:

1. Home country: if any kept location is in the user's home country, the
   title names cities of the home country only.
2. Single foreign country: up to ``max_cities_for_city_title`` cities are
   titled by city (a dominant city alone, otherwise the top cities); more
   cities are titled by the country.
3. Several countries: if at least two countries reach the country minimum
   over all visited locations (including places filtered out), the title
   lists the top countries by time spent.
4. Dominant country: a country holding at least ``dominance_share`` of the
   time is titled by its cities.
5. Fallback: the most visited city of the largest country.

All rankings are by duration, with ties kept in first-visit order.
"""

import functools
import logging
from collections.abc import Sequence
from dataclasses import dataclass

import pycountry

from location_canon.codebook.trips import (
    FALLBACK_TRIP_TITLE,
    TRIP_TITLE_TEMPLATE,
    UNKNOWN,
    TripType,
)
from location_canon.records import VisitedLocation

from .configs import TripDetectionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripTitle:
    """Generated title and the classification that goes with it."""

    title: str
    trip_type: TripType
    primary_city: str | None = None
    primary_country_code: str | None = None


@functools.lru_cache(maxsize=512)
def country_display_name(code: str | None, fallback: str | None = None) -> str:
    """Human-readable country name for an ISO alpha-2 code.

    Args:
        code: Two-letter country code, any case
        fallback: Name to use when the code is not a known country

    Returns:
        The country's common name, else its ISO name, else the fallback,
        else the upper-cased code
    """
    if code and code != UNKNOWN:
        country = pycountry.countries.get(alpha_2=code.upper())
        if country is not None:
            return getattr(country, "common_name", None) or country.name
    if fallback:
        return fallback
    return code.upper() if code and code != UNKNOWN else UNKNOWN


def format_title(places: Sequence[str]) -> str:
    """Render the title template for a list of place names."""
    return TRIP_TITLE_TEMPLATE.format(places=", ".join(places))


def _ranked(locations: Sequence[VisitedLocation]) -> list[VisitedLocation]:
    # sorted() is stable, so ties stay in first-visit order
    return sorted(locations, key=lambda loc: -loc.duration_hours)


def _group_by_country(
    locations: Sequence[VisitedLocation],
) -> dict[str, list[VisitedLocation]]:
    grouped: dict[str, list[VisitedLocation]] = {}
    for loc in locations:
        grouped.setdefault(loc.country_code, []).append(loc)
    return grouped


def _country_hours(locations: Sequence[VisitedLocation]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for loc in locations:
        totals[loc.country_code] = (
            totals.get(loc.country_code, 0.0) + loc.duration_hours
        )
    return totals


def _largest(totals: dict[str, float]) -> tuple[str, float]:
    return max(totals.items(), key=lambda item: item[1])


class TripTitleGenerator:
    """Builds titles and trip types from visited locations."""

    def __init__(self, config: TripDetectionConfig | None = None) -> None:
        """Initialize generator with title thresholds."""
        self.config = config or TripDetectionConfig()

    def generate(
        self,
        filtered: Sequence[VisitedLocation],
        home_country_code: str | None = None,
        unfiltered: Sequence[VisitedLocation] | None = None,
    ) -> TripTitle:
        """Generate the title for a trip.

        Args:
            filtered: Visited locations that passed duration filtering
            home_country_code: User's home country, if known
            unfiltered: All visited locations of the episode; used for the
                multi-country rule. Defaults to ``filtered``.

        Returns:
            TripTitle with title, trip type and primary place
        """
        if not filtered:
            return TripTitle(FALLBACK_TRIP_TITLE, TripType.CITY)

        # Rule 1: home country
        if home_country_code:
            home_subset = [
                loc for loc in filtered
                if loc.country_code == home_country_code
            ]
            if home_subset:
                return self._city_title(home_subset)

        by_country = _group_by_country(filtered)

        # Rule 2: single foreign country
        if len(by_country) == 1:
            code, cities = next(iter(by_country.items()))
            if len(cities) > self.config.max_cities_for_city_title:
                top = _ranked(cities)[0]
                name = country_display_name(code, top.country_name)
                return TripTitle(
                    format_title([name]), TripType.COUNTRY, top.city_name, code
                )
            return self._city_title(cities)

        # Rule 3: several significant countries
        names = {loc.country_code: loc.country_name for loc in filtered}
        all_hours = _country_hours(
            unfiltered if unfiltered is not None else filtered
        )
        significant = [
            (code, hours) for code, hours in all_hours.items()
            if code != UNKNOWN
            and hours >= self.config.min_country_duration_hours
        ]
        if len(significant) >= 2:  # noqa: PLR2004
            ranked = sorted(significant, key=lambda item: -item[1])
            ranked = ranked[: self.config.max_title_places]
            top_city = _ranked(filtered)[0]
            return TripTitle(
                format_title([
                    country_display_name(code, names.get(code))
                    for code, _ in ranked
                ]),
                TripType.MULTI_COUNTRY,
                top_city.city_name,
                ranked[0][0],
            )

        # Rule 4: dominant country
        kept_hours = _country_hours(filtered)
        total = sum(kept_hours.values())
        top_code, top_hours = _largest(kept_hours)
        if total > 0 and top_hours / total >= self.config.dominance_share:
            cities = by_country[top_code]
            result = self._city_title(cities)
            if len(cities) == 1:
                return result
            return TripTitle(
                result.title,
                TripType.COUNTRY,
                result.primary_city,
                top_code,
            )

        # Rule 5: most visited city of the largest country
        top = _ranked(by_country[top_code])[0]
        return TripTitle(
            format_title([top.city_name]),
            TripType.CITY,
            top.city_name,
            top_code,
        )

    def _city_title(self, cities: Sequence[VisitedLocation]) -> TripTitle:
        """Title by a single or dominant city, else by the top cities."""
        ranked = _ranked(cities)
        top = ranked[0]
        total = sum(loc.duration_hours for loc in cities)

        if len(ranked) == 1 or (
            total > 0
            and top.duration_hours / total >= self.config.dominance_share
        ):
            return TripTitle(
                format_title([top.city_name]),
                TripType.CITY,
                top.city_name,
                top.country_code,
            )

        listed = ranked[: self.config.max_title_places]
        return TripTitle(
            format_title([loc.city_name for loc in listed]),
            TripType.MULTI_CITY,
            top.city_name,
            top.country_code,
        )


def generate_trip_title(
    filtered: Sequence[VisitedLocation],
    home_country_code: str | None = None,
    unfiltered: Sequence[VisitedLocation] | None = None,
    config: TripDetectionConfig | None = None,
) -> TripTitle:
    """Generate a trip title with a one-off TripTitleGenerator."""
    return TripTitleGenerator(config).generate(
        filtered, home_country_code, unfiltered
    )
