"""Tests for trip title generation."""

from location_canon.codebook.trips import FALLBACK_TRIP_TITLE, TripType
from processing.trips.configs import TripDetectionConfig
from processing.trips.title_generator import (
    TripTitleGenerator,
    country_display_name,
    format_title,
    generate_trip_title,
)

from fixtures.location_records import make_visit


class TestCountryDisplayName:
    """Tests for country name lookup."""

    def test_known_code(self):
        """ISO codes resolve to the country name, any case."""
        assert country_display_name("fr") == "France"
        assert country_display_name("BE") == "Belgium"

    def test_unknown_code_uses_fallback(self):
        """Unknown codes fall back to the geocoder's name."""
        assert country_display_name("xx", "Atlantis") == "Atlantis"

    def test_unknown_code_without_fallback(self):
        """Without a fallback the code itself is shown."""
        assert country_display_name("xx") == "XX"


class TestFormatTitle:
    """Tests for the title template."""

    def test_joins_places(self):
        """Places are comma separated."""
        assert format_title(["Paris", "Lyon"]) == "Trip to Paris, Lyon"


class TestHomeCountryRule:
    """Tests for trips inside the home country."""

    def test_dominant_home_city(self):
        """A city over half the time titles the trip alone."""
        visits = [
            make_visit("Brussels", "be", 18),
            make_visit("Antwerp", "be", 6),
            make_visit("Ghent", "be", 6),
        ]
        title = generate_trip_title(visits, home_country_code="be")

        assert title.title == "Trip to Brussels"
        assert title.trip_type == TripType.CITY
        assert title.primary_city == "Brussels"

    def test_even_home_cities(self):
        """Without a dominant city the top cities are listed."""
        visits = [
            make_visit("Brussels", "be", 10),
            make_visit("Antwerp", "be", 10),
            make_visit("Ghent", "be", 10),
        ]
        title = generate_trip_title(visits, home_country_code="be")

        assert title.title == "Trip to Brussels, Antwerp, Ghent"
        assert title.trip_type == TripType.MULTI_CITY

    def test_home_country_wins_over_longer_abroad(self):
        """Home-country places title the trip even if abroad was longer."""
        visits = [
            make_visit("Paris", "fr", 100),
            make_visit("Antwerp", "be", 5),
        ]
        title = generate_trip_title(visits, home_country_code="be")

        assert title.title == "Trip to Antwerp"

    def test_title_lists_at_most_three_cities(self):
        """Only the longest stays are listed."""
        visits = [
            make_visit("Brussels", "be", 10),
            make_visit("Antwerp", "be", 9),
            make_visit("Ghent", "be", 8),
            make_visit("Leuven", "be", 11),
        ]
        title = generate_trip_title(visits, home_country_code="be")

        assert title.title == "Trip to Leuven, Brussels, Antwerp"


class TestSingleCountryRule:
    """Tests for trips to one foreign country."""

    def test_single_city(self):
        """One city titles the trip."""
        title = generate_trip_title(
            [make_visit("Paris", "fr", 40)], home_country_code="be"
        )

        assert title.title == "Trip to Paris"
        assert title.trip_type == TripType.CITY
        assert title.primary_country_code == "fr"

    def test_dominant_city_without_home_country(self):
        """A city over half the time titles a one-country trip alone."""
        visits = [
            make_visit("Brussels", "be", 18),
            make_visit("Antwerp", "be", 6),
            make_visit("Ghent", "be", 6),
        ]
        title = generate_trip_title(visits)

        assert title.title == "Trip to Brussels"
        assert title.trip_type == TripType.CITY
        assert title.primary_city == "Brussels"
        assert title.primary_country_code == "be"

    def test_many_cities_titled_by_country(self):
        """More than three cities title the trip by country."""
        visits = [
            make_visit("Paris", "fr", 10),
            make_visit("Lyon", "fr", 8),
            make_visit("Nice", "fr", 6),
            make_visit("Lille", "fr", 4),
        ]
        title = generate_trip_title(visits, home_country_code="be")

        assert title.title == "Trip to France"
        assert title.trip_type == TripType.COUNTRY
        assert title.primary_city == "Paris"

    def test_ties_keep_first_visit_order(self):
        """Equal durations are listed in the order they were visited."""
        visits = [
            make_visit("Lyon", "fr", 10),
            make_visit("Paris", "fr", 10),
            make_visit("Nice", "fr", 10),
        ]
        title = generate_trip_title(visits)

        assert title.title == "Trip to Lyon, Paris, Nice"
        assert title.primary_city == "Lyon"


class TestMultiCountryRule:
    """Tests for trips across several countries."""

    def test_top_countries_listed(self):
        """Countries reaching the minimum are listed by time spent."""
        visits = [
            make_visit("Brussels", "be", 15),
            make_visit("Antwerp", "be", 10),
            make_visit("Paris", "fr", 18),
            make_visit("Lyon", "fr", 12),
            make_visit("Berlin", "de", 20),
        ]
        title = generate_trip_title(visits)

        assert title.title == "Trip to France, Belgium"
        assert title.trip_type == TripType.MULTI_COUNTRY
        assert title.primary_country_code == "fr"
        assert title.primary_city == "Berlin"

    def test_unfiltered_time_counts(self):
        """Filtered-out places still count towards country totals."""
        paris = make_visit("Paris", "fr", 30)
        brussels = make_visit("Brussels", "be", 20)
        antwerp = make_visit("Antwerp", "be", 5)
        filtered = [paris, brussels]

        with_all = generate_trip_title(
            filtered, unfiltered=[paris, brussels, antwerp]
        )
        kept_only = generate_trip_title(filtered)

        assert with_all.title == "Trip to France, Belgium"
        assert kept_only.title == "Trip to Paris"

    def test_at_most_three_countries(self):
        """Only the three countries with the most time are listed."""
        visits = [
            make_visit("Paris", "fr", 30),
            make_visit("Berlin", "de", 40),
            make_visit("Amsterdam", "nl", 25),
            make_visit("Madrid", "es", 50),
        ]
        title = generate_trip_title(visits)

        assert title.title == "Trip to Spain, Germany, France"


class TestDominantCountryRule:
    """Tests for trips dominated by one country."""

    def test_dominant_country_with_several_cities(self):
        """The dominant country's cities title a country trip."""
        visits = [
            make_visit("Brussels", "be", 20),
            make_visit("Antwerp", "be", 10),
            make_visit("Paris", "fr", 10),
        ]
        title = generate_trip_title(visits)

        assert title.title == "Trip to Brussels"
        assert title.trip_type == TripType.COUNTRY
        assert title.primary_country_code == "be"

    def test_dominant_country_with_single_city(self):
        """A dominant country with one city is a city trip."""
        visits = [
            make_visit("Brussels", "be", 30),
            make_visit("Paris", "fr", 10),
        ]
        title = generate_trip_title(visits)

        assert title.title == "Trip to Brussels"
        assert title.trip_type == TripType.CITY


class TestFallbackRule:
    """Tests for the last-resort title."""

    def test_largest_country_top_city(self):
        """Without a dominant country the largest country's city is used."""
        visits = [
            make_visit("Brussels", "be", 12),
            make_visit("Paris", "fr", 10),
            make_visit("Berlin", "de", 10),
        ]
        title = generate_trip_title(visits)

        assert title.title == "Trip to Brussels"
        assert title.trip_type == TripType.CITY

    def test_no_locations(self):
        """An empty set gets the generic title."""
        title = TripTitleGenerator().generate([])

        assert title.title == FALLBACK_TRIP_TITLE
        assert title.primary_city is None


class TestConfiguration:
    """Tests for configurable title thresholds."""

    def test_dominance_share(self):
        """A higher dominance share lists more cities."""
        visits = [
            make_visit("Brussels", "be", 18),
            make_visit("Antwerp", "be", 12),
        ]
        config = TripDetectionConfig(dominance_share=0.7)
        title = generate_trip_title(visits, "be", config=config)

        assert title.title == "Trip to Brussels, Antwerp"
        assert title.trip_type == TripType.MULTI_CITY
