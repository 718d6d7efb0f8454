"""Shared fixtures for trip detection tests."""

import pytest

from location_canon.codebook.trips import HomeReferenceSource
from location_canon.records import HomeReference
from processing.trips.configs import TripDetectionConfig
from processing.trips.location_classifier import LocationClassifier

from fixtures.location_records import BRUSSELS


@pytest.fixture
def config():
    """Default detection configuration."""
    return TripDetectionConfig()


@pytest.fixture
def home_reference():
    """Home address in Brussels."""
    return HomeReference(
        name="Home",
        latitude=BRUSSELS.latitude,
        longitude=BRUSSELS.longitude,
        city_name=BRUSSELS.city_name,
        country_code=BRUSSELS.country_code,
        source=HomeReferenceSource.HOME_ADDRESS,
    )


@pytest.fixture
def classifier(config, home_reference):
    """Classifier with the Brussels home only."""
    return LocationClassifier(config, [home_reference])
