"""Lookup tables for reading reverse-geocoding payloads.

Geocoding providers disagree on where they put the locality name. Each tuple
lists the candidate keys in priority order; the first present, non-blank
value wins.
"""

CITY_FIELD_CANDIDATES: tuple[str, ...] = (
    "city",
    "town",
    "village",
    "municipality",
)

COUNTRY_CODE_FIELD_CANDIDATES: tuple[str, ...] = (
    "country_code",
    "countrycode",
    "countryCode",
)

COUNTRY_NAME_FIELD_CANDIDATES: tuple[str, ...] = (
    "country",
    "country_name",
)

# Nested paths searched for address dictionaries, most specific first.
# An empty path means the payload itself.
ADDRESS_PATHS: tuple[tuple[str, ...], ...] = (
    ("address",),
    ("properties", "address"),
    ("properties",),
    (),
)
