"""Scenario builders: chronological sample sequences for one user.

Each builder returns samples sorted by time, starting on 2024-01-01.
"""

from location_canon.records import LocationSample

from .location_records import BRUSSELS, PARIS, Place, samples_at, ts


def weekend_in_paris(
    destination: Place = PARIS,
) -> list[LocationSample]:
    """Home, two days away, home again.

    - Jan 1 08:00-11:00: 4 samples at home
    - Jan 1 12:00 - Jan 3 11:00: 48 hourly samples at the destination;
      the first 4 confirm leaving, the other 44 are aggregated
      (Jan 1 16:00 - Jan 3 11:00, 43 hours)
    - Jan 3 12:00-17:00: 6 samples at home; the first 4 confirm the return
    """
    return [
        *samples_at(BRUSSELS, ts(1, 8), 4),
        *samples_at(destination, ts(1, 12), 48),
        *samples_at(BRUSSELS, ts(3, 12), 6),
    ]


def afternoon_excursion() -> list[LocationSample]:
    """Home, six hours away, home again: too short for a trip."""
    return [
        *samples_at(BRUSSELS, ts(1, 8), 4),
        *samples_at(PARIS, ts(1, 12), 6),
        *samples_at(BRUSSELS, ts(1, 18), 6),
    ]


def never_returns() -> list[LocationSample]:
    """Home, then away for the rest of the history."""
    return [
        *samples_at(BRUSSELS, ts(1, 8), 4),
        *samples_at(PARIS, ts(1, 12), 40),
    ]
