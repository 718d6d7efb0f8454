"""Tests for date range planning."""

from datetime import UTC, date, datetime

from location_canon.records import DateRange, ExcludedDateRange
from processing.trips.date_ranges import (
    allocate_date_ranges,
    default_detection_span,
    range_bounds,
    range_end_instant,
)


def d(day: int, month: int = 1) -> date:
    """Date in 2024."""
    return date(2024, month, day)


class TestAllocateDateRanges:
    """Tests for carving existing trips out of the detection span."""

    def test_no_exclusions_gives_whole_span(self):
        """Without existing trips the span is a single range."""
        assert allocate_date_ranges(d(1), d(10), []) == [
            DateRange(d(1), d(10))
        ]

    def test_two_exclusions(self):
        """Gaps before, between and after excluded trips are returned."""
        ranges = allocate_date_ranges(
            d(1),
            d(10),
            [DateRange(d(3), d(5)), DateRange(d(8), d(9))],
        )
        assert ranges == [
            DateRange(d(1), d(2)),
            DateRange(d(6), d(7)),
            DateRange(d(10), d(10)),
        ]

    def test_exclusion_in_the_middle(self):
        """A long exclusion leaves single days at both ends."""
        ranges = allocate_date_ranges(d(1), d(10), [DateRange(d(2), d(8))])
        assert ranges == [DateRange(d(1), d(1)), DateRange(d(9), d(10))]

    def test_unsorted_overlapping_exclusions(self):
        """Exclusions may overlap and arrive in any order."""
        ranges = allocate_date_ranges(
            d(1),
            d(10),
            [
                ExcludedDateRange(d(6), d(7), reason="approved"),
                ExcludedDateRange(d(3), d(6), reason="rejected"),
                ExcludedDateRange(d(4), d(5), reason="pending"),
            ],
        )
        assert ranges == [DateRange(d(1), d(2)), DateRange(d(8), d(10))]

    def test_fully_excluded_span_is_empty(self):
        """Nothing to do when an exclusion covers the whole span."""
        assert allocate_date_ranges(
            d(2), d(5), [DateRange(d(1), d(6))]
        ) == []

    def test_exclusions_outside_span_are_ignored(self):
        """Exclusions before or after the span do not matter."""
        ranges = allocate_date_ranges(
            d(10),
            d(20),
            [DateRange(d(1), d(5)), DateRange(d(25), d(30))],
        )
        assert ranges == [DateRange(d(10), d(20))]

    def test_exclusion_overlapping_span_start(self):
        """An exclusion reaching into the span moves its start."""
        ranges = allocate_date_ranges(d(5), d(10), [DateRange(d(1), d(6))])
        assert ranges == [DateRange(d(7), d(10))]

    def test_inverted_span_is_empty(self):
        """A span ending before it starts has no ranges."""
        assert allocate_date_ranges(d(10), d(1), []) == []

    def test_ranges_cover_exactly_the_remaining_days(self):
        """Every non-excluded day appears exactly once."""
        excluded = [DateRange(d(4), d(4)), DateRange(d(9), d(12))]
        ranges = allocate_date_ranges(d(1), d(15), excluded)

        covered = [
            r.start_date.toordinal() + i
            for r in ranges
            for i in range(r.days)
        ]
        expected = [
            d(day).toordinal()
            for day in range(1, 16)
            if day != 4 and not 9 <= day <= 12
        ]
        assert covered == expected


class TestRangeHelpers:
    """Tests for span defaults and range bounds."""

    def test_default_span_runs_through_tomorrow(self):
        """Default span starts at the first sample and ends tomorrow."""
        span = default_detection_span(d(1), d(15))
        assert span == DateRange(d(1), d(16))

    def test_range_bounds_are_utc_day_boundaries(self):
        """Start is midnight of the first day, end midnight after the last."""
        start, end = range_bounds(DateRange(d(1), d(3)))
        assert start == datetime(2024, 1, 1, tzinfo=UTC)
        assert end == datetime(2024, 1, 4, tzinfo=UTC)

    def test_range_end_instant_stays_on_last_day(self):
        """The end instant of a range is on its last date."""
        end = range_end_instant(DateRange(d(1), d(3)))
        assert end.date() == d(3)
        assert end.hour == 23
