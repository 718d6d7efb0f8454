"""Date range planning for trip detection.

Detection runs over the days that no existing trip already covers. Every
existing trip blocks its dates, whatever its status, so a rejected trip is
never proposed again.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from location_canon.records import DateRange

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def allocate_date_ranges(
    start: date,
    end: date,
    excluded: Iterable[DateRange],
) -> list[DateRange]:
    """Split a span into the ranges not covered by any excluded range.

    Args:
        start: First day of the span (inclusive)
        end: Last day of the span (inclusive)
        excluded: Ranges to leave out; may overlap, be unsorted, or reach
            outside the span

    Returns:
        Ordered, non-overlapping, non-empty ranges covering exactly the
        days of the span outside every excluded range. Empty when the whole
        span is excluded or the span is inverted.
    """
    if start > end:
        return []

    ranges: list[DateRange] = []
    cursor = start

    for blocked in sorted(excluded, key=lambda r: r.start_date):
        if cursor > end:
            break
        if blocked.start_date > end:
            break

        gap_end = min(blocked.start_date - ONE_DAY, end)
        if cursor <= gap_end:
            ranges.append(DateRange(cursor, gap_end))

        cursor = max(cursor, blocked.end_date + ONE_DAY)

    if cursor <= end:
        ranges.append(DateRange(cursor, end))

    logger.debug(
        "Allocated %d date ranges between %s and %s", len(ranges), start, end
    )
    return ranges


def range_bounds(date_range: DateRange) -> tuple[datetime, datetime]:
    """UTC instants bounding a date range: start inclusive, end exclusive."""
    start = datetime.combine(date_range.start_date, time.min, tzinfo=UTC)
    end = datetime.combine(
        date_range.end_date + ONE_DAY, time.min, tzinfo=UTC
    )
    return start, end


def range_end_instant(date_range: DateRange) -> datetime:
    """Last representable instant of a date range's final day (UTC)."""
    return datetime.combine(date_range.end_date, time.max, tzinfo=UTC)


def default_detection_span(
    first_sample_date: date,
    today: date,
) -> DateRange:
    """Span from the first recorded sample through tomorrow."""
    return DateRange(first_sample_date, today + ONE_DAY)
