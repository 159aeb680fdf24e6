"""Reporting date window helpers."""

from __future__ import annotations

from datetime import date, timedelta

from scamwatch.config import settings
from scamwatch.core.exceptions import InvalidDateRangeError
from scamwatch.services.analysis_types import DateRange

# Search analytics data lags behind by two days
REPORTING_LAG_DAYS = 2


def parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise InvalidDateRangeError(f"'{value}' is not a YYYY-MM-DD date") from exc


def date_range_for_days(days: int, today: date | None = None) -> DateRange:
    """Window of ``days`` ending at the latest day with reported data."""
    if days < 1:
        raise InvalidDateRangeError("days must be at least 1")
    limit = settings.search_console_max_date_range_days
    # The window spans days + 1 calendar days
    if days >= limit:
        raise InvalidDateRangeError(f"range exceeds {limit} days")
    end = (today or date.today()) - timedelta(days=REPORTING_LAG_DAYS)
    start = end - timedelta(days=days)
    return DateRange(start_date=start.isoformat(), end_date=end.isoformat())


def previous_period(current: DateRange, days: int) -> DateRange:
    """The ``days``-long window ending the day before ``current`` starts."""
    end = parse_iso_date(current.start_date) - timedelta(days=1)
    start = end - timedelta(days=days - 1)
    return DateRange(start_date=start.isoformat(), end_date=end.isoformat())


def validate_date_range(date_range: DateRange, max_days: int | None = None) -> DateRange:
    """Reject unparseable, inverted or overly long ranges."""
    start = parse_iso_date(date_range.start_date)
    end = parse_iso_date(date_range.end_date)
    if start > end:
        raise InvalidDateRangeError(
            f"start_date {date_range.start_date} is after end_date {date_range.end_date}"
        )
    limit = max_days if max_days is not None else settings.search_console_max_date_range_days
    if (end - start).days + 1 > limit:
        raise InvalidDateRangeError(f"range exceeds {limit} days")
    return date_range


def resolve_date_range(
    start_date: str | None = None,
    end_date: str | None = None,
    days: int | None = None,
    today: date | None = None,
) -> DateRange:
    """Explicit ``start_date``/``end_date`` win; otherwise the last ``days`` days."""
    if start_date or end_date:
        if not (start_date and end_date):
            raise InvalidDateRangeError("start_date and end_date must be provided together")
        return validate_date_range(DateRange(start_date=start_date, end_date=end_date))
    return validate_date_range(date_range_for_days(days or settings.default_date_range_days, today))
