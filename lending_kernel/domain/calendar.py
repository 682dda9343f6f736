"""
Calendar-date helpers for snapshot keys and KPI windows.

Snapshot rows are keyed by a UTC calendar date.  Callers hand in dates,
datetimes or ISO-8601 strings; everything is normalised here.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any

from lending_kernel.exceptions import InvalidSnapshotDateError


def coerce_date(value: Any, default: date | None = None) -> date:
    """
    Normalise ``value`` to a calendar date.

    Accepts ``date``, ``datetime`` (converted to its UTC date; naive values
    are taken as UTC), an ISO-8601 date or datetime string, or None (returns
    ``default``).

    Raises:
        InvalidSnapshotDateError: value is None with no default, or cannot be parsed.
    """
    if value is None:
        if default is None:
            raise InvalidSnapshotDateError(value)
        return default
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return coerce_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            raise InvalidSnapshotDateError(value) from None
    raise InvalidSnapshotDateError(value)


def trailing_window(
    today: date,
    days: int,
    start: Any = None,
    end: Any = None,
) -> tuple[date, date]:
    """
    Resolve an inclusive ``[start, end]`` window.

    Missing ``end`` defaults to ``today``; missing ``start`` defaults to
    ``days`` days before ``end``.
    """
    end_date = coerce_date(end, default=today)
    start_date = coerce_date(start, default=end_date - timedelta(days=days))
    return start_date, end_date


def days_between(earlier: date, later: date) -> int:
    """Whole days from ``earlier`` to ``later`` (negative when reversed)."""
    return (coerce_date(later) - coerce_date(earlier)).days
