"""Recurrence calendar: occurrence predicates and next/previous occurrence search.

All functions are pure. A task's occurrences are anchored on its start date and
bounded by its optional end date; nothing occurs before the anchor or after the
end date.

Day-filter patterns (DAILY, WEEKDAYS, WEEKENDS) and ONCE may fall on the anchor
itself. Interval patterns (WEEKLY, BIWEEKLY, MONTHLY) first fall due one full
interval after the anchor: a weekly chore starting Monday 2024-01-01 is first
due on 2024-01-08.

``CUSTOM`` patterns are opaque free text: they are always eligible for manual
scheduling and have no period, so searching them raises ValueError.
"""

import calendar
from datetime import date, timedelta

from src.domain.task import RecurrencePattern


_PERIOD_DAYS: dict[RecurrencePattern, int] = {
    RecurrencePattern.DAILY: 1,
    RecurrencePattern.WEEKDAYS: 7,
    RecurrencePattern.WEEKENDS: 7,
    RecurrencePattern.WEEKLY: 7,
    RecurrencePattern.BIWEEKLY: 14,
    RecurrencePattern.MONTHLY: 31,
}

_WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

_SATURDAY = 5


def pattern_period_days(pattern: RecurrencePattern) -> int | None:
    """Return the longest gap in days between two occurrences, or None when the pattern has no period."""
    return _PERIOD_DAYS.get(pattern)


def _clamped_day(anchor: date, year: int, month: int) -> int:
    """Day-of-month the anchor maps to in the given month (short months clamp to their last day)."""
    return min(anchor.day, calendar.monthrange(year, month)[1])


def occurs_on(
    pattern: RecurrencePattern,
    custom_expr: str | None,
    anchor_date: date,
    candidate_date: date,
    end_date: date | None = None,
) -> bool:
    """Return True when the task is scheduled on candidate_date.

    WEEKLY, BIWEEKLY and MONTHLY count whole intervals after the anchor and
    never fall on the anchor itself: a weekly task starting Monday 2024-01-01
    first occurs on 2024-01-08. DAILY, WEEKDAYS, WEEKENDS, ONCE and CUSTOM can
    occur on the anchor.

    Args:
        pattern: Recurrence pattern
        custom_expr: Free-text expression for CUSTOM patterns (not evaluated)
        anchor_date: First possible occurrence (the task's start date)
        candidate_date: Date to test
        end_date: Last possible occurrence, inclusive

    Returns:
        Whether candidate_date is an occurrence
    """
    if candidate_date < anchor_date:
        return False
    if end_date is not None and candidate_date > end_date:
        return False

    match pattern:
        case RecurrencePattern.DAILY | RecurrencePattern.CUSTOM:
            return True
        case RecurrencePattern.WEEKDAYS:
            return candidate_date.weekday() < _SATURDAY
        case RecurrencePattern.WEEKENDS:
            return candidate_date.weekday() >= _SATURDAY
        case RecurrencePattern.WEEKLY:
            days = (candidate_date - anchor_date).days
            return days > 0 and days % 7 == 0
        case RecurrencePattern.BIWEEKLY:
            days = (candidate_date - anchor_date).days
            return days > 0 and days % 14 == 0
        case RecurrencePattern.MONTHLY:
            if candidate_date == anchor_date:
                return False
            return candidate_date.day == _clamped_day(anchor_date, candidate_date.year, candidate_date.month)
        case RecurrencePattern.ONCE:
            return candidate_date == anchor_date

    msg = f"Unknown recurrence pattern: {pattern}"
    raise ValueError(msg)


def _require_period(pattern: RecurrencePattern) -> int:
    period = pattern_period_days(pattern)
    if period is None:
        msg = f"Recurrence pattern {pattern} has no period; occurrences cannot be searched"
        raise ValueError(msg)
    return period


def next_occurrence_on_or_after(
    pattern: RecurrencePattern,
    custom_expr: str | None,
    anchor_date: date,
    end_date: date | None,
    from_date: date,
) -> date | None:
    """Return the earliest occurrence on or after from_date, or None past end_date.

    Probes at most one period's worth of dates.

    Raises:
        ValueError: If the pattern has no period (CUSTOM)
    """
    start = max(from_date, anchor_date)
    if end_date is not None and start > end_date:
        return None

    if pattern == RecurrencePattern.ONCE:
        return anchor_date if anchor_date >= from_date else None

    period = _require_period(pattern)
    for offset in range(period + 1):
        candidate = start + timedelta(days=offset)
        if end_date is not None and candidate > end_date:
            return None
        if occurs_on(pattern, custom_expr, anchor_date, candidate, end_date):
            return candidate
    return None


def previous_occurrence_on_or_before(
    pattern: RecurrencePattern,
    custom_expr: str | None,
    anchor_date: date,
    end_date: date | None,
    to_date: date,
) -> date | None:
    """Return the latest occurrence on or before to_date, or None before the anchor.

    Probes at most one period's worth of dates.

    Raises:
        ValueError: If the pattern has no period (CUSTOM)
    """
    start = min(to_date, end_date) if end_date is not None else to_date
    if start < anchor_date:
        return None

    if pattern == RecurrencePattern.ONCE:
        return anchor_date

    period = _require_period(pattern)
    for offset in range(period + 1):
        candidate = start - timedelta(days=offset)
        if candidate < anchor_date:
            return None
        if occurs_on(pattern, custom_expr, anchor_date, candidate, end_date):
            return candidate
    return None


def _ordinal(day: int) -> str:
    suffix = "th"
    if day in (1, 21, 31):
        suffix = "st"
    elif day in (2, 22):
        suffix = "nd"
    elif day in (3, 23):
        suffix = "rd"
    return f"{day}{suffix}"


def describe_recurrence(
    pattern: RecurrencePattern,
    custom_expr: str | None = None,
    anchor_date: date | None = None,
) -> str:
    """Convert a recurrence to human-readable text.

    Args:
        pattern: Recurrence pattern
        custom_expr: Shown verbatim for CUSTOM patterns
        anchor_date: Start date; when given, weekly and monthly texts name the day

    Returns:
        Human-readable description (e.g., "every Monday", "monthly on the 15th")
    """
    match pattern:
        case RecurrencePattern.CUSTOM:
            return custom_expr or ""
        case RecurrencePattern.DAILY:
            return "daily"
        case RecurrencePattern.WEEKDAYS:
            return "weekdays"
        case RecurrencePattern.WEEKENDS:
            return "weekends"
        case RecurrencePattern.WEEKLY:
            return f"every {_WEEKDAY_NAMES[anchor_date.weekday()]}" if anchor_date else "weekly"
        case RecurrencePattern.BIWEEKLY:
            return f"every other {_WEEKDAY_NAMES[anchor_date.weekday()]}" if anchor_date else "biweekly"
        case RecurrencePattern.MONTHLY:
            return f"monthly on the {_ordinal(anchor_date.day)}" if anchor_date else "monthly"
        case RecurrencePattern.ONCE:
            return f"once on {anchor_date.isoformat()}" if anchor_date else "once"

    return str(pattern)
