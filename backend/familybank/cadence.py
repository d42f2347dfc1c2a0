"""Calendar arithmetic for recurring schedules.

Every function here is pure: the reference instant is always passed in and
the clock is never read.  Instants are treated as UTC; results fall on
00:00 of the target date and keep the ``tzinfo`` of the input.

Day-of-week values follow the API convention ``0 = Sunday ... 6 = Saturday``
(Python's :meth:`datetime.weekday` uses ``0 = Monday``).
"""

import calendar
from datetime import datetime, timedelta

FREQUENCY_WEEKLY = "weekly"
FREQUENCY_BIWEEKLY = "biweekly"
FREQUENCY_MONTHLY = "monthly"

FREQUENCIES = (FREQUENCY_WEEKLY, FREQUENCY_BIWEEKLY, FREQUENCY_MONTHLY)
WEEKDAY_FREQUENCIES = (FREQUENCY_WEEKLY, FREQUENCY_BIWEEKLY)

PERIODS_PER_YEAR = {
    FREQUENCY_WEEKLY: 52,
    FREQUENCY_BIWEEKLY: 26,
    FREQUENCY_MONTHLY: 12,
}


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def sunday_weekday(moment: datetime) -> int:
    """Return the weekday of ``moment`` with Sunday as day 0."""
    return (moment.weekday() + 1) % 7


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _days_until(day_of_week: int, after: datetime) -> int:
    return (day_of_week - sunday_weekday(after) + 7) % 7


def next_weekly(day_of_week: int, after: datetime) -> datetime:
    """Next ``day_of_week`` strictly after ``after``; same day means next week."""
    days = _days_until(day_of_week, after) or 7
    return _midnight(after) + timedelta(days=days)


def next_biweekly(day_of_week: int, after: datetime) -> datetime:
    """Like :func:`next_weekly` but a same-day start lands two weeks out.

    The resulting cadence is anchored to the moment the schedule was set up,
    not to a globally aligned even week.
    """
    days = _days_until(day_of_week, after) or 14
    return _midnight(after) + timedelta(days=days)


def next_monthly(day_of_month: int, after: datetime) -> datetime:
    """Next ``day_of_month`` strictly after ``after``, clamped to month length."""
    year, month = after.year, after.month
    day = min(day_of_month, days_in_month(year, month))
    candidate = _midnight(after).replace(day=day)
    if candidate > after:
        return candidate
    month += 1
    if month > 12:
        month = 1
        year += 1
    day = min(day_of_month, days_in_month(year, month))
    return _midnight(after).replace(year=year, month=month, day=day)


def next_run(
    frequency: str,
    day_of_week: int | None,
    day_of_month: int | None,
    after: datetime,
) -> datetime:
    """First fire instant for a schedule created or resumed at ``after``."""
    if frequency == FREQUENCY_WEEKLY:
        return next_weekly(day_of_week, after)
    if frequency == FREQUENCY_BIWEEKLY:
        return next_biweekly(day_of_week, after)
    if frequency == FREQUENCY_MONTHLY:
        return next_monthly(day_of_month, after)
    raise ValueError(f"unknown frequency {frequency!r}")


def next_after_execution(
    frequency: str,
    day_of_week: int | None,
    day_of_month: int | None,
    executed_at: datetime,
) -> datetime:
    """Fire instant following a firing of the slot ``executed_at``.

    Weekly and biweekly cadences step a fixed 7 or 14 days from the slot so a
    late firing does not drift the schedule.
    """
    if frequency == FREQUENCY_WEEKLY:
        return _midnight(executed_at) + timedelta(days=7)
    if frequency == FREQUENCY_BIWEEKLY:
        return _midnight(executed_at) + timedelta(days=14)
    if frequency == FREQUENCY_MONTHLY:
        return next_monthly(day_of_month, executed_at)
    raise ValueError(f"unknown frequency {frequency!r}")


def periods_per_year(frequency: str) -> int:
    try:
        return PERIODS_PER_YEAR[frequency]
    except KeyError:
        raise ValueError(f"unknown frequency {frequency!r}") from None
