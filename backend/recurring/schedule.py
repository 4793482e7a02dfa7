# recurring/schedule.py
"""
Next-run computation for recurring entries.

All schedules fire at ``time_of_day`` (local time, midnight by default):

    DAILY             every day
    WEEKLY            on ``day_of_week`` (0=Monday, default Monday)
    MONTHLY           on ``day_of_month`` (default 1st), clamped to the
                      month's length (31 -> 28/29 in February)
    CALENDAR_MONTHLY  on the last day of each month

The result is always strictly later than ``after``. Returns None once the
schedule has passed ``end_at``.
"""

import calendar
from datetime import datetime, time, timedelta

from django.utils import timezone

DEFAULT_TIME = time(0, 0)


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _month_after(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def _at(day, at_time: time) -> datetime:
    return timezone.make_aware(datetime.combine(day, at_time))


def _monthly(now: datetime, at_time: time, day_for_month) -> datetime:
    year, month = now.year, now.month
    run = _at(now.date().replace(day=day_for_month(year, month)), at_time)
    if run > now:
        return run
    year, month = _month_after(year, month)
    return _at(datetime(year, month, day_for_month(year, month)).date(), at_time)


def compute_next_run(
    schedule_type: str,
    after: datetime,
    time_of_day: time = None,
    day_of_week: int = None,
    day_of_month: int = None,
    start_at: datetime = None,
    end_at: datetime = None,
):
    from recurring.models import RecurringEntry

    kinds = RecurringEntry.ScheduleType
    at_time = time_of_day or DEFAULT_TIME

    if start_at is not None and start_at > after:
        after = start_at - timedelta(microseconds=1)
    now = timezone.localtime(after)
    candidate = _at(now.date(), at_time)

    if schedule_type == kinds.DAILY:
        run = candidate if candidate > now else candidate + timedelta(days=1)
    elif schedule_type == kinds.WEEKLY:
        target = 0 if day_of_week is None else day_of_week
        days = (target - candidate.weekday()) % 7
        if days == 0 and candidate <= now:
            days = 7
        run = candidate + timedelta(days=days)
    elif schedule_type == kinds.MONTHLY:
        dom = day_of_month or 1
        run = _monthly(now, at_time, lambda y, m: min(dom, _days_in_month(y, m)))
    elif schedule_type == kinds.CALENDAR_MONTHLY:
        run = _monthly(now, at_time, _days_in_month)
    else:
        raise ValueError(f"Unknown schedule type: {schedule_type}")

    if end_at is not None and run > end_at:
        return None
    return run


def next_run_for(entry, after: datetime):
    """compute_next_run using a RecurringEntry's own schedule fields."""
    return compute_next_run(
        entry.schedule_type,
        after,
        time_of_day=entry.time_of_day,
        day_of_week=entry.day_of_week,
        day_of_month=entry.day_of_month,
        start_at=entry.start_at,
        end_at=entry.end_at,
    )
