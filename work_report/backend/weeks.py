"""Sunday-anchored work-week helpers.

A work week runs Sunday through Thursday. Friday and Saturday belong to the
same calendar week but are never valid work dates.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo as _tzinfo
from zoneinfo import ZoneInfo

WORK_DAYS = 5
FRIDAY = 4
SATURDAY = 5
SUNDAY = 6
THURSDAY = 3


@dataclass(frozen=True)
class WeekRange:
    """An inclusive span of calendar dates."""

    start: date
    end: date

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, date):
            return False
        d = as_date(value)
        return self.start <= d <= self.end

    def days(self) -> list[date]:
        return list(iter_days(self.start, self.end))

    @property
    def label(self) -> str:
        return f"{format_display_date(self.start)} - {format_display_date(self.end)}"


def as_date(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def sunday_of(value: date | datetime) -> date:
    d = as_date(value)
    return d - timedelta(days=(d.weekday() + 1) % 7)


def thursday_of(value: date | datetime) -> date:
    return sunday_of(value) + timedelta(days=WORK_DAYS - 1)


def monday_of(value: date | datetime) -> date:
    d = as_date(value)
    return d - timedelta(days=d.weekday())


def work_week(value: date | datetime) -> WeekRange:
    return WeekRange(sunday_of(value), thursday_of(value))


def is_weekend(value: date | datetime) -> bool:
    return as_date(value).weekday() in (FRIDAY, SATURDAY)


def is_work_day(value: date | datetime) -> bool:
    return not is_weekend(value)


def iter_days(start: date, end: date) -> Iterator[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def format_date(value: date | datetime) -> str:
    return as_date(value).isoformat()


def format_display_date(value: date | datetime) -> str:
    return as_date(value).strftime("%d/%m/%Y")


def week_range_label(value: date | datetime) -> tuple[str, str]:
    """Return the (Sunday, Thursday) pair for the week containing ``value``."""
    return format_display_date(sunday_of(value)), format_display_date(thursday_of(value))


def format_week_label(value: date | datetime) -> str:
    return " - ".join(week_range_label(value))


def resolve_tz(timezone: str | None) -> _tzinfo:
    """Prefer an explicit IANA name, then the local zone, then UTC."""
    tz: _tzinfo | None = None
    if timezone:
        try:
            tz = ZoneInfo(timezone)
        except Exception:
            tz = None
    if tz is None:
        tz = datetime.now().astimezone().tzinfo
    if tz is None:
        tz = ZoneInfo("UTC")
    return tz


def today_in(timezone: str | None = None) -> date:
    return datetime.now(resolve_tz(timezone)).date()
