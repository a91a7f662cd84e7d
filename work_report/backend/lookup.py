"""Which existing report, if any, accounts for a calendar date."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from .forms import DailyReport, Report, WeeklyReport
from .parsers import parse_date
from .weeks import as_date, sunday_of, work_week


@dataclass
class Coverage:
    """Daily and weekly reports covering one date.

    Both lists being non-empty violates the data invariant; ``conflicting``
    surfaces it instead of hiding one side.
    """

    date: date
    daily: list[DailyReport] = field(default_factory=list)
    weekly: list[WeeklyReport] = field(default_factory=list)

    @property
    def kind(self) -> str:
        if self.daily and self.weekly:
            return "both"
        if self.daily:
            return "daily"
        if self.weekly:
            return "weekly"
        return "none"

    @property
    def covered(self) -> bool:
        return bool(self.daily or self.weekly)

    @property
    def conflicting(self) -> bool:
        return bool(self.daily and self.weekly)

    @property
    def report(self) -> Report | None:
        if self.weekly:
            return self.weekly[0]
        if self.daily:
            return self.daily[0]
        return None


def coerce_date(value: date | str) -> date:
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value!r}")
        return parsed
    return as_date(value)


def find_coverage(value: date | str, reports: Iterable[Report]) -> Coverage:
    """Find daily and weekly reports covering ``value``.

    Weekly spans are inclusive on both ends.
    """
    d = coerce_date(value)
    cov = Coverage(date=d)
    for r in reports:
        if isinstance(r, WeeklyReport):
            if r.covers(d):
                cov.weekly.append(r)
        elif r.covers(d):
            cov.daily.append(r)
    return cov


def reports_in_week(
    value: date | str, reports: Iterable[Report]
) -> tuple[list[DailyReport], list[WeeklyReport]]:
    """Dailies dated inside the Sunday-Thursday span of ``value`` and weeklies for that span."""
    span = work_week(coerce_date(value))
    dailies: list[DailyReport] = []
    weeklies: list[WeeklyReport] = []
    for r in reports:
        if isinstance(r, WeeklyReport):
            if sunday_of(r.week_start) == span.start:
                weeklies.append(r)
        elif r.date in span:
            dailies.append(r)
    return dailies, weeklies
