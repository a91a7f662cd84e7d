"""Monthly hour rollup per researcher label and per user.

"other tasks" hours can be redistributed evenly over the reporting user's
active researchers. "seminar/course/training" is always kept under its own
label. Redistribution moves hours between labels only; a user's total is the
same in both modes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .forms import OTHER_TASKS, DailyReport, Report, UserProfile, WeeklyReport
from .hours import HOURS_PER_DAY, to_hours
from .weeks import format_date

logger = logging.getLogger(__name__)


@dataclass
class MonthlyAllocation:
    month: int
    year: int
    allocate_others: bool
    totals_by_label: dict[str, float] = field(default_factory=dict)
    totals_by_user: dict[str, float] = field(default_factory=dict)
    entry_count: int = 0
    # "other tasks" hours of users without active researchers; in no label.
    unallocated_by_user: dict[str, float] = field(default_factory=dict)

    @property
    def user_count(self) -> int:
        return sum(1 for v in self.totals_by_user.values() if v > 0)

    @property
    def total_hours(self) -> float:
        return sum(self.totals_by_user.values())

    @property
    def unallocated_hours(self) -> float:
        return sum(self.unallocated_by_user.values())


def report_months(report: Report) -> list[tuple[int, int]]:
    """(year, month) pairs touched by a report, in calendar order."""
    months: list[tuple[int, int]] = []
    for d in report.days():
        ym = (d.year, d.month)
        if ym not in months:
            months.append(ym)
    return months


def month_share(report: Report, month: int, year: int) -> float:
    """Fraction of a report's hours that falls in the given month.

    Weekly reports are expanded day by day; each calendar day of the span
    carries an equal share.
    """
    days = report.days()
    if not days:
        return 0.0
    inside = sum(1 for d in days if d.month == month and d.year == year)
    return inside / len(days)


def _ordered(reports: Iterable[Report]) -> list[Report]:
    return sorted(reports, key=lambda r: (r.anchor, r.key))


def aggregate_month(
    reports_by_user: Mapping[str, Iterable[Report]],
    users_by_id: Mapping[str, UserProfile],
    month: int,
    year: int,
    allocate_others: bool,
    hours_per_day: float = HOURS_PER_DAY,
) -> MonthlyAllocation:
    """Roll up one month of reports across users.

    Users are visited in mapping order and reports by date, so label order
    (first occurrence) is stable for identical input.
    """
    result = MonthlyAllocation(month=month, year=year, allocate_others=allocate_others)
    labels = result.totals_by_label

    def _add(label: str, hours: float) -> None:
        labels[label] = labels.get(label, 0.0) + hours

    for uid, reports in reports_by_user.items():
        profile = users_by_id.get(uid)
        active = list(profile.active_researchers) if profile else []
        for report in _ordered(reports):
            if (year, month) not in report_months(report):
                continue
            share = month_share(report, month, year)
            for entry in report.entries:
                if not entry.researcher:
                    continue
                hours = to_hours(entry, report.type, hours_per_day) * share
                result.entry_count += 1
                result.totals_by_user[uid] = result.totals_by_user.get(uid, 0.0) + hours
                if entry.researcher == OTHER_TASKS and allocate_others:
                    if not active:
                        result.unallocated_by_user[uid] = (
                            result.unallocated_by_user.get(uid, 0.0) + hours
                        )
                        continue
                    portion = hours / len(active)
                    for name in active:
                        _add(name, portion)
                    continue
                _add(entry.researcher, hours)

    if result.unallocated_by_user:
        logger.info(
            "Dropped %.2f 'other tasks' hours for %d user(s) without active researchers",
            result.unallocated_hours,
            len(result.unallocated_by_user),
        )
    return result


def detail_rows(
    reports_by_user: Mapping[str, Iterable[Report]],
    users_by_id: Mapping[str, UserProfile],
    month: int,
    year: int,
    hours_per_day: float = HOURS_PER_DAY,
) -> list[dict[str, Any]]:
    """One row per entry touching the month; hours are the month's share."""
    rows: list[dict[str, Any]] = []
    for uid, reports in reports_by_user.items():
        profile = users_by_id.get(uid) or UserProfile(uid=uid)
        for report in _ordered(reports):
            if (year, month) not in report_months(report):
                continue
            share = month_share(report, month, year)
            if isinstance(report, WeeklyReport):
                when = report.label
            else:
                when = format_date(report.date)
            base = {
                "uid": uid,
                "user": profile.full_name or uid,
                "email": profile.email,
                "type": report.type,
                "date": when,
            }
            if isinstance(report, DailyReport) and not report.entries:
                rows.append({**base, "label": "", "hours": 0.0, "detail": report.work_status})
                continue
            for entry in report.entries:
                rows.append(
                    {
                        **base,
                        "label": entry.researcher,
                        "hours": to_hours(entry, report.type, hours_per_day) * share,
                        "detail": entry.detail,
                    }
                )
    return rows
