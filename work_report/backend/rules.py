"""Rules deciding when a report may be created or edited for a date.

A date is classified relative to "today":

- FUTURE: after today; always rejected.
- CURRENT_WEEK: inside today's Sunday-anchored week; create and edit allowed.
- PREVIOUS_WEEK: inside the Sunday-Thursday span before it, no earlier than
  the Monday of the calendar week one week before today; new reports only.
- OLDER: anything earlier; only inside an operator-configured backdate window.

Friday and Saturday are rejected before any week logic. A week is covered
either by daily reports or by one weekly report, never both. Existing records
always win; nothing here deletes or converts records.

Every function takes ``today`` explicitly and has no hidden state.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from .config import BackdateOverride
from .forms import Report, WeeklyReport
from .lookup import coerce_date, find_coverage, reports_in_week
from .weeks import (
    SUNDAY,
    THURSDAY,
    WeekRange,
    format_display_date,
    is_weekend,
    monday_of,
    sunday_of,
    thursday_of,
    work_week,
)

MSG_WEEKEND = "cannot report on Friday/Saturday"
MSG_FUTURE = "cannot report on a future date"
MSG_TOO_OLD = "cannot report more than one week back"
MSG_PREVIOUS_WEEK = "previous week: a new report may be added but not edited later"
MSG_PREVIOUS_EXISTS = "cannot edit an existing report from a previous week"
MSG_WEEKLY_COVERS = "a weekly report already covers this week"
MSG_EDIT_WEEKLY = "cannot edit a weekly report from a previous week"
MSG_EDIT_OLD = "only reports from the current week can be edited"
MSG_WEEKLY_DAY = "weekly reports can only be submitted on Thursday or Sunday"
MSG_WEEKLY_SPAN = "weekly report is outside the week that can be reported today"
MSG_DAILY_EXISTS = "daily reports already exist this week"
MSG_WEEKLY_EXISTS = "a weekly report already exists for this week"
MSG_BOTH = "date is covered by both a daily and a weekly report"


class WeekState(enum.Enum):
    FUTURE = "future"
    CURRENT_WEEK = "current_week"
    PREVIOUS_WEEK = "previous_week"
    OLDER = "older"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def _allow(message: str = "") -> Decision:
    return Decision(True, message)


def _reject(message: str) -> Decision:
    return Decision(False, message)


def lookback_floor(today: date) -> date:
    """Earliest date reachable without an override."""
    return monday_of(today) - timedelta(days=7)


def week_state(value: date | str, today: date) -> WeekState:
    d = coerce_date(value)
    if d > today:
        return WeekState.FUTURE
    current = sunday_of(today)
    if sunday_of(d) == current:
        return WeekState.CURRENT_WEEK
    if sunday_of(d) == current - timedelta(days=7) and d >= lookback_floor(today):
        return WeekState.PREVIOUS_WEEK
    return WeekState.OLDER


def can_create(
    value: date | str,
    reports: Iterable[Report] = (),
    *,
    today: date,
    override: BackdateOverride | None = None,
) -> Decision:
    d = coerce_date(value)
    if is_weekend(d):
        return _reject(MSG_WEEKEND)
    state = week_state(d, today)
    if state is WeekState.FUTURE:
        return _reject(MSG_FUTURE)
    if state is WeekState.CURRENT_WEEK:
        return _allow()
    if state is WeekState.OLDER:
        if override is None or not override.enabled:
            return _reject(MSG_TOO_OLD)
        if override.min_date is not None and d < override.min_date:
            return _reject(f"cannot report before {format_display_date(override.min_date)}")

    reports = list(reports)
    _, weeklies = reports_in_week(d, reports)
    coverage = find_coverage(d, reports)
    if weeklies or coverage.weekly:
        return _reject(MSG_WEEKLY_COVERS)
    if coverage.daily:
        return _reject(MSG_PREVIOUS_EXISTS)
    return _allow(MSG_PREVIOUS_WEEK if state is WeekState.PREVIOUS_WEEK else "")


def can_edit(value: date | str, reports: Iterable[Report] = (), *, today: date) -> Decision:
    d = coerce_date(value)
    if find_coverage(d, reports).weekly:
        return _reject(MSG_EDIT_WEEKLY)
    if is_weekend(d):
        return _reject(MSG_WEEKEND)
    state = week_state(d, today)
    if state is WeekState.FUTURE:
        return _reject(MSG_FUTURE)
    if state is not WeekState.CURRENT_WEEK:
        return _reject(MSG_EDIT_OLD)
    return _allow()


def weekly_window(today: date) -> WeekRange | None:
    """Span a weekly report may cover when authored ``today``.

    Thursday closes the current week; Sunday closes the week that just ended.
    """
    if today.weekday() == THURSDAY:
        return WeekRange(today - timedelta(days=4), today)
    if today.weekday() == SUNDAY:
        return WeekRange(today - timedelta(days=7), today - timedelta(days=3))
    return None


def weekly_report_allowed_for(value: date | str, *, today: date) -> bool:
    span = weekly_window(today)
    return span is not None and coerce_date(value) in span


def weekly_target_week(selected: date | str, *, today: date) -> WeekRange:
    """Week a weekly report picked for ``selected`` refers to.

    Picking today on a Sunday means the week that just ended, never the one
    starting today.
    """
    d = coerce_date(selected)
    if d == today and today.weekday() == SUNDAY:
        return work_week(today - timedelta(days=7))
    return work_week(d)


def type_conflict(value: date | str, proposed_type: str, reports: Iterable[Report]) -> Decision:
    dailies, weeklies = reports_in_week(value, reports)
    if proposed_type == "weekly":
        if dailies:
            return _reject(MSG_DAILY_EXISTS)
        return _allow()
    if proposed_type == "daily":
        if weeklies:
            return _reject(MSG_WEEKLY_EXISTS)
        return _allow()
    raise ValueError(f"Unknown report type: {proposed_type!r}")


def check_submission(
    report: Report,
    reports: Iterable[Report],
    *,
    today: date,
    override: BackdateOverride | None = None,
) -> Decision:
    """Decide whether ``report`` may be written over the current ``reports``.

    This is the write-time gate: a date never ends up covered by both a daily
    and a weekly report, and weekly reports are never rewritten.
    """
    reports = list(reports)
    if isinstance(report, WeeklyReport):
        if report.week_start != sunday_of(report.week_start):
            return _reject(MSG_WEEKLY_SPAN)
        if report.week_end != thursday_of(report.week_start):
            return _reject(MSG_WEEKLY_SPAN)
        window = weekly_window(today)
        if window is None:
            return _reject(MSG_WEEKLY_DAY)
        if report.week_start not in window:
            return _reject(MSG_WEEKLY_SPAN)
        conflict = type_conflict(report.week_start, "weekly", reports)
        if not conflict:
            return conflict
        _, weeklies = reports_in_week(report.week_start, reports)
        if weeklies:
            return _reject(MSG_WEEKLY_EXISTS)
        return _allow()

    coverage = find_coverage(report.date, reports)
    if coverage.conflicting:
        return _reject(MSG_BOTH)
    if coverage.daily:
        decision = can_edit(report.date, reports, today=today)
    else:
        decision = can_create(report.date, reports, today=today, override=override)
    if not decision:
        return decision
    conflict = type_conflict(report.date, "daily", reports)
    if not conflict:
        return conflict
    return decision
