"""Report, entry and profile records plus their validation.

Reports are a tagged union of ``DailyReport`` and ``WeeklyReport``. Records
read from the store arrive as loosely-typed dicts (``ReportRecord``); they are
converted here once so the rest of the package works with typed values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal, Union

from typing_extensions import NotRequired, TypedDict

from .parsers import parse_date, parse_week_range
from .weeks import (
    WeekRange,
    format_date,
    format_week_label,
    iter_days,
    sunday_of,
    thursday_of,
    work_week,
)

logger = logging.getLogger(__name__)

OTHER_TASKS = "other tasks"
TRAINING = "seminar/course/training"
RESERVED_LABELS = (OTHER_TASKS, TRAINING)

# Spellings written by earlier clients, including a misspelt variant.
LEGACY_LABELS = {
    "משימות אחרות": OTHER_TASKS,
    "משימה אחרות": OTHER_TASKS,
    "סמינר / קורס / הכשרה": TRAINING,
}

WORKED = "worked"
NO_WORK = "no-work"
WORK_STATUSES = (WORKED, NO_WORK)

MAX_DAILY_HOURS = 24.0
MAX_WEEKLY_DAYS = 5.0

ReportType = Literal["daily", "weekly"]


class EntryRecord(TypedDict):
    researcher: str
    hours: NotRequired[float]
    days: NotRequired[float]
    detail: NotRequired[str]


class ReportRecord(TypedDict):
    type: str
    date: NotRequired[str]
    week: NotRequired[str]
    weekStart: NotRequired[str]
    weekEnd: NotRequired[str]
    workStatus: NotRequired[str]
    entries: NotRequired[list[EntryRecord]]
    timestamp: NotRequired[int]


class UserRecord(TypedDict, total=False):
    firstName: str
    lastName: str
    position: str
    email: str
    activeResearchers: list[str]


@dataclass
class Entry:
    """One allocation line: a label plus hours (daily) or days (weekly)."""

    researcher: str
    hours: float | None = None
    days: float | None = None
    detail: str = ""

    @property
    def reserved(self) -> bool:
        return self.researcher in RESERVED_LABELS


@dataclass
class DailyReport:
    date: date
    entries: list[Entry] = field(default_factory=list)
    work_status: str = WORKED
    timestamp: int | None = None

    type: ReportType = field(default="daily", init=False)

    @property
    def key(self) -> str:
        return f"daily_{format_date(self.date)}"

    @property
    def anchor(self) -> date:
        return self.date

    def days(self) -> list[date]:
        return [self.date]

    def covers(self, value: date) -> bool:
        return self.date == value


@dataclass
class WeeklyReport:
    week_start: date
    week_end: date
    entries: list[Entry] = field(default_factory=list)
    timestamp: int | None = None

    type: ReportType = field(default="weekly", init=False)

    @classmethod
    def for_week(cls, value: date, entries: list[Entry] | None = None) -> WeeklyReport:
        span = work_week(value)
        return cls(week_start=span.start, week_end=span.end, entries=list(entries or []))

    @property
    def key(self) -> str:
        return f"weekly_{format_date(self.week_start)}"

    @property
    def anchor(self) -> date:
        return self.week_start

    @property
    def span(self) -> WeekRange:
        return WeekRange(self.week_start, self.week_end)

    @property
    def label(self) -> str:
        return self.span.label

    def days(self) -> list[date]:
        return list(iter_days(self.week_start, self.week_end))

    def covers(self, value: date) -> bool:
        return self.week_start <= value <= self.week_end


Report = Union[DailyReport, WeeklyReport]


@dataclass
class UserProfile:
    uid: str
    first_name: str = ""
    last_name: str = ""
    position: str = ""
    email: str = ""
    active_researchers: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.active_researchers = clean_labels(self.active_researchers)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def normalize_label(label: Any) -> str:
    s = str(label or "").strip()
    return LEGACY_LABELS.get(s, s)


def clean_labels(labels: Iterable[Any] | None) -> list[str]:
    """Strip blanks, duplicates and reserved labels while keeping order."""
    out: list[str] = []
    for raw in labels or []:
        label = normalize_label(raw)
        if not label or label in RESERVED_LABELS or label in out:
            continue
        out.append(label)
    return out


def entry_from_dict(data: Mapping[str, Any]) -> Entry:
    """Convert a stored entry with basic coercion."""
    return Entry(
        researcher=normalize_label(data.get("researcher")),
        hours=_opt_float(data.get("hours")),
        days=_opt_float(data.get("days")),
        detail=str(data.get("detail") or ""),
    )


def entry_to_dict(entry: Entry, report_type: ReportType) -> EntryRecord:
    rec: EntryRecord = {"researcher": entry.researcher}
    if report_type == "weekly":
        rec["days"] = float(entry.days or 0)
    else:
        rec["hours"] = float(entry.hours or 0)
    if entry.detail:
        rec["detail"] = entry.detail
    return rec


def report_from_dict(data: Mapping[str, Any]) -> Report:
    """Build a typed report from a stored record.

    Raises ``ValueError`` when the type or its dates cannot be established.
    """
    kind = str(data.get("type") or "daily").strip().lower()
    raw_entries = data.get("entries")
    if isinstance(raw_entries, Mapping):
        raw_entries = list(raw_entries.values())
    entries = [entry_from_dict(e) for e in (raw_entries or []) if isinstance(e, Mapping)]
    timestamp = data.get("timestamp")
    timestamp = int(timestamp) if isinstance(timestamp, (int, float)) else None

    if kind == "weekly":
        span = parse_week_range(data)
        if span is None:
            raise ValueError(f"Unparseable week range: {data.get('week')!r}")
        return WeeklyReport(
            week_start=span.start, week_end=span.end, entries=entries, timestamp=timestamp
        )
    if kind == "daily":
        d = parse_date(data.get("date"))
        if d is None:
            raise ValueError(f"Unparseable report date: {data.get('date')!r}")
        status = str(data.get("workStatus") or WORKED)
        return DailyReport(date=d, entries=entries, work_status=status, timestamp=timestamp)
    raise ValueError(f"Unknown report type: {kind!r}")


def report_to_dict(report: Report) -> ReportRecord:
    """Render the stored shape; the store assigns ``timestamp`` on write."""
    entries = [entry_to_dict(e, report.type) for e in report.entries]
    if isinstance(report, WeeklyReport):
        return {
            "type": "weekly",
            "date": format_date(report.week_start),
            "weekStart": format_date(report.week_start),
            "weekEnd": format_date(report.week_end),
            "week": report.label,
            "entries": entries,
        }
    return {
        "type": "daily",
        "date": format_date(report.date),
        "workStatus": report.work_status,
        "entries": entries,
    }


def load_reports(data: Mapping[str, Any] | Iterable[Any] | None) -> list[Report]:
    """Convert a stored collection, skipping records that cannot be read."""
    if not data:
        return []
    items = data.items() if isinstance(data, Mapping) else enumerate(data)
    reports: list[Report] = []
    for key, raw in items:
        if not isinstance(raw, Mapping):
            continue
        try:
            reports.append(report_from_dict(raw))
        except ValueError as exc:
            logger.warning("Skipping report %s: %s", key, exc)
    reports.sort(key=lambda r: (r.anchor, r.key))
    return reports


def profile_from_dict(uid: str, data: UserRecord | Mapping[str, Any] | None) -> UserProfile:
    data = data or {}
    active = data.get("activeResearchers")
    if isinstance(active, Mapping):
        active = list(active.values())
    return UserProfile(
        uid=uid,
        first_name=str(data.get("firstName") or ""),
        last_name=str(data.get("lastName") or ""),
        position=str(data.get("position") or ""),
        email=str(data.get("email") or ""),
        active_researchers=list(active) if isinstance(active, list) else [],
    )


def validate(report: Report) -> list[str]:
    """Return a list of human-readable issues if validation fails."""
    issues: list[str] = []
    if isinstance(report, DailyReport):
        if report.work_status not in WORK_STATUSES:
            issues.append(f"Unknown work status: {report.work_status}")
        elif report.work_status == NO_WORK and report.entries:
            issues.append("A no-work day cannot carry entries.")
        elif report.work_status == WORKED and not report.entries:
            issues.append("At least one entry is required for a worked day.")
        total = 0.0
        for e in report.entries:
            issues.extend(_entry_issues(e))
            if e.hours is None or e.hours <= 0:
                issues.append(f"Hours must be greater than zero ({e.researcher or 'no label'}).")
            else:
                total += e.hours
        if total > MAX_DAILY_HOURS:
            issues.append(f"A day cannot exceed {MAX_DAILY_HOURS:g} hours.")
    else:
        if report.week_start != sunday_of(report.week_start):
            issues.append(f"A weekly report must start on a Sunday ({format_week_label(report.week_start)}).")
        elif report.week_end != thursday_of(report.week_start):
            issues.append(f"A weekly report must cover Sunday to Thursday ({format_week_label(report.week_start)}).")
        if not report.entries:
            issues.append("At least one entry is required for a weekly report.")
        for e in report.entries:
            issues.extend(_entry_issues(e))
            if e.days is None or e.days <= 0:
                issues.append(f"Days must be greater than zero ({e.researcher or 'no label'}).")
            elif e.days > MAX_WEEKLY_DAYS:
                issues.append(f"Days cannot exceed {MAX_WEEKLY_DAYS:g} per entry.")
    return issues


def _entry_issues(entry: Entry) -> list[str]:
    issues: list[str] = []
    if not entry.researcher:
        issues.append("Researcher/task is required.")
    elif entry.reserved and not entry.detail.strip():
        issues.append(f"Detail is required for '{entry.researcher}'.")
    return issues


def _opt_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
