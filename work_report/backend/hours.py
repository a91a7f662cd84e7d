from __future__ import annotations

import os

from .forms import Entry, Report, ReportType

HOURS_PER_DAY = 8.0


def get_hours_per_day() -> float:
    """Return the configured hours per weekly day (default 8.0)."""
    try:
        val = float(os.environ.get("WORK_REPORT_HOURS_PER_DAY", "8") or 8)
        return val if val > 0 else HOURS_PER_DAY
    except ValueError:
        return HOURS_PER_DAY


def to_hours(entry: Entry, report_type: ReportType, hours_per_day: float = HOURS_PER_DAY) -> float:
    """Normalize an entry to hours.

    Daily entries carry hours as-is; weekly entries carry days, converted with
    ``hours_per_day``. No rounding happens here.
    """
    if report_type == "weekly":
        return float(entry.days or 0) * hours_per_day
    return float(entry.hours or 0)


def report_hours(report: Report, hours_per_day: float = HOURS_PER_DAY) -> float:
    return sum(to_hours(e, report.type, hours_per_day) for e in report.entries)


def round2(value: float) -> float:
    """Round for presentation and export only."""
    return round(float(value), 2)


def format_hours(value: float) -> str:
    s = f"{round2(value):.2f}"
    if s.endswith(".00"):
        return s[:-3]
    if s.endswith("0"):
        return s[:-1]
    return s
