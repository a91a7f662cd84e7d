from datetime import date

from work_report.backend.forms import DailyReport, Entry, WeeklyReport
from work_report.backend.hours import format_hours, get_hours_per_day, report_hours, round2, to_hours


def test_to_hours_daily_and_weekly():
    assert to_hours(Entry("A", hours=2.5), "daily") == 2.5
    assert to_hours(Entry("A", days=1.5), "weekly") == 12.0
    assert to_hours(Entry("A", days=1), "weekly", hours_per_day=7.5) == 7.5
    assert to_hours(Entry("A"), "daily") == 0.0


def test_rounding_is_for_presentation():
    assert round2(10 / 3) == 3.33
    assert format_hours(8) == "8"
    assert format_hours(2.5) == "2.5"
    assert format_hours(10 / 3) == "3.33"


def test_hours_per_day_from_env(monkeypatch):
    monkeypatch.setenv("WORK_REPORT_HOURS_PER_DAY", "7")
    assert get_hours_per_day() == 7.0
    monkeypatch.setenv("WORK_REPORT_HOURS_PER_DAY", "nope")
    assert get_hours_per_day() == 8.0
    monkeypatch.setenv("WORK_REPORT_HOURS_PER_DAY", "-1")
    assert get_hours_per_day() == 8.0


def test_report_hours():
    daily = DailyReport(date=date(2025, 9, 2), entries=[Entry("A", hours=3), Entry("B", hours=4.5)])
    assert report_hours(daily) == 7.5
    weekly = WeeklyReport.for_week(date(2025, 9, 2), [Entry("A", days=2), Entry("B", days=0.5)])
    assert report_hours(weekly) == 20.0
