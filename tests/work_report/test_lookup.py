from datetime import date

import pytest

from work_report.backend.forms import DailyReport, Entry, WeeklyReport
from work_report.backend.lookup import coerce_date, find_coverage, reports_in_week


def _daily(d):
    return DailyReport(date=d, entries=[Entry("Dr. Cohen", hours=8)])


def test_find_coverage_kinds():
    weekly = WeeklyReport.for_week(date(2025, 8, 24), [Entry("Dr. Cohen", days=5)])
    reports = [_daily(date(2025, 9, 1)), weekly]
    assert find_coverage("2025-09-01", reports).kind == "daily"
    assert find_coverage(date(2025, 8, 24), reports).kind == "weekly"
    # Both ends of a weekly span are covered.
    assert find_coverage(date(2025, 8, 28), reports).report is weekly
    assert find_coverage(date(2025, 8, 29), reports).kind == "none"


def test_find_coverage_surfaces_conflicts():
    reports = [_daily(date(2025, 9, 1)), WeeklyReport.for_week(date(2025, 9, 1))]
    cov = find_coverage(date(2025, 9, 1), reports)
    assert cov.kind == "both"
    assert cov.conflicting


def test_reports_in_week():
    weekly = WeeklyReport.for_week(date(2025, 8, 24))
    reports = [_daily(date(2025, 9, 1)), _daily(date(2025, 8, 27)), weekly]
    dailies, weeklies = reports_in_week(date(2025, 9, 3), reports)
    assert [r.date for r in dailies] == [date(2025, 9, 1)]
    assert weeklies == []
    dailies, weeklies = reports_in_week(date(2025, 8, 30), reports)
    assert [r.date for r in dailies] == [date(2025, 8, 27)]
    assert weeklies == [weekly]


def test_coerce_date_rejects_garbage():
    with pytest.raises(ValueError):
        coerce_date("soon")
