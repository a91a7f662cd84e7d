from datetime import date

import pytest

from work_report.backend.aggregate import aggregate_month, detail_rows, month_share, report_months
from work_report.backend.forms import (
    NO_WORK,
    OTHER_TASKS,
    TRAINING,
    DailyReport,
    Entry,
    UserProfile,
    WeeklyReport,
)


def _users():
    return {
        "u1": UserProfile(uid="u1", first_name="Dana", active_researchers=["A", "B", "C"]),
        "u2": UserProfile(uid="u2", active_researchers=[]),
    }


def _reports():
    return {
        "u1": [
            DailyReport(
                date=date(2025, 9, 2),
                entries=[
                    Entry(OTHER_TASKS, hours=6, detail="email"),
                    Entry("A", hours=1),
                    Entry(TRAINING, hours=1, detail="course"),
                ],
            ),
        ],
        "u2": [
            DailyReport(
                date=date(2025, 9, 1),
                entries=[Entry("B", hours=5), Entry(OTHER_TASKS, hours=3, detail="misc")],
            ),
        ],
    }


def test_other_tasks_split_evenly():
    result = aggregate_month(_reports(), _users(), 9, 2025, allocate_others=True)
    assert result.totals_by_label["A"] == pytest.approx(3.0)
    assert result.totals_by_label["B"] == pytest.approx(7.0)
    assert result.totals_by_label["C"] == pytest.approx(2.0)
    assert result.totals_by_label[TRAINING] == pytest.approx(1.0)
    assert OTHER_TASKS not in result.totals_by_label


def test_users_without_active_researchers_are_unallocated():
    result = aggregate_month(_reports(), _users(), 9, 2025, allocate_others=True)
    assert result.unallocated_by_user == {"u2": pytest.approx(3.0)}
    # Per-user totals do not change between modes.
    raw = aggregate_month(_reports(), _users(), 9, 2025, allocate_others=False)
    assert result.totals_by_user == raw.totals_by_user
    assert result.totals_by_user["u2"] == pytest.approx(8.0)


def test_hours_are_conserved():
    raw = aggregate_month(_reports(), _users(), 9, 2025, allocate_others=False)
    assert sum(raw.totals_by_label.values()) == pytest.approx(raw.total_hours)
    assert raw.totals_by_label[OTHER_TASKS] == pytest.approx(9.0)
    allocated = aggregate_month(_reports(), _users(), 9, 2025, allocate_others=True)
    assert sum(allocated.totals_by_label.values()) + allocated.unallocated_hours == pytest.approx(
        allocated.total_hours
    )
    assert allocated.total_hours == pytest.approx(16.0)
    assert allocated.user_count == 2
    assert allocated.entry_count == 5


def test_aggregation_is_deterministic():
    first = aggregate_month(_reports(), _users(), 9, 2025, allocate_others=True)
    second = aggregate_month(_reports(), _users(), 9, 2025, allocate_others=True)
    assert first == second
    assert list(first.totals_by_label) == list(second.totals_by_label)


def test_other_months_are_ignored():
    result = aggregate_month(_reports(), _users(), 8, 2025, allocate_others=True)
    assert result.totals_by_label == {}
    assert result.total_hours == 0


def test_weekly_report_straddling_months_is_prorated():
    weekly = WeeklyReport.for_week(date(2025, 9, 1), [Entry("A", days=5)])
    assert month_share(weekly, 8, 2025) == pytest.approx(0.2)
    assert report_months(weekly) == [(2025, 8), (2025, 9)]
    users = {"u1": UserProfile(uid="u1")}
    aug = aggregate_month({"u1": [weekly]}, users, 8, 2025, allocate_others=False)
    sep = aggregate_month({"u1": [weekly]}, users, 9, 2025, allocate_others=False)
    assert aug.totals_by_label["A"] == pytest.approx(8.0)
    assert sep.totals_by_label["A"] == pytest.approx(32.0)


def test_weekly_days_use_configured_hours_per_day():
    weekly = WeeklyReport.for_week(date(2025, 9, 10), [Entry("A", days=2)])
    result = aggregate_month(
        {"u1": [weekly]}, {}, 9, 2025, allocate_others=False, hours_per_day=7.5
    )
    assert result.totals_by_label["A"] == pytest.approx(15.0)


def test_detail_rows():
    reports = _reports()
    reports["u1"].append(DailyReport(date=date(2025, 9, 3), work_status=NO_WORK))
    rows = detail_rows(reports, _users(), 9, 2025)
    assert len(rows) == 6
    first = rows[0]
    assert first["user"] == "Dana"
    assert first["date"] == "2025-09-02"
    assert first["label"] == OTHER_TASKS
    assert first["detail"] == "email"
    no_work = [r for r in rows if r["detail"] == NO_WORK]
    assert no_work and no_work[0]["hours"] == 0.0
    # Users without a name fall back to their uid.
    assert rows[-1]["user"] == "u2"


def test_reports_outside_month_are_skipped_in_details():
    weekly = WeeklyReport.for_week(date(2025, 9, 10), [Entry("A", days=1)])
    assert report_months(weekly) == [(2025, 9)]
    assert detail_rows({"u1": [weekly]}, {}, 10, 2025) == []
