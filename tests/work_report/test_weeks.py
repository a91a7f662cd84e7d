from datetime import date, datetime

from work_report.backend.weeks import (
    WeekRange,
    format_week_label,
    is_weekend,
    monday_of,
    sunday_of,
    thursday_of,
    week_range_label,
    work_week,
)


def test_sunday_anchored_week():
    wed = date(2025, 9, 3)
    assert sunday_of(wed) == date(2025, 8, 31)
    assert thursday_of(wed) == date(2025, 9, 4)
    # Sunday is the first day of its own week, Saturday the last.
    assert sunday_of(date(2025, 8, 31)) == date(2025, 8, 31)
    assert sunday_of(date(2025, 9, 6)) == date(2025, 8, 31)
    assert monday_of(wed) == date(2025, 9, 1)


def test_datetime_inputs_drop_time():
    assert sunday_of(datetime(2025, 9, 3, 23, 59)) == date(2025, 8, 31)


def test_weekend_days():
    assert is_weekend(date(2025, 9, 5))  # Friday
    assert is_weekend(date(2025, 9, 6))  # Saturday
    assert not is_weekend(date(2025, 9, 7))  # Sunday
    assert not is_weekend(date(2025, 9, 4))  # Thursday


def test_week_labels():
    assert week_range_label(date(2025, 9, 3)) == ("31/08/2025", "04/09/2025")
    assert format_week_label(date(2025, 9, 3)) == "31/08/2025 - 04/09/2025"
    assert work_week(date(2025, 9, 3)).label == "31/08/2025 - 04/09/2025"


def test_week_range_is_inclusive():
    span = WeekRange(date(2025, 8, 31), date(2025, 9, 4))
    assert date(2025, 8, 31) in span
    assert date(2025, 9, 4) in span
    assert date(2025, 9, 5) not in span
    assert "2025-09-01" not in span
    assert len(span.days()) == 5
