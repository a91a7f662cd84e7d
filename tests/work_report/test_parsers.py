from datetime import date

from work_report.backend.parsers import parse_date, parse_week_range, resolve_date_phrase


def test_parse_date_formats():
    assert parse_date("2025-09-03") == date(2025, 9, 3)
    assert parse_date("2025-09-03T10:00:00Z") == date(2025, 9, 3)
    assert parse_date("03/09/2025") == date(2025, 9, 3)
    assert parse_date(date(2025, 9, 3)) == date(2025, 9, 3)


def test_parse_date_failures():
    assert parse_date("") is None
    assert parse_date(None) is None
    assert parse_date("2025-02-30") is None
    assert parse_date("next week") is None


def test_week_range_from_label():
    span = parse_week_range("31/08/2025 - 04/09/2025")
    assert span is not None
    assert (span.start, span.end) == (date(2025, 8, 31), date(2025, 9, 4))


def test_week_range_from_fields_wins_over_label():
    record = {"weekStart": "2025-08-31", "weekEnd": "2025-09-04", "week": "garbage"}
    span = parse_week_range(record)
    assert span is not None
    assert span.start == date(2025, 8, 31)
    assert span.end == date(2025, 9, 4)


def test_week_range_falls_back_to_week_field():
    span = parse_week_range({"week": "24/08/2025 - 28/08/2025"})
    assert span is not None
    assert span.start == date(2025, 8, 24)


def test_week_range_from_legacy_key():
    # 2025-01-01 is a Wednesday; week 1 starts Sunday 2024-12-29.
    span = parse_week_range("2025-W01")
    assert span is not None
    assert (span.start, span.end) == (date(2024, 12, 29), date(2025, 1, 2))
    span = parse_week_range("weekly_2025-W36")
    assert span is not None
    assert span.start == date(2025, 8, 31)


def test_week_range_failures():
    assert parse_week_range("") is None
    assert parse_week_range("not a week") is None
    assert parse_week_range("04/09/2025 - 31/08/2025") is None
    assert parse_week_range({"weekStart": "2025-08-31"}) is None
    assert parse_week_range(None) is None


def test_resolve_relative_phrases():
    base = "2025-09-03"  # Wednesday
    assert resolve_date_phrase("today", base_date=base) == "2025-09-03"
    assert resolve_date_phrase("yesterday", base_date=base) == "2025-09-02"
    assert resolve_date_phrase("last sunday", base_date=base) == "2025-08-31"
    assert resolve_date_phrase("this sunday", base_date=base) == "2025-09-07"
    assert resolve_date_phrase("3 September 2025") == "2025-09-03"
    assert resolve_date_phrase("03/09/2025") == "2025-09-03"
    assert resolve_date_phrase("someday", base_date=base) == ""


def test_week_key_out_of_calendar_range():
    assert parse_week_range("9999-W54") is None
    assert parse_week_range("0001-W01") is None
    assert parse_week_range("0000-W10") is None
