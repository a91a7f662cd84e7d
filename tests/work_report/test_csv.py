import csv
import io
from datetime import date

from work_report.backend.aggregate import MonthlyAllocation
from work_report.backend.exporters.csv import (
    BOM,
    export_filename,
    render_allocation_csv,
    render_detail_csv,
    to_delimited_text,
)


def _read(payload: bytes) -> list[list[str]]:
    text = payload.decode("utf-8")
    assert text.startswith(BOM)
    return list(csv.reader(io.StringIO(text[len(BOM):])))


def test_delimited_text_basic():
    out = to_delimited_text([{"label": "Dr. Cohen", "hours": 8}], [("label", "Researcher"), "hours"])
    assert out == "Researcher,hours\r\nDr. Cohen,8\r\n"


def test_delimited_text_quotes_and_missing_values():
    rows = [
        {"label": "A,B", "hours": 1},
        {"label": 'Dr. "Bob"', "hours": None},
        {"label": "line\nbreak", "extra": 123},
    ]
    out = to_delimited_text(rows, ["label", "hours"])
    assert '"A,B",1' in out
    assert '"Dr. ""Bob""",' in out
    assert '"line\nbreak",' in out
    assert "123" not in out


def test_allocation_csv_has_totals_block():
    result = MonthlyAllocation(
        month=9,
        year=2025,
        allocate_others=True,
        totals_by_label={"Dr. Cohen, PhD": 10 / 3, "Dr. Levi": 2.0},
        totals_by_user={"u1": 10 / 3 + 2.0},
        entry_count=2,
    )
    rows = _read(render_allocation_csv(result))
    assert rows[0] == ["Researcher", "TotalHours(month)"]
    assert rows[1] == ["Dr. Cohen, PhD", "3.33"]
    assert rows[2] == ["Dr. Levi", "2.0"]
    assert rows[3] == []
    assert rows[4] == ["Metric", "Value"]
    metrics = dict(rows[5:])
    assert metrics["Users"] == "1"
    assert metrics["Entries"] == "2"
    assert metrics["Unallocated other tasks hours"] == "0.0"


def test_detail_csv_keeps_hebrew_text():
    rows = [
        {
            "uid": "u1",
            "user": "דנה",
            "email": "dana@example.org",
            "type": "daily",
            "date": "2025-09-02",
            "label": "other tasks",
            "hours": 1.005,
            "detail": "פגישה, תכנון",
        }
    ]
    parsed = _read(render_detail_csv(rows))
    assert parsed[0][0] == "UID"
    assert parsed[1][1] == "דנה"
    assert parsed[1][7] == "פגישה, תכנון"


def test_export_filename():
    name = export_filename("monthly", 2025, 9, True, date(2025, 10, 1))
    assert name == "work-report-monthly-2025-09-allocated-2025-10-01.csv"
    assert export_filename("detail", 2025, 9, False, date(2025, 10, 1)).endswith("-raw-2025-10-01.csv")


def test_delimited_text_round_trips_through_csv_reader():
    rows = [
        {"label": "Dr. Cohen, PhD", "detail": 'said "hi"'},
        {"label": "multi\nline", "detail": "windows\r\nbreak"},
        {"label": "plain", "detail": ""},
    ]
    text = to_delimited_text(rows, ["label", "detail"])
    parsed = list(csv.DictReader(io.StringIO(text, newline="")))
    assert parsed == rows
