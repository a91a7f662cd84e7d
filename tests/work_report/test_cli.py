from work_report.cli import _entries_from_input


def test_entries_from_input_daily():
    entries = _entries_from_input(
        [
            {"researcher": " Dr. Cohen ", "hours": 5},
            {"researcher": "other tasks", "hours": 2, "detail": "email"},
            {"researcher": "", "hours": 3},
            {"researcher": "Dr. Levi", "hours": 0},
        ],
        "daily",
    )
    assert [(e.researcher, e.hours, e.days) for e in entries] == [
        ("Dr. Cohen", 5.0, None),
        ("other tasks", 2.0, None),
    ]
    assert entries[1].detail == "email"


def test_entries_from_input_weekly_reads_days():
    entries = _entries_from_input([{"researcher": "Dr. Cohen", "days": 2.5, "hours": 99}], "weekly")
    assert entries[0].days == 2.5
    assert entries[0].hours is None
    assert _entries_from_input(None, "weekly") == []
