"""CSV export utilities for monthly allocations and detailed report rows."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Union

from ..aggregate import MonthlyAllocation
from ..hours import round2

BOM = "\ufeff"

Column = Union[str, tuple[str, str]]

ALLOCATION_COLUMNS: list[Column] = [("label", "Researcher"), ("hours", "TotalHours(month)")]
TOTALS_COLUMNS: list[Column] = [("metric", "Metric"), ("value", "Value")]
DETAIL_COLUMNS: list[Column] = [
    ("uid", "UID"),
    ("user", "User"),
    ("email", "Email"),
    ("type", "Type"),
    ("date", "Date"),
    ("label", "Researcher"),
    ("hours", "Hours"),
    ("detail", "Detail"),
]


def _split(columns: Sequence[Column]) -> tuple[list[str], list[str]]:
    keys: list[str] = []
    headers: list[str] = []
    for c in columns:
        key, header = (c, c) if isinstance(c, str) else c
        keys.append(key)
        headers.append(header)
    return keys, headers


def _write_block(
    writer: csv.writer, rows: Iterable[Mapping[str, object]], columns: Sequence[Column]
) -> None:
    keys, headers = _split(columns)
    writer.writerow(headers)
    for row in rows:
        row = row or {}
        writer.writerow(["" if row.get(k) is None else row.get(k) for k in keys])


def to_delimited_text(
    rows: Iterable[Mapping[str, object]],
    columns: Sequence[Column],
    totals: Iterable[Mapping[str, object]] | None = None,
    totals_columns: Sequence[Column] | None = None,
    delimiter: str = ",",
) -> str:
    """Render rows to delimited text with a header line.

    - Columns are key names or (key, header) pairs; unknown keys are ignored.
    - Fields containing the delimiter, a quote or a newline are quoted with
      doubled inner quotes (csv module, minimal quoting).
    - An optional totals block follows after one blank line.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    _write_block(writer, rows, columns)
    if totals is not None:
        writer.writerow([])
        _write_block(writer, totals, totals_columns or columns)
    return buf.getvalue()


def to_csv_bytes(*args, **kwargs) -> bytes:
    """Same as ``to_delimited_text``, encoded UTF-8 with a byte-order mark."""
    return (BOM + to_delimited_text(*args, **kwargs)).encode("utf-8")


def allocation_rows(result: MonthlyAllocation) -> list[dict[str, object]]:
    return [{"label": label, "hours": round2(h)} for label, h in result.totals_by_label.items()]


def allocation_totals(result: MonthlyAllocation) -> list[dict[str, object]]:
    return [
        {"metric": "Total hours", "value": round2(sum(result.totals_by_label.values()))},
        {"metric": "Reported hours", "value": round2(result.total_hours)},
        {"metric": "Unallocated other tasks hours", "value": round2(result.unallocated_hours)},
        {"metric": "Users", "value": result.user_count},
        {"metric": "Entries", "value": result.entry_count},
    ]


def render_allocation_csv(result: MonthlyAllocation) -> bytes:
    return to_csv_bytes(
        allocation_rows(result),
        ALLOCATION_COLUMNS,
        totals=allocation_totals(result),
        totals_columns=TOTALS_COLUMNS,
    )


def render_detail_csv(rows: Iterable[Mapping[str, object]]) -> bytes:
    rounded = [{**r, "hours": round2(float(r.get("hours") or 0))} for r in rows]
    return to_csv_bytes(rounded, DETAIL_COLUMNS)


def export_filename(
    kind: str, year: int, month: int, allocate_others: bool, export_date: date
) -> str:
    mode = "allocated" if allocate_others else "raw"
    return f"work-report-{kind}-{year:04d}-{month:02d}-{mode}-{export_date.isoformat()}.csv"
