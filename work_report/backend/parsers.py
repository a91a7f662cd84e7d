"""Date and week-range parsing for stored and user-typed values.

Stored weekly reports carry their week in one of three encodings depending on
which client version wrote them:

- a display label, ``"DD/MM/YYYY - DD/MM/YYYY"``;
- explicit ``weekStart`` / ``weekEnd`` fields;
- a legacy week key, ``"YYYY-Www"``, counted with weeks starting on Sunday and
  week 1 being the week that contains January 1st.

``parse_week_range`` hides all three behind one result so the rules engine
never branches on encoding.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date as _date, datetime, timedelta
from typing import Any

from .weeks import WORK_DAYS, WeekRange, as_date, resolve_tz

logger = logging.getLogger(__name__)

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_LABEL_RE = re.compile(
    r"^\s*(\d{1,2}/\d{1,2}/\d{4})\s*[-–—]\s*(\d{1,2}/\d{1,2}/\d{4})\s*$"
)
_WEEK_KEY_RE = re.compile(r"^(?:weekly_)?(\d{4})-W(\d{1,2})$", flags=re.IGNORECASE)


def parse_date(value: Any) -> _date | None:
    """Parse ISO ``YYYY-MM-DD`` (time suffix ignored), ``DD/MM/YYYY`` or a date object."""
    if isinstance(value, (_date, datetime)):
        return as_date(value)
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    m = _ISO_RE.match(s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = _DMY_RE.match(s)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    return None


def parse_week_range(value: Any) -> WeekRange | None:
    """Normalize any supported week encoding to an inclusive ``WeekRange``.

    Accepts a label string, a legacy week key, or a record mapping carrying
    ``weekStart``/``weekEnd`` (falling back to its ``week`` field). Returns
    ``None`` when nothing parses; callers must then treat the week boundaries
    as unknown.
    """
    if isinstance(value, Mapping):
        start = parse_date(value.get("weekStart"))
        end = parse_date(value.get("weekEnd"))
        if start and end:
            return _ordered(start, end)
        return parse_week_range(value.get("week"))
    if not isinstance(value, str):
        return None

    m = _LABEL_RE.match(value)
    if m:
        start = parse_date(m.group(1))
        end = parse_date(m.group(2))
        if start and end:
            return _ordered(start, end)
        return None

    m = _WEEK_KEY_RE.match(value.strip())
    if m:
        return _week_from_key(int(m.group(1)), int(m.group(2)))
    return None


def _ordered(start: _date, end: _date) -> WeekRange | None:
    if start > end:
        return None
    return WeekRange(start, end)


def _week_from_key(year: int, week: int) -> WeekRange | None:
    if not 1 <= week <= 54:
        return None
    try:
        jan1 = _date(year, 1, 1)
        first_sunday = jan1 - timedelta(days=(jan1.weekday() + 1) % 7)
        start = first_sunday + timedelta(weeks=week - 1)
        return WeekRange(start, start + timedelta(days=WORK_DAYS - 1))
    except (ValueError, OverflowError):
        return None


def _safe_date(y: int, m: int, d: int) -> _date | None:
    try:
        return _date(y, m, d)
    except ValueError:
        return None


_MONTHS = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}

_WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def resolve_date_phrase(
    phrase: str,
    *,
    timezone: str | None = None,
    base_date: str | None = None,
) -> str:
    """Resolve relative or natural-language dates to ISO YYYY-MM-DD.

    Supported:
    - Relative: today, yesterday, tomorrow.
    - ISO: YYYY-MM-DD; numeric DD/MM/YYYY.
    - Month names: "September 9 2025", "9 September 2025".
    - Weekday phrases: "this sunday", "next monday", "last thursday".

    Returns an empty string when the phrase is not understood.
    """
    s = (phrase or "").strip().lower()
    if not s:
        return ""

    today = parse_date(base_date) or datetime.now(resolve_tz(timezone)).date()

    exact = parse_date(s)
    if exact:
        return exact.isoformat()

    if s in {"today", "todays date", "today's date"}:
        return today.isoformat()
    if s == "yesterday":
        return (today - timedelta(days=1)).isoformat()
    if s == "tomorrow":
        return (today + timedelta(days=1)).isoformat()

    mdy = re.search(r"\b([a-z]+)\s+(\d{1,2})(?:st|nd|rd|th)?\s*,?\s*(\d{4})\b", s)
    if mdy and mdy.group(1) in _MONTHS:
        found = _safe_date(int(mdy.group(3)), _MONTHS[mdy.group(1)], int(mdy.group(2)))
        if found:
            return found.isoformat()

    dmy = re.search(r"\b(\d{1,2})(?:st|nd|rd|th)?\s+([a-z]+)\s*,?\s*(\d{4})\b", s)
    if dmy and dmy.group(2) in _MONTHS:
        found = _safe_date(int(dmy.group(3)), _MONTHS[dmy.group(2)], int(dmy.group(1)))
        if found:
            return found.isoformat()

    wk = re.search(
        r"\b(this|next|last)\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", s
    )
    if wk:
        rel, wd = wk.group(1), wk.group(2)
        offset = (_WEEKDAYS[wd] - today.weekday()) % 7
        if rel == "this":
            days = offset
        elif rel == "next":
            days = offset + 7
        else:
            days = offset - 7
        return (today + timedelta(days=days)).isoformat()

    logger.debug("Unrecognized date phrase: %r", phrase)
    return ""
