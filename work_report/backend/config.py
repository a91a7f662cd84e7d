from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import date

from .hours import HOURS_PER_DAY, get_hours_per_day
from .parsers import parse_date

DEFAULT_TIMEZONE = "Asia/Jerusalem"


@dataclass
class BackdateOverride:
    """Operator window allowing reports older than one week back.

    ``min_date`` is an inclusive floor; ``None`` means no floor.
    """

    enabled: bool = False
    min_date: date | None = None


@dataclass
class AppConfig:
    name: str = ""
    hours_per_day: float = HOURS_PER_DAY
    timezone: str = DEFAULT_TIMEZONE
    default_researchers: list[str] = field(default_factory=list)
    backdate_override: BackdateOverride = field(default_factory=BackdateOverride)


def load_app_config(path: str) -> AppConfig:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    name = str((data.get("organization") or {}).get("name") or "")
    try:
        hours_per_day = float(data.get("hoursPerDay") or HOURS_PER_DAY)
    except (TypeError, ValueError):
        hours_per_day = HOURS_PER_DAY
    if hours_per_day <= 0:
        hours_per_day = HOURS_PER_DAY
    researchers = [
        str(x).strip() for x in (data.get("defaultResearchers") or []) if str(x or "").strip()
    ]
    raw_override = data.get("backdateOverride") or {}
    override = BackdateOverride(
        enabled=bool(raw_override.get("enabled", False)),
        min_date=parse_date(raw_override.get("minDate")),
    )
    return AppConfig(
        name=name,
        hours_per_day=hours_per_day,
        timezone=str(data.get("timezone") or DEFAULT_TIMEZONE),
        default_researchers=researchers,
        backdate_override=override,
    )


def load_from_env(default_path: str | None = None) -> AppConfig | None:
    """Load the app config from WORK_REPORT_CONFIG_PATH or a default path.

    WORK_REPORT_TZ and WORK_REPORT_HOURS_PER_DAY override the file values.
    """
    path = os.environ.get("WORK_REPORT_CONFIG_PATH") or default_path
    if not path or not os.path.isfile(path):
        return None
    cfg = load_app_config(path)
    tz = os.environ.get("WORK_REPORT_TZ")
    if tz:
        cfg.timezone = tz
    if os.environ.get("WORK_REPORT_HOURS_PER_DAY"):
        cfg.hours_per_day = get_hours_per_day()
    return cfg
