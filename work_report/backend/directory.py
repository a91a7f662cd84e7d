"""Researcher directory and per-user label lists."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from .forms import RESERVED_LABELS, Report, UserProfile, clean_labels
from .lookup import find_coverage
from .weeks import is_work_day, iter_days, sunday_of, thursday_of

MAX_MISSING_NOTICES = 4


def merge_directory(global_labels: Iterable[str] | None, user_labels: Iterable[str] | None = None) -> list[str]:
    """Global labels first, then user-specific labels the global list lacks."""
    return clean_labels([*(global_labels or []), *(user_labels or [])])


def entry_labels(profile: UserProfile | None, directory: Iterable[str]) -> list[str]:
    """Labels offered on the entry form.

    A user without active researchers is offered the whole directory.
    """
    active = profile.active_researchers if profile else []
    base = active or clean_labels(directory)
    return [*base, *RESERVED_LABELS]


def missing_days(reports: Iterable[Report], *, today: date, limit: int = MAX_MISSING_NOTICES) -> list[date]:
    """Work days of the current week, up to today, with no report."""
    reports = list(reports)
    end = min(today, thursday_of(today))
    missing = [
        d
        for d in iter_days(sunday_of(today), end)
        if is_work_day(d) and not find_coverage(d, reports).covered
    ]
    return missing[:limit]
