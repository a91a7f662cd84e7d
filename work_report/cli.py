from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Any

from dotenv import load_dotenv
from typing_extensions import NotRequired, TypedDict

from agents import Agent, ModelSettings, RunContextWrapper, function_tool, run_demo_loop

from .backend.config import AppConfig, load_from_env
from .backend.exporters.csv import (
    export_filename,
    render_allocation_csv,
    render_detail_csv,
)
from .backend.forms import NO_WORK, WORKED, DailyReport, Entry, ReportType
from .backend.hours import format_hours, report_hours
from .backend.io.store import Identity, MemoryStore
from .backend.parsers import parse_date, resolve_date_phrase
from .backend.rules import Decision
from .backend.session import Outcome, SessionController
from .backend.weeks import format_date

logger = logging.getLogger(__name__)


@dataclass
class WorkReportContext:
    """Per-run context holding the signed-in session."""

    session: SessionController


class EntryInput(TypedDict):
    """One report line as supplied by the assistant.

    Fields:
        researcher: Researcher/project label, or "other tasks" / "seminar/course/training".
        hours: Hours worked (daily reports).
        days: Days worked (weekly reports).
        detail: Free text; required for the two reserved labels.
    """

    researcher: str
    hours: NotRequired[float]
    days: NotRequired[float]
    detail: NotRequired[str]


def _entries_from_input(items: list[EntryInput] | None, report_type: ReportType) -> list[Entry]:
    """Build entries, dropping lines without a label or a positive amount."""
    entries: list[Entry] = []
    for item in items or []:
        label = str(item.get("researcher") or "").strip()
        amount = item.get("days") if report_type == "weekly" else item.get("hours")
        try:
            value = float(amount or 0)
        except (TypeError, ValueError):
            value = 0.0
        if not label or value <= 0:
            continue
        detail = str(item.get("detail") or "")
        if report_type == "weekly":
            entries.append(Entry(researcher=label, days=value, detail=detail))
        else:
            entries.append(Entry(researcher=label, hours=value, detail=detail))
    return entries


def _decision(d: Decision) -> dict[str, Any]:
    return {"allowed": d.allowed, "message": d.message}


def _outcome(o: Outcome, **extra: Any) -> dict[str, Any]:
    out: dict[str, Any] = {"status": o.status, "message": o.message}
    if o.problems:
        out["problems"] = o.problems
    out.update(extra)
    return out


@function_tool
def resolve_date(ctx: RunContextWrapper[WorkReportContext], phrase: str) -> str:
    """Resolve a relative or natural-language date to ISO YYYY-MM-DD.

    Args:
        phrase: A date like "today", "yesterday", "last sunday" or "03/09/2025" (day first).
    Returns:
        ISO date string, or empty string if not understood.
    """
    base = format_date(ctx.context.session.today())
    return resolve_date_phrase(phrase, base_date=base)


@function_tool
def check_date(
    ctx: RunContextWrapper[WorkReportContext], date: str, report_type: str = "daily"
) -> dict[str, Any]:
    """Check whether a report can be created or edited for a date.

    Args:
        date: Work date in YYYY-MM-DD format.
        report_type: "daily" or "weekly".
    """
    if parse_date(date) is None:
        return {"status": "error", "problems": [f"Invalid date: {date}"]}
    if report_type not in ("daily", "weekly"):
        return {"status": "error", "problems": [f"Unknown report type: {report_type}"]}
    info = ctx.context.session.check_date(date, report_type)
    for key in ("create", "edit", "conflict"):
        info[key] = _decision(info[key])
    return {"status": "ok", **info}


@function_tool
def submit_daily_report(
    ctx: RunContextWrapper[WorkReportContext],
    date: str,
    entries: list[EntryInput] | None = None,
    worked: bool = True,
) -> dict[str, Any]:
    """Submit (or, within the current week, replace) a daily report.

    Args:
        date: Work date in YYYY-MM-DD format (Sunday to Thursday).
        entries: Lines with researcher, hours and optional detail.
        worked: False records a no-work day without entries.
    """
    d = parse_date(date)
    if d is None:
        return {"status": "error", "problems": [f"Invalid date: {date}"]}
    report = DailyReport(
        date=d,
        entries=_entries_from_input(entries, "daily") if worked else [],
        work_status=WORKED if worked else NO_WORK,
    )
    session = ctx.context.session
    hours = format_hours(report_hours(report, session.config.hours_per_day))
    return _outcome(session.submit_report(report), key=report.key, hours=hours)


@function_tool
def submit_weekly_report(
    ctx: RunContextWrapper[WorkReportContext],
    date: str,
    entries: list[EntryInput],
) -> dict[str, Any]:
    """Submit a weekly report for the Sunday-Thursday week containing a date.

    Only possible on Thursday (current week) or Sunday (the week that just ended).

    Args:
        date: Any date in the target week, YYYY-MM-DD. On Sunday, today means last week.
        entries: Lines with researcher, days and optional detail.
    """
    if parse_date(date) is None:
        return {"status": "error", "problems": [f"Invalid date: {date}"]}
    session = ctx.context.session
    report = session.new_weekly_report(date, _entries_from_input(entries, "weekly"))
    hours = format_hours(report_hours(report, session.config.hours_per_day))
    return _outcome(session.submit_report(report), key=report.key, week=report.label, hours=hours)


@function_tool
def list_labels(ctx: RunContextWrapper[WorkReportContext]) -> dict[str, Any]:
    """Return the labels offered for entries, the directory, and missing days this week."""
    session = ctx.context.session
    profile = session.state.profile
    return {
        "status": "ok",
        "labels": session.labels(),
        "directory": session.state.directory,
        "active_researchers": profile.active_researchers if profile else [],
        "missing_days": [format_date(d) for d in session.missing_days()],
    }


@function_tool
def save_active_researchers(
    ctx: RunContextWrapper[WorkReportContext], researchers: list[str]
) -> dict[str, Any]:
    """Replace the user's active researchers (used to split "other tasks").

    Args:
        researchers: Labels from the directory, in the preferred order.
    """
    return _outcome(ctx.context.session.save_active_researchers(researchers))


@function_tool
def update_profile(
    ctx: RunContextWrapper[WorkReportContext],
    first_name: str,
    last_name: str,
    position: str = "",
    email: str | None = None,
) -> dict[str, Any]:
    """Update the signed-in user's name, position and contact email.

    Args:
        first_name: Given name (required).
        last_name: Family name (required).
        position: Job title, optional.
        email: Contact email; defaults to the sign-in email.
    """
    return _outcome(ctx.context.session.update_profile(first_name, last_name, position, email))


@function_tool
def save_global_researchers(
    ctx: RunContextWrapper[WorkReportContext], researchers: list[str]
) -> dict[str, Any]:
    """Admin: replace the shared researcher directory offered to every user.

    Args:
        researchers: One label per researcher/project, in display order.
    """
    return _outcome(ctx.context.session.save_global_researchers(researchers))


@function_tool
def monthly_summary(
    ctx: RunContextWrapper[WorkReportContext],
    month: int,
    year: int,
    allocate_others: bool = True,
    all_users: bool = False,
) -> dict[str, Any]:
    """Summarize hours for a month.

    Args:
        month: 1-12.
        year: Four-digit year.
        allocate_others: Split "other tasks" across active researchers (all users only).
        all_users: Admin-only rollup over every user instead of the signed-in user.
    """
    session = ctx.context.session
    try:
        if all_users:
            result = session.monthly_allocation(month, year, allocate_others)
        else:
            result = session.my_month(month, year)
    except PermissionError as exc:
        return {"status": "error", "problems": [str(exc)]}
    return {
        "status": "ok",
        "by_label": {k: format_hours(v) for k, v in result.totals_by_label.items()},
        "total_hours": format_hours(result.total_hours),
        "unallocated_hours": format_hours(result.unallocated_hours),
        "users": result.user_count,
        "entries": result.entry_count,
    }


@function_tool
def export_monthly_csv(
    ctx: RunContextWrapper[WorkReportContext],
    month: int,
    year: int,
    allocate_others: bool = True,
    detailed: bool = False,
) -> dict[str, Any]:
    """Admin: export the monthly allocation (or every entry) to a CSV file.

    Args:
        month: 1-12.
        year: Four-digit year.
        allocate_others: Split "other tasks" across active researchers.
        detailed: Export one row per entry instead of totals per researcher.
    """
    session = ctx.context.session
    try:
        if detailed:
            payload = render_detail_csv(session.monthly_details(month, year))
        else:
            payload = render_allocation_csv(session.monthly_allocation(month, year, allocate_others))
    except PermissionError as exc:
        return {"status": "error", "problems": [str(exc)]}
    kind = "detail" if detailed else "monthly"
    name = export_filename(kind, year, month, allocate_others, session.today())
    folder = os.environ.get("WORK_REPORT_SAVE_DIR") or os.getcwd()
    path = os.path.join(folder, name)
    try:
        os.makedirs(folder, exist_ok=True)
        with open(path, "wb") as f:
            f.write(payload)
    except OSError as exc:
        logger.warning("Export to %s failed: %s", path, exc)
        return {"status": "error", "problems": [f"Could not write {path}: {exc}"]}
    return {"status": "ok", "path": path, "bytes": len(payload)}


def build_agent(model_name: str) -> Agent[WorkReportContext]:
    instructions = (
        "You help researchers report their working hours and help the administrator review them. "
        "A work week runs Sunday to Thursday; Friday and Saturday can never be reported. "
        "A daily report lists researchers/projects with hours; a weekly report lists them with days "
        "(one day is a fixed number of hours). Two labels are always available: 'other tasks' and "
        "'seminar/course/training'; both require a short detail. "
        "Use resolve_date to turn phrases like 'yesterday' into YYYY-MM-DD; do not guess. "
        "Before collecting entries, call check_date for the date and explain any rejection message. "
        "Weekly reports can only be submitted on Thursday or Sunday, and never in a week that already "
        "has daily reports. Use list_labels to see which labels the user can pick and which days are "
        "missing this week. Ask one question at a time and never invent hours. "
        "When all entries are known, call submit_daily_report or submit_weekly_report and report the "
        "returned message. Use save_active_researchers when the user changes their researchers and "
        "update_profile for name, position or email changes. Admins edit the shared list with "
        "save_global_researchers. "
        "For monthly numbers use monthly_summary; for files use export_monthly_csv (admin only)."
    )

    return Agent[WorkReportContext](
        name="Work Report Assistant",
        instructions=instructions,
        tools=[
            resolve_date,
            check_date,
            list_labels,
            submit_daily_report,
            submit_weekly_report,
            save_active_researchers,
            update_profile,
            save_global_researchers,
            monthly_summary,
            export_monthly_csv,
        ],
        model=model_name,
        model_settings=ModelSettings(),
    )


def _clock_from_env():
    base = parse_date(os.environ.get("WORK_REPORT_BASE_DATE"))
    if base is None:
        return None

    def fixed() -> date:
        return base

    return fixed


async def main() -> None:
    load_dotenv()
    logging.basicConfig(level=os.environ.get("WORK_REPORT_LOG_LEVEL", "WARNING").upper())

    model = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
    if not os.environ.get("OPENAI_API_KEY"):
        print("Warning: OPENAI_API_KEY is not set. Set it in your shell or a .env file.")

    config = load_from_env(
        default_path=os.path.join(os.path.dirname(__file__), "config.example.json")
    ) or AppConfig()
    admins = [a.strip() for a in os.environ.get("WORK_REPORT_ADMINS", "").split(",") if a.strip()]
    store = MemoryStore.from_json(
        os.environ.get("WORK_REPORT_DATA_PATH", "work_report_data.json"), admins=admins
    )
    session = SessionController(store, config, clock=_clock_from_env())
    session.sign_in(
        Identity(
            uid=os.environ.get("WORK_REPORT_UID", "local"),
            email=os.environ.get("WORK_REPORT_EMAIL", ""),
        )
    )

    agent = build_agent(model)
    print("Work Report Assistant ready. Describe your day or ask for a summary. Ctrl+C to exit.")
    try:
        await run_demo_loop(agent, stream=True, context=WorkReportContext(session=session))
    finally:
        session.sign_out()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
