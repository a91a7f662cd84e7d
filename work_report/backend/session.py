"""Session controller for a signed-in user.

Holds what the UI shows (own reports, profile, directory, and for admins the
users/reports of everyone), owns the live subscriptions feeding it, and runs
submissions through validation and the rules engine before writing.

Subscriptions are released synchronously on sign-out and before a new
identity signs in. Each sign-in bumps a generation counter; callbacks from an
older generation are ignored so they cannot overwrite the new identity's state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .aggregate import MonthlyAllocation, aggregate_month, detail_rows
from .config import AppConfig
from .directory import entry_labels, merge_directory, missing_days
from .forms import (
    Entry,
    Report,
    UserProfile,
    WeeklyReport,
    clean_labels,
    load_reports,
    profile_from_dict,
    report_to_dict,
    validate,
)
from .io.store import Identity, ReportStore, StoreError, Subscription
from .lookup import coerce_date, find_coverage
from .rules import (
    Decision,
    can_create,
    can_edit,
    check_submission,
    type_conflict,
    weekly_report_allowed_for,
    weekly_target_week,
)
from .weeks import format_date, today_in

logger = logging.getLogger(__name__)


@dataclass
class SessionEvent:
    """A simple event structure suitable for streaming to a UI."""

    type: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class Outcome:
    """Result of a write attempt: ok, rejected (validation) or failed (store)."""

    status: str
    message: str = ""
    problems: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass
class SessionState:
    identity: Identity | None = None
    is_admin: bool = False
    reports: list[Report] = field(default_factory=list)
    profile: UserProfile | None = None
    global_researchers: list[str] = field(default_factory=list)
    reports_by_user: dict[str, list[Report]] = field(default_factory=dict)
    users_by_id: dict[str, UserProfile] = field(default_factory=dict)

    @property
    def directory(self) -> list[str]:
        own = self.profile.active_researchers if self.profile else []
        return merge_directory(self.global_researchers, own)


class SessionController:
    def __init__(
        self,
        store: ReportStore,
        config: AppConfig | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.store = store
        self.config = config or AppConfig()
        self.clock = clock or (lambda: today_in(self.config.timezone))
        self.state = SessionState()
        self.events: list[SessionEvent] = []
        self._subscriptions: list[Subscription] = []
        self._generation = 0

    # --- Lifecycle ---

    def sign_in(self, identity: Identity) -> None:
        """Attach to ``identity`` after releasing anything held for a previous one."""
        if self.state.identity is not None or self._subscriptions:
            self.sign_out()
        self._generation += 1
        generation = self._generation
        self.store.sign_in(identity)
        self.state.identity = identity
        self.state.is_admin = self.store.is_privileged(identity)
        self._load_global_researchers()

        self._subscribe(generation, "reports", self._on_reports, self.store.watch_reports, identity.uid)
        self._subscribe(generation, "profile", self._on_profile, self.store.watch_user, identity.uid)
        if self.state.is_admin:
            self._subscribe(generation, "all_users", self._on_all_users, self.store.watch_all_users)
            self._subscribe(generation, "all_reports", self._on_all_reports, self.store.watch_all_reports)
        logger.info("Signed in %s (admin=%s)", identity.uid, self.state.is_admin)
        self._emit("signed_in", uid=identity.uid, admin=self.state.is_admin)

    def sign_out(self) -> None:
        for sub in self._subscriptions:
            sub.close()
        self._subscriptions.clear()
        self._generation += 1
        uid = self.state.identity.uid if self.state.identity else None
        self.state = SessionState()
        self.store.sign_out()
        logger.info("Signed out %s", uid)
        self._emit("signed_out", uid=uid)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    # --- Queries ---

    def today(self) -> date:
        return self.clock()

    def labels(self) -> list[str]:
        return entry_labels(self.state.profile, self.state.directory)

    def missing_days(self) -> list[date]:
        return missing_days(self.state.reports, today=self.today())

    def check_date(self, value: date | str, report_type: str = "daily") -> dict[str, Any]:
        """Everything the entry form needs to know about one date.

        For weekly reports the decisions are made for the week the report
        would actually cover, which on a Sunday is the week that just ended.
        """
        d = coerce_date(value)
        today = self.today()
        reports = self.state.reports
        override = self.config.backdate_override
        if report_type == "weekly":
            span = weekly_target_week(d, today=today)
            target = WeeklyReport(week_start=span.start, week_end=span.end)
            return {
                "date": format_date(d),
                "coverage": find_coverage(span.start, reports).kind,
                "create": check_submission(target, reports, today=today, override=override),
                "edit": can_edit(span.start, reports, today=today),
                "conflict": type_conflict(span.start, "weekly", reports),
                "week": span.label,
                "weekly_allowed": weekly_report_allowed_for(span.start, today=today),
            }
        return {
            "date": format_date(d),
            "coverage": find_coverage(d, reports).kind,
            "create": can_create(d, reports, today=today, override=override),
            "edit": can_edit(d, reports, today=today),
            "conflict": type_conflict(d, report_type, reports),
        }

    def new_weekly_report(self, selected: date | str, entries: list[Entry]) -> WeeklyReport:
        span = weekly_target_week(selected, today=self.today())
        return WeeklyReport(week_start=span.start, week_end=span.end, entries=list(entries))

    def my_month(self, month: int, year: int) -> MonthlyAllocation:
        """The signed-in user's own month, without redistribution."""
        identity = self._require_identity()
        profile = self.state.profile or UserProfile(uid=identity.uid)
        return aggregate_month(
            {identity.uid: self.state.reports},
            {identity.uid: profile},
            month,
            year,
            allocate_others=False,
            hours_per_day=self.config.hours_per_day,
        )

    def monthly_allocation(self, month: int, year: int, allocate_others: bool) -> MonthlyAllocation:
        self._require_admin()
        return aggregate_month(
            self.state.reports_by_user,
            self.state.users_by_id,
            month,
            year,
            allocate_others,
            hours_per_day=self.config.hours_per_day,
        )

    def monthly_details(self, month: int, year: int) -> list[dict[str, Any]]:
        self._require_admin()
        return detail_rows(
            self.state.reports_by_user,
            self.state.users_by_id,
            month,
            year,
            hours_per_day=self.config.hours_per_day,
        )

    # --- Writes ---

    def submit_report(self, report: Report) -> Outcome:
        if self.state.identity is None:
            return Outcome("rejected", "Not signed in.")
        problems = validate(report)
        if problems:
            return Outcome("rejected", "The report has problems.", problems)
        decision: Decision = check_submission(
            report,
            self.state.reports,
            today=self.today(),
            override=self.config.backdate_override,
        )
        if not decision:
            return Outcome("rejected", decision.message)
        uid = self.state.identity.uid
        try:
            self.store.write_report(uid, report.key, dict(report_to_dict(report)))
        except StoreError as exc:
            logger.warning("Saving %s for %s failed: %s", report.key, uid, exc)
            return Outcome("failed", "Saving the report failed; please submit it again.")
        self._emit("report_saved", key=report.key)
        return Outcome("ok", decision.message or "Report saved.")

    def save_active_researchers(self, labels: list[str]) -> Outcome:
        if self.state.identity is None:
            return Outcome("rejected", "Not signed in.")
        cleaned = clean_labels(labels)
        unknown = [label for label in cleaned if label not in self.state.directory]
        if unknown:
            return Outcome("rejected", "Unknown researchers.", [f"Unknown researcher: {u}" for u in unknown])
        try:
            self.store.write_active_researchers(self.state.identity.uid, cleaned)
        except StoreError as exc:
            logger.warning("Saving active researchers failed: %s", exc)
            return Outcome("failed", "Saving active researchers failed; please try again.")
        return Outcome("ok", "Active researchers saved.")

    def save_global_researchers(self, labels: list[str]) -> Outcome:
        """Admin: replace the shared researcher directory."""
        if self.state.identity is None or not self.state.is_admin:
            return Outcome("rejected", "Admin access required.")
        cleaned = clean_labels(labels)
        if not cleaned:
            return Outcome("rejected", "The directory cannot be empty.")
        try:
            self.store.write_global_researchers(cleaned)
        except StoreError as exc:
            logger.warning("Saving the researcher directory failed: %s", exc)
            return Outcome("failed", "Saving the researcher directory failed; please try again.")
        self.state.global_researchers = cleaned
        self._emit("directory_updated", count=len(cleaned))
        return Outcome("ok", "Researcher directory saved.")

    def update_profile(
        self,
        first_name: str,
        last_name: str,
        position: str = "",
        email: str | None = None,
    ) -> Outcome:
        identity = self.state.identity
        if identity is None:
            return Outcome("rejected", "Not signed in.")
        fields = {
            "firstName": first_name.strip(),
            "lastName": last_name.strip(),
            "position": position.strip(),
            "email": (email if email is not None else identity.email).strip(),
        }
        problems: list[str] = []
        if not fields["firstName"]:
            problems.append("First name is required.")
        if not fields["lastName"]:
            problems.append("Last name is required.")
        if fields["email"] and "@" not in fields["email"]:
            problems.append(f"Invalid email: {fields['email']}")
        if problems:
            return Outcome("rejected", "The profile has problems.", problems)
        try:
            self.store.write_profile(identity.uid, fields)
        except StoreError as exc:
            logger.warning("Saving profile for %s failed: %s", identity.uid, exc)
            return Outcome("failed", "Saving the profile failed; please try again.")
        return Outcome("ok", "Profile saved.")

    # --- Internal helpers ---

    def _require_identity(self) -> Identity:
        if self.state.identity is None:
            raise PermissionError("Not signed in.")
        return self.state.identity

    def _require_admin(self) -> None:
        self._require_identity()
        if not self.state.is_admin:
            raise PermissionError("Admin access required.")

    def _emit(self, type_: str, **payload: Any) -> None:
        self.events.append(SessionEvent(type=type_, payload=payload))

    def _load_global_researchers(self) -> None:
        """Read the shared directory; an admin seeds an empty one from the config defaults."""
        try:
            labels = clean_labels(self.store.read_global_researchers())
        except StoreError as exc:
            logger.warning("Could not read global researchers: %s", exc)
            self.state.global_researchers = clean_labels(self.config.default_researchers)
            return
        defaults = clean_labels(self.config.default_researchers)
        if not labels and defaults and self.state.is_admin:
            try:
                self.store.write_global_researchers(defaults)
                logger.info("Seeded the researcher directory with %d default(s)", len(defaults))
            except StoreError as exc:
                logger.warning("Could not seed global researchers: %s", exc)
        self.state.global_researchers = labels or defaults

    def _subscribe(
        self,
        generation: int,
        name: str,
        handler: Callable[[Any], None],
        watch: Callable[..., Subscription],
        *watch_args: Any,
    ) -> None:

        def callback(value: Any) -> None:
            if generation != self._generation:
                logger.debug("Ignoring stale %s update", name)
                return
            handler(value)

        try:
            sub = watch(*watch_args, callback)
        except StoreError as exc:
            logger.warning("Subscription %s unavailable: %s", name, exc)
            self._emit("read_failed", source=name)
            return
        self._subscriptions.append(sub)

    def _on_reports(self, value: Any) -> None:
        self.state.reports = load_reports(value)
        self._emit("reports_updated", count=len(self.state.reports))

    def _on_profile(self, value: Any) -> None:
        identity = self._require_identity()
        self.state.profile = profile_from_dict(identity.uid, value if isinstance(value, dict) else None)
        self._emit("profile_updated", active=list(self.state.profile.active_researchers))

    def _on_all_users(self, value: Any) -> None:
        users = value if isinstance(value, dict) else {}
        self.state.users_by_id = {
            uid: profile_from_dict(uid, rec if isinstance(rec, dict) else None)
            for uid, rec in users.items()
        }
        self._emit("users_updated", count=len(self.state.users_by_id))

    def _on_all_reports(self, value: Any) -> None:
        data = value if isinstance(value, dict) else {}
        self.state.reports_by_user = {uid: load_reports(recs) for uid, recs in data.items()}
        self._emit("all_reports_updated", users=len(self.state.reports_by_user))
