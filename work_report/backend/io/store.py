"""Storage and identity collaborator.

The production store is a managed real-time database addressed by path
(``users/<uid>``, ``reports/<uid>/<key>``, ``global/researchers``) whose
security rules decide who may read what. ``ReportStore`` describes the calls
the session makes; ``MemoryStore`` implements them in process with the same
access rules, for tests and the local CLI.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]


class StoreError(Exception):
    """A read or write against the store failed."""


class AccessDenied(StoreError):
    """The signed-in identity may not access the requested path."""


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str = ""


class Subscription:
    """Handle for a live watch; ``close`` stops further callbacks."""

    def __init__(self, path: str, on_close: Callable[[Subscription], None] | None = None) -> None:
        self.path = path
        self.closed = False
        self._on_close = on_close

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close:
            self._on_close(self)


class ReportStore:
    """Abstract store interface.

    Watches call back once with the current value and again on every change
    below the watched path. Reads and watches raise ``AccessDenied`` when the
    security rules refuse them; writes raise ``StoreError`` on failure.
    """

    def sign_in(self, identity: Identity) -> None:
        """Called once the identity service has authenticated ``identity``."""

    def sign_out(self) -> None:
        """Called after the session released every subscription."""

    def watch_reports(self, uid: str, callback: Callback) -> Subscription:
        raise NotImplementedError

    def watch_all_reports(self, callback: Callback) -> Subscription:
        raise NotImplementedError

    def watch_user(self, uid: str, callback: Callback) -> Subscription:
        raise NotImplementedError

    def watch_all_users(self, callback: Callback) -> Subscription:
        raise NotImplementedError

    def read_all_users(self) -> dict[str, Any]:
        raise NotImplementedError

    def read_global_researchers(self) -> list[str]:
        raise NotImplementedError

    def write_global_researchers(self, labels: list[str]) -> None:
        raise NotImplementedError

    def write_report(self, uid: str, key: str, record: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def write_active_researchers(self, uid: str, labels: list[str]) -> None:
        raise NotImplementedError

    def write_profile(self, uid: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into ``users/<uid>``, leaving other keys alone."""
        raise NotImplementedError

    def is_privileged(self, identity: Identity) -> bool:
        """Capability probe: an identity is privileged if a privileged read succeeds.

        There is no stored role flag. A refused read means "not privileged"
        and is not reported as an error.
        """
        try:
            self.read_all_users()
        except AccessDenied:
            return False
        except StoreError as exc:
            logger.warning("Privilege probe for %s failed: %s", identity.uid, exc)
            return False
        return True


class MemoryStore(ReportStore):
    """In-process store with path-based access rules.

    Root collections (``users``, ``reports``) are readable only by admin uids;
    a user may read and write their own subtree. ``fail_reads`` and
    ``fail_writes`` simulate an unavailable backend.
    """

    def __init__(
        self,
        data: dict[str, Any] | None = None,
        *,
        admins: tuple[str, ...] | list[str] = (),
        path: str | None = None,
    ) -> None:
        self.data: dict[str, Any] = copy.deepcopy(data) if data else {}
        for root in ("users", "reports", "global"):
            self.data.setdefault(root, {})
        self.admins = set(admins)
        self.path = path
        self.current: Identity | None = None
        self.fail_reads = False
        self.fail_writes = False
        self._watchers: list[tuple[Subscription, Callback]] = []
        self._last_timestamp = 0

    # --- Identity ---

    def sign_in(self, identity: Identity) -> None:
        self.current = identity

    def sign_out(self) -> None:
        self.current = None

    # --- ReportStore ---

    def watch_reports(self, uid: str, callback: Callback) -> Subscription:
        return self._watch(f"reports/{uid}", callback)

    def watch_all_reports(self, callback: Callback) -> Subscription:
        return self._watch("reports", callback)

    def watch_user(self, uid: str, callback: Callback) -> Subscription:
        return self._watch(f"users/{uid}", callback)

    def watch_all_users(self, callback: Callback) -> Subscription:
        return self._watch("users", callback)

    def read_all_users(self) -> dict[str, Any]:
        return self._read("users") or {}

    def read_global_researchers(self) -> list[str]:
        value = self._read("global/researchers")
        return list(value) if isinstance(value, list) else []

    def write_global_researchers(self, labels: list[str]) -> None:
        self._write("global/researchers", list(labels))

    def write_report(self, uid: str, key: str, record: dict[str, Any]) -> dict[str, Any]:
        stored = dict(record)
        stored["timestamp"] = self._next_timestamp()
        self._write(f"reports/{uid}/{key}", stored)
        return stored

    def write_active_researchers(self, uid: str, labels: list[str]) -> None:
        self._write(f"users/{uid}/activeResearchers", list(labels))

    def write_profile(self, uid: str, fields: dict[str, Any]) -> None:
        path = f"users/{uid}"
        self._check(path, write=True)
        current = self._node(path)
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update(fields)
        self._write(path, merged)

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    # --- Persistence ---

    @classmethod
    def from_json(cls, path: str, *, admins: tuple[str, ...] | list[str] = ()) -> MemoryStore:
        data: dict[str, Any] = {}
        if os.path.isfile(path):
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        return cls(data, admins=admins, path=path)

    def dump(self, path: str) -> None:
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, ensure_ascii=False, indent=2)

    # --- Internal helpers ---

    def _check(self, path: str, *, write: bool) -> None:
        who = self.current
        if who is None:
            raise AccessDenied(f"Not signed in: {path}")
        if who.uid in self.admins:
            return
        parts = path.split("/")
        if parts[0] == "global":
            if write:
                raise AccessDenied(f"Permission denied: {path}")
            return
        if len(parts) < 2 or parts[1] != who.uid:
            raise AccessDenied(f"Permission denied: {path}")

    def _node(self, path: str) -> Any:
        node: Any = self.data
        for part in path.split("/"):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _read(self, path: str) -> Any:
        self._check(path, write=False)
        if self.fail_reads:
            raise StoreError(f"Read failed: {path}")
        return copy.deepcopy(self._node(path))

    def _write(self, path: str, value: Any) -> None:
        self._check(path, write=True)
        if self.fail_writes:
            raise StoreError(f"Write failed: {path}")
        parts = path.split("/")
        node = self.data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = copy.deepcopy(value)
        logger.debug("Wrote %s", path)
        if self.path:
            self.dump(self.path)
        self._notify(path)

    def _watch(self, path: str, callback: Callback) -> Subscription:
        value = self._read(path)
        sub = Subscription(path, on_close=self._unwatch)
        self._watchers.append((sub, callback))
        callback(value)
        return sub

    def _unwatch(self, sub: Subscription) -> None:
        self._watchers = [(s, cb) for s, cb in self._watchers if s is not sub]

    def _notify(self, written: str) -> None:
        for sub, callback in list(self._watchers):
            if sub.closed:
                continue
            watched = sub.path
            if written == watched or written.startswith(watched + "/") or watched.startswith(written + "/"):
                callback(copy.deepcopy(self._node(watched)))

    def _next_timestamp(self) -> int:
        now = int(time.time() * 1000)
        self._last_timestamp = max(now, self._last_timestamp + 1)
        return self._last_timestamp
