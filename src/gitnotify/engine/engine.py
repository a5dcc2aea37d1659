"""Reconciliation engine: fetch, diff, persist, notify.

One pass at a time: a pass triggered while another is running is dropped,
not queued. Mark-read actions run independently of passes; the database
serializes their writes against a pass's upsert.

Listeners are called on whichever thread finished the work (the scheduler
thread for timed polls, the caller's thread otherwise).
"""

from __future__ import annotations

import sqlite3
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from ..credentials import TokenStore, is_valid_token_format
from ..errors import (
    DeliveryError,
    GitNotifyError,
    InvalidTokenFormat,
    NoCredential,
    NotAuthenticated,
    StoreError,
)
from ..github.client import GitHubClient
from ..inbox import db
from ..inbox import settings as settings_store
from ..inbox.models import Category, NotificationRecord, in_category
from ..inbox.settings import Settings
from ..log import get_logger
from ..notify.sinks import NotificationSink, alert_for
from .scheduler import PollScheduler

_log = get_logger("engine")

# More new items than this get a single summary alert for the rest
MAX_INDIVIDUAL_ALERTS = 5

_DAY_SECONDS = 86400


class EngineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DIFFING = "diffing"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"


@dataclass(frozen=True)
class Outcome:
    """Result of a pass or a user action, as reported to listeners.

    `error` is set on failure. A pass can carry both a new_count and an
    error when data was saved but a later step (alert delivery) failed.
    """

    action: str  # "poll", "mark_read", "mark_all_read"
    new_count: int = 0
    error: GitNotifyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PollState:
    """Snapshot of the engine's in-memory polling state."""

    state: EngineState
    interval: float  # seconds
    next_fire_at: float | None
    last_poll_at: float | None
    last_error: GitNotifyError | None

    @property
    def in_flight(self) -> bool:
        return self.state is not EngineState.IDLE


def new_items(
    fetched: Iterable[NotificationRecord], known_ids: set[str]
) -> list[NotificationRecord]:
    """Records whose id is not in known_ids, first occurrence only, in fetch order."""
    seen: set[str] = set()
    result = []
    for record in fetched:
        if record.id in known_ids or record.id in seen:
            continue
        seen.add(record.id)
        result.append(record)
    return result


class ReconciliationEngine:
    def __init__(
        self,
        client: GitHubClient,
        token_store: TokenStore,
        sink: NotificationSink,
        db_path: Path | None = None,
        retention_days: int = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._token_store = token_store
        self._sink = sink
        self._db_path = db_path
        self._retention_days = retention_days
        self._clock = clock

        self._lock = threading.Lock()
        self._pass_lock = threading.Lock()
        self._state = EngineState.IDLE
        self._last_error: GitNotifyError | None = None
        self._last_poll_at: float | None = None
        self._notifications: list[NotificationRecord] = []
        self._listeners: list[Callable[[Outcome], None]] = []
        self._change_listeners: list[Callable[[], None]] = []
        self._scheduler = PollScheduler(
            self._scheduled_pass, Settings().poll_interval_seconds
        )

    # --- listeners ---

    def add_listener(self, listener: Callable[[Outcome], None]) -> None:
        """Call listener with the Outcome of every pass and mark-read action."""
        self._listeners.append(listener)

    def add_change_listener(self, listener: Callable[[], None]) -> None:
        """Call listener after every committed change to the stored notifications."""
        self._change_listeners.append(listener)

    def _publish(self, outcome: Outcome) -> Outcome:
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception as e:
                _log.error("listener failed: %s", e, exc_info=True)
        return outcome

    def _changed(self) -> None:
        for listener in list(self._change_listeners):
            try:
                listener()
            except Exception as e:
                _log.error("change listener failed: %s", e, exc_info=True)

    # --- state ---

    @property
    def state(self) -> EngineState:
        with self._lock:
            return self._state

    def _set_state(self, state: EngineState) -> None:
        with self._lock:
            self._state = state

    @property
    def poll_state(self) -> PollState:
        with self._lock:
            return PollState(
                state=self._state,
                interval=self._scheduler.interval,
                next_fire_at=self._scheduler.next_fire_at,
                last_poll_at=self._last_poll_at,
                last_error=self._last_error,
            )

    @property
    def db_path(self) -> Path | None:
        return self._db_path

    @property
    def is_authenticated(self) -> bool:
        return self._token_store.get() is not None

    # --- projection (what the presentation layer reads) ---

    def reload(self) -> list[NotificationRecord]:
        """Re-read the authoritative list from the store."""
        with db.connect(self._db_path) as conn:
            records = db.fetch_all(conn)
        with self._lock:
            self._notifications = records
        self._changed()
        return records

    def notifications(self, category: Category = Category.ALL) -> list[NotificationRecord]:
        with self._lock:
            return [n for n in self._notifications if in_category(n, category)]

    def unread_count(self, category: Category = Category.ALL) -> int:
        return sum(1 for n in self.notifications(category) if n.unread)

    def unread_counts(self) -> dict[Category, int]:
        return {category: self.unread_count(category) for category in Category}

    def _mark_projection_read(self, notification_id: str | None) -> None:
        with self._lock:
            self._notifications = [
                n.as_read() if notification_id is None or n.id == notification_id else n
                for n in self._notifications
            ]

    # --- settings ---

    def load_settings(self) -> Settings:
        with db.connect(self._db_path) as conn:
            return settings_store.load_settings(conn)

    def update_settings(self, **changes: object) -> Settings:
        """Apply user edits to the stored settings.

        An interval passed here is applied immediately and restarts the
        countdown from now, even when it matches the stored value.
        """
        with db.connect(self._db_path) as conn, db.transaction(conn):
            current = settings_store.load_settings(conn)
            updated = replace(current, **changes)
            updated = updated.with_interval(updated.poll_interval_minutes)
            settings_store.save_settings(conn, updated)

        if "poll_interval_minutes" in changes:
            # compared against the live timer, which GitHub may have widened
            self.set_interval(updated.poll_interval_minutes, persist=False)
        return updated

    def set_interval(self, minutes: int, persist: bool = True) -> None:
        """User-chosen interval. May shorten it, unlike a server suggestion."""
        minutes = settings_store.clamp_interval(minutes)
        if persist:
            with db.connect(self._db_path) as conn:
                settings_store.put_setting(conn, settings_store.KEY_POLL_INTERVAL, str(minutes))
        self._scheduler.reschedule(minutes * 60)
        _log.info("poll interval set to %d minutes", minutes)

    def _apply_suggested_interval(self, seconds: int | None) -> None:
        """Widen the interval to GitHub's suggestion; never narrow it."""
        if seconds is None or seconds <= self._scheduler.interval:
            return
        _log.info(
            "server asked for %ds between polls, widening from %.0fs",
            seconds,
            self._scheduler.interval,
        )
        self._scheduler.reschedule(seconds)

    # --- lifecycle ---

    def start(self, poll_immediately: bool = True) -> None:
        """Load settings and the stored list, then start the recurring timer."""
        settings = self.load_settings()
        self._last_poll_at = settings.last_poll_at
        self._scheduler.reschedule(settings.poll_interval_seconds)
        self.reload()
        self._scheduler.start(fire_immediately=poll_immediately)

    def stop(self) -> None:
        self._scheduler.stop()

    def _scheduled_pass(self) -> None:
        self.run_pass()

    def poll_now(self, use_conditional_fetch: bool = True) -> Outcome | None:
        """Run a pass right away and restart the timer countdown from its completion."""
        outcome = self.run_pass(use_conditional_fetch=use_conditional_fetch)
        self._scheduler.reschedule()
        return outcome

    # --- the pass ---

    def run_pass(self, use_conditional_fetch: bool = True) -> Outcome | None:
        """Run one fetch/diff/persist/notify pass.

        Returns None without doing anything when a pass is already running.
        """
        if not self._pass_lock.acquire(blocking=False):
            _log.info("pass already in flight, trigger dropped")
            return None

        try:
            outcome = self._reconcile(use_conditional_fetch)
        finally:
            self._set_state(EngineState.IDLE)
            self._pass_lock.release()

        with self._lock:
            self._last_error = outcome.error
        if outcome.error is not None:
            _log.warning("pass failed: %s", outcome.error)
        else:
            _log.info("pass complete: %d new", outcome.new_count)
        return self._publish(outcome)

    def _reconcile(self, use_conditional_fetch: bool) -> Outcome:
        token = self._token_store.get()
        if not token:
            return Outcome("poll", error=NoCredential())

        new: list[NotificationRecord] = []
        try:
            self._set_state(EngineState.FETCHING)
            settings = self.load_settings()
            result = self._client.fetch_notifications(
                token,
                include_read=False,
                use_conditional_fetch=use_conditional_fetch,
                last_modified=settings.last_modified,
            )
            polled_at = self._clock()

            if result.not_modified:
                with db.connect(self._db_path) as conn:
                    settings_store.record_poll(conn, polled_at, result.last_modified)
                with self._lock:
                    self._last_poll_at = polled_at
                self._apply_suggested_interval(result.poll_interval)
                _log.info("not modified since %s", settings.last_modified)
                return Outcome("poll", 0)

            with db.connect(self._db_path) as conn, db.transaction(conn):
                # the known-id snapshot must be taken before the upsert
                self._set_state(EngineState.DIFFING)
                new = new_items(result.notifications, db.existing_ids(conn))

                self._set_state(EngineState.PERSISTING)
                db.upsert(conn, result.notifications)
                settings_store.record_poll(conn, polled_at, result.last_modified)
                if self._retention_days > 0:
                    cutoff = polled_at - self._retention_days * _DAY_SECONDS
                    db.delete_older_than(conn, cutoff)

            with self._lock:
                self._last_poll_at = polled_at
        except GitNotifyError as e:
            return Outcome("poll", len(new), error=e)
        except sqlite3.Error as e:
            return Outcome("poll", error=StoreError(e))

        # committed; delivery runs even if the reload fails
        reload_error = None
        try:
            self.reload()
        except sqlite3.Error as e:
            _log.error("reload after pass failed: %s", e)
            reload_error = StoreError(e)

        self._set_state(EngineState.NOTIFYING)
        delivery_error = None
        if new and settings.notifications_enabled:
            delivery_error = self._deliver(new)

        self._apply_suggested_interval(result.poll_interval)
        return Outcome("poll", len(new), error=delivery_error or reload_error)

    def _deliver(self, records: list[NotificationRecord]) -> DeliveryError | None:
        """Alert for up to MAX_INDIVIDUAL_ALERTS records, then one summary for all."""
        if not self._sink.is_authorized():
            _log.info("sink not authorized, %d new items not announced", len(records))
            return None

        try:
            for record in records[:MAX_INDIVIDUAL_ALERTS]:
                alert = alert_for(record)
                self._sink.deliver(
                    alert.title, alert.subtitle, alert.body, alert.group_key, alert.payload
                )
            if len(records) > MAX_INDIVIDUAL_ALERTS:
                self._sink.deliver_summary(len(records))
        except Exception as e:
            _log.error("alert delivery failed: %s", e, exc_info=True)
            return DeliveryError(e)
        return None

    # --- read state ---

    def mark_as_read(self, notification_id: str) -> Outcome:
        """Mark one thread read locally first, then on GitHub.

        If GitHub refuses, the list is reloaded from the store, which still
        holds the local write; the next successful pass restores GitHub's view.
        """
        token = self._token_store.get()
        if not token:
            return self._publish(Outcome("mark_read", error=NotAuthenticated()))

        self._mark_projection_read(notification_id)
        try:
            with db.connect(self._db_path) as conn:
                db.mark_read(conn, notification_id)
        except sqlite3.Error as e:
            self.reload()
            return self._publish(Outcome("mark_read", error=StoreError(e)))
        self._changed()

        try:
            self._client.mark_thread_read(notification_id, token)
        except GitNotifyError as e:
            _log.warning("remote mark-read failed for %s: %s", notification_id, e)
            self.reload()
            return self._publish(Outcome("mark_read", error=e))

        self._sink.remove_delivered(notification_id)
        return self._publish(Outcome("mark_read"))

    def mark_all_as_read(self) -> Outcome:
        """Mark everything read locally first, then on GitHub."""
        token = self._token_store.get()
        if not token:
            return self._publish(Outcome("mark_all_read", error=NotAuthenticated()))

        self._mark_projection_read(None)
        try:
            with db.connect(self._db_path) as conn:
                db.mark_all_read(conn)
        except sqlite3.Error as e:
            self.reload()
            return self._publish(Outcome("mark_all_read", error=StoreError(e)))
        self._changed()

        try:
            self._client.mark_all_read(token)
        except GitNotifyError as e:
            _log.warning("remote mark-all-read failed: %s", e)
            self.reload()
            return self._publish(Outcome("mark_all_read", error=e))

        self._sink.remove_all_delivered()
        return self._publish(Outcome("mark_all_read"))

    # --- authentication ---

    def sign_in(self, token: str) -> str:
        """Validate a token with GitHub and store it. Returns the GitHub login.

        Raises InvalidTokenFormat or an API error; nothing is stored on failure.
        """
        token = token.strip()
        if not is_valid_token_format(token):
            raise InvalidTokenFormat()

        login = self._client.validate_token(token)
        self._token_store.set(token)
        # a different account must not reuse the old account's Last-Modified
        with db.connect(self._db_path) as conn:
            settings_store.delete_setting(conn, settings_store.KEY_LAST_MODIFIED)
        _log.info("signed in as %s", login)
        return login

    def sign_out(self) -> None:
        """Forget the token and every stored notification and setting."""
        self._token_store.delete()
        with db.connect(self._db_path) as conn:
            db.clear_all(conn)
        self._sink.remove_all_delivered()
        with self._lock:
            self._notifications = []
            self._last_poll_at = None
            self._last_error = None
        self._changed()
        _log.info("signed out")
