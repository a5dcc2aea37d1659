"""Desktop notification sinks.

A sink shows alerts for newly discovered notifications. gitnotify ships
osascript (macOS), notify-send (Linux) and a null sink; `get_sink` picks one
from config. Neither desktop backend can retract a banner once shown, so
their remove methods only log.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Protocol

from ..inbox.models import NotificationRecord
from ..log import get_logger

_log = get_logger("notify")

APP_NAME = "gitnotify"


@dataclass(frozen=True)
class Alert:
    """Everything a sink needs to show one notification."""

    title: str
    subtitle: str
    body: str
    group_key: str
    payload: dict[str, str]


def alert_for(record: NotificationRecord) -> Alert:
    """Build the alert shown for a new notification."""
    return Alert(
        title=f"{record.subject_type.short_label} • {record.reason.display_name}",
        subtitle=record.container_name,
        body=record.subject_title,
        group_key=record.container_name,
        payload={
            "id": record.id,
            "url": record.html_url or "",
            "type": record.subject_type.value,
        },
    )


def summary_text(count: int) -> str:
    return f"You have {count} new notifications"


class NotificationSink(Protocol):
    def deliver(
        self, title: str, subtitle: str, body: str, group_key: str, payload: dict[str, str]
    ) -> None: ...

    def deliver_summary(self, count: int) -> None: ...

    def remove_delivered(self, notification_id: str) -> None: ...

    def remove_all_delivered(self) -> None: ...

    def is_authorized(self) -> bool: ...


class NullSink:
    """Sink that only logs. Used when alerts are disabled or unsupported."""

    def deliver(
        self, title: str, subtitle: str, body: str, group_key: str, payload: dict[str, str]
    ) -> None:
        _log.debug("alert (not shown): %s | %s | %s", title, subtitle, body)

    def deliver_summary(self, count: int) -> None:
        _log.debug("summary (not shown): %s", summary_text(count))

    def remove_delivered(self, notification_id: str) -> None:
        pass

    def remove_all_delivered(self) -> None:
        pass

    def is_authorized(self) -> bool:
        return False


def _applescript_quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class OsascriptSink:
    """macOS Notification Center via `osascript -e 'display notification ...'`."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout

    def _run(self, script: str) -> None:
        subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
        )

    def deliver(
        self, title: str, subtitle: str, body: str, group_key: str, payload: dict[str, str]
    ) -> None:
        script = (
            f"display notification {_applescript_quote(body)}"
            f" with title {_applescript_quote(title)}"
            f" subtitle {_applescript_quote(subtitle)}"
        )
        self._run(script)

    def deliver_summary(self, count: int) -> None:
        script = (
            f"display notification {_applescript_quote(summary_text(count))}"
            f" with title {_applescript_quote(APP_NAME)}"
        )
        self._run(script)

    def remove_delivered(self, notification_id: str) -> None:
        _log.debug("osascript cannot retract alerts (id %s)", notification_id)

    def remove_all_delivered(self) -> None:
        _log.debug("osascript cannot retract alerts")

    def is_authorized(self) -> bool:
        return shutil.which("osascript") is not None


class NotifySendSink:
    """freedesktop notifications via `notify-send`."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout

    def _run(self, args: list[str]) -> None:
        subprocess.run(
            ["notify-send", "--app-name", APP_NAME, *args],
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
        )

    def deliver(
        self, title: str, subtitle: str, body: str, group_key: str, payload: dict[str, str]
    ) -> None:
        self._run(["--category", "gitnotify." + group_key, title, f"{subtitle}\n{body}"])

    def deliver_summary(self, count: int) -> None:
        self._run([APP_NAME, summary_text(count)])

    def remove_delivered(self, notification_id: str) -> None:
        _log.debug("notify-send cannot retract alerts (id %s)", notification_id)

    def remove_all_delivered(self) -> None:
        _log.debug("notify-send cannot retract alerts")

    def is_authorized(self) -> bool:
        return shutil.which("notify-send") is not None


def get_sink(backend: str = "auto") -> NotificationSink:
    """Pick a sink by config name; "auto" chooses by platform."""
    if backend == "auto":
        backend = "osascript" if sys.platform == "darwin" else "notify-send"

    if backend == "osascript":
        return OsascriptSink()
    if backend == "notify-send":
        return NotifySendSink()
    if backend != "none":
        _log.warning("unknown notifier backend %r, alerts disabled", backend)
    return NullSink()
