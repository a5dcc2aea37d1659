"""User settings persisted in the inbox database.

Settings are stored one row per key in the `settings` table as text. Loading
never fails as a whole: a missing or unreadable key falls back to that
field's default and the rest are kept.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from ..log import get_logger
from .db import transaction
from .models import IconStyle

_log = get_logger("settings")

MIN_POLL_INTERVAL = 5
MAX_POLL_INTERVAL = 60
DEFAULT_POLL_INTERVAL = 20

KEY_POLL_INTERVAL = "poll_interval_minutes"
KEY_SHOW_BADGE = "show_badge"
KEY_NOTIFICATIONS_ENABLED = "notifications_enabled"
KEY_LAUNCH_AT_LOGIN = "launch_at_login"
KEY_ICON_STYLE = "icon_style"
KEY_LAST_POLL_AT = "last_poll_at"
KEY_LAST_MODIFIED = "last_modified"


def clamp_interval(minutes: int) -> int:
    return max(MIN_POLL_INTERVAL, min(MAX_POLL_INTERVAL, minutes))


@dataclass(frozen=True)
class Settings:
    """User preferences plus the bookkeeping a poll writes back."""

    poll_interval_minutes: int = DEFAULT_POLL_INTERVAL
    show_badge: bool = True
    notifications_enabled: bool = True
    launch_at_login: bool = False
    icon_style: IconStyle = IconStyle.GIT_BRANCH
    last_poll_at: float | None = None  # unix seconds of last successful poll
    last_modified: str | None = None  # conditional-fetch token from GitHub

    @property
    def poll_interval_seconds(self) -> float:
        return float(self.poll_interval_minutes * 60)

    def with_interval(self, minutes: int) -> Settings:
        return replace(self, poll_interval_minutes=clamp_interval(minutes))


# --- encoding ---


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_interval(value: str) -> int:
    return clamp_interval(int(value))


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


# field name -> (key, parse, format)
_FIELDS: dict[str, tuple[str, Callable[[str], Any], Callable[[Any], str]]] = {
    "poll_interval_minutes": (KEY_POLL_INTERVAL, _parse_interval, str),
    "show_badge": (KEY_SHOW_BADGE, _parse_bool, _format_bool),
    "notifications_enabled": (KEY_NOTIFICATIONS_ENABLED, _parse_bool, _format_bool),
    "launch_at_login": (KEY_LAUNCH_AT_LOGIN, _parse_bool, _format_bool),
    "icon_style": (KEY_ICON_STYLE, IconStyle, lambda v: v.value),
    "last_poll_at": (KEY_LAST_POLL_AT, float, repr),
    "last_modified": (KEY_LAST_MODIFIED, str, str),
}


# --- primitives ---


def get_setting(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def put_setting(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute(
        """
        INSERT INTO settings (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """,
        (key, value),
    )


def delete_setting(conn: sqlite3.Connection, key: str) -> None:
    conn.execute("DELETE FROM settings WHERE key = ?", (key,))


# --- whole settings ---


def load_settings(conn: sqlite3.Connection) -> Settings:
    """Load settings, defaulting each missing or malformed field on its own."""
    stored = dict(conn.execute("SELECT key, value FROM settings").fetchall())
    values: dict[str, Any] = {}

    for name, (key, parse, _fmt) in _FIELDS.items():
        raw = stored.get(key)
        if raw is None:
            continue
        try:
            values[name] = parse(raw)
        except (ValueError, TypeError) as e:
            _log.warning("ignoring malformed setting %s=%r: %s", key, raw, e)

    return Settings(**values)


def save_settings(conn: sqlite3.Connection, settings: Settings) -> None:
    """Write every field in one transaction.

    Optional fields that are None are removed so a later load sees the default.
    """
    with transaction(conn):
        for name, (key, _parse, fmt) in _FIELDS.items():
            value = getattr(settings, name)
            if value is None:
                delete_setting(conn, key)
            else:
                put_setting(conn, key, fmt(value))


def record_poll(
    conn: sqlite3.Connection,
    polled_at: float,
    last_modified: str | None,
) -> None:
    """Store the poll timestamp and, when present, the new conditional-fetch token."""
    with transaction(conn):
        put_setting(conn, KEY_LAST_POLL_AT, repr(polled_at))
        if last_modified:
            put_setting(conn, KEY_LAST_MODIFIED, last_modified)
