"""Desktop alerts for newly discovered GitHub notifications."""

from .sinks import (
    Alert,
    NotificationSink,
    NotifySendSink,
    NullSink,
    OsascriptSink,
    alert_for,
    get_sink,
    summary_text,
)

__all__ = [
    "Alert",
    "NotificationSink",
    "NotifySendSink",
    "NullSink",
    "OsascriptSink",
    "alert_for",
    "get_sink",
    "summary_text",
]
