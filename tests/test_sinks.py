"""Tests for alert formatting and the desktop sinks."""

import subprocess

from gitnotify.inbox.models import NotificationRecord, Reason, SubjectType
from gitnotify.notify import sinks
from gitnotify.notify.sinks import (
    NotifySendSink,
    NullSink,
    OsascriptSink,
    alert_for,
    get_sink,
    summary_text,
)


def _record(**overrides):
    fields = dict(
        id="99",
        container_name="octo/repo",
        subject_title="Add dark mode",
        subject_type=SubjectType.PULL_REQUEST,
        reason=Reason.REVIEW_REQUESTED,
        unread=True,
        updated_at=1000.0,
        subject_url="https://api.github.com/repos/octo/repo/pulls/99",
    )
    fields.update(overrides)
    return NotificationRecord(**fields)


def test_alert_for_record():
    alert = alert_for(_record())
    assert alert.title == "PR • Review Requested"
    assert alert.subtitle == "octo/repo"
    assert alert.body == "Add dark mode"
    assert alert.group_key == "octo/repo"
    assert alert.payload == {
        "id": "99",
        "url": "https://github.com/octo/repo/pull/99",
        "type": "PullRequest",
    }


def test_alert_for_unlabelled_type():
    alert = alert_for(_record(subject_type=SubjectType.CHECK_SUITE, reason=Reason.CI_ACTIVITY))
    assert alert.title == "Notification • CI Activity"


def test_alert_without_url():
    assert alert_for(_record(subject_url=None)).payload["url"] == ""


def test_summary_text():
    assert summary_text(7) == "You have 7 new notifications"


def test_null_sink_is_not_authorized():
    sink = NullSink()
    assert sink.is_authorized() is False
    sink.deliver("t", "s", "b", "g", {})
    sink.deliver_summary(3)


def test_get_sink_by_name():
    assert isinstance(get_sink("osascript"), OsascriptSink)
    assert isinstance(get_sink("notify-send"), NotifySendSink)
    assert isinstance(get_sink("none"), NullSink)
    assert isinstance(get_sink("carrier-pigeon"), NullSink)


def test_get_sink_auto(monkeypatch):
    monkeypatch.setattr(sinks.sys, "platform", "darwin")
    assert isinstance(get_sink("auto"), OsascriptSink)
    monkeypatch.setattr(sinks.sys, "platform", "linux")
    assert isinstance(get_sink("auto"), NotifySendSink)


def test_notify_send_deliver(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append((args, kwargs))
        return subprocess.CompletedProcess(args, 0, "", "")

    monkeypatch.setattr(sinks.subprocess, "run", fake_run)
    NotifySendSink().deliver("PR • Mentioned", "octo/repo", "Body", "octo/repo", {"id": "1"})

    args, kwargs = calls[0]
    assert args[0] == "notify-send"
    assert args[-2:] == ["PR • Mentioned", "octo/repo\nBody"]
    assert kwargs["check"] is True


def test_osascript_quotes_text(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append(args)
        return subprocess.CompletedProcess(args, 0, "", "")

    monkeypatch.setattr(sinks.subprocess, "run", fake_run)
    OsascriptSink().deliver('Say "hi"', "octo/repo", "back\\slash", "octo/repo", {})

    script = calls[0][2]
    assert 'with title "Say \\"hi\\""' in script
    assert 'display notification "back\\\\slash"' in script


def test_sink_authorization_follows_binary(monkeypatch):
    monkeypatch.setattr(sinks.shutil, "which", lambda name: None)
    assert NotifySendSink().is_authorized() is False
    monkeypatch.setattr(sinks.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert NotifySendSink().is_authorized() is True
