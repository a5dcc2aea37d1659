"""Tests for settings persisted in the inbox database."""

from gitnotify.inbox import db
from gitnotify.inbox import settings as s
from gitnotify.inbox.models import IconStyle


def test_load_settings_defaults(tmp_path):
    with db.connect(tmp_path / "test.db") as conn:
        loaded = s.load_settings(conn)

    assert loaded == s.Settings()
    assert loaded.poll_interval_minutes == 20
    assert loaded.show_badge is True
    assert loaded.notifications_enabled is True
    assert loaded.launch_at_login is False
    assert loaded.icon_style is IconStyle.GIT_BRANCH
    assert loaded.last_poll_at is None
    assert loaded.last_modified is None


def test_save_and_load_settings(tmp_path):
    saved = s.Settings(
        poll_interval_minutes=45,
        show_badge=False,
        notifications_enabled=False,
        launch_at_login=True,
        icon_style=IconStyle.BELL,
        last_poll_at=1700000000.5,
        last_modified="Wed, 01 Jan 2025 00:00:00 GMT",
    )
    with db.connect(tmp_path / "test.db") as conn:
        s.save_settings(conn, saved)

    with db.connect(tmp_path / "test.db") as conn:
        assert s.load_settings(conn) == saved


def test_save_settings_removes_cleared_optionals(tmp_path):
    with db.connect(tmp_path / "test.db") as conn:
        s.save_settings(conn, s.Settings(last_modified="token"))
        s.save_settings(conn, s.Settings(last_modified=None))
        assert s.get_setting(conn, s.KEY_LAST_MODIFIED) is None


def test_malformed_value_falls_back_per_field(tmp_path):
    """One bad key does not discard the others."""
    with db.connect(tmp_path / "test.db") as conn:
        s.put_setting(conn, s.KEY_POLL_INTERVAL, "soon")
        s.put_setting(conn, s.KEY_SHOW_BADGE, "maybe")
        s.put_setting(conn, s.KEY_ICON_STYLE, "network")
        s.put_setting(conn, s.KEY_NOTIFICATIONS_ENABLED, "false")

        loaded = s.load_settings(conn)

    assert loaded.poll_interval_minutes == s.DEFAULT_POLL_INTERVAL
    assert loaded.show_badge is True
    assert loaded.icon_style is IconStyle.NETWORK
    assert loaded.notifications_enabled is False


def test_stored_interval_is_clamped(tmp_path):
    with db.connect(tmp_path / "test.db") as conn:
        s.put_setting(conn, s.KEY_POLL_INTERVAL, "1")
        assert s.load_settings(conn).poll_interval_minutes == s.MIN_POLL_INTERVAL

        s.put_setting(conn, s.KEY_POLL_INTERVAL, "600")
        assert s.load_settings(conn).poll_interval_minutes == s.MAX_POLL_INTERVAL


def test_clamp_interval():
    assert s.clamp_interval(0) == 5
    assert s.clamp_interval(5) == 5
    assert s.clamp_interval(30) == 30
    assert s.clamp_interval(60) == 60
    assert s.clamp_interval(61) == 60


def test_with_interval_clamps():
    assert s.Settings().with_interval(2).poll_interval_minutes == 5
    assert s.Settings().with_interval(10).poll_interval_seconds == 600.0


def test_record_poll(tmp_path):
    with db.connect(tmp_path / "test.db") as conn:
        s.record_poll(conn, 1234.5, "Thu, 01 Feb 2024 10:00:00 GMT")
        loaded = s.load_settings(conn)
        assert loaded.last_poll_at == 1234.5
        assert loaded.last_modified == "Thu, 01 Feb 2024 10:00:00 GMT"

        # no new token keeps the previous one
        s.record_poll(conn, 2000.0, None)
        loaded = s.load_settings(conn)
        assert loaded.last_poll_at == 2000.0
        assert loaded.last_modified == "Thu, 01 Feb 2024 10:00:00 GMT"
