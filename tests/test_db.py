"""Tests for gitnotify.inbox.db module."""

import sqlite3
import tempfile
import threading
from pathlib import Path

import pytest

from gitnotify.inbox import db
from gitnotify.inbox.migrations import discover_migrations, get_current_version
from gitnotify.inbox.models import Category, NotificationRecord, Reason, SubjectType


def _record(id: str, reason: Reason = Reason.SUBSCRIBED, unread: bool = True, updated_at: float = 1000.0):
    return NotificationRecord(
        id=id,
        container_name="octo/repo",
        subject_title=f"Thread {id}",
        subject_type=SubjectType.ISSUE,
        reason=reason,
        unread=unread,
        updated_at=updated_at,
        subject_url=f"https://api.github.com/repos/octo/repo/issues/{id}",
    )


def test_connect_creates_schema():
    """connect() should create the notifications and settings tables."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            tables = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
            }
            assert {"notifications", "settings"} <= tables


def test_connect_runs_migrations():
    """A fresh database ends up at the latest migration version."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            latest = max(version for version, _desc, _fn in discover_migrations())
            assert get_current_version(conn) == latest

            indexes = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type='index'")
            }
            assert "idx_notifications_updated" in indexes


def test_upsert_inserts_and_get():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            assert db.upsert(conn, [_record("1"), _record("2")]) == 2

            stored = db.get(conn, "1")
            assert stored == _record("1")
            assert db.get(conn, "missing") is None


def test_upsert_replaces_existing_row():
    """A second upsert with the same id replaces every field."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(conn, [_record("1", unread=True, updated_at=1000.0)])
            db.upsert(conn, [_record("1", unread=False, updated_at=2000.0)])

            stored = db.fetch_all(conn)
            assert len(stored) == 1
            assert stored[0].unread is False
            assert stored[0].updated_at == 2000.0


def test_upsert_twice_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            batch = [_record("1"), _record("2")]
            db.upsert(conn, batch)
            first = db.fetch_all(conn)
            db.upsert(conn, batch)
            assert db.fetch_all(conn) == first


def test_upsert_is_atomic():
    """A failing batch leaves the store unchanged."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(conn, [_record("1")])
            bad = _record("2")
            object.__setattr__(bad, "container_name", None)  # violates NOT NULL

            with pytest.raises(sqlite3.IntegrityError):
                db.upsert(conn, [_record("3"), bad])

            assert db.existing_ids(conn) == {"1"}


def test_fetch_all_orders_by_updated_at_desc():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(
                conn,
                [
                    _record("old", updated_at=100.0),
                    _record("new", updated_at=300.0),
                    _record("mid", updated_at=200.0),
                ],
            )
            assert [n.id for n in db.fetch_all(conn)] == ["new", "mid", "old"]


def test_fetch_by_category():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(
                conn,
                [
                    _record("m", Reason.MENTION),
                    _record("t", Reason.TEAM_MENTION),
                    _record("r", Reason.REVIEW_REQUESTED),
                    _record("c", Reason.COMMENT),
                    _record("s", Reason.SUBSCRIBED),
                ],
            )
            assert {n.id for n in db.fetch_by_category(conn, Category.MENTIONED)} == {"m", "t"}
            assert {n.id for n in db.fetch_by_category(conn, Category.ASSIGNED)} == {"r"}
            assert {n.id for n in db.fetch_by_category(conn, Category.COMMENTS)} == {"c"}
            assert len(db.fetch_by_category(conn, Category.ALL)) == 5


def test_mark_read():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(conn, [_record("1"), _record("2")])

            assert db.mark_read(conn, "1") == 1
            assert db.mark_read(conn, "1") == 0  # already read
            assert db.mark_read(conn, "missing") == 0

            stored = db.get(conn, "1")
            assert stored is not None
            assert not stored.unread
            assert db.count_unread(conn) == 1


def test_mark_all_read():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(conn, [_record("1"), _record("2"), _record("3", unread=False)])

            assert db.mark_all_read(conn) == 2
            assert db.count_unread(conn) == 0


def test_delete_older_than_keeps_unread():
    """Retention only removes read records."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(
                conn,
                [
                    _record("old-read", unread=False, updated_at=100.0),
                    _record("old-unread", unread=True, updated_at=100.0),
                    _record("new-read", unread=False, updated_at=900.0),
                ],
            )

            assert db.delete_older_than(conn, 500.0) == 1
            assert db.existing_ids(conn) == {"old-unread", "new-read"}


def test_clear_all_removes_notifications_and_settings():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(conn, [_record("1")])
            conn.execute("INSERT INTO settings (key, value) VALUES ('k', 'v')")

            db.clear_all(conn)

            assert db.fetch_all(conn) == []
            assert conn.execute("SELECT COUNT(*) FROM settings").fetchone()[0] == 0


def test_transaction_rolls_back_on_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            with pytest.raises(RuntimeError), db.transaction(conn):
                db.upsert(conn, [_record("1")])
                raise RuntimeError("boom")

            assert db.fetch_all(conn) == []


def test_transaction_nested_joins_outer():
    """An inner transaction() commits with the outer one, not on its own."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            with pytest.raises(RuntimeError), db.transaction(conn):
                with db.transaction(conn):
                    db.upsert(conn, [_record("1")])
                raise RuntimeError("boom")

            assert db.fetch_all(conn) == []


def test_concurrent_writers_do_not_lose_updates():
    """mark_read from one connection and upsert from another both land."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        with db.connect(db_path) as conn:
            db.upsert(conn, [_record(str(i)) for i in range(20)])

        def mark():
            with db.connect(db_path) as conn:
                for i in range(10):
                    db.mark_read(conn, str(i))

        def insert():
            with db.connect(db_path) as conn:
                db.upsert(conn, [_record(f"new-{i}") for i in range(10)])

        threads = [threading.Thread(target=mark), threading.Thread(target=insert)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        with db.connect(db_path) as conn:
            assert len(db.fetch_all(conn)) == 30
            assert db.count_unread(conn) == 20
