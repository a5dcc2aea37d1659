"""SQLite database for the gitnotify inbox.

Connections are opened per unit of work (per thread) with `connect()`.
Writers are serialized by SQLite itself: every multi-statement mutation runs
inside `transaction()`, which takes the write lock up front with
BEGIN IMMEDIATE, so an optimistic mark-read and a poll's upsert can never
interleave half-way.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ..paths import get_data_dir
from .models import Category, NotificationRecord

# Seconds a writer waits for another connection's lock before failing
BUSY_TIMEOUT = 30.0


def get_db_path() -> Path:
    """Get the path to the gitnotify database, following XDG conventions."""
    return get_data_dir() / "gitnotify.db"


def _init_schema(conn: sqlite3.Connection) -> None:
    """Initialize the database schema.

    This creates the baseline schema (version 0). Migrations bring it up to date.
    Keep this as the original schema to ensure migrations work on fresh databases.
    """
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS notifications (
            id TEXT PRIMARY KEY,
            container_name TEXT NOT NULL,
            container_avatar_url TEXT,
            subject_title TEXT NOT NULL,
            subject_type TEXT NOT NULL,
            subject_url TEXT,
            reason TEXT NOT NULL,
            unread INTEGER NOT NULL DEFAULT 1,
            updated_at REAL NOT NULL,
            last_read_at REAL
        );

        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
    """)


@contextmanager
def connect(db_path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """Context manager for database connections."""
    from . import migrations

    if db_path is None:
        db_path = get_db_path()

    # isolation_level=None: we issue BEGIN/COMMIT ourselves in transaction()
    conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT, isolation_level=None)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        _init_schema(conn)
        migrations.run_migrations(conn)
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements atomically.

    Nested use joins the outer transaction, so callers can group several
    store operations into one commit.
    """
    if conn.in_transaction:
        yield conn
        return

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()


# --- Queries ---


def get(conn: sqlite3.Connection, notification_id: str) -> NotificationRecord | None:
    """Get a notification by ID."""
    row = conn.execute(
        "SELECT * FROM notifications WHERE id = ?",
        (notification_id,),
    ).fetchone()
    return NotificationRecord.from_row(row) if row else None


def fetch_all(conn: sqlite3.Connection) -> list[NotificationRecord]:
    """Get every stored notification, most recently updated first."""
    rows = conn.execute("SELECT * FROM notifications ORDER BY updated_at DESC").fetchall()
    return [NotificationRecord.from_row(row) for row in rows]


def fetch_by_category(
    conn: sqlite3.Connection, category: Category
) -> list[NotificationRecord]:
    """Get notifications in a category, most recently updated first.

    Category is derived from the stored reason, never stored itself.
    """
    if category is Category.ALL:
        return fetch_all(conn)

    reasons = sorted(r.value for r in category.reasons)
    placeholders = ", ".join("?" for _ in reasons)
    rows = conn.execute(
        f"""
        SELECT * FROM notifications
        WHERE reason IN ({placeholders})
        ORDER BY updated_at DESC
        """,
        reasons,
    ).fetchall()
    return [NotificationRecord.from_row(row) for row in rows]


def count_unread(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM notifications WHERE unread = 1").fetchone()[0]


def existing_ids(conn: sqlite3.Connection) -> set[str]:
    """IDs of every stored notification, without loading the records."""
    return {row[0] for row in conn.execute("SELECT id FROM notifications")}


# --- Mutations ---


def upsert(conn: sqlite3.Connection, records: Iterable[NotificationRecord]) -> int:
    """Insert records, replacing any stored row with the same id.

    The whole batch commits or none of it does. Returns the batch size.
    """
    rows = [
        (
            r.id,
            r.container_name,
            r.container_avatar_url,
            r.subject_title,
            r.subject_type.value,
            r.subject_url,
            r.reason.value,
            int(r.unread),
            r.updated_at,
            r.last_read_at,
        )
        for r in records
    ]
    with transaction(conn):
        conn.executemany(
            """
            INSERT INTO notifications (
                id, container_name, container_avatar_url, subject_title, subject_type,
                subject_url, reason, unread, updated_at, last_read_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                container_name = excluded.container_name,
                container_avatar_url = excluded.container_avatar_url,
                subject_title = excluded.subject_title,
                subject_type = excluded.subject_type,
                subject_url = excluded.subject_url,
                reason = excluded.reason,
                unread = excluded.unread,
                updated_at = excluded.updated_at,
                last_read_at = excluded.last_read_at
            """,
            rows,
        )
    return len(rows)


def mark_read(conn: sqlite3.Connection, notification_id: str) -> int:
    """Mark a notification as read. Returns count of rows changed."""
    cursor = conn.execute(
        "UPDATE notifications SET unread = 0 WHERE id = ? AND unread = 1",
        (notification_id,),
    )
    return cursor.rowcount


def mark_all_read(conn: sqlite3.Connection) -> int:
    """Mark every notification as read in one statement. Returns count changed."""
    cursor = conn.execute("UPDATE notifications SET unread = 0 WHERE unread = 1")
    return cursor.rowcount


def delete_older_than(conn: sqlite3.Connection, cutoff: float) -> int:
    """Retention sweep: delete read notifications last updated before cutoff.

    Unread rows are kept so an old but still-unread thread is not announced
    as new the next time it is fetched. Returns count deleted.
    """
    cursor = conn.execute(
        "DELETE FROM notifications WHERE updated_at < ? AND unread = 0",
        (cutoff,),
    )
    return cursor.rowcount


def clear_all(conn: sqlite3.Connection) -> None:
    """Delete all notifications and settings (sign-out)."""
    with transaction(conn):
        conn.execute("DELETE FROM notifications")
        conn.execute("DELETE FROM settings")
