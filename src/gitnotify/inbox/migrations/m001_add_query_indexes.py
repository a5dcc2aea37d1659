"""Add indexes backing the category, unread and ordering queries."""

import sqlite3

VERSION = 1
DESCRIPTION = "Add reason, updated_at and unread indexes to notifications"


def migrate(conn: sqlite3.Connection) -> None:
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_notifications_reason ON notifications(reason)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_notifications_updated ON notifications(updated_at)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_notifications_unread ON notifications(unread)"
    )
