"""gitnotify inbox - local durable store of GitHub notifications and settings."""

from .db import (
    clear_all,
    connect,
    count_unread,
    delete_older_than,
    existing_ids,
    fetch_all,
    fetch_by_category,
    get,
    get_db_path,
    mark_all_read,
    mark_read,
    transaction,
    upsert,
)
from .models import Category, IconStyle, NotificationRecord, Reason, SubjectType
from .settings import Settings, load_settings, save_settings

__all__ = [
    # Types
    "Category",
    "IconStyle",
    "NotificationRecord",
    "Reason",
    "Settings",
    "SubjectType",
    # Store API
    "connect",
    "transaction",
    "get",
    "fetch_all",
    "fetch_by_category",
    "count_unread",
    "existing_ids",
    "upsert",
    "mark_read",
    "mark_all_read",
    "delete_older_than",
    "clear_all",
    "get_db_path",
    "load_settings",
    "save_settings",
]
