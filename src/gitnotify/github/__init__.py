"""GitHub REST API access for gitnotify."""

from .client import PAGE_SIZE, FetchResult, GitHubClient, raise_for_status
from .decode import decode_notification, decode_notifications, parse_timestamp

__all__ = [
    "PAGE_SIZE",
    "FetchResult",
    "GitHubClient",
    "decode_notification",
    "decode_notifications",
    "parse_timestamp",
    "raise_for_status",
]
