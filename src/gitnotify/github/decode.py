"""Decode GitHub notification payloads into inbox records.

One bad thread never sinks a batch: `decode_notifications` drops records
that fail to decode and logs them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from ..errors import DecodeError, InvalidResponse
from ..inbox.models import NotificationRecord, Reason, SubjectType
from ..log import get_logger

_log = get_logger("github.decode")


def parse_timestamp(ts_str: str | None) -> float | None:
    """Parse an ISO-8601 timestamp (with or without fractional seconds) to unix seconds."""
    if not ts_str or not isinstance(ts_str, str):
        return None
    try:
        dt = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.timestamp()


def format_timestamp(ts: float) -> str:
    """Format unix seconds the way GitHub expects query/body timestamps."""
    return datetime.fromtimestamp(ts, tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _require_str(obj: dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"missing or non-string field {key!r}")
    return value


def decode_notification(dto: Any) -> NotificationRecord:
    """Decode a single notification thread object.

    Raises DecodeError when a required field is missing or unparseable.
    Unknown `reason` and `subject.type` values decode to UNKNOWN.
    """
    if not isinstance(dto, dict):
        raise DecodeError("notification is not an object")

    repository = dto.get("repository")
    subject = dto.get("subject")
    if not isinstance(repository, dict) or not isinstance(subject, dict):
        raise DecodeError("missing repository or subject")

    unread = dto.get("unread")
    if not isinstance(unread, bool):
        raise DecodeError("missing or non-boolean field 'unread'")

    updated_at = parse_timestamp(dto.get("updated_at"))
    if updated_at is None:
        raise DecodeError(f"unparseable updated_at: {dto.get('updated_at')!r}")

    owner = repository.get("owner") if isinstance(repository.get("owner"), dict) else {}
    thread_id = dto.get("id")
    if isinstance(thread_id, int):
        thread_id = str(thread_id)

    return NotificationRecord(
        id=_require_str({"id": thread_id}, "id"),
        container_name=_require_str(repository, "full_name"),
        container_avatar_url=owner.get("avatar_url"),
        subject_title=_require_str(subject, "title"),
        subject_type=SubjectType.parse(subject.get("type")),
        subject_url=subject.get("url"),
        reason=Reason.parse(dto.get("reason")),
        unread=unread,
        updated_at=updated_at,
        last_read_at=parse_timestamp(dto.get("last_read_at")),
    )


def decode_notifications(payload: Any) -> list[NotificationRecord]:
    """Decode a notifications list response, dropping records that fail."""
    if not isinstance(payload, list):
        raise InvalidResponse("Expected a list of notifications from GitHub.")

    records = []
    for dto in payload:
        try:
            records.append(decode_notification(dto))
        except DecodeError as e:
            thread_id = dto.get("id") if isinstance(dto, dict) else None
            _log.warning("dropping undecodable notification %s: %s", thread_id, e)
    return records
