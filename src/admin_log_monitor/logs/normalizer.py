"""Map audit, system, and activity-feed records onto the canonical LogEntry.

Every function here is pure and total: malformed or missing fields degrade to
defaults (``info`` level, epoch timestamp, no source) and nothing raises.
Identical input always yields an identical LogEntry, which is what makes ids
stable across live-tail polls.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from ..models import (
    LOG_LEVELS,
    ActivityFeedItem,
    AuditEntry,
    LogEntry,
    LogLevel,
    SystemEvent,
)
from ..payloads import as_record, first_datetime, first_identifier, first_string

MESSAGE_SEPARATOR = " - "
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_LEVEL_ALIASES: dict[str, LogLevel] = {
    "warning": "warn",
    "critical": "error",
    "fatal": "error",
    "trace": "debug",
}
_SYSTEM_ERROR_STATUSES = {"failed", "failure", "error", "rejected"}
_SYSTEM_WARN_STATUSES = {"cancelled", "canceled", "pending", "suspended", "warning", "disputed"}

SourceRecord = AuditEntry | SystemEvent | ActivityFeedItem


def normalize(source_kind: str, raw_record: Any) -> LogEntry:
    """Normalize one raw backend record of ``source_kind`` into a LogEntry."""
    if isinstance(raw_record, (AuditEntry, SystemEvent, ActivityFeedItem)):
        return normalize_record(raw_record)
    if source_kind == "audit":
        return normalize_record(AuditEntry.from_raw(raw_record))
    if source_kind == "system":
        return normalize_record(SystemEvent.from_raw(raw_record))
    if source_kind == "activity":
        return normalize_record(ActivityFeedItem.from_raw(raw_record))
    return _normalize_generic(source_kind, as_record(raw_record))


def normalize_record(record: SourceRecord) -> LogEntry:
    """Normalize an already-parsed source model."""
    if isinstance(record, AuditEntry):
        return _normalize_audit(record)
    if isinstance(record, SystemEvent):
        return _normalize_system(record)
    return _normalize_activity(record)


def normalize_many(source_kind: str, records: Iterable[Any]) -> list[LogEntry]:
    """Normalize records preserving input order."""
    return [normalize(source_kind, record) for record in records]


def normalize_window(source_kind: str, records: Iterable[Any]) -> list[LogEntry]:
    """Normalize one loaded window: unique ids, oldest first.

    Duplicate ids (identical events repeated in one response) collapse to the
    first occurrence. Sorting is stable so equal timestamps keep backend order.
    """
    seen: set[str] = set()
    unique: list[LogEntry] = []
    for entry in normalize_many(source_kind, records):
        if entry.id in seen:
            continue
        seen.add(entry.id)
        unique.append(entry)
    return sorted(unique, key=lambda entry: entry.timestamp)


def coerce_level(value: str | None, default: LogLevel = "info") -> LogLevel:
    """Map a free-form level/severity label onto the closed level set."""
    if not value:
        return default
    candidate = value.strip().lower()
    if candidate in LOG_LEVELS:
        return candidate  # type: ignore[return-value]
    return _LEVEL_ALIASES.get(candidate, default)


def _normalize_audit(record: AuditEntry) -> LogEntry:
    timestamp = record.created_at or EPOCH
    message = _join_parts(
        record.action,
        record.admin_name,
        record.admin_email,
        record.ip_address,
    )
    entry_id = (
        f"audit-{record.id}"
        if record.id
        else _fingerprint_id("audit", record.action, record.admin_id, record.ip_address, timestamp)
    )
    return LogEntry(
        id=entry_id,
        timestamp=timestamp,
        level=coerce_level(record.level),
        message=message,
        source="audit",
    )


def _normalize_system(record: SystemEvent) -> LogEntry:
    timestamp = record.timestamp or EPOCH
    actors = record.primary_user or ""
    if record.secondary_user:
        actors = f"{actors} -> {record.secondary_user}" if actors else record.secondary_user
    message = _join_parts(record.description, actors)
    if record.entity_id:
        # An entity can emit several events within the same second.
        entry_id = _fingerprint_id(
            f"system-{record.type or 'event'}-{record.entity_id}",
            record.status,
            record.description,
            record.primary_user,
            timestamp,
        )
    else:
        entry_id = _fingerprint_id(
            "system", record.type, record.description, record.status, timestamp
        )
    return LogEntry(
        id=entry_id,
        timestamp=timestamp,
        level=coerce_level(record.level, default=_system_status_level(record.status)),
        message=message,
        source=record.type,
    )


def _normalize_activity(record: ActivityFeedItem) -> LogEntry:
    timestamp = record.timestamp or EPOCH
    activity_type = (record.activity_type or "").lower()
    default_level: LogLevel = "error" if activity_type == "emergency" else "info"
    entry_id = (
        f"activity-{record.id}"
        if record.id
        else _fingerprint_id(
            "activity", record.activity_type, record.title, record.description, timestamp
        )
    )
    return LogEntry(
        id=entry_id,
        timestamp=timestamp,
        level=coerce_level(record.level, default=default_level),
        message=_join_parts(record.title, record.description),
        source=record.activity_type,
    )


def _normalize_generic(source_kind: str, record: dict[str, Any]) -> LogEntry:
    timestamp = first_datetime(record, ("timestamp", "created_at", "time")) or EPOCH
    message = first_string(record, ("message", "description", "title"), default="") or ""
    source = first_string(record, ("source", "type"), default=source_kind or None)
    raw_id = first_identifier(record, ("id",))
    entry_id = (
        f"{source_kind or 'log'}-{raw_id}"
        if raw_id
        else _fingerprint_id(source_kind or "log", source, message, None, timestamp)
    )
    return LogEntry(
        id=entry_id,
        timestamp=timestamp,
        level=coerce_level(first_string(record, ("level", "severity"))),
        message=message,
        source=source,
    )


def _system_status_level(status: str | None) -> LogLevel:
    normalized = (status or "").strip().lower()
    if normalized in _SYSTEM_ERROR_STATUSES:
        return "error"
    if normalized in _SYSTEM_WARN_STATUSES:
        return "warn"
    return "info"


def _join_parts(*parts: str | None) -> str:
    return MESSAGE_SEPARATOR.join(part for part in parts if part)


def _fingerprint_id(
    prefix: str,
    first: str | None,
    second: str | None,
    third: str | None,
    timestamp: datetime,
) -> str:
    blob = "\x1f".join([first or "", second or "", third or "", timestamp.isoformat()])
    digest = hashlib.sha1(blob.encode("utf-8")).hexdigest()[:16]
    return f"{prefix}-{digest}"
