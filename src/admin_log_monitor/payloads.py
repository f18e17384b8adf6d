"""Tolerant field extraction for loosely-shaped backend JSON records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


def first_string(
    payload: dict[str, Any],
    keys: tuple[str, ...],
    default: str | None = None,
) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def first_identifier(payload: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    """Return the first usable id value as text; ints are accepted, bools are not."""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def first_int(payload: dict[str, Any], keys: tuple[str, ...]) -> int | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
    return None


def first_datetime(payload: dict[str, Any], keys: tuple[str, ...]) -> datetime | None:
    for key in keys:
        parsed = parse_datetime(payload.get(key))
        if parsed is not None:
            return parsed
    return None


def parse_datetime(value: Any) -> datetime | None:
    """Parse ISO strings, epoch seconds and datetimes into aware UTC datetimes."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=UTC)
        except (ValueError, OSError, OverflowError):
            return None
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    return None


def as_record(value: Any) -> dict[str, Any]:
    """Return ``value`` when it is a JSON object, else an empty record."""
    return value if isinstance(value, dict) else {}
