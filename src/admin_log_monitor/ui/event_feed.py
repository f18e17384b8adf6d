"""Operator event feed: the monitor's own log lines, with repeats collapsed."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime

from ..models import LogLevel
from ..redaction import sanitize_text


@dataclass(slots=True)
class OperatorEvent:
    """One line of the operator feed; ``count`` grows when a warning repeats."""

    ts: datetime
    level: LogLevel
    message: str
    count: int = 1
    last_seen: datetime | None = None
    dedupe_key: str | None = None

    def __post_init__(self) -> None:
        self.ts = self.ts.astimezone(UTC) if self.ts.tzinfo else self.ts.replace(tzinfo=UTC)
        if self.last_seen is None:
            self.last_seen = self.ts


def level_from_record(level_no: int) -> LogLevel:
    if level_no >= logging.ERROR:
        return "error"
    if level_no >= logging.WARNING:
        return "warn"
    if level_no >= logging.INFO:
        return "info"
    return "debug"


class OperatorEventFeed:
    """Bounded feed where identical warn/error lines within a window merge."""

    def __init__(self, *, max_events: int = 50, dedupe_window_seconds: int = 60) -> None:
        self.dedupe_window_seconds = dedupe_window_seconds
        self._events: deque[OperatorEvent] = deque(maxlen=max_events)

    def add(
        self,
        *,
        level: LogLevel,
        message: str,
        ts: datetime | None = None,
    ) -> OperatorEvent:
        now = ts or datetime.now(UTC)
        now = now.astimezone(UTC) if now.tzinfo else now.replace(tzinfo=UTC)
        dedupe_key = f"{level}:{message}" if level in {"warn", "error"} else None

        if dedupe_key is not None:
            for existing in reversed(self._events):
                if existing.dedupe_key != dedupe_key or existing.last_seen is None:
                    continue
                if (now - existing.last_seen).total_seconds() <= self.dedupe_window_seconds:
                    existing.count += 1
                    existing.last_seen = now
                    return existing
                break

        event = OperatorEvent(ts=now, level=level, message=message, dedupe_key=dedupe_key)
        self._events.append(event)
        return event

    def snapshot(self) -> list[OperatorEvent]:
        return list(self._events)

    def count(self, level: LogLevel) -> int:
        """Occurrences of ``level``, weighted by repeat counts."""
        return sum(event.count for event in self._events if event.level == level)


class FeedLogHandler(logging.Handler):
    """Send logger output into the feed instead of JSON lines on the console."""

    def __init__(self, feed: OperatorEventFeed) -> None:
        super().__init__()
        self.feed = feed

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.feed.add(
                level=level_from_record(record.levelno),
                message=sanitize_text(record.getMessage()),
            )
        except Exception:
            self.handleError(record)
