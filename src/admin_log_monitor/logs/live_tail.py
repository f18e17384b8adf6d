"""Live tail over the recent-activity window with pause/resume."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from ..exceptions import AdminAPIError
from ..models import LevelFilter, LogEntry
from .filters import apply_filters
from .normalizer import normalize_window
from .polling import IntervalPoller, PollTicket
from .view_state import TailMode

RenderCallback = Callable[[list[LogEntry]], None]
AutoscrollCallback = Callable[[LogEntry | None], None]


class ActivityFeedSource(Protocol):
    def fetch_activity_feed(self, *, minutes: int) -> Sequence[Any]: ...


class LiveTailController:
    """Poll the activity feed and keep the displayed tail consistent.

    LIVE: every accepted poll replaces the buffer with the fresh window and
    the displayed list follows it. PAUSED: the displayed list is frozen at
    pause time while polls keep merging into the buffer by id, so nothing
    delivered during the pause is lost; ``resume()`` shows the merged buffer.
    """

    def __init__(
        self,
        source: ActivityFeedSource,
        logger: logging.Logger,
        *,
        window_minutes: int = 15,
        interval_seconds: float = 10.0,
        on_render: RenderCallback | None = None,
        on_autoscroll: AutoscrollCallback | None = None,
        now_provider: Callable[[], datetime] | None = None,
        sleep_fn: Callable[[float], None] | None = None,
    ) -> None:
        self.source = source
        self.logger = logger
        self.window_minutes = window_minutes
        self._now_provider = now_provider or (lambda: datetime.now(UTC))
        self._sleep = sleep_fn or time.sleep
        self._on_render = on_render
        self._on_autoscroll = on_autoscroll
        self.poller = IntervalPoller(
            "activity_feed",
            interval_seconds,
            now_provider=self._now_provider,
        )
        self._mode: TailMode = "live"
        self._buffer: list[LogEntry] = []
        self._displayed: list[LogEntry] = []
        self.last_error: str | None = None
        self.last_updated_at: datetime | None = None

    @property
    def mode(self) -> TailMode:
        return self._mode

    @property
    def paused(self) -> bool:
        return self._mode == "paused"

    @property
    def buffer(self) -> list[LogEntry]:
        return list(self._buffer)

    @property
    def displayed(self) -> list[LogEntry]:
        return list(self._displayed)

    @property
    def last_seen_id(self) -> str | None:
        return self._displayed[-1].id if self._displayed else None

    @property
    def pending_count(self) -> int:
        """Entries buffered while paused that are not on screen yet."""
        shown = {entry.id for entry in self._displayed}
        return sum(1 for entry in self._buffer if entry.id not in shown)

    def visible(
        self,
        level_filter: LevelFilter | str = "all",
        search_term: str = "",
    ) -> list[LogEntry]:
        return apply_filters(self._displayed, level_filter, search_term)

    def pause(self) -> None:
        if self._mode == "paused":
            return
        self._mode = "paused"
        self.logger.info("Live tail paused entries=%d", len(self._displayed))

    def resume(self) -> None:
        if self._mode == "live":
            return
        self._mode = "live"
        self._displayed = list(self._buffer)
        self.logger.info("Live tail resumed entries=%d", len(self._displayed))
        self._publish()

    def toggle(self) -> TailMode:
        if self.paused:
            self.resume()
        else:
            self.pause()
        return self._mode

    def begin_poll(self, now: datetime | None = None) -> PollTicket | None:
        return self.poller.begin(now)

    def complete_poll(self, ticket: PollTicket, records: Iterable[Any]) -> bool:
        """Apply a fetched window; stale tickets are ignored and return False."""
        if not self.poller.complete(ticket):
            self.logger.debug("Discarding stale activity feed result seq=%d", ticket.sequence)
            return False
        window = normalize_window("activity", records)
        self.last_error = None
        self.last_updated_at = ticket.started_at
        if self._mode == "live":
            self._buffer = window
            self._displayed = list(window)
            self._publish()
        else:
            self._buffer = _merge_by_id(self._buffer, window)
        return True

    def fail_poll(self, ticket: PollTicket, error: Exception) -> bool:
        if not self.poller.fail(ticket):
            return False
        self.last_error = str(error)
        self.logger.warning("Activity feed poll failed: %s", error)
        return True

    def poll_once(self, now: datetime | None = None) -> bool:
        """Run one synchronous poll if due. Returns True when a window was applied."""
        ticket = self.begin_poll(now)
        if ticket is None:
            return False
        try:
            records = self.source.fetch_activity_feed(minutes=self.window_minutes)
        except AdminAPIError as exc:
            self.fail_poll(ticket, exc)
            return False
        return self.complete_poll(ticket, records)

    def run(self, *, cycles: int, on_cycle: Callable[[int], None] | None = None) -> None:
        """Poll ``cycles`` times at the configured cadence."""
        for cycle in range(1, cycles + 1):
            if self.poller.closed:
                break
            self.poll_once()
            if on_cycle is not None:
                on_cycle(cycle)
            if cycle < cycles:
                self._sleep(self.poller.seconds_until_due())

    def suspend(self) -> None:
        """Stop polling while the activity tab is hidden; the buffer is kept."""
        self.poller.suspend()

    def activate(self) -> None:
        self.poller.activate()

    def close(self) -> None:
        self.poller.close()

    def _publish(self) -> None:
        if self._on_render is not None:
            self._on_render(list(self._displayed))
        if self._mode == "live" and self._on_autoscroll is not None:
            self._on_autoscroll(self._displayed[-1] if self._displayed else None)


def _merge_by_id(existing: list[LogEntry], incoming: list[LogEntry]) -> list[LogEntry]:
    merged: dict[str, LogEntry] = {entry.id: entry for entry in existing}
    for entry in incoming:
        merged.setdefault(entry.id, entry)
    return sorted(merged.values(), key=lambda entry: entry.timestamp)
