"""Fixed-cadence poll scheduling with at-most-one request in flight."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


@dataclass(frozen=True, slots=True)
class PollTicket:
    """Handle for one started poll; completions must present the current ticket."""

    poller: str
    sequence: int
    started_at: datetime


class IntervalPoller:
    """Track when a source is due and which poll, if any, is outstanding.

    The poller never performs I/O itself. Callers ask for a ticket with
    ``begin()``, do the fetch, then report ``complete()`` or ``fail()``.
    A completion is accepted only for the outstanding ticket of an active,
    unclosed poller; anything else is stale and must be discarded.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        *,
        now_provider: Callable[[], datetime] | None = None,
        start_active: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self.interval = timedelta(seconds=interval_seconds)
        self._now_provider = now_provider or (lambda: datetime.now(UTC))
        self._active = start_active
        self._closed = False
        self._sequence = 0
        self._in_flight: PollTicket | None = None
        self._next_due_at: datetime | None = None
        self.completed_count = 0
        self.failed_count = 0

    @property
    def active(self) -> bool:
        return self._active and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> PollTicket | None:
        return self._in_flight

    @property
    def next_due_at(self) -> datetime | None:
        return self._next_due_at

    def due(self, now: datetime | None = None) -> bool:
        if not self.active or self._in_flight is not None:
            return False
        if self._next_due_at is None:
            return True
        return self._now(now) >= self._next_due_at

    def seconds_until_due(self, now: datetime | None = None) -> float:
        if self._next_due_at is None:
            return 0.0
        remaining = (self._next_due_at - self._now(now)).total_seconds()
        return max(0.0, remaining)

    def begin(self, now: datetime | None = None) -> PollTicket | None:
        """Start a poll if one is due; otherwise return None."""
        current = self._now(now)
        if not self.due(current):
            return None
        self._sequence += 1
        ticket = PollTicket(poller=self.name, sequence=self._sequence, started_at=current)
        self._in_flight = ticket
        self._next_due_at = current + self.interval
        return ticket

    def is_current(self, ticket: PollTicket) -> bool:
        return self.active and self._in_flight == ticket

    def complete(self, ticket: PollTicket) -> bool:
        """Accept a successful completion; False means the result is stale."""
        if not self.is_current(ticket):
            return False
        self._in_flight = None
        self.completed_count += 1
        return True

    def fail(self, ticket: PollTicket) -> bool:
        if not self.is_current(ticket):
            return False
        self._in_flight = None
        self.failed_count += 1
        return True

    def suspend(self) -> None:
        """Stop scheduling; an outstanding poll becomes stale."""
        self._active = False
        self._in_flight = None

    def activate(self) -> None:
        """Resume scheduling with an immediate poll."""
        if self._closed:
            return
        self._active = True
        self._in_flight = None
        self._next_due_at = None

    def close(self) -> None:
        self._closed = True
        self._active = False
        self._in_flight = None

    def _now(self, now: datetime | None) -> datetime:
        value = now or self._now_provider()
        return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)
