"""Dashboard-level metrics polled on their own cadences."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from ..exceptions import AdminAPIError
from ..models import DailyKPIs, RealtimeMetrics
from .polling import IntervalPoller


class MetricsSource(Protocol):
    def fetch_realtime_metrics(self) -> RealtimeMetrics: ...

    def fetch_daily_kpis(self) -> DailyKPIs: ...


class DashboardMetricsFeed:
    """Keep the last good realtime/daily snapshot and the last error of each."""

    def __init__(
        self,
        source: MetricsSource,
        logger: logging.Logger,
        *,
        realtime_interval_seconds: float = 60.0,
        daily_interval_seconds: float = 300.0,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.source = source
        self.logger = logger
        self._now_provider = now_provider or (lambda: datetime.now(UTC))
        self.realtime_poller = IntervalPoller(
            "realtime_metrics",
            realtime_interval_seconds,
            now_provider=self._now_provider,
        )
        self.daily_poller = IntervalPoller(
            "daily_kpis",
            daily_interval_seconds,
            now_provider=self._now_provider,
        )
        self.realtime: RealtimeMetrics | None = None
        self.daily: DailyKPIs | None = None
        self.realtime_error: str | None = None
        self.daily_error: str | None = None
        self.realtime_updated_at: datetime | None = None
        self.daily_updated_at: datetime | None = None

    def tick(self, now: datetime | None = None) -> list[str]:
        """Poll whichever metrics are due; returns the names that were refreshed."""
        current = now or self._now_provider()
        refreshed: list[str] = []

        ticket = self.realtime_poller.begin(current)
        if ticket is not None:
            try:
                snapshot = self.source.fetch_realtime_metrics()
            except AdminAPIError as exc:
                if self.realtime_poller.fail(ticket):
                    self.realtime_error = str(exc)
                    self.logger.warning("Realtime metrics poll failed: %s", exc)
            else:
                if self.realtime_poller.complete(ticket):
                    self.realtime = snapshot
                    self.realtime_error = None
                    self.realtime_updated_at = current
                    refreshed.append("realtime")

        ticket = self.daily_poller.begin(current)
        if ticket is not None:
            try:
                kpis = self.source.fetch_daily_kpis()
            except AdminAPIError as exc:
                if self.daily_poller.fail(ticket):
                    self.daily_error = str(exc)
                    self.logger.warning("Daily KPIs poll failed: %s", exc)
            else:
                if self.daily_poller.complete(ticket):
                    self.daily = kpis
                    self.daily_error = None
                    self.daily_updated_at = current
                    refreshed.append("daily")
        return refreshed

    def seconds_until_due(self, now: datetime | None = None) -> float:
        return min(
            self.realtime_poller.seconds_until_due(now),
            self.daily_poller.seconds_until_due(now),
        )

    def close(self) -> None:
        self.realtime_poller.close()
        self.daily_poller.close()
