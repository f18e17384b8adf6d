"""Operator-facing terminal dashboard for a log monitoring session."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..logs.export import ExportResult
from ..logs.metrics import DashboardMetricsFeed
from ..logs.monitor import LogMonitor
from ..models import ActivityStats
from .event_feed import FeedLogHandler, OperatorEventFeed
from .log_viewer import LogViewerPanel

TIME_RANGE_LABELS = {
    1: "Last Hour",
    6: "Last 6 Hours",
    24: "Last 24 Hours",
    168: "Last 7 Days",
}

TAB_TITLES = {
    "audit": "Audit Logs",
    "system": "System Events",
    "activity": "Live Activity",
}


class MonitorDashboard:
    """Rich-rendered view of the active tab, stats, metrics and operator feed."""

    def __init__(
        self,
        *,
        console: Console,
        max_rows: int = 200,
        max_events: int = 50,
    ) -> None:
        self.console = console
        self.max_rows = max_rows
        self.events = OperatorEventFeed(max_events=max_events)
        self._logger: logging.Logger | None = None
        self._original_handlers: list[logging.Handler] = []

    def attach_logger(self, logger: logging.Logger) -> None:
        """Replace the JSON console handler with the operator feed."""
        self._logger = logger
        self._original_handlers = list(logger.handlers)
        logger.handlers = [FeedLogHandler(self.events)]

    def detach_logger(self) -> None:
        if self._logger is None:
            return
        self._logger.handlers = self._original_handlers
        self._logger = None
        self._original_handlers = []

    def render(
        self,
        monitor: LogMonitor,
        *,
        metrics: DashboardMetricsFeed | None = None,
        now: datetime | None = None,
    ) -> None:
        self.console.print(self.build(monitor, metrics=metrics, now=now))

    def build(
        self,
        monitor: LogMonitor,
        *,
        metrics: DashboardMetricsFeed | None = None,
        now: datetime | None = None,
    ) -> Group:
        parts = [self._build_header_panel(monitor, now=now)]
        if monitor.stats is not None or monitor.stats_error:
            parts.append(self.build_stats_panel(monitor.stats, error=monitor.stats_error))
        if metrics is not None:
            parts.append(self.build_metrics_panel(metrics))
        parts.append(self.build_pane_panel(monitor))
        if self.events.snapshot():
            parts.append(self._build_events_panel())
        return Group(*parts)

    def build_pane_panel(self, monitor: LogMonitor) -> Panel:
        tab = monitor.active_tab
        pane = monitor.pane(tab)
        viewer = LogViewerPanel(title=TAB_TITLES[tab], max_rows=self.max_rows)
        if pane.error:
            return Panel(
                Text(f"Failed to load {TAB_TITLES[tab].lower()}: {pane.error}", style="red"),
                title=TAB_TITLES[tab],
                border_style="red",
            )
        subtitle = None
        if pane.pagination is not None:
            subtitle = (
                f"Page {pane.pagination.current_page} of {pane.pagination.last_page}"
                f"  ({pane.pagination.total} total)"
            )
        paused = tab == "activity" and monitor.tail.paused
        return viewer.render(
            monitor.visible_entries(tab),
            paused=paused,
            pending=monitor.tail.pending_count if paused else 0,
            subtitle=subtitle,
        )

    def build_stats_panel(self, stats: ActivityStats | None, *, error: str | None = None) -> Panel:
        if stats is None:
            return Panel(Text(error or "No stats loaded", style="red"), title="Activity Stats")
        top = stats.top_action
        cards = [
            self._stat_card("Total Actions", str(stats.total_actions)),
            self._stat_card("Active Admins", str(len(stats.active_admins))),
            self._stat_card(
                "Top Action",
                f"{top.action}\n{top.count} times" if top is not None else "No data",
            ),
            self._stat_card(
                "Time Range",
                TIME_RANGE_LABELS.get(stats.time_range_hours, f"Last {stats.time_range_hours}h"),
            ),
        ]
        border = "cyan" if stats.backend_order_verified else "yellow"
        return Panel(
            Columns(cards, equal=True, expand=True),
            title="Activity Stats",
            border_style=border,
        )

    def build_metrics_panel(self, metrics: DashboardMetricsFeed) -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column(justify="right")
        realtime = metrics.realtime
        daily = metrics.daily
        if realtime is not None:
            table.add_row("Active Trips", str(realtime.trips.active))
            table.add_row("Searching", str(realtime.trips.searching))
            table.add_row(
                "Online Drivers",
                f"{realtime.drivers.online} ({realtime.drivers.utilization_percent:.0f}% busy)",
            )
            marketplace = realtime.marketplace
            table.add_row(
                "Liquidity",
                Text(f"{marketplace.liquidity_ratio:.2f} {marketplace.liquidity_status}"),
            )
            table.add_row("Hourly GMV", f"${realtime.marketplace.hourly_gmv:,.2f}")
        elif metrics.realtime_error:
            table.add_row("Realtime", Text(metrics.realtime_error, style="red"))
        if daily is not None:
            table.add_row(
                "Trips Today",
                f"{daily.trips.completed}/{daily.trips.total_requests} "
                f"({daily.trips.completion_rate:.1f}%)",
            )
            table.add_row("Gross GMV", f"${daily.revenue.gross_gmv:,.2f}")
            table.add_row("Platform Revenue", f"${daily.revenue.platform_revenue:,.2f}")
            table.add_row(
                "Ratings",
                f"rider {daily.quality.avg_rider_rating:.2f} / "
                f"driver {daily.quality.avg_driver_rating:.2f}",
            )
        elif metrics.daily_error:
            table.add_row("Daily KPIs", Text(metrics.daily_error, style="red"))
        if realtime is None and daily is None and not (
            metrics.realtime_error or metrics.daily_error
        ):
            table.add_row("Metrics", "Loading...")
        return Panel(table, title="Platform Metrics", border_style="magenta")

    def render_export(self, result: ExportResult, path: Path | None) -> None:
        if result.ok and path is not None:
            self.console.print(
                Panel(
                    Text(
                        f"Exported {result.row_count} audit entries "
                        f"({result.start_date} to {result.end_date}) to {path}"
                    ),
                    title="Export",
                    border_style="green",
                )
            )
            return
        reason = "; ".join(result.reasons) or result.decision_code
        self.console.print(
            Panel(
                Text(f"No file written: {result.decision_code} ({reason})"),
                title="Export",
                border_style="red",
            )
        )

    def _build_header_panel(self, monitor: LogMonitor, *, now: datetime | None = None) -> Panel:
        current = now or datetime.now(UTC)
        current = current.astimezone(UTC) if current.tzinfo else current.replace(tzinfo=UTC)
        tab_state = monitor.state.tab()
        text = Text()
        text.append("Admin Log Monitor", style="bold white")
        text.append("  |  ")
        text.append(f"tab={monitor.active_tab}", style="bold cyan")
        if monitor.active_tab == "activity":
            mode_style = "yellow" if monitor.tail.paused else "green"
            text.append("  ")
            text.append(f"tail={monitor.tail.mode}", style=mode_style)
        text.append("  ")
        text.append(f"level={tab_state.level_filter}", style="blue")
        if tab_state.search_term:
            text.append("  ")
            text.append(f"search={tab_state.search_term!r}", style="blue")
        if monitor.active_tab == "system" and tab_state.filter_type != "all":
            text.append("  ")
            text.append(f"type={tab_state.filter_type}", style="blue")
        text.append("  ")
        text.append(current.strftime("%Y-%m-%d %H:%M:%SZ"), style="dim")
        return Panel(text, border_style="blue", title="Session")

    def _build_events_panel(self) -> Panel:
        table = Table(show_header=True, header_style="bold")
        table.add_column("UTC", width=9)
        table.add_column("Level", width=6)
        table.add_column("Message", overflow="fold")
        styles = {"info": "white", "warn": "yellow", "error": "red", "debug": "dim"}
        for event in self.events.snapshot()[-10:]:
            style = styles[event.level]
            message = event.message
            if event.count > 1 and event.last_seen is not None:
                message = f"{message} (x{event.count}, last {event.last_seen:%H:%M:%SZ})"
            table.add_row(
                event.ts.strftime("%H:%M:%S"),
                Text(event.level.upper(), style=style),
                Text(message),
            )
        return Panel(table, title="Operator Feed", border_style="white")

    @staticmethod
    def _stat_card(label: str, value: str) -> Panel:
        body = Text()
        body.append(f"{label}\n", style="dim")
        body.append(value, style="bold")
        return Panel(body, border_style="bright_black")
