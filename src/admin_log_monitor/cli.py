"""Operator CLI: browse, tail, export and summarize admin logs."""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Callable
from contextlib import suppress
from datetime import date
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .api_client import AdminLogsClient
from .config import STATS_WINDOW_CHOICES, Settings, load_settings
from .exceptions import AdminAPIError, ConfigError, ExportError
from .log_setup import setup_logger
from .logs.export import write_export
from .logs.metrics import DashboardMetricsFeed
from .logs.monitor import LogMonitor
from .logs.stats import StatsAggregator
from .models import LOG_LEVELS, ActivityStats
from .redaction import sanitize_for_logging, sanitize_text
from .ui.log_viewer import LogViewerPanel
from .ui.monitor_dashboard import TAB_TITLES, MonitorDashboard

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_FETCH_FAILED = 4
EXIT_NO_EXPORT = 5

LEVEL_CHOICES = ["all", *LOG_LEVELS]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Monitor admin audit, system and activity logs.")
    parser.add_argument(
        "--ui-mode",
        choices=["plain", "rich"],
        default="plain",
        help="Terminal output mode; rich enables dashboard panels.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    audit = subparsers.add_parser("audit", help="Show one page of audit logs.")
    audit.add_argument("--search", type=str, default="")
    audit.add_argument("--page", type=int, default=1)
    audit.add_argument("--level", choices=LEVEL_CHOICES, default="all")

    system = subparsers.add_parser("system", help="Show one page of system events.")
    system.add_argument("--type", dest="event_type", type=str, default="all")
    system.add_argument("--search", type=str, default="")
    system.add_argument("--page", type=int, default=1)
    system.add_argument("--level", choices=LEVEL_CHOICES, default="all")

    tail = subparsers.add_parser("tail", help="Live-tail the recent activity feed.")
    tail.add_argument("--cycles", type=int, default=6)
    tail.add_argument("--interval", type=float, default=None)
    tail.add_argument("--level", choices=LEVEL_CHOICES, default="all")
    tail.add_argument("--search", type=str, default="")
    tail.add_argument("--pause-after", type=int, default=None)
    tail.add_argument("--resume-after", type=int, default=None)

    export = subparsers.add_parser("export", help="Export audit logs to CSV.")
    export.add_argument("--start-date", type=date.fromisoformat, default=None)
    export.add_argument("--end-date", type=date.fromisoformat, default=None)
    export.add_argument("--output-dir", type=Path, default=None)

    stats = subparsers.add_parser("stats", help="Show activity statistics.")
    stats.add_argument("--hours", type=int, choices=STATS_WINDOW_CHOICES, default=None)

    subparsers.add_parser("metrics", help="Show realtime metrics and daily KPIs.")
    return parser.parse_args(argv)


def _validate_args(args: argparse.Namespace) -> str | None:
    if getattr(args, "page", 1) <= 0:
        return "--page must be > 0."
    if args.command == "tail":
        if args.cycles <= 0:
            return "--cycles must be > 0."
        if args.interval is not None and args.interval <= 0:
            return "--interval must be > 0."
        if args.pause_after is not None and args.pause_after <= 0:
            return "--pause-after must be > 0."
        if args.resume_after is not None:
            if args.pause_after is None:
                return "--resume-after requires --pause-after."
            if args.resume_after <= args.pause_after:
                return "--resume-after must be greater than --pause-after."
    if args.command == "export" and args.start_date and args.end_date:
        if args.start_date > args.end_date:
            return "--start-date must not be after --end-date."
    return None


def _print_pane(console: Console, monitor: LogMonitor, max_rows: int) -> None:
    tab = monitor.active_tab
    pane = monitor.pane(tab)
    subtitle = None
    if pane.pagination is not None:
        subtitle = f"Page {pane.pagination.current_page} of {pane.pagination.last_page}"
    viewer = LogViewerPanel(title=TAB_TITLES[tab], max_rows=max_rows)
    paused = tab == "activity" and monitor.tail.paused
    console.print(
        viewer.render(
            monitor.visible_entries(tab),
            paused=paused,
            pending=monitor.tail.pending_count if paused else 0,
            subtitle=subtitle,
        )
    )


def _print_stats(console: Console, stats: ActivityStats) -> None:
    top = stats.top_action
    console.print(
        Text(
            f"Total actions: {stats.total_actions} | Active admins: {len(stats.active_admins)} | "
            f"Top action: {f'{top.action} ({top.count})' if top else '-'} | "
            f"Window: {stats.time_range_hours}h"
        )
    )
    if not stats.backend_order_verified:
        console.print(
            "[yellow]actions_by_type arrived unsorted and was re-sorted locally.[/yellow]"
        )
    table = Table(title="Actions by Type")
    table.add_column("Action", overflow="fold")
    table.add_column("Count", justify="right")
    for item in stats.actions_by_type:
        table.add_row(Text(item.action), str(item.count))
    console.print(table)
    if stats.active_admins:
        admins = Table(title="Active Admins")
        admins.add_column("Admin", overflow="fold")
        admins.add_column("Actions", justify="right")
        for admin in stats.active_admins:
            admins.add_row(Text(admin.admin_name), str(admin.action_count))
        console.print(admins)


def _run_page(
    args: argparse.Namespace,
    *,
    client: Any,
    settings: Settings,
    logger: Any,
    console: Console,
    dashboard: MonitorDashboard | None,
) -> int:
    monitor = LogMonitor(client, settings, logger, active_tab=args.command)
    try:
        if args.search:
            monitor.set_search_term(args.search)
        if args.command == "system" and args.event_type:
            monitor.set_filter_type(args.event_type)
        monitor.set_level_filter(args.level)
        if args.page > 1:
            monitor.go_to_page(args.page)
        monitor.refresh_active()

        pane = monitor.pane()
        if pane.pagination is not None and args.page > pane.pagination.last_page:
            logger.warning(
                "Requested page %d is past the last page %d; showing the last page.",
                args.page,
                pane.pagination.last_page,
            )
            monitor.go_to_page(pane.pagination.last_page)
            monitor.refresh_active()
            pane = monitor.pane()

        if dashboard is not None:
            dashboard.render(monitor)
        else:
            _print_pane(console, monitor, settings.tail_max_rows)
        return EXIT_FETCH_FAILED if pane.error else EXIT_OK
    finally:
        monitor.close()


def _run_tail(
    args: argparse.Namespace,
    *,
    client: Any,
    settings: Settings,
    logger: Any,
    console: Console,
    dashboard: MonitorDashboard | None,
) -> int:
    if args.interval is not None:
        settings = settings.model_copy(update={"activity_feed_poll_seconds": args.interval})
    monitor = LogMonitor(client, settings, logger, active_tab="activity")
    try:
        if args.search:
            monitor.set_search_term(args.search)
        monitor.set_level_filter(args.level)
        for cycle in range(1, args.cycles + 1):
            monitor.tick()
            if args.pause_after is not None and cycle == args.pause_after:
                monitor.pause_tail()
            if args.resume_after is not None and cycle == args.resume_after:
                monitor.resume_tail()
            if dashboard is not None:
                dashboard.render(monitor)
            else:
                _print_pane(console, monitor, settings.tail_max_rows)
            if cycle < args.cycles:
                time.sleep(monitor.tail.poller.seconds_until_due())
    finally:
        monitor.close()
    applied = monitor.tail.poller.completed_count
    logger.info(
        "Tail finished cycles=%d applied=%d entries=%d",
        args.cycles,
        applied,
        len(monitor.tail.buffer),
    )
    return EXIT_OK if applied else EXIT_FETCH_FAILED


def _run_export(
    args: argparse.Namespace,
    *,
    client: Any,
    settings: Settings,
    logger: Any,
    console: Console,
    dashboard: MonitorDashboard | None,
) -> int:
    monitor = LogMonitor(client, settings, logger)
    try:
        result = monitor.export(args.start_date, args.end_date)
    finally:
        monitor.close()
    output_dir = args.output_dir or settings.export_dir
    try:
        path = write_export(result, output_dir)
    except ExportError as exc:
        logger.error("Export write failed: %s", exc)
        path = None
    if dashboard is not None:
        dashboard.render_export(result, path)
    elif path is not None:
        console.print(Text(f"Exported {result.row_count} audit entries to {path}"))
    else:
        console.print(f"No export file written ({result.decision_code}).")
    return EXIT_OK if path is not None else EXIT_NO_EXPORT


def _run_stats(
    args: argparse.Namespace,
    *,
    client: Any,
    settings: Settings,
    logger: Any,
    console: Console,
    dashboard: MonitorDashboard | None,
) -> int:
    hours = args.hours or settings.stats_window_hours
    stats = StatsAggregator(client, logger).fetch_stats(hours)
    if dashboard is not None:
        console.print(dashboard.build_stats_panel(stats))
    else:
        _print_stats(console, stats)
    return EXIT_OK


def _run_metrics(
    args: argparse.Namespace,
    *,
    client: Any,
    settings: Settings,
    logger: Any,
    console: Console,
    dashboard: MonitorDashboard | None,
) -> int:
    del args
    feed = DashboardMetricsFeed(
        client,
        logger,
        realtime_interval_seconds=settings.realtime_metrics_poll_seconds,
        daily_interval_seconds=settings.daily_kpis_poll_seconds,
    )
    feed.tick()
    feed.close()
    renderer = dashboard or MonitorDashboard(console=console)
    console.print(renderer.build_metrics_panel(feed))
    if feed.realtime is None and feed.daily is None:
        return EXIT_FETCH_FAILED
    return EXIT_OK


CommandHandler = Callable[..., int]

_COMMANDS: dict[str, CommandHandler] = {
    "audit": _run_page,
    "system": _run_page,
    "tail": _run_tail,
    "export": _run_export,
    "stats": _run_stats,
    "metrics": _run_metrics,
}


def _initialize_dashboard(
    *,
    ui_mode: str,
    console: Console,
    logger: Any,
    max_rows: int,
) -> MonitorDashboard | None:
    """Best-effort rich dashboard setup with safe fallback to plain mode."""
    if ui_mode != "rich":
        return None
    try:
        dashboard = MonitorDashboard(console=console, max_rows=max_rows)
        dashboard.attach_logger(logger)
        return dashboard
    except Exception as exc:  # pragma: no cover - defensive
        logger.warning(
            "Failed to initialize rich dashboard; falling back to plain output: %s",
            sanitize_text(str(exc)),
        )
        return None


def main(argv: list[str] | None = None) -> int:
    """Run one admin log monitor command."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    problem = _validate_args(args)
    if problem is not None:
        logger.error(problem)
        return EXIT_CONFIG

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", sanitize_text(str(exc)))
        return EXIT_CONFIG
    logger.setLevel(settings.log_level)
    logger.debug("Startup config: %s", sanitize_for_logging(settings.safe_summary()))

    dashboard = _initialize_dashboard(
        ui_mode=args.ui_mode,
        console=console,
        logger=logger,
        max_rows=settings.tail_max_rows,
    )
    handler = _COMMANDS[args.command]
    try:
        with AdminLogsClient(settings=settings, logger=logger) as client:
            return handler(
                args,
                client=client,
                settings=settings,
                logger=logger,
                console=console,
                dashboard=dashboard,
            )
    except AdminAPIError as exc:
        logger.error("%s failed: %s", args.command, sanitize_text(str(exc)))
        return EXIT_FETCH_FAILED
    finally:
        if dashboard is not None:
            with suppress(Exception):
                dashboard.detach_logger()


if __name__ == "__main__":
    sys.exit(main())
