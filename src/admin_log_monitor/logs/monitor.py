"""One log-monitoring session: tabs, panes, live tail, stats and export."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Any

from ..exceptions import AdminAPIError
from ..models import (
    ActivityStats,
    AuditLogPage,
    LevelFilter,
    LogEntry,
    PaginationMeta,
    SystemLogPage,
)
from . import pagination
from .export import AuditExporter, ExportResult
from .filters import apply_filters
from .live_tail import AutoscrollCallback, LiveTailController
from .normalizer import normalize_many
from .pagination import PageRequest, PaginationController
from .stats import StatsAggregator
from .view_state import PAGINATED_TABS, Tab, ViewState, initial_view_state

PaneRenderCallback = Callable[[Tab, "PaneState"], None]


@dataclass(slots=True)
class PaneState:
    """What one tab currently shows; replaced as a whole on every update."""

    entries: list[LogEntry] = field(default_factory=list)
    pagination: PaginationMeta | None = None
    error: str | None = None
    loading: bool = False
    updated_at: datetime | None = None


class LogMonitor:
    """Drive the log view from explicit events and ``tick()`` calls.

    Network calls are split into begin/complete pairs so a slow response for
    parameters the user already changed is discarded instead of overwriting
    newer data. A failed fetch only affects the pane that issued it.
    """

    def __init__(
        self,
        client: Any,
        settings: Any,
        logger: logging.Logger,
        *,
        active_tab: Tab = "audit",
        on_pane_update: PaneRenderCallback | None = None,
        on_autoscroll: AutoscrollCallback | None = None,
        now_provider: Callable[[], datetime] | None = None,
        sleep_fn: Callable[[float], None] | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.logger = logger
        self._now_provider = now_provider or (lambda: datetime.now(UTC))
        self._sleep = sleep_fn or time.sleep
        self._on_pane_update = on_pane_update
        self.state: ViewState = initial_view_state(
            page_size=settings.logs_page_size,
            active_tab=active_tab,
        )
        self.pager = PaginationController()
        self.panes: dict[Tab, PaneState] = {
            "audit": PaneState(),
            "system": PaneState(),
            "activity": PaneState(),
        }
        self._dirty: set[Tab] = set(PAGINATED_TABS)
        self._closed = False

        self.tail = LiveTailController(
            client,
            logger,
            window_minutes=settings.activity_feed_window_minutes,
            interval_seconds=settings.activity_feed_poll_seconds,
            on_render=self._on_tail_render,
            on_autoscroll=on_autoscroll,
            now_provider=self._now_provider,
            sleep_fn=self._sleep,
        )
        if active_tab != "activity":
            self.tail.suspend()

        self.stats_aggregator = StatsAggregator(client, logger)
        self.stats: ActivityStats | None = None
        self.stats_error: str | None = None
        self.stats_window_hours: int = settings.stats_window_hours
        self.exporter = AuditExporter(
            client,
            logger,
            trailing_days=settings.export_trailing_days,
            now_provider=self._now_provider,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_tab(self) -> Tab:
        return self.state.active_tab

    def pane(self, tab: Tab | None = None) -> PaneState:
        return self.panes[tab or self.state.active_tab]

    def needs_refresh(self, tab: Tab) -> bool:
        return tab in self._dirty

    def visible_entries(self, tab: Tab | None = None) -> list[LogEntry]:
        """Entries of ``tab`` after the tab's level filter and search.

        The audit search is already applied by the backend, which also matches
        fields the normalized message does not carry, so audit rows are only
        filtered by level here.
        """
        target = tab or self.state.active_tab
        tab_state = self.state.tab(target)
        if target == "activity":
            return self.tail.visible(tab_state.level_filter, tab_state.search_term)
        search_term = "" if target == "audit" else tab_state.search_term
        return apply_filters(self.panes[target].entries, tab_state.level_filter, search_term)

    # User events.

    def switch_tab(self, tab: Tab) -> ViewState:
        if self._closed or tab == self.state.active_tab:
            return self.state
        self._transition(pagination.switch_tab(self.state, tab))
        if tab == "activity":
            self.tail.activate()
        else:
            self.tail.suspend()
        return self.state

    def set_search_term(self, term: str) -> ViewState:
        return self._transition(pagination.set_search_term(self.state, term))

    def set_filter_type(self, filter_type: str) -> ViewState:
        return self._transition(pagination.set_filter_type(self.state, filter_type))

    def set_level_filter(self, level_filter: LevelFilter) -> ViewState:
        return self._transition(pagination.set_level_filter(self.state, level_filter))

    def next_page(self) -> ViewState:
        return self._transition(pagination.next_page(self.state))

    def prev_page(self) -> ViewState:
        return self._transition(pagination.prev_page(self.state))

    def go_to_page(self, page: int) -> ViewState:
        return self._transition(pagination.go_to_page(self.state, page))

    def pause_tail(self) -> ViewState:
        self.tail.pause()
        return self._sync_tail_state()

    def resume_tail(self) -> ViewState:
        self.tail.resume()
        return self._sync_tail_state()

    # Page fetches.

    def begin_page_fetch(self, tab: Tab | None = None) -> PageRequest | None:
        if self._closed:
            return None
        request = self.pager.begin(self.state, tab)
        if request is None:
            return None
        self._dirty.discard(request.tab)
        self._set_pane(request.tab, replace(self.panes[request.tab], loading=True))
        return request

    def complete_page_fetch(
        self,
        request: PageRequest,
        page: AuditLogPage | SystemLogPage,
    ) -> bool:
        """Apply a page response; False when it was stale or the session closed."""
        if self._closed or not self.pager.accepts(self.state, request):
            self.logger.debug(
                "Discarding stale %s page response gen=%d page=%d",
                request.tab,
                request.generation,
                request.page,
            )
            return False
        self.pager.mark_applied(request)
        entries = normalize_many(request.tab, page.records)
        self.state = pagination.apply_pagination(self.state, request.tab, page.pagination)
        self._set_pane(
            request.tab,
            PaneState(
                entries=entries,
                pagination=page.pagination,
                error=None,
                loading=False,
                updated_at=self._now_provider(),
            ),
        )
        return True

    def fail_page_fetch(self, request: PageRequest, error: Exception) -> bool:
        if self._closed or not self.pager.accepts(self.state, request):
            return False
        self.pager.mark_applied(request)
        self.logger.warning("%s logs fetch failed: %s", request.tab, error)
        self._set_pane(
            request.tab,
            PaneState(error=str(error), loading=False, updated_at=self._now_provider()),
        )
        return True

    def refresh_active(self) -> bool:
        """Fetch the active tab's current page synchronously."""
        request = self.begin_page_fetch()
        if request is None:
            return False
        try:
            page = self._fetch_page(request)
        except AdminAPIError as exc:
            self.fail_page_fetch(request, exc)
            return False
        return self.complete_page_fetch(request, page)

    # Stats and export.

    def load_stats(self, window_hours: int | None = None) -> ActivityStats | None:
        if self._closed:
            return self.stats
        hours = window_hours or self.stats_window_hours
        try:
            stats = self.stats_aggregator.fetch_stats(hours)
        except AdminAPIError as exc:
            self.stats_error = str(exc)
            self.logger.warning("Activity stats fetch failed: %s", exc)
            return None
        self.stats_window_hours = hours
        self.stats = stats
        self.stats_error = None
        return stats

    def export(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ExportResult:
        """Export the unfiltered audit range; view state is not consulted or changed."""
        return self.exporter.export_range(start_date, end_date)

    # Loop.

    def tick(self, now: datetime | None = None) -> None:
        """Refresh whatever is due for the active tab."""
        if self._closed:
            return
        active = self.state.active_tab
        if active in PAGINATED_TABS and active in self._dirty:
            self.refresh_active()
        elif active == "activity":
            self.tail.poll_once(now)
            self._sync_tail_state()

    def close(self) -> None:
        """Tear down: cancel polling and ignore every later completion."""
        self._closed = True
        self.tail.close()

    def _fetch_page(self, request: PageRequest) -> AuditLogPage | SystemLogPage:
        if request.tab == "audit":
            return self.client.fetch_audit_logs(
                page=request.page,
                per_page=request.per_page,
                search=request.search,
            )
        return self.client.fetch_system_logs(
            page=request.page,
            per_page=request.per_page,
            event_type=request.filter_type,
        )

    def _transition(self, new_state: ViewState) -> ViewState:
        if self._closed:
            return self.state
        for tab in PAGINATED_TABS:
            before = pagination.build_request(self.state, tab, 0)
            after = pagination.build_request(new_state, tab, 0)
            if before != after:
                self._dirty.add(tab)
        self.state = new_state
        return self.state

    def _sync_tail_state(self) -> ViewState:
        state = replace(self.state, tail_mode=self.tail.mode)
        self.state = state.with_last_seen("activity", self.tail.last_seen_id)
        pane = self.panes["activity"]
        if pane.error != self.tail.last_error:
            self._set_pane("activity", replace(pane, error=self.tail.last_error))
        return self.state

    def _on_tail_render(self, entries: list[LogEntry]) -> None:
        if self._closed:
            return
        self._set_pane(
            "activity",
            PaneState(
                entries=entries,
                error=None,
                loading=False,
                updated_at=self.tail.last_updated_at,
            ),
        )

    def _set_pane(self, tab: Tab, pane: PaneState) -> None:
        self.panes[tab] = pane
        if self._on_pane_update is not None:
            self._on_pane_update(tab, pane)
