"""Immutable per-session view state shared by the pagination and tail controllers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Literal

from ..models import LevelFilter

Tab = Literal["audit", "system", "activity"]
TailMode = Literal["live", "paused"]

TABS: tuple[Tab, ...] = ("audit", "system", "activity")
PAGINATED_TABS: tuple[Tab, ...] = ("audit", "system")


@dataclass(frozen=True, slots=True)
class TabState:
    """Filters and page cursor owned by one tab."""

    page: int = 1
    page_size: int = 50
    search_term: str = ""
    filter_type: str = "all"
    level_filter: LevelFilter = "all"
    last_page: int | None = None


@dataclass(frozen=True, slots=True)
class ViewState:
    """Whole-view state; every transition returns a new instance."""

    active_tab: Tab = "audit"
    tabs: Mapping[Tab, TabState] = field(default_factory=dict)
    tail_mode: TailMode = "live"
    last_seen_ids: Mapping[str, str | None] = field(default_factory=dict)

    def tab(self, tab: Tab | None = None) -> TabState:
        return self.tabs.get(tab or self.active_tab, TabState())

    def with_tab(self, tab: Tab, tab_state: TabState) -> ViewState:
        tabs = dict(self.tabs)
        tabs[tab] = tab_state
        return replace(self, tabs=tabs)

    def with_last_seen(self, tail: str, entry_id: str | None) -> ViewState:
        last_seen = dict(self.last_seen_ids)
        last_seen[tail] = entry_id
        return replace(self, last_seen_ids=last_seen)

    @property
    def paused(self) -> bool:
        return self.tail_mode == "paused"


def initial_view_state(*, page_size: int = 50, active_tab: Tab = "audit") -> ViewState:
    """Fresh state created when the log view is activated."""
    return ViewState(
        active_tab=active_tab,
        tabs={tab: TabState(page_size=page_size) for tab in TABS},
        tail_mode="live",
        last_seen_ids={},
    )
