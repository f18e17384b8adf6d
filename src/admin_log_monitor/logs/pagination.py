"""Server-side page cursor per tab, with stale-page and stale-response guards."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from ..models import LevelFilter, PaginationMeta
from .view_state import PAGINATED_TABS, Tab, TabState, ViewState


@dataclass(frozen=True, slots=True)
class PageRequest:
    """Parameters of one issued page fetch, used to match its response."""

    tab: Tab
    page: int
    per_page: int
    search: str | None
    filter_type: str | None
    generation: int

    def params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"page": self.page, "per_page": self.per_page}
        if self.search:
            params["search"] = self.search
        if self.filter_type:
            params["type"] = self.filter_type
        return params

    def matches(self, tab_state: TabState) -> bool:
        return (
            self.page == tab_state.page
            and self.per_page == tab_state.page_size
            and self.search == _server_search(self.tab, tab_state)
            and self.filter_type == _server_filter_type(self.tab, tab_state)
        )


def switch_tab(state: ViewState, tab: Tab) -> ViewState:
    """Activate ``tab``; every tab keeps its own filters and page."""
    return replace(state, active_tab=tab)


def set_search_term(state: ViewState, term: str, tab: Tab | None = None) -> ViewState:
    target = tab or state.active_tab
    return state.with_tab(target, replace(state.tab(target), search_term=term, page=1))


def set_filter_type(state: ViewState, filter_type: str, tab: Tab | None = None) -> ViewState:
    target = tab or state.active_tab
    normalized = filter_type.strip() or "all"
    return state.with_tab(
        target, replace(state.tab(target), filter_type=normalized, page=1)
    )


def set_level_filter(
    state: ViewState,
    level_filter: LevelFilter,
    tab: Tab | None = None,
) -> ViewState:
    target = tab or state.active_tab
    return state.with_tab(
        target, replace(state.tab(target), level_filter=level_filter, page=1)
    )


def can_go_next(state: ViewState, tab: Tab | None = None) -> bool:
    tab_state = state.tab(tab)
    return tab_state.last_page is not None and tab_state.page < tab_state.last_page


def can_go_prev(state: ViewState, tab: Tab | None = None) -> bool:
    return state.tab(tab).page > 1


def next_page(state: ViewState, tab: Tab | None = None) -> ViewState:
    """Advance one page; a no-op on the last page reported by the backend."""
    target = tab or state.active_tab
    if not can_go_next(state, target):
        return state
    tab_state = state.tab(target)
    return state.with_tab(target, replace(tab_state, page=tab_state.page + 1))


def prev_page(state: ViewState, tab: Tab | None = None) -> ViewState:
    """Go back one page; a no-op on page 1."""
    target = tab or state.active_tab
    if not can_go_prev(state, target):
        return state
    tab_state = state.tab(target)
    return state.with_tab(target, replace(tab_state, page=tab_state.page - 1))


def go_to_page(state: ViewState, page: int, tab: Tab | None = None) -> ViewState:
    """Jump to ``page`` clamped into ``[1, last_page]``."""
    target = tab or state.active_tab
    tab_state = state.tab(target)
    upper = tab_state.last_page if tab_state.last_page is not None else max(page, 1)
    clamped = min(max(page, 1), upper)
    if clamped == tab_state.page:
        return state
    return state.with_tab(target, replace(tab_state, page=clamped))


def build_request(state: ViewState, tab: Tab, generation: int) -> PageRequest:
    """Snapshot the server-side parameters of ``tab`` into a request."""
    tab_state = state.tab(tab)
    return PageRequest(
        tab=tab,
        page=tab_state.page,
        per_page=tab_state.page_size,
        search=_server_search(tab, tab_state),
        filter_type=_server_filter_type(tab, tab_state),
        generation=generation,
    )


def apply_pagination(state: ViewState, tab: Tab, meta: PaginationMeta) -> ViewState:
    """Record the backend-reported last page for ``tab``."""
    return state.with_tab(tab, replace(state.tab(tab), last_page=meta.last_page))


class PaginationController:
    """Issue page requests and decide whether their responses may be applied.

    A response is applied only when its request parameters equal the tab's
    current parameters and no newer response for the tab was applied already.
    """

    def __init__(self) -> None:
        self._issued: dict[Tab, int] = {}
        self._applied: dict[Tab, int] = {}

    def begin(self, state: ViewState, tab: Tab | None = None) -> PageRequest | None:
        """Build the next request for ``tab``; inactive or unpaginated tabs get None."""
        target = tab or state.active_tab
        if target != state.active_tab or target not in PAGINATED_TABS:
            return None
        generation = self._issued.get(target, 0) + 1
        self._issued[target] = generation
        return build_request(state, target, generation)

    def accepts(self, state: ViewState, request: PageRequest) -> bool:
        if request.generation < self._applied.get(request.tab, 0):
            return False
        return request.matches(state.tab(request.tab))

    def mark_applied(self, request: PageRequest) -> None:
        self._applied[request.tab] = max(self._applied.get(request.tab, 0), request.generation)

    def latest_generation(self, tab: Tab) -> int:
        return self._issued.get(tab, 0)


def _server_search(tab: Tab, tab_state: TabState) -> str | None:
    if tab != "audit":
        return None
    term = tab_state.search_term.strip()
    return term or None


def _server_filter_type(tab: Tab, tab_state: TabState) -> str | None:
    if tab != "system" or tab_state.filter_type == "all":
        return None
    return tab_state.filter_type
