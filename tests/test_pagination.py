"""Pagination controller and view-state transition tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from admin_log_monitor.logs import pagination
from admin_log_monitor.logs.pagination import PaginationController, build_request
from admin_log_monitor.logs.view_state import ViewState, initial_view_state
from admin_log_monitor.models import PaginationMeta


def _with_last_page(state: ViewState, last_page: int, tab: str = "audit") -> ViewState:
    meta = PaginationMeta(total=last_page * 50, per_page=50, current_page=1, last_page=last_page)
    return pagination.apply_pagination(state, tab, meta)  # type: ignore[arg-type]


def _on_page(page: int, last_page: int = 10) -> ViewState:
    state = _with_last_page(initial_view_state(page_size=50), last_page)
    return pagination.go_to_page(state, page)


def test_initial_state_is_page_one_live_audit() -> None:
    state = initial_view_state(page_size=25)
    assert state.active_tab == "audit"
    assert state.tail_mode == "live"
    for tab in ("audit", "system", "activity"):
        assert state.tab(tab).page == 1  # type: ignore[arg-type]
        assert state.tab(tab).page_size == 25  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "change",
    [
        lambda s: pagination.set_search_term(s, "login"),
        lambda s: pagination.set_search_term(s, ""),
        lambda s: pagination.set_filter_type(s, "trip"),
        lambda s: pagination.set_level_filter(s, "error"),
    ],
)
def test_any_filter_or_search_change_resets_page(
    change: Callable[[ViewState], ViewState],
) -> None:
    state = _on_page(4)
    assert state.tab().page == 4
    assert change(state).tab().page == 1


def test_next_and_prev_are_clamped() -> None:
    state = _on_page(1, last_page=2)
    assert pagination.prev_page(state) is state
    on_two = pagination.next_page(state)
    assert on_two.tab().page == 2
    assert pagination.next_page(on_two) is on_two
    assert pagination.prev_page(on_two).tab().page == 1


def test_next_page_is_noop_until_last_page_is_known() -> None:
    state = initial_view_state()
    assert pagination.next_page(state) is state


def test_go_to_page_clamps_into_range() -> None:
    state = _on_page(1, last_page=3)
    assert pagination.go_to_page(state, 99).tab().page == 3
    assert pagination.go_to_page(state, -4).tab().page == 1


def test_switch_tab_keeps_per_tab_state() -> None:
    state = pagination.set_search_term(initial_view_state(), "refund")
    state = pagination.switch_tab(state, "system")
    state = pagination.set_filter_type(state, "payment")
    state = pagination.switch_tab(state, "audit")
    assert state.active_tab == "audit"
    assert state.tab("audit").search_term == "refund"
    assert state.tab("system").filter_type == "payment"


def test_transitions_do_not_mutate_previous_state() -> None:
    before = initial_view_state()
    after = pagination.set_search_term(before, "x")
    assert before.tab().search_term == ""
    assert after.tab().search_term == "x"


def test_build_request_sends_only_server_side_parameters() -> None:
    state = pagination.set_search_term(initial_view_state(page_size=20), "  login ")
    audit = build_request(state, "audit", 1)
    assert audit.params() == {"page": 1, "per_page": 20, "search": "login"}

    state = pagination.switch_tab(state, "system")
    state = pagination.set_filter_type(state, "all")
    assert build_request(state, "system", 1).params() == {"page": 1, "per_page": 20}
    state = pagination.set_filter_type(state, "trip")
    assert build_request(state, "system", 2).params() == {
        "page": 1,
        "per_page": 20,
        "type": "trip",
    }


def test_controller_never_fetches_inactive_or_unpaginated_tabs() -> None:
    controller = PaginationController()
    state = initial_view_state()
    assert controller.begin(state, "system") is None
    activity = pagination.switch_tab(state, "activity")
    assert controller.begin(activity) is None
    assert controller.begin(state) is not None


def test_stale_response_for_old_parameters_is_rejected() -> None:
    controller = PaginationController()
    state = initial_view_state()
    old_request = controller.begin(state)
    state = pagination.set_search_term(state, "login")
    new_request = controller.begin(state)
    assert old_request is not None and new_request is not None

    assert controller.accepts(state, new_request)
    controller.mark_applied(new_request)
    assert not controller.accepts(state, old_request)


def test_older_generation_with_same_parameters_is_rejected_after_newer_applied() -> None:
    controller = PaginationController()
    state = initial_view_state()
    first = controller.begin(state)
    second = controller.begin(state)
    assert first is not None and second is not None
    controller.mark_applied(second)
    assert not controller.accepts(state, first)
    assert controller.latest_generation("audit") == 2
