"""Read-through of precomputed activity statistics with a verified top action."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from ..config import STATS_WINDOW_CHOICES
from ..models import ActionTypeCount, ActiveAdmin, ActivityStats, TimeBucket
from ..payloads import as_record, first_identifier, first_int, first_string


class ActivityStatsSource(Protocol):
    def fetch_activity_stats_raw(self, *, hours: int) -> dict[str, Any]: ...


class StatsAggregator:
    """Fetch activity stats and never trust the backend's ordering blindly."""

    def __init__(self, source: ActivityStatsSource, logger: logging.Logger) -> None:
        self.source = source
        self.logger = logger

    def fetch_stats(self, window_hours: int) -> ActivityStats:
        if window_hours not in STATS_WINDOW_CHOICES:
            raise ValueError(
                f"window_hours must be one of {', '.join(map(str, STATS_WINDOW_CHOICES))}"
            )
        raw = self.source.fetch_activity_stats_raw(hours=window_hours)
        return build_activity_stats(raw, window_hours=window_hours, logger=self.logger)


def build_activity_stats(
    raw: Any,
    *,
    window_hours: int,
    logger: logging.Logger | None = None,
) -> ActivityStats:
    record = as_record(raw)
    actions = [
        ActionTypeCount(
            action=first_string(item, ("action", "action_type"), default="(unknown)")
            or "(unknown)",
            count=first_int(item, ("count",)) or 0,
        )
        for item in _records(record.get("actions_by_type"))
    ]
    ordered, verified = verify_descending(actions)
    if not verified and logger is not None:
        logger.warning(
            "actions_by_type was not sorted by count; re-sorted locally (%d items)",
            len(actions),
        )

    admins = [
        ActiveAdmin(
            admin_id=first_identifier(item, ("admin_id", "id")),
            admin_name=first_string(item, ("admin_name", "name"), default="(unknown admin)")
            or "(unknown admin)",
            action_count=first_int(item, ("action_count", "count")) or 0,
        )
        for item in _records(record.get("active_admins"))
    ]
    buckets = [
        TimeBucket(
            hour=first_string(item, ("hour", "bucket"), default="") or "",
            count=first_int(item, ("count",)) or 0,
        )
        for item in _records(record.get("actions_over_time"))
    ]
    total = first_int(record, ("total_actions", "total"))
    if total is None:
        total = sum(item.count for item in ordered)
    time_range = first_int(record, ("time_range_hours", "hours")) or window_hours

    return ActivityStats(
        total_actions=total,
        actions_by_type=ordered,
        active_admins=admins,
        actions_over_time=buckets,
        time_range_hours=time_range,
        top_action=ordered[0] if ordered else None,
        backend_order_verified=verified,
    )


def verify_descending(actions: list[ActionTypeCount]) -> tuple[list[ActionTypeCount], bool]:
    """Return ``actions`` sorted by count descending and whether it already was.

    The re-sort is stable, so ties keep the backend's relative order.
    """
    already_sorted = all(
        actions[index].count >= actions[index + 1].count for index in range(len(actions) - 1)
    )
    if already_sorted:
        return list(actions), True
    return sorted(actions, key=lambda item: item.count, reverse=True), False


def _records(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]
