"""Typed models for backend log records, the canonical entry, and page metadata."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .payloads import (
    as_record,
    first_datetime,
    first_identifier,
    first_int,
    first_string,
)

LogLevel = Literal["info", "warn", "error", "debug"]
LevelFilter = Literal["all", "info", "warn", "error", "debug"]
SourceKind = Literal["audit", "system", "activity"]

LOG_LEVELS: tuple[LogLevel, ...] = ("info", "warn", "error", "debug")


class LogEntry(BaseModel):
    """Canonical, source-agnostic log line shown by every log pane."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable identifier used for de-duplication across polls")
    timestamp: datetime = Field(description="Event time in UTC")
    level: LogLevel = "info"
    message: str = ""
    source: str | None = Field(default=None, description="Subsystem or activity type")

    @property
    def display_time(self) -> str:
        return self.timestamp.strftime("%H:%M:%S")


class AuditEntry(BaseModel):
    """One administrative action recorded by the backend."""

    id: str | None = None
    admin_id: str | None = None
    admin_name: str | None = None
    admin_email: str | None = None
    action: str | None = None
    metadata: Any = None
    ip_address: str | None = None
    created_at: datetime | None = None
    level: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> AuditEntry:
        record = as_record(raw)
        return cls(
            id=first_identifier(record, ("id", "audit_id", "log_id")),
            admin_id=first_identifier(record, ("admin_id", "user_id")),
            admin_name=first_string(record, ("admin_name", "name", "admin")),
            admin_email=first_string(record, ("admin_email", "email")),
            action=first_string(record, ("action", "event", "action_type")),
            metadata=record.get("metadata"),
            ip_address=first_string(record, ("ip_address", "ip", "remote_addr")),
            created_at=first_datetime(record, ("created_at", "timestamp", "date")),
            level=first_string(record, ("level", "severity")),
        )


class SystemEvent(BaseModel):
    """One system/domain event (trip, user, payment...)."""

    type: str | None = None
    entity_id: str | None = None
    description: str | None = None
    primary_user: str | None = None
    secondary_user: str | None = None
    status: str | None = None
    timestamp: datetime | None = None
    level: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> SystemEvent:
        record = as_record(raw)
        return cls(
            type=first_string(record, ("type", "event_type", "category")),
            entity_id=first_identifier(record, ("entity_id", "id")),
            description=first_string(record, ("description", "message", "title")),
            primary_user=first_string(record, ("primary_user", "user")),
            secondary_user=first_string(record, ("secondary_user",)),
            status=first_string(record, ("status", "state")),
            timestamp=first_datetime(record, ("timestamp", "created_at", "updated_at")),
            level=first_string(record, ("level", "severity")),
        )


class ActivityFeedItem(BaseModel):
    """One entry of the short-lived recent-activity window."""

    id: str | None = None
    activity_type: str | None = None
    title: str | None = None
    description: str | None = None
    timestamp: datetime | None = None
    level: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> ActivityFeedItem:
        record = as_record(raw)
        return cls(
            id=first_identifier(record, ("id", "activity_id")),
            activity_type=first_string(record, ("activity_type", "type")),
            title=first_string(record, ("title",)),
            description=first_string(record, ("description", "message")),
            timestamp=first_datetime(record, ("timestamp", "created_at")),
            level=first_string(record, ("level", "severity")),
        )


class PaginationMeta(BaseModel):
    """Server-side page metadata returned with paginated log endpoints."""

    total: int = 0
    per_page: int = Field(default=50, ge=1)
    current_page: int = Field(default=1, ge=1)
    last_page: int = Field(default=1, ge=1)

    @classmethod
    def from_raw(
        cls,
        raw: Any,
        *,
        requested_page: int,
        requested_per_page: int,
        record_count: int,
    ) -> PaginationMeta:
        """Build metadata, deriving missing fields from the request that produced it."""
        record = as_record(raw)
        total = first_int(record, ("total", "total_count", "count"))
        per_page = first_int(record, ("per_page", "page_size", "limit"))
        current_page = first_int(record, ("current_page", "page"))
        last_page = first_int(record, ("last_page", "total_pages", "pages"))

        per_page = per_page if per_page and per_page > 0 else requested_per_page
        current_page = current_page if current_page and current_page > 0 else requested_page
        if total is None or total < 0:
            total = (current_page - 1) * per_page + record_count
        if last_page is None or last_page < 1:
            last_page = max(1, math.ceil(total / per_page))
        return cls(
            total=total,
            per_page=per_page,
            current_page=current_page,
            last_page=last_page,
        )


class AuditLogPage(BaseModel):
    records: list[AuditEntry] = Field(default_factory=list)
    pagination: PaginationMeta


class SystemLogPage(BaseModel):
    records: list[SystemEvent] = Field(default_factory=list)
    pagination: PaginationMeta


class ActionTypeCount(BaseModel):
    action: str
    count: int = 0


class ActiveAdmin(BaseModel):
    admin_id: str | None = None
    admin_name: str = "(unknown admin)"
    action_count: int = 0


class TimeBucket(BaseModel):
    hour: str
    count: int = 0


class ActivityStats(BaseModel):
    """Precomputed activity statistics plus the verified top action."""

    total_actions: int = 0
    actions_by_type: list[ActionTypeCount] = Field(default_factory=list)
    active_admins: list[ActiveAdmin] = Field(default_factory=list)
    actions_over_time: list[TimeBucket] = Field(default_factory=list)
    time_range_hours: int
    top_action: ActionTypeCount | None = None
    backend_order_verified: bool = Field(
        default=True,
        description="False when actions_by_type had to be re-sorted locally",
    )


class RealtimeTrips(BaseModel):
    active: int = 0
    searching: int = 0
    hourly_requests: int = 0
    hourly_completed: int = 0


class RealtimeDrivers(BaseModel):
    online: int = 0
    available: int = 0
    busy: int = 0
    utilization_percent: float = 0.0


class RealtimeMarketplace(BaseModel):
    liquidity_ratio: float = 0.0
    liquidity_status: str = "balanced"
    hourly_gmv: float = 0.0


class RealtimeMetrics(BaseModel):
    """Minute-level platform metrics from the analytics backend."""

    trips: RealtimeTrips = Field(default_factory=RealtimeTrips)
    drivers: RealtimeDrivers = Field(default_factory=RealtimeDrivers)
    marketplace: RealtimeMarketplace = Field(default_factory=RealtimeMarketplace)


class DailyTrips(BaseModel):
    total_requests: int = 0
    completed: int = 0
    cancelled: int = 0
    completion_rate: float = 0.0


class DailyRevenue(BaseModel):
    gross_gmv: float = 0.0
    platform_revenue: float = 0.0
    avg_fare: float = 0.0


class DailyQuality(BaseModel):
    avg_rider_rating: float = 0.0
    avg_driver_rating: float = 0.0


class DailyUsers(BaseModel):
    active_riders: int = 0
    active_drivers: int = 0


class DailyKPIs(BaseModel):
    """Day-to-date KPIs from the analytics backend."""

    trips: DailyTrips = Field(default_factory=DailyTrips)
    revenue: DailyRevenue = Field(default_factory=DailyRevenue)
    quality: DailyQuality = Field(default_factory=DailyQuality)
    users: DailyUsers = Field(default_factory=DailyUsers)
