"""Admin backend adapter for the log, stats, and analytics endpoints."""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any
from urllib.parse import parse_qsl, urlsplit

import httpx
from pydantic import ValidationError

from .config import Settings
from .exceptions import AdminAPIError, AdminRequestError
from .models import (
    ActivityFeedItem,
    AuditEntry,
    AuditLogPage,
    DailyKPIs,
    PaginationMeta,
    RealtimeMetrics,
    SystemEvent,
    SystemLogPage,
)
from .redaction import sanitize_text


class AdminLogsClient:
    """Thin admin API adapter returning tolerant typed pages and raw stats payloads."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        max_retries: int | None = None,
        retry_delay_seconds: float | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self.max_retries = (
            max_retries
            if max_retries is not None
            else getattr(settings, "admin_api_max_retries", 1)
        )
        self.retry_delay_seconds = (
            retry_delay_seconds
            if retry_delay_seconds is not None
            else getattr(settings, "admin_api_retry_delay_seconds", 0.5)
        )
        self._client = httpx.Client(
            base_url=str(settings.admin_api_base_url),
            timeout=settings.admin_api_timeout_seconds,
            headers={
                "Accept": "application/json",
                "User-Agent": "admin-log-monitor/0.1",
            },
        )

    def __enter__(self) -> AdminLogsClient:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close underlying HTTP client."""
        self._client.close()

    def fetch_audit_logs(
        self,
        *,
        page: int,
        per_page: int,
        search: str | None = None,
    ) -> AuditLogPage:
        """Fetch one server-side page of audit entries."""
        params: dict[str, Any] = {"page": page, "per_page": per_page}
        if search:
            params["search"] = search
        payload = self._request_object(self.settings.audit_logs_endpoint, params=params)
        records = self._extract_records(payload, context="audit logs")
        return AuditLogPage(
            records=[AuditEntry.from_raw(record) for record in records],
            pagination=PaginationMeta.from_raw(
                payload.get("pagination"),
                requested_page=page,
                requested_per_page=per_page,
                record_count=len(records),
            ),
        )

    def fetch_system_logs(
        self,
        *,
        page: int,
        per_page: int,
        event_type: str | None = None,
    ) -> SystemLogPage:
        """Fetch one server-side page of system events; ``all`` sends no type filter."""
        params: dict[str, Any] = {"page": page, "per_page": per_page}
        if event_type and event_type != "all":
            params["type"] = event_type
        payload = self._request_object(self.settings.system_logs_endpoint, params=params)
        records = self._extract_records(payload, context="system logs")
        return SystemLogPage(
            records=[SystemEvent.from_raw(record) for record in records],
            pagination=PaginationMeta.from_raw(
                payload.get("pagination"),
                requested_page=page,
                requested_per_page=per_page,
                record_count=len(records),
            ),
        )

    def fetch_audit_export(self, *, start_date: date, end_date: date) -> list[dict[str, Any]]:
        """Fetch raw audit entries for an inclusive ISO date range."""
        payload = self._request_object(
            self.settings.audit_export_endpoint,
            params={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )
        records = self._extract_records(payload, context="audit export")
        return [record for record in records if isinstance(record, dict)]

    def fetch_activity_feed(self, *, minutes: int) -> list[ActivityFeedItem]:
        """Fetch the authoritative recent-activity window (last ``minutes``)."""
        payload = self._request_object(
            self.settings.activity_feed_endpoint,
            params={"minutes": minutes},
        )
        # Empty windows come back as {"data": null} from some deployments.
        if "data" in payload and payload["data"] is None:
            return []
        records = self._extract_records(payload, context="activity feed")
        return [ActivityFeedItem.from_raw(record) for record in records]

    def fetch_activity_stats_raw(self, *, hours: int) -> dict[str, Any]:
        """Fetch activity statistics; the backend wraps them in ``data``."""
        payload = self._request_object(
            self.settings.activity_stats_endpoint,
            params={"hours": hours},
        )
        return self._unwrap_data_object(payload, context="activity stats")

    def fetch_realtime_metrics(self) -> RealtimeMetrics:
        payload = self._request_object(self.settings.realtime_metrics_endpoint)
        data = self._unwrap_data_object(payload, context="realtime metrics")
        try:
            return RealtimeMetrics.model_validate(data)
        except ValidationError as exc:
            raise AdminAPIError(f"Realtime metrics payload shape invalid: {exc}") from exc

    def fetch_daily_kpis(self) -> DailyKPIs:
        payload = self._request_object(self.settings.daily_kpis_endpoint)
        data = self._unwrap_data_object(payload, context="daily KPIs")
        try:
            return DailyKPIs.model_validate(data)
        except ValidationError as exc:
            raise AdminAPIError(f"Daily KPIs payload shape invalid: {exc}") from exc

    def _request_object(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        payload = self._request_json("GET", endpoint, params=params)
        if not isinstance(payload, dict):
            raise AdminAPIError(
                f"Unexpected response type from {endpoint}; expected JSON object."
            )
        return payload

    def _extract_records(self, payload: dict[str, Any], *, context: str) -> list[Any]:
        """Extract the record list from a ``{data: [...]}`` container."""
        for key in ("data", "items", "results"):
            value = payload.get(key)
            if isinstance(value, list):
                if key != "data":
                    self.logger.warning(
                        "%s records found under unexpected key %r.", context, key
                    )
                return value
        raise AdminAPIError(
            f"Unable to find {context} records in response payload. "
            "Verify the endpoint configuration and response schema."
        )

    @staticmethod
    def _unwrap_data_object(payload: dict[str, Any], *, context: str) -> dict[str, Any]:
        data = payload.get("data", payload)
        if not isinstance(data, dict):
            raise AdminAPIError(f"{context} payload shape invalid: expected object.")
        return data

    def _request_json(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | list[Any]:
        request_endpoint, endpoint_query_params = self._split_endpoint_query(endpoint)
        merged_params = self._merge_request_params(endpoint_query_params, params)

        attempt = 0
        while True:
            try:
                response = self._client.request(
                    method=method,
                    url=request_endpoint,
                    params=merged_params,
                    headers=self._build_auth_headers(),
                )
                if response.status_code in (401, 403):
                    raise AdminRequestError(
                        f"Authentication failed with status {response.status_code}. "
                        "Verify ADMIN_API_TOKEN.",
                        category="auth",
                        status_code=response.status_code,
                    )
                response.raise_for_status()
                try:
                    body: dict[str, Any] | list[Any] = response.json()
                except ValueError as exc:
                    raise AdminRequestError(
                        "Response was not valid JSON.",
                        category="unknown",
                        status_code=response.status_code,
                    ) from exc
                return body
            except httpx.HTTPStatusError as exc:
                # Never retry client errors (4xx) except 429 rate-limit.
                sc = exc.response.status_code
                if 400 <= sc < 500 and sc != 429:
                    category = "validation" if sc in {400, 404, 409, 422} else "unknown"
                    raise AdminRequestError(
                        f"Admin API client error {sc}: "
                        f"{sanitize_text(exc.response.text[:300])}",
                        category=category,
                        status_code=sc,
                    ) from exc
                if attempt < self.max_retries:
                    attempt += 1
                    self.logger.warning(
                        "Admin API request failed (HTTP %d); retrying",
                        sc,
                        extra={
                            "endpoint": request_endpoint,
                            "attempt": attempt,
                            "max_retries": self.max_retries,
                        },
                    )
                    time.sleep(self.retry_delay_seconds)
                    continue
                category = "rate_limit" if sc == 429 else "server" if sc >= 500 else "unknown"
                raise AdminRequestError(
                    f"Admin API request failed with status {sc}: "
                    f"{sanitize_text(exc.response.text[:300])}",
                    category=category,
                    status_code=sc,
                ) from exc
            except httpx.HTTPError as exc:
                if attempt < self.max_retries:
                    attempt += 1
                    self.logger.warning(
                        "Admin API request failed (%s); retrying",
                        type(exc).__name__,
                        extra={
                            "endpoint": request_endpoint,
                            "attempt": attempt,
                            "max_retries": self.max_retries,
                        },
                    )
                    time.sleep(self.retry_delay_seconds)
                    continue
                raise AdminRequestError(
                    f"Admin API request failed: {sanitize_text(str(exc))}",
                    category="network",
                    status_code=None,
                ) from exc

    @staticmethod
    def _split_endpoint_query(endpoint: str) -> tuple[str, dict[str, Any]]:
        split = urlsplit(endpoint)
        path = split.path or endpoint
        query_params: dict[str, Any] = {}
        if split.query:
            for key, value in parse_qsl(split.query, keep_blank_values=True):
                query_params[key] = value
        return path, query_params

    @staticmethod
    def _merge_request_params(
        endpoint_params: dict[str, Any],
        request_params: dict[str, Any] | None,
    ) -> dict[str, Any] | None:
        """Merge endpoint query params with explicit request params.

        Explicit request params take precedence.
        """
        merged: dict[str, Any] = dict(endpoint_params)
        if request_params:
            merged.update(request_params)
        return merged or None

    def _build_auth_headers(self) -> dict[str, str]:
        token = getattr(self.settings, "admin_api_token", None)
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}
