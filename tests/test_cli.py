"""Offline CLI smoke tests with a fake admin API client."""

from __future__ import annotations

from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from admin_log_monitor import cli
from admin_log_monitor.exceptions import AdminRequestError
from admin_log_monitor.models import (
    AuditEntry,
    AuditLogPage,
    DailyKPIs,
    PaginationMeta,
    RealtimeMetrics,
    SystemEvent,
    SystemLogPage,
)


def _set_required_env(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("ADMIN_API_BASE_URL", "https://admin.example.com/api")
    monkeypatch.setenv("ADMIN_API_TOKEN", "test-token")
    monkeypatch.setenv("EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setenv("LOG_LEVEL", "INFO")


class _FakeClient:
    """Stands in for AdminLogsClient; behavior is set through class attributes."""

    audit_last_page = 1
    audit_error: Exception | None = None
    export_rows: list[dict[str, Any]] = []
    stats_error: Exception | None = None
    stats_action = "admin.login"
    stats_admin = "Dana"
    metrics_error: Exception | None = None
    audit_pages: list[int] = []

    def __init__(self, *, settings: Any, logger: Any) -> None:
        self.settings = settings
        self.logger = logger

    def __enter__(self) -> _FakeClient:
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def fetch_audit_logs(
        self,
        *,
        page: int,
        per_page: int,
        search: str | None = None,
    ) -> AuditLogPage:
        type(self).audit_pages.append(page)
        if self.audit_error is not None:
            raise self.audit_error
        return AuditLogPage(
            records=[
                AuditEntry.from_raw(
                    {
                        "id": 10 + page,
                        "admin_name": "Dana",
                        "action": "admin.login",
                        "created_at": "2026-03-02T10:00:00Z",
                    }
                )
            ],
            pagination=PaginationMeta(
                total=self.audit_last_page * per_page,
                per_page=per_page,
                current_page=page,
                last_page=self.audit_last_page,
            ),
        )

    def fetch_system_logs(
        self,
        *,
        page: int,
        per_page: int,
        event_type: str | None = None,
    ) -> SystemLogPage:
        return SystemLogPage(
            records=[
                SystemEvent.from_raw(
                    {
                        "type": event_type or "trip",
                        "entity_id": 7,
                        "description": "Payment captured",
                        "status": "completed",
                        "timestamp": "2026-03-02T10:00:00Z",
                    }
                )
            ],
            pagination=PaginationMeta(total=1, per_page=per_page, current_page=page),
        )

    def fetch_activity_feed(self, *, minutes: int) -> list[dict[str, Any]]:
        return [
            {
                "id": 1,
                "activity_type": "trip_request",
                "title": "Trip requested",
                "timestamp": datetime.now(UTC).isoformat(),
            }
        ]

    def fetch_activity_stats_raw(self, *, hours: int) -> dict[str, Any]:
        if self.stats_error is not None:
            raise self.stats_error
        return {
            "total_actions": 5,
            "actions_by_type": [{"action": self.stats_action, "count": 5}],
            "active_admins": [
                {"admin_id": 1, "admin_name": self.stats_admin, "action_count": 5}
            ],
            "time_range_hours": hours,
        }

    def fetch_audit_export(self, *, start_date: date, end_date: date) -> list[dict[str, Any]]:
        return self.export_rows

    def fetch_realtime_metrics(self) -> RealtimeMetrics:
        if self.metrics_error is not None:
            raise self.metrics_error
        return RealtimeMetrics.model_validate({"trips": {"active": 3}})

    def fetch_daily_kpis(self) -> DailyKPIs:
        if self.metrics_error is not None:
            raise self.metrics_error
        return DailyKPIs()


def _install_fake_client(monkeypatch: Any, **behavior: Any) -> type[_FakeClient]:
    fake = type("FakeClient", (_FakeClient,), {"audit_pages": [], **behavior})
    monkeypatch.setattr(cli, "AdminLogsClient", fake)
    return fake


def test_audit_page_plain_output(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(monkeypatch)
    exit_code = cli.main(["audit", "--search", "login"])
    assert exit_code == cli.EXIT_OK
    output = capsys.readouterr().out
    assert "Audit Logs" in output
    assert "admin.login" in output
    assert "Page 1 of 1" in output
    assert "1 entries" in output


def test_page_past_last_is_clamped_and_refetched(
    monkeypatch: Any,
    tmp_path: Path,
    capsys: Any,
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    fake = _install_fake_client(monkeypatch, audit_last_page=2)
    exit_code = cli.main(["audit", "--page", "5"])
    assert exit_code == cli.EXIT_OK
    assert fake.audit_pages == [5, 2]
    assert "Page 2 of 2" in capsys.readouterr().out


def test_audit_fetch_failure_exit_code(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(
        monkeypatch,
        audit_error=AdminRequestError("Admin API request failed with status 503"),
    )
    assert cli.main(["audit"]) == cli.EXIT_FETCH_FAILED


def test_system_page_rich_mode(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(monkeypatch)
    exit_code = cli.main(["--ui-mode", "rich", "system", "--type", "payment"])
    assert exit_code == cli.EXIT_OK
    output = capsys.readouterr().out
    assert "System Events" in output
    assert "type=payment" in output
    assert "Payment captured" in output


def test_export_writes_csv(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(
        monkeypatch,
        export_rows=[
            {
                "id": 1,
                "admin_name": "Dana",
                "admin_email": "dana@example.com",
                "action": "admin.login",
                "ip_address": "10.0.0.4",
                "created_at": "2026-03-02T10:00:00Z",
            }
        ],
    )
    out_dir = tmp_path / "csv"
    exit_code = cli.main(
        [
            "export",
            "--start-date",
            "2026-03-01",
            "--end-date",
            "2026-03-08",
            "--output-dir",
            str(out_dir),
        ]
    )
    assert exit_code == cli.EXIT_OK
    files = list(out_dir.glob("audit_logs_*.csv"))
    assert len(files) == 1
    lines = files[0].read_text(encoding="utf-8").splitlines()
    assert lines[0] == '"ID","Admin","Email","Action","IP Address","Date"'
    assert lines[1].startswith('"1","Dana"')
    assert "Exported 1 audit entries" in capsys.readouterr().out


def test_export_without_rows_writes_nothing(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(monkeypatch, export_rows=[])
    assert cli.main(["export"]) == cli.EXIT_NO_EXPORT
    assert list((tmp_path / "exports").iterdir()) == []


def test_stats_output_and_failure(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(monkeypatch)
    assert cli.main(["stats", "--hours", "6"]) == cli.EXIT_OK
    output = capsys.readouterr().out
    assert "Total actions: 5" in output
    assert "Window: 6h" in output

    _install_fake_client(monkeypatch, stats_error=AdminRequestError("stats down"))
    assert cli.main(["stats"]) == cli.EXIT_FETCH_FAILED


def test_stats_output_keeps_bracketed_names(
    monkeypatch: Any,
    tmp_path: Path,
    capsys: Any,
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(monkeypatch, stats_action="[/admin/x]", stats_admin="[ops]")
    assert cli.main(["stats"]) == cli.EXIT_OK
    output = capsys.readouterr().out
    assert "Top action: [/admin/x] (5)" in output
    assert "[ops]" in output


def test_tail_runs_requested_cycles(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(monkeypatch)
    exit_code = cli.main(
        [
            "tail",
            "--cycles",
            "3",
            "--interval",
            "0.01",
            "--pause-after",
            "1",
            "--resume-after",
            "2",
        ]
    )
    assert exit_code == cli.EXIT_OK
    output = capsys.readouterr().out
    assert "Live Activity" in output
    assert "Trip requested" in output
    assert "Paused" in output


def test_metrics_failure_exit_code(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    _install_fake_client(monkeypatch, metrics_error=AdminRequestError("offline"))
    assert cli.main(["metrics"]) == cli.EXIT_FETCH_FAILED


def test_missing_config_exit_code(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.delenv("ADMIN_API_BASE_URL")
    assert cli.main(["audit"]) == cli.EXIT_CONFIG


def test_invalid_tail_arguments_exit_code(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    assert cli.main(["tail", "--resume-after", "2"]) == cli.EXIT_CONFIG
    assert cli.main(["audit", "--page", "0"]) == cli.EXIT_CONFIG
