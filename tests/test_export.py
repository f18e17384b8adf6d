"""Audit CSV export tests."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from admin_log_monitor.exceptions import AdminRequestError
from admin_log_monitor.logs.export import (
    AuditExporter,
    build_csv,
    export_filename,
    write_export,
)
from admin_log_monitor.models import AuditEntry

NOW = datetime(2026, 3, 9, 15, 30, tzinfo=UTC)


class _FakeExportSource:
    def __init__(self, rows: list[dict[str, Any]] | Exception) -> None:
        self.rows = rows
        self.calls: list[tuple[date, date]] = []

    def fetch_audit_export(self, *, start_date: date, end_date: date) -> list[dict[str, Any]]:
        self.calls.append((start_date, end_date))
        if isinstance(self.rows, Exception):
            raise self.rows
        return self.rows


def _rows() -> list[dict[str, Any]]:
    return [
        {
            "id": 2,
            "admin_name": 'Dana "DJ" Ops',
            "admin_email": "dana@example.com",
            "action": "driver.suspend",
            "ip_address": "10.0.0.4",
            "created_at": "2026-03-08T22:05:09Z",
        },
        {
            "id": 1,
            "admin_name": "Sam, Jr.",
            "admin_email": None,
            "action": "admin.login",
            "ip_address": "10.0.0.5",
            "created_at": "2026-03-08T08:00:00+02:00",
        },
    ]


def _exporter(source: _FakeExportSource) -> AuditExporter:
    return AuditExporter(
        source,
        logging.getLogger("test.export"),
        trailing_days=7,
        now_provider=lambda: NOW,
    )


def test_csv_layout_quotes_every_cell_and_keeps_backend_order() -> None:
    content = build_csv([AuditEntry.from_raw(row) for row in _rows()])
    assert content.splitlines() == [
        '"ID","Admin","Email","Action","IP Address","Date"',
        '"2","Dana ""DJ"" Ops","dana@example.com","driver.suspend","10.0.0.4","2026-03-08 22:05:09"',
        '"1","Sam, Jr.","","admin.login","10.0.0.5","2026-03-08 06:00:00"',
    ]


def test_export_is_byte_identical_for_same_dataset() -> None:
    first = _exporter(_FakeExportSource(_rows())).export_range()
    second = _exporter(_FakeExportSource(_rows())).export_range()
    assert first.ok and second.ok
    assert first.content is not None
    assert first.content == second.content


def test_default_range_is_trailing_seven_days_from_clock() -> None:
    source = _FakeExportSource(_rows())
    result = _exporter(source).export_range()
    assert source.calls == [(date(2026, 3, 2), date(2026, 3, 9))]
    assert result.filename == "audit_logs_2026-03-09.csv"
    assert result.row_count == 2


def test_explicit_range_is_forwarded() -> None:
    source = _FakeExportSource(_rows())
    _exporter(source).export_range(date(2026, 1, 1), date(2026, 1, 31))
    assert source.calls == [(date(2026, 1, 1), date(2026, 1, 31))]


def test_zero_rows_produce_no_file_and_no_exception(tmp_path: Path) -> None:
    result = _exporter(_FakeExportSource([])).export_range()
    assert not result.ok
    assert result.decision_code == "no_rows"
    assert result.content is None
    assert write_export(result, tmp_path) is None
    assert list(tmp_path.iterdir()) == []


def test_fetch_failure_is_reported_not_raised(tmp_path: Path) -> None:
    error = AdminRequestError("Admin API request failed with status 503", category="server")
    result = _exporter(_FakeExportSource(error)).export_range()
    assert not result.ok
    assert result.decision_code == "fetch_failed"
    assert "503" in result.reasons[0]
    assert write_export(result, tmp_path) is None


def test_write_export_writes_content_under_dated_filename(tmp_path: Path) -> None:
    result = _exporter(_FakeExportSource(_rows())).export_range()
    path = write_export(result, tmp_path / "exports")
    assert path == tmp_path / "exports" / "audit_logs_2026-03-09.csv"
    assert path is not None
    assert path.read_text(encoding="utf-8") == result.content
    assert not list((tmp_path / "exports").glob("*.tmp"))


def test_export_filename_uses_iso_date() -> None:
    assert export_filename(date(2026, 12, 1)) == "audit_logs_2026-12-01.csv"
