"""Audit-complete CSV export of a trailing date range."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from ..exceptions import AdminAPIError, ExportError
from ..models import AuditEntry

EXPORT_COLUMNS = ("ID", "Admin", "Email", "Action", "IP Address", "Date")
EXPORT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_TRAILING_DAYS = 7

ExportDecision = Literal["exported", "no_rows", "fetch_failed"]


class AuditExportSource(Protocol):
    def fetch_audit_export(self, *, start_date: date, end_date: date) -> Sequence[Any]: ...


class ExportResult(BaseModel):
    """Outcome of one export attempt; ``content`` is set only when ``ok``."""

    ok: bool
    decision_code: ExportDecision
    reasons: list[str] = Field(default_factory=list)
    start_date: date
    end_date: date
    exported_on: date
    row_count: int = 0
    filename: str | None = None
    content: str | None = None


def export_filename(exported_on: date) -> str:
    return f"audit_logs_{exported_on.isoformat()}.csv"


def export_row(entry: AuditEntry) -> list[str]:
    """One CSV row in fixed column order; missing values become empty cells."""
    created = ""
    if entry.created_at is not None:
        created = entry.created_at.astimezone(UTC).strftime(EXPORT_DATE_FORMAT)
    return [
        entry.id or "",
        entry.admin_name or "",
        entry.admin_email or "",
        entry.action or "",
        entry.ip_address or "",
        created,
    ]


def build_csv(entries: Iterable[AuditEntry]) -> str:
    """Serialize entries in the given order, every cell quoted.

    Output depends only on the entries, so the same dataset always produces
    byte-identical text.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for entry in entries:
        writer.writerow(export_row(entry))
    return buffer.getvalue()


class AuditExporter:
    """Fetch raw audit entries for a date range and serialize them.

    The export never looks at view filters, search or pagination: it always
    covers the full unfiltered range. Failures are logged and reported through
    ``ExportResult`` instead of raising.
    """

    def __init__(
        self,
        source: AuditExportSource,
        logger: logging.Logger,
        *,
        trailing_days: int = DEFAULT_TRAILING_DAYS,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.source = source
        self.logger = logger
        self.trailing_days = trailing_days
        self._now_provider = now_provider or (lambda: datetime.now(UTC))

    def default_range(self) -> tuple[date, date]:
        today = self._today()
        return today - timedelta(days=self.trailing_days), today

    def export_range(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ExportResult:
        default_start, default_end = self.default_range()
        start = start_date or default_start
        end = end_date or default_end
        exported_on = self._today()

        try:
            raw_rows = self.source.fetch_audit_export(start_date=start, end_date=end)
        except AdminAPIError as exc:
            self.logger.error("Audit export failed start=%s end=%s: %s", start, end, exc)
            return ExportResult(
                ok=False,
                decision_code="fetch_failed",
                reasons=[str(exc)],
                start_date=start,
                end_date=end,
                exported_on=exported_on,
            )

        entries = [AuditEntry.from_raw(row) for row in raw_rows]
        if not entries:
            self.logger.warning("Audit export produced no rows start=%s end=%s", start, end)
            return ExportResult(
                ok=False,
                decision_code="no_rows",
                reasons=["no audit entries in range"],
                start_date=start,
                end_date=end,
                exported_on=exported_on,
            )

        content = build_csv(entries)
        self.logger.info(
            "Audit export ready rows=%d start=%s end=%s", len(entries), start, end
        )
        return ExportResult(
            ok=True,
            decision_code="exported",
            start_date=start,
            end_date=end,
            exported_on=exported_on,
            row_count=len(entries),
            filename=export_filename(exported_on),
            content=content,
        )

    def _today(self) -> date:
        now = self._now_provider()
        now = now.astimezone(UTC) if now.tzinfo else now.replace(tzinfo=UTC)
        return now.date()


def write_export(result: ExportResult, directory: Path) -> Path | None:
    """Write a successful export to ``directory``; unsuccessful results write nothing.

    The file is written to a temporary sibling first and renamed into place,
    so a failed write never leaves a partial CSV behind.
    """
    if not result.ok or result.content is None or result.filename is None:
        return None
    output_path = directory / result.filename
    temp_path = output_path.with_suffix(".csv.tmp")
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with temp_path.open("w", encoding="utf-8", newline="") as fh:
            fh.write(result.content)
        temp_path.replace(output_path)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise ExportError(f"Failed writing audit export {output_path}: {exc}") from exc
    return output_path
