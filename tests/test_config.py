"""Settings loading, validation and safe-summary tests."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from admin_log_monitor.config import load_settings
from admin_log_monitor.exceptions import ConfigError
from admin_log_monitor.log_setup import JsonConsoleFormatter
from admin_log_monitor.redaction import REDACTED, mask_email, sanitize_for_logging, sanitize_text


def _set_required_env(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ADMIN_API_BASE_URL", "https://admin.example.com/api")
    monkeypatch.setenv("ADMIN_API_TOKEN", "secret-token")
    monkeypatch.setenv("EXPORT_DIR", str(tmp_path / "exports"))


def test_load_settings_applies_defaults_and_creates_export_dir(
    monkeypatch: Any,
    tmp_path: Path,
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    settings = load_settings()
    assert settings.logs_page_size == 50
    assert settings.activity_feed_window_minutes == 15
    assert settings.activity_feed_poll_seconds == 10.0
    assert settings.stats_window_hours == 24
    assert settings.export_trailing_days == 7
    assert (tmp_path / "exports").is_dir()


def test_blank_token_is_treated_as_unset(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setenv("ADMIN_API_TOKEN", "   ")
    assert load_settings().admin_api_token is None


def test_missing_base_url_is_config_error(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.delenv("ADMIN_API_BASE_URL")
    with pytest.raises(ConfigError):
        load_settings()


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("STATS_WINDOW_HOURS", "12"),
        ("LOGS_PAGE_SIZE", "0"),
        ("ACTIVITY_FEED_POLL_SECONDS", "0"),
        ("ADMIN_AUDIT_LOGS_ENDPOINT", "admin/logs/audit"),
    ],
)
def test_out_of_range_values_are_config_errors(
    monkeypatch: Any,
    tmp_path: Path,
    name: str,
    value: str,
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError) as exc_info:
        load_settings()
    assert name in str(exc_info.value)


def test_safe_summary_never_contains_token(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    summary = load_settings().safe_summary()
    assert summary["token_configured"] is True
    assert "secret-token" not in json.dumps(summary)


def test_sanitize_helpers_redact_tokens() -> None:
    assert sanitize_text("Authorization: Bearer abc123") == f"Authorization={REDACTED} {REDACTED}"
    nested = sanitize_for_logging({"headers": {"Authorization": "Bearer x"}, "page": 2})
    assert nested == {"headers": {"Authorization": REDACTED}, "page": 2}


def test_json_formatter_redacts_message() -> None:
    record = logging.LogRecord(
        name="admin_log_monitor",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="request failed token=%s",
        args=("abc",),
        exc_info=None,
    )
    event = json.loads(JsonConsoleFormatter().format(record))
    assert event["level"] == "WARNING"
    assert event["message"] == f"request failed token={REDACTED}"


def test_error_bodies_mask_admin_emails() -> None:
    assert mask_email("admin_email dana.ops@example.com is taken") == (
        "admin_email d***@example.com is taken"
    )
    assert "dana.ops" not in sanitize_text('{"email": "dana.ops@example.com"}')
