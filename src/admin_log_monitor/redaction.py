"""Helpers for redacting credentials and admin emails from log lines and error payloads."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

_SENSITIVE_KEY_RE = re.compile(
    r"(authorization|token|secret|password|passwd|cookie|session[_-]?id|api[_-]?key)",
    re.IGNORECASE,
)
_AUTH_TOKEN_INLINE_RE = re.compile(
    r"(?i)\b(bearer)\s+[A-Za-z0-9\-._~+/]+=*",
)
_KEY_VALUE_SECRET_RE = re.compile(
    r"""(?ix)
    \b
    (
      authorization|
      access[_-]?token|
      refresh[_-]?token|
      token|
      secret|
      password|
      passwd|
      cookie|
      session[_-]?id|
      api[_-]?key
    )
    \s*[:=]\s*
    ([^\s,;&]+)
    """
)
# Backend validation errors echo the submitted admin email back.
_EMAIL_RE = re.compile(r"\b([A-Za-z0-9])[A-Za-z0-9._%+\-]*@([A-Za-z0-9.\-]+\.[A-Za-z]{2,})\b")


def mask_email(text: str) -> str:
    """Keep the first character and domain of each email address."""
    return _EMAIL_RE.sub(lambda m: f"{m.group(1)}***@{m.group(2)}", text)


def sanitize_text(text: str) -> str:
    """Redact tokens and passwords, then mask email addresses."""
    sanitized = _AUTH_TOKEN_INLINE_RE.sub(r"\1 " + REDACTED, text)
    sanitized = _KEY_VALUE_SECRET_RE.sub(lambda m: f"{m.group(1)}={REDACTED}", sanitized)
    return mask_email(sanitized)


def is_sensitive_key(key: Any) -> bool:
    return bool(_SENSITIVE_KEY_RE.search(str(key)))


def sanitize_for_logging(value: Any) -> Any:
    """Recursively redact sensitive values in nested dicts, lists and strings."""
    if isinstance(value, dict):
        return {
            key: REDACTED if is_sensitive_key(key) else sanitize_for_logging(child)
            for key, child in value.items()
        }
    if isinstance(value, (list, tuple)):
        items = [sanitize_for_logging(item) for item in value]
        return items if isinstance(value, list) else tuple(items)
    if isinstance(value, str):
        return sanitize_text(value)
    return value
