"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class AdminAPIError(Exception):
    """Raised when admin API calls fail or return malformed data."""


class AdminRequestError(AdminAPIError):
    """Raised for admin API request failures with category/status metadata."""

    def __init__(
        self,
        message: str,
        *,
        category: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.status_code = status_code


class ExportError(Exception):
    """Raised when an audit export file cannot be written."""
