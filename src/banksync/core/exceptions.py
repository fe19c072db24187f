"""Custom exception classes for the bank sync pipeline.

Each exception maps to a code in errors.py. Stage-level failures abort the
stage and are rendered at the API edge as
``{error, code, correlationId, details?}``.
"""

from typing import Any

from banksync.core.errors import get_http_status


class BankSyncError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "UPSTREAM_EUA_ERROR")
        details: Additional context about the error (safe to return)
        correlation_id: Id of the request that failed, when known
        http_status: HTTP status code to return (defaults to the catalog value)
    """

    def __init__(
        self,
        error_code: str,
        details: dict[str, Any] | None = None,
        correlation_id: str | None = None,
        http_status: int | None = None,
    ):
        self.error_code = error_code
        self.details = details or {}
        self.correlation_id = correlation_id
        self.http_status = http_status or get_http_status(error_code)
        super().__init__(error_code)


class ConfigurationError(BankSyncError):
    """Raised when credentials or environment are missing (CONFIG_MISSING)."""

    pass


class AuthenticationError(BankSyncError):
    """Raised when the caller session is missing or invalid (AUTH_REQUIRED)."""

    pass


class InvalidRequestError(BankSyncError):
    """Raised for missing or malformed request fields."""

    pass


class NotFoundError(BankSyncError):
    """Raised when a user-scoped lookup finds nothing."""

    pass


class UpstreamError(BankSyncError):
    """Raised when an aggregator call fails.

    ``details`` carries the upstream status and a truncated body snippet.
    """

    @property
    def status(self) -> int | None:
        return self.details.get("status")


class UpstreamAuthError(UpstreamError):
    """Raised when the token exchange fails or returns no token."""

    def __init__(self, details=None, correlation_id=None, error_code="UPSTREAM_TOKEN_ERROR"):
        super().__init__(error_code, details, correlation_id)


class UpstreamTimeoutError(UpstreamError):
    """Raised when an aggregator call exceeds its hard timeout.

    Distinct from 4xx/5xx failures so callers can tell a slow provider apart
    from a rejected request.
    """

    def __init__(self, details=None, correlation_id=None):
        super().__init__("UPSTREAM_TIMEOUT", details, correlation_id)


class UpstreamRateLimitError(UpstreamError):
    """Raised when the aggregator keeps answering 429 after the bounded retry."""

    def __init__(self, retry_after_seconds: int | None, details=None, correlation_id=None):
        self.retry_after_seconds = retry_after_seconds
        merged = dict(details or {})
        if retry_after_seconds is not None:
            merged["retryAfterSeconds"] = retry_after_seconds
        super().__init__("UPSTREAM_RATE_LIMIT", merged, correlation_id)


class RequisitionStateError(BankSyncError):
    """Raised when a requisition is expired or not linked.

    This is a retryable domain condition: the caller restarts the requisition
    flow with the same institution instead of retrying blindly.
    """

    @property
    def institution_id(self) -> str | None:
        return self.details.get("institution_id")


class PersistenceError(BankSyncError):
    """Raised when a database write fails (DB_UPSERT_FAILED)."""

    def __init__(self, details=None, correlation_id=None):
        super().__init__("DB_UPSERT_FAILED", details, correlation_id)
