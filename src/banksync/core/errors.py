"""Error codes and user-friendly messages.

This module defines the error catalog for the bank sync pipeline.
Each error has:
- code: Unique identifier returned to callers
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the user
- retry_allowed: Whether the error is retryable
- http_status: Status code used when the error reaches the API edge
"""


def _entry(
    code: str,
    message: str,
    user_message: str,
    suggestion: str,
    retry_allowed: bool,
    http_status: int,
) -> dict:
    return {
        "code": code,
        "message": message,
        "user_message": user_message,
        "suggestion": suggestion,
        "retry_allowed": retry_allowed,
        "http_status": http_status,
    }


ERROR_CATALOG: dict[str, dict] = {
    # Configuration / auth / validation
    "CONFIG_MISSING": _entry(
        "CONFIG_MISSING",
        "Aggregator or service configuration is missing or invalid",
        "The bank connection service is not configured.",
        "Please contact support.",
        False,
        500,
    ),
    "AUTH_REQUIRED": _entry(
        "AUTH_REQUIRED",
        "Missing or invalid caller session",
        "Please sign in and try again.",
        "Your session may have expired. Sign in again.",
        False,
        401,
    ),
    "MISSING_FIELDS": _entry(
        "MISSING_FIELDS",
        "Required request fields are missing",
        "Some required information is missing.",
        "Please check your input and try again.",
        False,
        400,
    ),
    "INVALID_REQUEST": _entry(
        "INVALID_REQUEST",
        "Request fields are malformed",
        "Invalid input data.",
        "Please check your input and try again.",
        False,
        400,
    ),
    "INVALID_REDIRECT_URL": _entry(
        "INVALID_REDIRECT_URL",
        "Redirect URL must be an absolute http(s) URL",
        "The return address for the bank connection is invalid.",
        "Please reload the page and try again.",
        False,
        400,
    ),
    "INVALID_COUNTRY": _entry(
        "INVALID_COUNTRY",
        "Country must be a two-letter ISO code",
        "That country is not supported.",
        "Choose a country from the list.",
        False,
        400,
    ),
    # Lookups
    "BANK_ACCOUNT_NOT_FOUND": _entry(
        "BANK_ACCOUNT_NOT_FOUND",
        "Bank account not found for caller",
        "We couldn't find this bank account.",
        "Please refresh and try again.",
        False,
        404,
    ),
    "CONNECTED_BANK_NOT_FOUND": _entry(
        "CONNECTED_BANK_NOT_FOUND",
        "Connected bank not found for caller",
        "We couldn't find this bank connection.",
        "Please refresh and try again.",
        False,
        404,
    ),
    "REQUISITION_NOT_FOUND": _entry(
        "REQUISITION_NOT_FOUND",
        "No connected bank references this requisition for caller",
        "We couldn't find this bank connection request.",
        "Start the bank connection again.",
        False,
        404,
    ),
    "TRANSACTION_NOT_FOUND": _entry(
        "TRANSACTION_NOT_FOUND",
        "Transaction not found",
        "We couldn't find this transaction.",
        "Please refresh and try again.",
        False,
        404,
    ),
    "RULE_NOT_FOUND": _entry(
        "RULE_NOT_FOUND",
        "Category rule not found",
        "We couldn't find this rule.",
        "Please refresh and try again.",
        False,
        404,
    ),
    "UNSUPPORTED_PROVIDER": _entry(
        "UNSUPPORTED_PROVIDER",
        "Bank account belongs to an unsupported provider",
        "This account can't be synced automatically.",
        "Reconnect the bank to enable syncing.",
        False,
        400,
    ),
    "ACCOUNT_MISSING_PROVIDER_ID": _entry(
        "ACCOUNT_MISSING_PROVIDER_ID",
        "Bank account has no upstream account id",
        "This account is not fully connected.",
        "Reconnect the bank to enable syncing.",
        False,
        400,
    ),
    # Upstream, sub-coded by stage
    "UPSTREAM_TOKEN_ERROR": _entry(
        "UPSTREAM_TOKEN_ERROR",
        "Aggregator token exchange failed",
        "We couldn't reach the bank data provider.",
        "Please try again in a few minutes.",
        True,
        502,
    ),
    "UPSTREAM_EUA_ERROR": _entry(
        "UPSTREAM_EUA_ERROR",
        "Aggregator end-user agreement creation failed",
        "We couldn't start the bank connection.",
        "Please try again in a few minutes.",
        True,
        502,
    ),
    "UPSTREAM_REQUISITION_ERROR": _entry(
        "UPSTREAM_REQUISITION_ERROR",
        "Aggregator requisition call failed",
        "We couldn't start the bank connection.",
        "Please try again in a few minutes.",
        True,
        502,
    ),
    "UPSTREAM_ACCOUNT_ERROR": _entry(
        "UPSTREAM_ACCOUNT_ERROR",
        "Aggregator account call failed",
        "We couldn't load your bank account.",
        "Please try again in a few minutes.",
        True,
        502,
    ),
    "UPSTREAM_TX_ERROR": _entry(
        "UPSTREAM_TX_ERROR",
        "Aggregator transaction fetch failed",
        "We couldn't fetch your transactions.",
        "Please try again in a few minutes.",
        True,
        502,
    ),
    "UPSTREAM_INSTITUTIONS_ERROR": _entry(
        "UPSTREAM_INSTITUTIONS_ERROR",
        "Aggregator institution listing failed",
        "We couldn't load the list of banks.",
        "Please try again in a few minutes.",
        True,
        502,
    ),
    "UPSTREAM_AUTH_INVALID": _entry(
        "UPSTREAM_AUTH_INVALID",
        "Aggregator rejected credentials after token refresh",
        "We couldn't reach the bank data provider.",
        "Please contact support if this persists.",
        True,
        502,
    ),
    "UPSTREAM_RATE_LIMIT": _entry(
        "UPSTREAM_RATE_LIMIT",
        "Aggregator rate limit reached",
        "Your bank limits how often we can fetch transactions.",
        "Please wait before syncing this account again.",
        True,
        429,
    ),
    "UPSTREAM_TIMEOUT": _entry(
        "UPSTREAM_TIMEOUT",
        "Aggregator call timed out",
        "The bank data provider took too long to respond.",
        "Please try again in a few minutes.",
        True,
        504,
    ),
    # Requisition lifecycle (recover by restarting the flow)
    "REQUISITION_NOT_LINKED": _entry(
        "REQUISITION_NOT_LINKED",
        "Requisition has not reached the linked state",
        "The bank connection was not completed.",
        "Start the connection again with the same bank.",
        True,
        409,
    ),
    "REQUISITION_EXPIRED": _entry(
        "REQUISITION_EXPIRED",
        "Requisition consent has expired",
        "Your bank consent has expired.",
        "Reconnect the same bank to renew access.",
        True,
        409,
    ),
    # Data
    "DB_UPSERT_FAILED": _entry(
        "DB_UPSERT_FAILED",
        "Database write failed",
        "We couldn't save your data due to a database error.",
        "Please try again in a few moments.",
        True,
        500,
    ),
    "INTERNAL_ERROR": _entry(
        "INTERNAL_ERROR",
        "Internal server error",
        "An unexpected error occurred.",
        "Please try again later or contact support.",
        True,
        500,
    ),
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Args:
        error_code: Error code from the catalog

    Returns:
        Dict with error details; a generic entry if the code is unknown
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": error_code,
            "message": f"Unknown error code: {error_code}",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
            "http_status": 500,
        }
    return ERROR_CATALOG[error_code]


def is_retryable(error_code: str) -> bool:
    """Check if an error is retryable."""
    return get_error(error_code)["retry_allowed"]


def get_http_status(error_code: str) -> int:
    return get_error(error_code)["http_status"]
