"""Small helpers shared by the upstream token manager and HTTP client."""

import re

import httpx

SNIPPET_LIMIT = 400

_BODY_RETRY_HINT = re.compile(r"try again in\s+(\d+)\s+seconds", re.IGNORECASE)


def snippet(text: str | None, limit: int = SNIPPET_LIMIT) -> str:
    """Truncate an upstream body for logs and error details."""
    return (text or "")[:limit]


def parse_retry_after(response: httpx.Response) -> int | None:
    """Read the wait hint of a throttled response, in whole seconds.

    The ``Retry-After`` header wins when it holds a positive integer; otherwise
    the body is searched for the aggregator's "try again in N seconds" hint.
    Returns None when neither is usable.
    """
    header = (response.headers.get("Retry-After") or "").strip()
    if header.isdigit() and int(header) > 0:
        return int(header)

    try:
        body = response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return None
    match = _BODY_RETRY_HINT.search(body or "")
    if match and int(match.group(1)) > 0:
        return int(match.group(1))
    return None
