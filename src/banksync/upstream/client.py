"""Resilient HTTP client for aggregator calls.

Every outbound call goes through :class:`ResilientClient`, which
- injects the current bearer token,
- refreshes the token once on 401 and replays the call,
- waits out one 429/5xx (Retry-After or a short fixed backoff) and replays,
- enforces a hard timeout per attempt.

At most three attempts are made per call.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from banksync.config import AggregatorConfig
from banksync.core.exceptions import UpstreamAuthError, UpstreamTimeoutError
from banksync.upstream.tokens import TokenManager
from banksync.upstream.utils import parse_retry_after

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

Sleep = Callable[[float], Awaitable[Any]]


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class ResilientClient:
    """Aggregator HTTP client with bounded refresh and backoff."""

    def __init__(
        self,
        config: AggregatorConfig,
        http: httpx.AsyncClient,
        tokens: TokenManager,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.http = http
        self.tokens = tokens
        self._sleep = sleep

    def url_for(self, path: str) -> str:
        """Resolve a path against the base URL; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.config.base_url}/{path.lstrip('/')}"

    async def _send(
        self,
        method: str,
        url: str,
        token: str,
        timeout: float,
        correlation_id: str | None,
        json: Any = None,
        params: dict | None = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        try:
            return await asyncio.wait_for(
                self.http.request(method, url, headers=headers, json=json, params=params),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(
                "Upstream call timed out",
                extra={"correlation_id": correlation_id, "method": method, "timeout_seconds": timeout},
            )
            raise UpstreamTimeoutError(
                {"method": method, "timeoutSeconds": timeout}, correlation_id
            )

    async def request(
        self,
        method: str,
        path: str,
        *,
        correlation_id: str | None = None,
        timeout: float | None = None,
        json: Any = None,
        params: dict | None = None,
    ) -> httpx.Response:
        """
        Send one logical request to the aggregator.

        Args:
            method: HTTP method
            path: Path relative to the base URL, or an absolute URL
            correlation_id: Request correlation id for logs and errors
            timeout: Hard per-attempt timeout in seconds
            json: Optional JSON body
            params: Optional query parameters

        Returns:
            The last upstream response (callers inspect the status)

        Raises:
            UpstreamTimeoutError: If an attempt exceeds the timeout
            UpstreamAuthError: If the initial token exchange fails
        """
        url = self.url_for(path)
        timeout = timeout or self.config.timeout_account
        token = await self.tokens.get_token(correlation_id)
        attempts = 1
        response = await self._send(method, url, token, timeout, correlation_id, json, params)

        if response.status_code == 401:
            logger.info(
                "Upstream returned 401, refreshing token",
                extra={"correlation_id": correlation_id, "method": method},
            )
            try:
                token = await self.tokens.refresh(correlation_id)
            except UpstreamAuthError:
                return response
            attempts += 1
            response = await self._send(method, url, token, timeout, correlation_id, json, params)

        if _is_retryable_status(response.status_code) and attempts < MAX_ATTEMPTS:
            retry_after = parse_retry_after(response)
            if retry_after is not None and retry_after > self.config.max_retry_wait_seconds:
                # Long waits are recorded by the caller as a cooldown instead.
                return response
            delay = float(retry_after) if retry_after is not None else self.config.retry_backoff_seconds
            logger.info(
                "Upstream throttled or failed, retrying once",
                extra={
                    "correlation_id": correlation_id,
                    "status_code": response.status_code,
                    "delay_seconds": delay,
                },
            )
            await self._sleep(delay)
            attempts += 1
            response = await self._send(method, url, token, timeout, correlation_id, json, params)

        return response
