"""Bearer token acquisition for the aggregator API."""

import asyncio
import logging

import httpx

from banksync.config import AggregatorConfig
from banksync.core.exceptions import UpstreamAuthError, UpstreamTimeoutError
from banksync.upstream.utils import snippet

logger = logging.getLogger(__name__)


class TokenManager:
    """Exchanges the configured secret pair for a short-lived access token.

    The manager caches the current token for the lifetime of one invocation.
    It never retries on its own; the resilient client decides when a refresh
    is warranted.
    """

    def __init__(self, config: AggregatorConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http
        self._token: str | None = None
        self.exchange_count = 0

    @property
    def token(self) -> str | None:
        return self._token

    async def get_token(self, correlation_id: str | None = None) -> str:
        """Return the cached token, acquiring one on first use."""
        if self._token is None:
            return await self.acquire_token(correlation_id)
        return self._token

    async def refresh(self, correlation_id: str | None = None) -> str:
        """Drop the cached token and exchange credentials again."""
        self._token = None
        return await self.acquire_token(correlation_id)

    async def acquire_token(self, correlation_id: str | None = None) -> str:
        """
        Exchange the secret id/key for a bearer token.

        Args:
            correlation_id: Request correlation id for logs and errors

        Returns:
            The access token string

        Raises:
            UpstreamTimeoutError: If the exchange exceeds the token timeout
            UpstreamAuthError: If the exchange fails or the body lacks ``access``
        """
        url = f"{self.config.base_url}/token/new/"
        self.exchange_count += 1
        try:
            response = await asyncio.wait_for(
                self.http.post(
                    url,
                    json={
                        "secret_id": self.config.secret_id,
                        "secret_key": self.config.secret_key,
                    },
                    headers={"Accept": "application/json"},
                ),
                timeout=self.config.timeout_token,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(
                "Token exchange timed out",
                extra={"correlation_id": correlation_id, "timeout_seconds": self.config.timeout_token},
            )
            raise UpstreamTimeoutError(
                {"stage": "token", "timeoutSeconds": self.config.timeout_token}, correlation_id
            )
        except httpx.HTTPError as exc:
            logger.error(
                "Token exchange failed",
                extra={"correlation_id": correlation_id, "error_type": type(exc).__name__},
            )
            raise UpstreamAuthError({"reason": "network", "error": type(exc).__name__}, correlation_id)

        if not response.is_success:
            body = snippet(response.text)
            logger.error(
                "Token exchange rejected",
                extra={"correlation_id": correlation_id, "status_code": response.status_code},
            )
            raise UpstreamAuthError({"status": response.status_code, "bodySnippet": body}, correlation_id)

        try:
            payload = response.json()
        except ValueError:
            payload = None
        access = payload.get("access") if isinstance(payload, dict) else None
        if not isinstance(access, str) or not access:
            raise UpstreamAuthError(
                {"status": response.status_code, "reason": "malformed"}, correlation_id
            )

        self._token = access
        logger.debug("Token acquired", extra={"correlation_id": correlation_id})
        return access
