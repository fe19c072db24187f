"""Typed wrapper around the aggregator endpoints used by the pipeline."""

import asyncio
import logging
from datetime import date
from typing import Any, AsyncIterator
from urllib.parse import quote

import httpx

from banksync.config import AggregatorConfig
from banksync.core.exceptions import UpstreamError, UpstreamRateLimitError, UpstreamTimeoutError
from banksync.upstream.client import ResilientClient, Sleep
from banksync.upstream.tokens import TokenManager
from banksync.upstream.utils import parse_retry_after, snippet

logger = logging.getLogger(__name__)

ACCESS_SCOPE = ["balances", "details", "transactions"]


class AggregatorClient:
    """One method per upstream endpoint, each mapped to a stage error code."""

    def __init__(self, config: AggregatorConfig, client: ResilientClient):
        self.config = config
        self.client = client

    @classmethod
    def from_http(
        cls,
        config: AggregatorConfig,
        http: httpx.AsyncClient,
        sleep: Sleep = asyncio.sleep,
    ) -> "AggregatorClient":
        """Build the token manager, resilient client and wrapper in one go."""
        tokens = TokenManager(config, http)
        return cls(config, ResilientClient(config, http, tokens, sleep=sleep))

    @property
    def tokens(self) -> TokenManager:
        return self.client.tokens

    async def _call(
        self,
        method: str,
        path: str,
        stage_code: str,
        correlation_id: str | None,
        timeout: float,
        *,
        json: Any = None,
        params: dict | None = None,
        keep_stage: bool = False,
    ) -> Any:
        """
        Send one call and map failures to ``stage_code``.

        With ``keep_stage`` a lasting 401 or 429 is reported under the stage
        code as well (rate-limit data stays in ``details``); otherwise they
        become ``UPSTREAM_AUTH_INVALID`` and ``UPSTREAM_RATE_LIMIT``. Every
        failure carries ``details["stage"]``.
        """
        try:
            response = await self.client.request(
                method,
                path,
                correlation_id=correlation_id,
                timeout=timeout,
                json=json,
                params=params,
            )
        except UpstreamTimeoutError as exc:
            raise UpstreamTimeoutError({**exc.details, "stage": stage_code}, correlation_id)
        except httpx.HTTPError as exc:
            logger.error(
                "Upstream transport failure",
                extra={"correlation_id": correlation_id, "error_code": stage_code, "error_type": type(exc).__name__},
            )
            raise UpstreamError(
                stage_code,
                {"reason": "network", "error": type(exc).__name__, "stage": stage_code},
                correlation_id,
            )

        if not response.is_success:
            body = snippet(response.text)
            details = {"status": response.status_code, "bodySnippet": body, "stage": stage_code}
            logger.warning(
                "Upstream call failed",
                extra={
                    "correlation_id": correlation_id,
                    "error_code": stage_code,
                    "status_code": response.status_code,
                },
            )
            if response.status_code == 429:
                retry_after = parse_retry_after(response)
                if not keep_stage:
                    raise UpstreamRateLimitError(retry_after, details, correlation_id)
                if retry_after is not None:
                    details["retryAfterSeconds"] = retry_after
            elif response.status_code == 401 and not keep_stage:
                raise UpstreamError("UPSTREAM_AUTH_INVALID", details, correlation_id)
            raise UpstreamError(stage_code, details, correlation_id)

        try:
            return response.json()
        except ValueError:
            raise UpstreamError(
                stage_code,
                {"status": response.status_code, "reason": "malformed", "stage": stage_code},
                correlation_id,
            )

    async def create_agreement(self, institution_id: str, correlation_id: str | None = None) -> str:
        """Create an end-user agreement and return its id."""
        payload = await self._call(
            "POST",
            "agreements/enduser/",
            "UPSTREAM_EUA_ERROR",
            correlation_id,
            self.config.timeout_agreement,
            json={
                "institution_id": institution_id,
                "max_historical_days": self.config.max_historical_days,
                "access_valid_for_days": self.config.access_valid_for_days,
                "access_scope": ACCESS_SCOPE,
            },
            keep_stage=True,
        )
        agreement_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(agreement_id, str) or not agreement_id:
            raise UpstreamError(
                "UPSTREAM_EUA_ERROR", {"reason": "malformed", "stage": "UPSTREAM_EUA_ERROR"}, correlation_id
            )
        return agreement_id

    async def create_requisition(
        self,
        institution_id: str,
        agreement_id: str,
        redirect_url: str,
        reference: str,
        correlation_id: str | None = None,
    ) -> dict:
        """Create a requisition; returns the upstream body (has ``id`` and ``link``)."""
        payload = await self._call(
            "POST",
            "requisitions/",
            "UPSTREAM_REQUISITION_ERROR",
            correlation_id,
            self.config.timeout_requisition,
            json={
                "redirect": redirect_url,
                "institution_id": institution_id,
                "agreement": agreement_id,
                "reference": reference,
                "user_language": self.config.user_language,
            },
            keep_stage=True,
        )
        if not isinstance(payload, dict) or not payload.get("id") or not payload.get("link"):
            raise UpstreamError(
                "UPSTREAM_REQUISITION_ERROR",
                {"reason": "malformed", "stage": "UPSTREAM_REQUISITION_ERROR"},
                correlation_id,
            )
        return payload

    async def get_requisition(self, requisition_id: str, correlation_id: str | None = None) -> dict:
        payload = await self._call(
            "GET",
            f"requisitions/{quote(requisition_id, safe='')}/",
            "UPSTREAM_REQUISITION_ERROR",
            correlation_id,
            self.config.timeout_requisition,
        )
        if not isinstance(payload, dict):
            raise UpstreamError(
                "UPSTREAM_REQUISITION_ERROR",
                {"reason": "malformed", "stage": "UPSTREAM_REQUISITION_ERROR"},
                correlation_id,
            )
        return payload

    async def get_account(self, account_id: str, correlation_id: str | None = None) -> dict:
        payload = await self._call(
            "GET",
            f"accounts/{quote(account_id, safe='')}/",
            "UPSTREAM_ACCOUNT_ERROR",
            correlation_id,
            self.config.timeout_account,
        )
        return payload if isinstance(payload, dict) else {}

    async def get_account_details(self, account_id: str, correlation_id: str | None = None) -> dict:
        """Return the ``account`` object of the details endpoint (or the whole body)."""
        payload = await self._call(
            "GET",
            f"accounts/{quote(account_id, safe='')}/details/",
            "UPSTREAM_ACCOUNT_ERROR",
            correlation_id,
            self.config.timeout_account,
        )
        if isinstance(payload, dict) and isinstance(payload.get("account"), dict):
            return payload["account"]
        return payload if isinstance(payload, dict) else {}

    async def iter_transaction_pages(
        self,
        account_id: str,
        date_from: date,
        date_to: date,
        correlation_id: str | None = None,
        max_pages: int = 12,
    ) -> AsyncIterator[dict]:
        """
        Yield transaction pages as ``{"booked": [...], "pending": [...]}``.

        Follows the ``next`` link of each page until it is absent or
        ``max_pages`` pages have been read. Non-object entries are dropped.
        """
        url: str | None = (
            f"accounts/{quote(account_id, safe='')}/transactions/"
            f"?date_from={date_from.isoformat()}&date_to={date_to.isoformat()}"
        )
        pages = 0
        while url and pages < max_pages:
            payload = await self._call(
                "GET", url, "UPSTREAM_TX_ERROR", correlation_id, self.config.timeout_transactions
            )
            payload = payload if isinstance(payload, dict) else {}
            transactions = payload.get("transactions")
            transactions = transactions if isinstance(transactions, dict) else {}
            yield {
                "booked": [t for t in transactions.get("booked") or [] if isinstance(t, dict)],
                "pending": [t for t in transactions.get("pending") or [] if isinstance(t, dict)],
            }
            next_url = payload.get("next")
            url = next_url if isinstance(next_url, str) and next_url else None
            pages += 1

    async def list_institutions(self, country: str, correlation_id: str | None = None) -> list[dict]:
        """List institutions for a country, keeping entries with an id and a name."""
        payload = await self._call(
            "GET",
            "institutions/",
            "UPSTREAM_INSTITUTIONS_ERROR",
            correlation_id,
            self.config.timeout_institutions,
            params={"country": country},
        )
        institutions = []
        for entry in payload if isinstance(payload, list) else []:
            if not isinstance(entry, dict):
                continue
            institution_id = entry.get("id")
            name = entry.get("name") or entry.get("full_name") or entry.get("official_name")
            if not institution_id or not name:
                continue
            institutions.append(
                {
                    "id": institution_id,
                    "name": name,
                    "bic": entry.get("bic"),
                    "logo": entry.get("logo"),
                    "transaction_total_days": entry.get("transaction_total_days"),
                }
            )
        return institutions
