"""Consent (requisition) lifecycle: create, finalize, disconnect."""

import logging
from datetime import datetime, timedelta
from typing import Callable
from urllib.parse import urlparse
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.config import AggregatorConfig
from banksync.core.exceptions import (
    InvalidRequestError,
    NotFoundError,
    PersistenceError,
    RequisitionStateError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from banksync.models.base import utcnow
from banksync.models.connected_bank import ConnectedBank
from banksync.repositories.bank_account import BankAccountRepository
from banksync.repositories.connected_bank import ConnectedBankRepository
from banksync.upstream.aggregator import AggregatorClient

logger = logging.getLogger(__name__)

# Upstream requisition status -> local connection status.
# Anything not listed (CR, GC, UA, SA, GA, SU) is still in progress.
REQUISITION_STATUS_MAP = {
    "LN": "active",
    "EX": "expired",
    "RJ": "rejected",
}


def is_absolute_http_url(url: str | None) -> bool:
    parsed = urlparse((url or "").strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _first_str(*candidates) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def account_fields(meta: dict, details: dict) -> dict:
    """Display fields of an account from its metadata and details payloads."""
    currency = _first_str(details.get("currency"), meta.get("currency"))
    return {
        "name": _first_str(details.get("name"), meta.get("name"), details.get("displayName")) or "Account",
        "iban": _first_str(details.get("iban"), meta.get("iban")),
        "currency": currency.upper()[:3] if currency else None,
        "account_type": _first_str(
            details.get("type"), details.get("cashAccountType"), meta.get("product")
        ),
    }


class RequisitionService:
    """Creates consent flows and turns completed ones into bank accounts."""

    def __init__(
        self,
        db: AsyncSession,
        aggregator: AggregatorClient,
        config: AggregatorConfig,
        now: Callable[[], datetime] = utcnow,
    ):
        self.banks = ConnectedBankRepository(db)
        self.accounts = BankAccountRepository(db)
        self.aggregator = aggregator
        self.config = config
        self._now = now

    async def create(
        self,
        user_id: UUID,
        institution_id: str,
        redirect_url: str,
        bank_name: str | None = None,
        country: str | None = None,
        correlation_id: str | None = None,
    ) -> dict:
        """
        Start a consent flow with an institution.

        Args:
            user_id: Authenticated user
            institution_id: Aggregator institution id
            redirect_url: Absolute URL the bank redirects back to
            bank_name: Display name of the institution
            country: Two-letter country code of the institution
            correlation_id: Request correlation id

        Returns:
            Dict with ``link``, ``requisition_id``, ``reference`` and
            ``connected_bank_id``

        Raises:
            InvalidRequestError: Missing institution or bad redirect URL
            UpstreamError: Token, agreement or requisition stage failed
            PersistenceError: The pending connection could not be stored
        """
        institution_id = (institution_id or "").strip()
        if not institution_id:
            raise InvalidRequestError("MISSING_FIELDS", {"missing": ["institution_id"]}, correlation_id)
        if not is_absolute_http_url(redirect_url):
            raise InvalidRequestError("INVALID_REDIRECT_URL", {}, correlation_id)

        await self.aggregator.tokens.get_token(correlation_id)
        agreement_id = await self.aggregator.create_agreement(institution_id, correlation_id)
        reference = uuid4().hex
        requisition = await self.aggregator.create_requisition(
            institution_id, agreement_id, redirect_url.strip(), reference, correlation_id
        )
        requisition_id = str(requisition["id"])

        try:
            bank = await self.banks.upsert_pending(
                user_id,
                institution_id,
                requisition_id,
                reference,
                provider=self.config.provider,
                bank_name=bank_name,
                country=country.upper() if country else None,
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Could not store pending connection",
                extra={"correlation_id": correlation_id, "error_type": type(exc).__name__},
            )
            raise PersistenceError({"stage": "connected_bank"}, correlation_id)

        logger.info(
            "Requisition created",
            extra={"correlation_id": correlation_id, "connected_bank_id": str(bank.id)},
        )
        return {
            "link": requisition["link"],
            "requisition_id": requisition_id,
            "reference": reference,
            "connected_bank_id": str(bank.id),
        }

    async def finalize(
        self,
        user_id: UUID,
        requisition: str,
        select_accounts: bool = False,
        correlation_id: str | None = None,
    ) -> dict:
        """
        Turn a completed requisition into bank account rows.

        Args:
            user_id: Authenticated user (the lookup is scoped to them)
            requisition: Requisition id or the reference recorded at creation
            select_accounts: Mark all returned accounts as selected for sync
            correlation_id: Request correlation id

        Returns:
            Dict with the connected bank, the accounts and a ``sync_hint``

        Raises:
            NotFoundError: No connected bank of the caller has this requisition
            RequisitionStateError: Consent expired, rejected or not yet linked
            UpstreamError: Requisition lookup failed
        """
        requisition = (requisition or "").strip()
        if not requisition:
            raise InvalidRequestError("MISSING_FIELDS", {"missing": ["requisition_id"]}, correlation_id)

        bank = await self.banks.get_by_requisition(user_id, requisition)
        if bank is None:
            raise NotFoundError("REQUISITION_NOT_FOUND", {}, correlation_id)

        payload = await self.aggregator.get_requisition(bank.link_id, correlation_id)
        upstream_status = str(payload.get("status") or "").upper()
        local_status = REQUISITION_STATUS_MAP.get(upstream_status, "pending")
        account_ids = [a for a in payload.get("accounts") or [] if isinstance(a, str) and a.strip()]
        state_details = {
            "institution_id": bank.institution_id,
            "connected_bank_id": str(bank.id),
            "status": upstream_status or None,
        }

        if local_status in ("expired", "rejected"):
            await self.banks.set_status(bank, local_status)
            code = "REQUISITION_EXPIRED" if local_status == "expired" else "REQUISITION_NOT_LINKED"
            raise RequisitionStateError(code, state_details, correlation_id)
        if local_status != "active" or not account_ids:
            raise RequisitionStateError("REQUISITION_NOT_LINKED", state_details, correlation_id)

        now = self._now()
        accounts = []
        for upstream_account_id in account_ids:
            meta = await self._best_effort(self.aggregator.get_account, upstream_account_id, correlation_id)
            details = await self._best_effort(
                self.aggregator.get_account_details, upstream_account_id, correlation_id
            )
            try:
                account = await self.accounts.upsert_from_upstream(
                    user_id=user_id,
                    connected_bank_id=bank.id,
                    provider=self.config.provider,
                    account_id=upstream_account_id,
                    mark_selected=select_accounts,
                    **account_fields(meta, details),
                )
            except SQLAlchemyError as exc:
                logger.error(
                    "Could not store bank account",
                    extra={"correlation_id": correlation_id, "error_type": type(exc).__name__},
                )
                raise PersistenceError({"stage": "bank_account"}, correlation_id)
            accounts.append(account)

        await self.banks.set_status(
            bank, "active", consent_expires_at=now + timedelta(days=self.config.access_valid_for_days)
        )

        logger.info(
            "Requisition finalized",
            extra={
                "correlation_id": correlation_id,
                "connected_bank_id": str(bank.id),
                "accounts": len(accounts),
            },
        )
        return {
            "connected_bank": bank,
            "accounts": accounts,
            "sync_hint": {
                "account_ids": [str(a.id) for a in accounts],
                "created_at": now.isoformat(),
            },
        }

    async def _best_effort(self, fetch, upstream_account_id: str, correlation_id: str | None) -> dict:
        try:
            return await fetch(upstream_account_id, correlation_id)
        except (UpstreamRateLimitError, UpstreamTimeoutError):
            raise
        except UpstreamError as exc:
            logger.warning(
                "Account lookup failed, using defaults",
                extra={"correlation_id": correlation_id, "error_code": exc.error_code},
            )
            return {}

    async def disconnect(self, user_id: UUID, connected_bank_id: UUID, correlation_id: str | None = None) -> None:
        """Delete a connected bank with its accounts and transactions."""
        deleted = await self.banks.delete_with_children(user_id, connected_bank_id)
        if not deleted:
            raise NotFoundError(
                "CONNECTED_BANK_NOT_FOUND", {"connected_bank_id": str(connected_bank_id)}, correlation_id
            )
        logger.info(
            "Connected bank removed",
            extra={"correlation_id": correlation_id, "connected_bank_id": str(connected_bank_id)},
        )

    async def list_connections(self, user_id: UUID) -> list[ConnectedBank]:
        return await self.banks.get_all_by_user(user_id)
