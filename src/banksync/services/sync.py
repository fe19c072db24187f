"""Per-account transaction sync."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.categorization.overrides import UserRule
from banksync.categorization.rules import (
    CategorizeInput,
    CategorizeOptions,
    categorize,
    normalize_merchant,
)
from banksync.config import AggregatorConfig, SyncPolicy
from banksync.core.exceptions import (
    BankSyncError,
    InvalidRequestError,
    NotFoundError,
    PersistenceError,
    UpstreamError,
    UpstreamRateLimitError,
)
from banksync.models.bank_account import BankAccount
from banksync.models.base import utcnow
from banksync.normalization.normalizer import card_sign, clean_description, looks_like_card, normalize
from banksync.repositories.bank_account import BankAccountRepository
from banksync.repositories.category_override import CategoryOverrideRepository
from banksync.repositories.transaction import TransactionRepository
from banksync.upstream.aggregator import AggregatorClient

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SyncService:
    """Fetches, normalizes, categorizes and stores one account's transactions.

    Every call runs through the same stages: guards (ownership, provider,
    cooldown, freshness), upstream fetch, normalize + categorize, idempotent
    insert, bookkeeping. The persisted ``next_allowed_sync_at`` is the only
    rate-limit gate; it is checked before any upstream call.
    """

    def __init__(
        self,
        db: AsyncSession,
        aggregator: AggregatorClient,
        config: AggregatorConfig,
        policy: SyncPolicy,
        sleep: Callable[[float], Any] = asyncio.sleep,
        now: Callable[[], datetime] = utcnow,
    ):
        self.accounts = BankAccountRepository(db)
        self.transactions = TransactionRepository(db)
        self.rules = CategoryOverrideRepository(db)
        self.aggregator = aggregator
        self.config = config
        self.policy = policy
        self._sleep = sleep
        self._now = now

    async def sync_account(
        self,
        user_id: UUID,
        bank_account_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
        force: bool = False,
        correlation_id: str | None = None,
    ) -> dict:
        """
        Sync one bank account of the caller.

        Args:
            user_id: Authenticated user
            bank_account_id: Local bank account id
            date_from: Optional window start (may be widened by the overlap)
            date_to: Optional window end, defaults to today
            force: Skip cooldown/freshness guards (dev users only)
            correlation_id: Request correlation id

        Returns:
            Success result with ``inserted`` count, or a no-op result with
            ``reason`` "cooldown" or "fresh"

        Raises:
            NotFoundError: Account does not exist for the caller
            InvalidRequestError: Unsupported provider or missing upstream id
            UpstreamError: Aggregator failure (rate limits are recorded first)
            PersistenceError: Transaction insert failed
        """
        account = await self.accounts.get_for_user(user_id, bank_account_id)
        if account is None:
            raise NotFoundError(
                "BANK_ACCOUNT_NOT_FOUND", {"bank_account_id": str(bank_account_id)}, correlation_id
            )
        if account.provider != self.config.provider:
            raise InvalidRequestError(
                "UNSUPPORTED_PROVIDER", {"provider": account.provider}, correlation_id
            )
        provider_account_id = (account.account_id or "").strip()
        if not provider_account_id:
            raise InvalidRequestError(
                "ACCOUNT_MISSING_PROVIDER_ID", {"bank_account_id": str(account.id)}, correlation_id
            )

        now = self._now()
        allow_force = force and str(user_id) in self.policy.dev_force_user_ids
        if not allow_force:
            noop = await self._guard(account, now, correlation_id)
            if noop is not None:
                return noop

        log_extra = {"correlation_id": correlation_id, "bank_account_id": str(account.id)}
        try:
            await self.aggregator.get_account(provider_account_id, correlation_id)
            is_card = await self._probe_card(provider_account_id, correlation_id)
            start, end = await self._window(account, now, date_from, date_to)
            collected = await self._fetch(provider_account_id, start, end, correlation_id)
        except UpstreamRateLimitError as exc:
            wait_seconds = exc.retry_after_seconds or self.policy.rate_limit_default_seconds
            await self.accounts.record_sync(
                user_id,
                account.id,
                "rate_limited",
                next_allowed_sync_at=now + timedelta(seconds=wait_seconds),
            )
            logger.warning("Sync rate limited", extra={**log_extra, "retry_after_seconds": wait_seconds})
            raise UpstreamRateLimitError(wait_seconds, exc.details, correlation_id)

        rules = await self.rules.rules_for_user(user_id)
        rows = self._build_rows(user_id, account, provider_account_id, collected, is_card, rules)

        try:
            inserted = await self.transactions.insert_ignore_conflicts(
                rows, self.policy.effective_batch_size
            )
        except SQLAlchemyError as exc:
            logger.error("Transaction insert failed", extra={**log_extra, "error_type": type(exc).__name__})
            raise PersistenceError({"error": type(exc).__name__}, correlation_id)

        next_allowed = now + timedelta(minutes=self.policy.min_interval_minutes)
        await self.accounts.record_sync(
            user_id,
            account.id,
            "ok" if inserted else "ok:0",
            last_sync_at=now,
            next_allowed_sync_at=next_allowed,
        )
        logger.info(
            "Account synced",
            extra={**log_extra, "fetched": len(collected), "inserted": inserted},
        )
        return {
            "ok": True,
            "noop": False,
            "bank_account_id": str(account.id),
            "fetched": len(collected),
            "inserted": inserted,
            "next_allowed_sync_at": next_allowed.isoformat(),
            "correlation_id": correlation_id,
        }

    async def _guard(self, account: BankAccount, now: datetime, correlation_id: str | None) -> dict | None:
        next_allowed = _as_utc(account.next_allowed_sync_at)
        if next_allowed is not None and now < next_allowed:
            await self.accounts.record_sync(account.user_id, account.id, "noop-cooldown")
            return {
                "ok": True,
                "noop": True,
                "reason": "cooldown",
                "bank_account_id": str(account.id),
                "next_allowed_sync_at": next_allowed.isoformat(),
                "wait_seconds": max(0, int((next_allowed - now).total_seconds() + 0.999)),
                "correlation_id": correlation_id,
            }

        last_sync = _as_utc(account.last_sync_at)
        min_interval = timedelta(minutes=self.policy.min_interval_minutes)
        if last_sync is not None and timedelta(0) <= now - last_sync < min_interval:
            await self.accounts.record_sync(account.user_id, account.id, "noop-fresh")
            return {
                "ok": True,
                "noop": True,
                "reason": "fresh",
                "bank_account_id": str(account.id),
                "last_sync_at": last_sync.isoformat(),
                "min_interval_minutes": self.policy.min_interval_minutes,
                "correlation_id": correlation_id,
            }
        return None

    async def _probe_card(self, provider_account_id: str, correlation_id: str | None) -> bool:
        """Best-effort credit card detection from the account details."""
        try:
            details = await self.aggregator.get_account_details(provider_account_id, correlation_id)
        except UpstreamRateLimitError:
            raise
        except UpstreamError as exc:
            logger.info(
                "Account details probe failed",
                extra={"correlation_id": correlation_id, "error_code": exc.error_code},
            )
            return False
        return looks_like_card(details)

    async def _window(
        self, account: BankAccount, now: datetime, date_from: date | None, date_to: date | None
    ) -> tuple[date, date]:
        today = now.date()
        end = date_to or today
        start = date_from or today - timedelta(days=self.policy.days_default)

        latest = await self.transactions.latest_date(account.user_id, account.id)
        if latest is not None:
            overlap_start = latest - timedelta(days=self.policy.overlap_days)
            if date_from is None or overlap_start < start:
                start = overlap_start
        return min(start, end), end

    async def _fetch(
        self, provider_account_id: str, start: date, end: date, correlation_id: str | None
    ) -> list[tuple[dict, str]]:
        collected: list[tuple[dict, str]] = []
        async for page in self.aggregator.iter_transaction_pages(
            provider_account_id, start, end, correlation_id, max_pages=self.policy.max_pages
        ):
            collected.extend((raw, "booked") for raw in page["booked"])
            collected.extend((raw, "pending") for raw in page["pending"])
        return collected

    def _build_rows(
        self,
        user_id: UUID,
        account: BankAccount,
        provider_account_id: str,
        collected: list[tuple[dict, str]],
        is_card: bool,
        rules: list[UserRule],
    ) -> list[dict]:
        options = CategorizeOptions(user_rules=rules)
        today = self._now().date()
        rows: dict[str, dict] = {}
        for raw, status in collected:
            try:
                txn = normalize(raw, provider_account_id, status=status, today=today)
                if txn.transaction_id in rows:
                    continue
                amount = card_sign(txn.amount, is_card)
                category = categorize(
                    CategorizeInput(
                        description=txn.description,
                        counterparty=txn.counterparty,
                        amount=amount,
                        currency=txn.currency or account.currency,
                        transaction_id=txn.transaction_id,
                        mcc=txn.mcc,
                    ),
                    options,
                )
                description = clean_description(txn.description or txn.counterparty)
                rows[txn.transaction_id] = {
                    "user_id": user_id,
                    "bank_account_id": account.id,
                    "transaction_id": txn.transaction_id[:255],
                    "txn_date": txn.date,
                    "amount": amount,
                    "currency": txn.currency or account.currency,
                    "description": description[:500],
                    "counterparty": txn.counterparty[:255] or None,
                    "merchant_key": (normalize_merchant(txn.description, txn.counterparty) or "")[:255] or None,
                    "mcc": txn.mcc[:4] if txn.mcc else None,
                    "category": category,
                    "category_source": "auto",
                    "status": status,
                }
            except Exception:
                logger.warning(
                    "Skipping transaction that failed to normalize",
                    exc_info=True,
                    extra={"bank_account_id": str(account.id)},
                )
        return list(rows.values())

    async def sync_accounts(
        self, user_id: UUID, bank_account_ids: list[UUID], correlation_id: str | None = None
    ) -> dict:
        """Sync several accounts one after another; one failure never stops the batch."""
        summary = {"total": len(bank_account_ids), "completed": 0, "noop": 0, "failed": 0, "results": []}
        for index, bank_account_id in enumerate(bank_account_ids):
            if index > 0 and self.policy.inter_account_delay_seconds > 0:
                await self._sleep(self.policy.inter_account_delay_seconds)
            try:
                result = await self.sync_account(user_id, bank_account_id, correlation_id=correlation_id)
            except BankSyncError as exc:
                logger.warning(
                    "Account sync failed",
                    extra={
                        "correlation_id": correlation_id,
                        "bank_account_id": str(bank_account_id),
                        "error_code": exc.error_code,
                    },
                )
                summary["failed"] += 1
                summary["results"].append(
                    {"ok": False, "bank_account_id": str(bank_account_id), "code": exc.error_code}
                )
                continue

            if result.get("noop"):
                summary["noop"] += 1
            else:
                summary["completed"] += 1
            summary["results"].append(result)
        return summary

    async def sync_selected(
        self, user_id: UUID, connected_bank_id: UUID | None = None, correlation_id: str | None = None
    ) -> dict:
        """Sync every selected account of the caller, optionally for one connected bank."""
        accounts = await self.accounts.get_all_by_user(
            user_id, connected_bank_id=connected_bank_id, selected_only=True
        )
        return await self.sync_accounts(user_id, [a.id for a in accounts], correlation_id)
