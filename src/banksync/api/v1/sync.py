"""Transaction sync endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends

from banksync.api.deps import get_correlation_id, get_current_user_id, get_sync_service
from banksync.schemas.sync import SyncAllRequest, SyncBatchResult, SyncRequest, SyncResult
from banksync.services.sync import SyncService

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post(
    "",
    response_model=SyncResult,
    summary="Sync one bank account",
    description="""
    Fetch booked and pending transactions for one account and store the new ones.

    Returns a no-op result (`reason` = `cooldown` or `fresh`) without calling the
    bank when the account was synced recently. An upstream 429 is returned as
    `UPSTREAM_RATE_LIMIT` with a `Retry-After` header.
    """,
)
async def sync_account(
    body: SyncRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: SyncService = Depends(get_sync_service),
    correlation_id: str = Depends(get_correlation_id),
) -> dict:
    return await service.sync_account(
        user_id,
        body.bank_account_id,
        date_from=body.date_from,
        date_to=body.date_to,
        force=body.force,
        correlation_id=correlation_id,
    )


@router.post(
    "/all",
    response_model=SyncBatchResult,
    summary="Sync all selected accounts",
    description="Accounts are synced one after another; failures are counted, not fatal.",
)
async def sync_all(
    body: SyncAllRequest | None = None,
    user_id: UUID = Depends(get_current_user_id),
    service: SyncService = Depends(get_sync_service),
    correlation_id: str = Depends(get_correlation_id),
) -> dict:
    connected_bank_id = body.connected_bank_id if body else None
    return await service.sync_selected(user_id, connected_bank_id, correlation_id)
