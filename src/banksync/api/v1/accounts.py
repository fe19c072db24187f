"""Bank account listing and selection endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.api.deps import get_correlation_id, get_current_user_id, get_db
from banksync.core.exceptions import NotFoundError
from banksync.repositories.bank_account import BankAccountRepository
from banksync.schemas.requisition import BankAccountResponse, BankAccountUpdateRequest

router = APIRouter(prefix="/bank-accounts", tags=["bank-accounts"])


@router.get("", response_model=list[BankAccountResponse], summary="List bank accounts")
async def list_bank_accounts(
    connected_bank_id: UUID | None = None,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list:
    return await BankAccountRepository(db).get_all_by_user(user_id, connected_bank_id=connected_bank_id)


@router.patch(
    "/{bank_account_id}",
    response_model=BankAccountResponse,
    summary="Select or deselect an account for syncing",
)
async def update_bank_account(
    bank_account_id: UUID,
    body: BankAccountUpdateRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    correlation_id: str = Depends(get_correlation_id),
):
    repo = BankAccountRepository(db)
    account = await repo.get_for_user(user_id, bank_account_id)
    if account is None:
        raise NotFoundError(
            "BANK_ACCOUNT_NOT_FOUND", {"bank_account_id": str(bank_account_id)}, correlation_id
        )
    return await repo.update(account.id, {"is_selected": body.is_selected})
