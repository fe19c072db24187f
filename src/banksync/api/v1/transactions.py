"""Transaction query and manual categorization endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.api.deps import get_correlation_id, get_current_user_id, get_db
from banksync.categorization.rules import CATEGORIES
from banksync.core.exceptions import InvalidRequestError, NotFoundError
from banksync.repositories.transaction import TransactionRepository
from banksync.schemas.common import PaginationMeta
from banksync.schemas.transaction import (
    TransactionCategoryRequest,
    TransactionListResult,
    TransactionResponse,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get(
    "",
    response_model=TransactionListResult,
    summary="List transactions with filters",
    description="""
    Query synced transactions, newest first.

    ## Filters
    - **bank_account_id**: Filter by bank account
    - **category**: Filter by category slug
    - **start_date**, **end_date**: Date range filter (inclusive)
    """,
)
async def list_transactions(
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    limit: Annotated[int, Query(ge=1, le=200, description="Items per page (1-200)")] = 50,
    bank_account_id: Annotated[UUID | None, Query(description="Filter by bank account")] = None,
    category: Annotated[str | None, Query(description="Filter by category")] = None,
    start_date: Annotated[date | None, Query(description="Filter from date (inclusive)")] = None,
    end_date: Annotated[date | None, Query(description="Filter to date (inclusive)")] = None,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TransactionListResult:
    transactions, total = await TransactionRepository(db).search(
        user_id,
        bank_account_id=bank_account_id,
        category=category,
        start_date=start_date,
        end_date=end_date,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return TransactionListResult(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        pagination=PaginationMeta(
            page=page, limit=limit, total=total, pages=(total + limit - 1) // limit
        ),
    )


@router.patch(
    "/{transaction_id}/category",
    response_model=TransactionResponse,
    summary="Set a manual category",
    description="A manual category is kept by later syncs and wins over every rule.",
)
async def set_transaction_category(
    transaction_id: UUID,
    body: TransactionCategoryRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    correlation_id: str = Depends(get_correlation_id),
):
    category = body.category.strip().lower()
    if category not in CATEGORIES:
        raise InvalidRequestError(
            "INVALID_REQUEST", {"category": "unsupported", "allowed": list(CATEGORIES)}, correlation_id
        )
    txn = await TransactionRepository(db).set_manual_category(user_id, transaction_id, category)
    if txn is None:
        raise NotFoundError("TRANSACTION_NOT_FOUND", {"transaction_id": str(transaction_id)}, correlation_id)
    return txn
