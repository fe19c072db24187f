"""Transaction-specific request/response schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from banksync.schemas.common import PaginationMeta


class TransactionResponse(BaseModel):
    id: UUID
    bank_account_id: UUID
    transaction_id: str
    txn_date: date
    amount: Decimal
    currency: str | None
    description: str
    counterparty: str | None
    merchant_key: str | None
    category: str
    category_source: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionListResult(BaseModel):
    transactions: list[TransactionResponse]
    pagination: PaginationMeta


class TransactionCategoryRequest(BaseModel):
    """Manual category for a single transaction."""

    category: str = Field(description="Category to apply (must be from supported taxonomy)")
