"""Requisition, connected bank and bank account schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CreateRequisitionRequest(BaseModel):
    """Start a consent flow with one institution."""

    institution_id: str = Field(min_length=1, max_length=128)
    redirect_url: str = Field(description="Absolute http(s) URL the bank returns to")
    bank_name: str | None = Field(default=None, max_length=255)
    country: str | None = Field(default=None, min_length=2, max_length=2)


class CreateRequisitionResponse(BaseModel):
    link: str = Field(description="URL where the user grants consent at the bank")
    requisition_id: str
    reference: str
    connected_bank_id: UUID


class FinalizeRequisitionRequest(BaseModel):
    """Either the requisition id or the reference from creation."""

    requisition_id: str | None = None
    reference: str | None = None
    select_accounts: bool = False


class BankAccountResponse(BaseModel):
    id: UUID
    connected_bank_id: UUID
    account_id: str
    name: str
    iban: str | None
    currency: str | None
    account_type: str | None
    is_selected: bool
    last_sync_at: datetime | None
    next_allowed_sync_at: datetime | None
    last_sync_status: str | None

    model_config = ConfigDict(from_attributes=True)


class BankAccountUpdateRequest(BaseModel):
    is_selected: bool


class ConnectedBankResponse(BaseModel):
    id: UUID
    institution_id: str
    bank_name: str | None
    status: str
    country: str | None
    consent_expires_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SyncHint(BaseModel):
    """Handoff the client stores to trigger a sync right after finalize."""

    account_ids: list[UUID]
    created_at: datetime


class FinalizeRequisitionResponse(BaseModel):
    connected_bank: ConnectedBankResponse
    accounts: list[BankAccountResponse]
    sync_hint: SyncHint
