"""Sync request/response schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field


class SyncRequest(BaseModel):
    bank_account_id: UUID
    date_from: date | None = None
    date_to: date | None = None
    force: bool = Field(default=False, description="Bypass cooldown (allow-listed users only)")


class SyncAllRequest(BaseModel):
    connected_bank_id: UUID | None = None


class SyncResult(BaseModel):
    """Outcome of one account sync; no-op results carry ``reason``."""

    ok: bool
    noop: bool = False
    reason: str | None = None
    bank_account_id: str
    fetched: int | None = None
    inserted: int | None = None
    next_allowed_sync_at: str | None = None
    wait_seconds: int | None = None
    last_sync_at: str | None = None
    min_interval_minutes: int | None = None
    code: str | None = None
    correlation_id: str | None = None


class SyncBatchResult(BaseModel):
    total: int
    completed: int
    noop: int
    failed: int
    results: list[SyncResult]
