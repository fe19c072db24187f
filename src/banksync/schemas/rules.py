"""Schemas for user category rules."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from banksync.categorization.overrides import MatchType


class CategoryRuleCreate(BaseModel):
    """New reusable rule. Text match types need ``pattern``, amount ones need bounds."""

    match_type: MatchType
    category: str
    pattern: str | None = Field(default=None, max_length=500)
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    priority: int = Field(default=100, ge=0, le=10_000)
    is_enabled: bool = True


class CategoryRuleResponse(BaseModel):
    id: UUID
    match_type: MatchType
    category: str
    pattern: str | None
    amount_min: Decimal | None
    amount_max: Decimal | None
    currency: str | None
    priority: int
    is_enabled: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
