"""User-specific category rules.

This is intentionally user-scoped (not global) so each user can correct
ambiguous bank texts without maintaining a global merchant dictionary.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from banksync.categorization.overrides import MatchType, UserRule
from banksync.models.base import BaseModel


class CategoryOverride(BaseModel):
    """A reusable rule mapping matching transactions to a category."""

    __tablename__ = "category_overrides"

    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    match_type: Mapped[str] = mapped_column(String(32), nullable=False)
    pattern: Mapped[str | None] = mapped_column(String(500), nullable=True)
    amount_min: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    amount_max: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("ix_category_overrides_user_priority", "user_id", "priority"),)

    def to_rule(self) -> UserRule:
        return UserRule(
            match_type=MatchType(self.match_type),
            category=self.category,
            pattern=self.pattern or "",
            amount_min=self.amount_min,
            amount_max=self.amount_max,
            currency=self.currency,
            priority=self.priority,
            created_at=self.created_at,
            is_enabled=self.is_enabled,
        )

    def __repr__(self) -> str:
        return (
            f"<CategoryOverride(id={self.id}, match_type={self.match_type}, "
            f"category={self.category}, priority={self.priority})>"
        )
