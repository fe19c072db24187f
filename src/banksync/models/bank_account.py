"""Bank account model: one upstream account under a connected bank."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from banksync.models.base import BaseModel


class BankAccount(BaseModel):
    """Bank account with its sync bookkeeping."""

    __tablename__ = "bank_accounts"

    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    connected_bank_id: Mapped[UUID] = mapped_column(
        ForeignKey("connected_banks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(32), nullable=False, default="gocardless")
    account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="Account")
    iban: Mapped[str | None] = mapped_column(String(64), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    account_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_selected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_allowed_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sync_status: Mapped[str | None] = mapped_column(String(32), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "provider", "account_id", name="uq_bank_accounts_user_provider_account"),
    )

    connected_bank: Mapped["ConnectedBank"] = relationship("ConnectedBank", back_populates="accounts")

    def __repr__(self) -> str:
        return f"<BankAccount(id={self.id}, name={self.name}, status={self.last_sync_status})>"
