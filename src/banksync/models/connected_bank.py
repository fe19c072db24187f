"""Connected bank: one consent/requisition flow with one institution."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from banksync.models.base import BaseModel


class ConnectedBank(BaseModel):
    """A user's link to an institution through the aggregator.

    ``account_id`` holds a unique placeholder (the requisition id) so a user
    can connect the same institution more than once. ``link_id`` is the
    upstream requisition id used to finalize the flow.
    """

    __tablename__ = "connected_banks"

    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    institution_id: Mapped[str] = mapped_column(String(128), nullable=False)
    bank_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider: Mapped[str] = mapped_column(String(32), nullable=False, default="gocardless")
    account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    link_id: Mapped[str] = mapped_column(String(255), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    consent_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "account_id", name="uq_connected_banks_user_account"),
        Index("ix_connected_banks_user_link", "user_id", "link_id"),
        Index("ix_connected_banks_user_reference", "user_id", "reference"),
    )

    accounts: Mapped[list["BankAccount"]] = relationship(
        "BankAccount", back_populates="connected_bank", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<ConnectedBank(id={self.id}, institution={self.institution_id}, status={self.status})>"
