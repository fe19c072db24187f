"""Transaction model representing synced bank transactions."""
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from banksync.models.base import BaseModel


class Transaction(BaseModel):
    """One booked or pending transaction of a bank account.

    Rows are written once by the sync upsert; only the category (with
    ``category_source = "manual"``) is edited afterwards.
    """

    __tablename__ = "transactions"

    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    bank_account_id: Mapped[UUID] = mapped_column(
        ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)
    txn_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    counterparty: Mapped[str | None] = mapped_column(String(255), nullable=True)
    merchant_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mcc: Mapped[str | None] = mapped_column(String(4), nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="uncategorized", index=True)
    category_source: Mapped[str] = mapped_column(String(10), nullable=False, default="auto")
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="booked")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "bank_account_id", "transaction_id", name="uq_transactions_user_account_txn"
        ),
        Index("ix_transactions_user_id_merchant_key", "user_id", "merchant_key"),
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, date={self.txn_date}, amount={self.amount})>"
