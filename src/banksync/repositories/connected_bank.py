"""Connected bank repository with user-scoped queries."""
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.models.bank_account import BankAccount
from banksync.models.base import utcnow
from banksync.models.connected_bank import ConnectedBank
from banksync.models.transaction import Transaction
from banksync.repositories.base import BaseRepository, dialect_insert


class ConnectedBankRepository(BaseRepository[ConnectedBank]):
    """Repository for ConnectedBank model with user-scoped security."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ConnectedBank)

    async def get_all_by_user(self, user_id: UUID) -> list[ConnectedBank]:
        result = await self.db.execute(
            select(ConnectedBank)
            .where(ConnectedBank.user_id == user_id)
            .order_by(ConnectedBank.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_requisition(self, user_id: UUID, requisition: str) -> ConnectedBank | None:
        """Find the caller's connected bank by requisition id or creation reference."""
        result = await self.db.execute(
            select(ConnectedBank)
            .where(
                ConnectedBank.user_id == user_id,
                or_(ConnectedBank.link_id == requisition, ConnectedBank.reference == requisition),
            )
            .order_by(ConnectedBank.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert_pending(
        self,
        user_id: UUID,
        institution_id: str,
        requisition_id: str,
        reference: str,
        provider: str,
        bank_name: str | None = None,
        country: str | None = None,
    ) -> ConnectedBank:
        """Record a freshly created requisition as a pending connection.

        Keyed on (user_id, account_id) with the requisition id as the
        placeholder account id, so replays update the same row.
        """
        now = utcnow()
        values = {
            "id": uuid4(),
            "user_id": user_id,
            "institution_id": institution_id,
            "bank_name": bank_name,
            "provider": provider,
            "account_id": requisition_id,
            "link_id": requisition_id,
            "reference": reference,
            "status": "pending",
            "country": country,
            "created_at": now,
            "updated_at": now,
        }
        stmt = dialect_insert(self.db, ConnectedBank).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "account_id"],
            set_={
                "institution_id": stmt.excluded.institution_id,
                "bank_name": stmt.excluded.bank_name,
                "link_id": stmt.excluded.link_id,
                "reference": stmt.excluded.reference,
                "status": "pending",
                "updated_at": now,
            },
        ).returning(ConnectedBank.id)
        bank_id = (await self.db.execute(stmt)).scalar_one()
        await self.db.commit()

        bank = await self.get_for_user(user_id, bank_id)
        await self.db.refresh(bank)
        return bank

    async def set_status(
        self, bank: ConnectedBank, status: str, consent_expires_at: datetime | None = None
    ) -> ConnectedBank:
        bank.status = status
        if consent_expires_at is not None:
            bank.consent_expires_at = consent_expires_at
        await self.db.commit()
        await self.db.refresh(bank)
        return bank

    async def delete_with_children(self, user_id: UUID, bank_id: UUID) -> bool:
        """Delete a connected bank with its accounts and their transactions."""
        bank = await self.get_for_user(user_id, bank_id)
        if bank is None:
            return False

        account_ids = select(BankAccount.id).where(
            BankAccount.connected_bank_id == bank_id, BankAccount.user_id == user_id
        )
        await self.db.execute(
            delete(Transaction).where(
                Transaction.user_id == user_id, Transaction.bank_account_id.in_(account_ids)
            )
        )
        await self.db.execute(
            delete(BankAccount).where(
                BankAccount.connected_bank_id == bank_id, BankAccount.user_id == user_id
            )
        )
        await self.db.execute(
            delete(ConnectedBank).where(ConnectedBank.id == bank_id, ConnectedBank.user_id == user_id)
        )
        await self.db.commit()
        return True
