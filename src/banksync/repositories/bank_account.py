"""Bank account repository with user-scoped queries and sync bookkeeping."""
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.models.bank_account import BankAccount
from banksync.models.base import utcnow
from banksync.repositories.base import BaseRepository, dialect_insert


class BankAccountRepository(BaseRepository[BankAccount]):
    """Repository for BankAccount model with user-scoped security."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, BankAccount)

    async def get_all_by_user(
        self,
        user_id: UUID,
        connected_bank_id: UUID | None = None,
        selected_only: bool = False,
    ) -> list[BankAccount]:
        query = select(BankAccount).where(BankAccount.user_id == user_id)
        if connected_bank_id is not None:
            query = query.where(BankAccount.connected_bank_id == connected_bank_id)
        if selected_only:
            query = query.where(BankAccount.is_selected.is_(True))
        result = await self.db.execute(query.order_by(BankAccount.created_at, BankAccount.id))
        return list(result.scalars().all())

    async def upsert_from_upstream(
        self,
        user_id: UUID,
        connected_bank_id: UUID,
        provider: str,
        account_id: str,
        name: str,
        iban: str | None,
        currency: str | None,
        account_type: str | None,
        mark_selected: bool = False,
    ) -> BankAccount:
        """Insert or refresh one account, idempotent on (user, provider, account id).

        An existing row keeps its selection flag unless ``mark_selected`` is set.
        """
        now = utcnow()
        values = {
            "id": uuid4(),
            "user_id": user_id,
            "connected_bank_id": connected_bank_id,
            "provider": provider,
            "account_id": account_id,
            "name": name,
            "iban": iban,
            "currency": currency,
            "account_type": account_type,
            "is_selected": mark_selected,
            "created_at": now,
            "updated_at": now,
        }
        stmt = dialect_insert(self.db, BankAccount).values(**values)
        updates = {
            "connected_bank_id": stmt.excluded.connected_bank_id,
            "name": stmt.excluded.name,
            "iban": stmt.excluded.iban,
            "currency": stmt.excluded.currency,
            "account_type": stmt.excluded.account_type,
            "updated_at": now,
        }
        if mark_selected:
            updates["is_selected"] = True
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "provider", "account_id"], set_=updates
        ).returning(BankAccount.id)
        account_pk = (await self.db.execute(stmt)).scalar_one()
        await self.db.commit()

        account = await self.get_for_user(user_id, account_pk)
        await self.db.refresh(account)
        return account

    async def record_sync(
        self,
        user_id: UUID,
        account_pk: UUID,
        status: str,
        last_sync_at: datetime | None = None,
        next_allowed_sync_at: datetime | None = None,
    ) -> None:
        """Persist sync bookkeeping; only the fields given are changed."""
        values: dict = {"last_sync_status": status, "updated_at": utcnow()}
        if last_sync_at is not None:
            values["last_sync_at"] = last_sync_at
        if next_allowed_sync_at is not None:
            values["next_allowed_sync_at"] = next_allowed_sync_at
        await self.db.execute(
            update(BankAccount)
            .where(BankAccount.id == account_pk, BankAccount.user_id == user_id)
            .values(**values)
        )
        await self.db.commit()
