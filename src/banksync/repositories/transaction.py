"""Transaction repository with filtering and idempotent batch inserts."""
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.models.base import utcnow
from banksync.models.transaction import Transaction
from banksync.repositories.base import BaseRepository, dialect_insert

CONFLICT_KEY = ["user_id", "bank_account_id", "transaction_id"]


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model with filtering queries."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def latest_date(self, user_id: UUID, bank_account_id: UUID) -> date | None:
        """Date of the newest stored transaction of an account."""
        result = await self.db.execute(
            select(func.max(Transaction.txn_date)).where(
                Transaction.user_id == user_id, Transaction.bank_account_id == bank_account_id
            )
        )
        return result.scalar_one_or_none()

    async def count_for_account(self, user_id: UUID, bank_account_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count()).where(
                Transaction.user_id == user_id, Transaction.bank_account_id == bank_account_id
            )
        )
        return result.scalar_one()

    async def insert_ignore_conflicts(self, rows: list[dict], batch_size: int = 200) -> int:
        """
        Insert rows, leaving existing (user, account, transaction id) rows untouched.

        All chunks are written in one database transaction, so a failure
        leaves no partial batch behind.

        Args:
            rows: Column dicts for new transactions
            batch_size: Rows per INSERT statement

        Returns:
            Number of rows actually inserted
        """
        if not rows:
            return 0

        now = utcnow()
        prepared = [
            {"id": uuid4(), "created_at": now, "updated_at": now, **row} for row in rows
        ]
        inserted = 0
        try:
            for start in range(0, len(prepared), batch_size):
                chunk = prepared[start : start + batch_size]
                stmt = (
                    dialect_insert(self.db, Transaction)
                    .values(chunk)
                    .on_conflict_do_nothing(index_elements=CONFLICT_KEY)
                    .returning(Transaction.id)
                )
                result = await self.db.execute(stmt)
                inserted += len(result.all())
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return inserted

    async def search(
        self,
        user_id: UUID,
        bank_account_id: UUID | None = None,
        category: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[Transaction], int]:
        """Filtered, newest-first page of a user's transactions plus the total count."""
        query = select(Transaction).where(Transaction.user_id == user_id)
        if bank_account_id:
            query = query.where(Transaction.bank_account_id == bank_account_id)
        if category:
            query = query.where(Transaction.category == category)
        if start_date:
            query = query.where(Transaction.txn_date >= start_date)
        if end_date:
            query = query.where(Transaction.txn_date <= end_date)

        total = (await self.db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        result = await self.db.execute(
            query.order_by(Transaction.txn_date.desc(), Transaction.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def set_manual_category(
        self, user_id: UUID, transaction_pk: UUID, category: str
    ) -> Transaction | None:
        txn = await self.get_for_user(user_id, transaction_pk)
        if txn is None:
            return None
        txn.category = category
        txn.category_source = "manual"
        await self.db.commit()
        await self.db.refresh(txn)
        return txn
