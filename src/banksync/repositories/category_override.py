"""Category rule repository."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.categorization.overrides import UserRule
from banksync.models.category_override import CategoryOverride
from banksync.repositories.base import BaseRepository


class CategoryOverrideRepository(BaseRepository[CategoryOverride]):
    """Repository for a user's reusable category rules."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, CategoryOverride)

    async def get_all_by_user(self, user_id: UUID) -> list[CategoryOverride]:
        """All rules of a user in evaluation order."""
        result = await self.db.execute(
            select(CategoryOverride)
            .where(CategoryOverride.user_id == user_id)
            .order_by(CategoryOverride.priority, CategoryOverride.created_at)
        )
        return list(result.scalars().all())

    async def rules_for_user(self, user_id: UUID) -> list[UserRule]:
        return [row.to_rule() for row in await self.get_all_by_user(user_id)]

    async def delete_for_user(self, user_id: UUID, rule_id: UUID) -> bool:
        rule = await self.get_for_user(user_id, rule_id)
        if rule is None:
            return False
        await self.db.delete(rule)
        await self.db.commit()
        return True
