"""User category rule endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.api.deps import get_correlation_id, get_current_user_id, get_db
from banksync.categorization.overrides import AMOUNT_MATCH_TYPES, MatchType
from banksync.categorization.rules import CATEGORIES
from banksync.core.exceptions import InvalidRequestError, NotFoundError
from banksync.models.category_override import CategoryOverride
from banksync.repositories.category_override import CategoryOverrideRepository
from banksync.schemas.rules import CategoryRuleCreate, CategoryRuleResponse

router = APIRouter(prefix="/category-rules", tags=["category-rules"])


def _validate_rule(body: CategoryRuleCreate, correlation_id: str) -> None:
    if body.category.strip().lower() not in CATEGORIES:
        raise InvalidRequestError("INVALID_REQUEST", {"category": "unsupported"}, correlation_id)
    if body.match_type in AMOUNT_MATCH_TYPES:
        if body.match_type == MatchType.AMOUNT_EQUALS and body.amount_min is None:
            raise InvalidRequestError("MISSING_FIELDS", {"missing": ["amount_min"]}, correlation_id)
        if body.amount_min is None and body.amount_max is None:
            raise InvalidRequestError("MISSING_FIELDS", {"missing": ["amount_min", "amount_max"]}, correlation_id)
    elif not (body.pattern or "").strip():
        raise InvalidRequestError("MISSING_FIELDS", {"missing": ["pattern"]}, correlation_id)


@router.get("", response_model=list[CategoryRuleResponse], summary="List category rules")
async def list_rules(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list:
    """Rules of the caller in evaluation order (priority, then age)."""
    return await CategoryOverrideRepository(db).get_all_by_user(user_id)


@router.post(
    "",
    response_model=CategoryRuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category rule",
    description="Rules apply to transactions stored by later syncs; lower priority wins.",
)
async def create_rule(
    body: CategoryRuleCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    correlation_id: str = Depends(get_correlation_id),
):
    _validate_rule(body, correlation_id)
    rule = CategoryOverride(
        user_id=user_id,
        match_type=body.match_type.value,
        pattern=(body.pattern or "").strip() or None,
        amount_min=body.amount_min,
        amount_max=body.amount_max,
        currency=body.currency.upper() if body.currency else None,
        category=body.category.strip().lower(),
        priority=body.priority,
        is_enabled=body.is_enabled,
    )
    return await CategoryOverrideRepository(db).create(rule)


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a category rule",
)
async def delete_rule(
    rule_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    correlation_id: str = Depends(get_correlation_id),
) -> Response:
    deleted = await CategoryOverrideRepository(db).delete_for_user(user_id, rule_id)
    if not deleted:
        raise NotFoundError("RULE_NOT_FOUND", {"rule_id": str(rule_id)}, correlation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
