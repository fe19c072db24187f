"""FastAPI dependency injection for authentication, database and upstream access."""

from typing import AsyncIterator
from uuid import UUID, uuid4

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.config import AggregatorConfig, SyncPolicy, get_settings
from banksync.core.exceptions import AuthenticationError
from banksync.core.security import get_user_id_from_token
from banksync.db.session import get_db
from banksync.services.institutions import InstitutionService
from banksync.services.requisition import RequisitionService
from banksync.services.sync import SyncService
from banksync.upstream.aggregator import AggregatorClient

# Bearer token issued by the identity provider. Missing credentials are
# reported as AUTH_REQUIRED by get_current_user_id rather than by FastAPI.
security = HTTPBearer(auto_error=False)


def get_correlation_id(request: Request) -> str:
    """Correlation id assigned by the request logging middleware."""
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id is None:
        correlation_id = str(uuid4())
        request.state.correlation_id = correlation_id
    return correlation_id


async def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    correlation_id: str = Depends(get_correlation_id),
) -> UUID:
    """
    Extract and validate the caller from the session JWT.

    Returns:
        The caller's user id (``sub`` claim)

    Raises:
        AuthenticationError: If the token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("AUTH_REQUIRED", {}, correlation_id)

    try:
        user_id = get_user_id_from_token(credentials.credentials)
    except (JWTError, ValueError):
        raise AuthenticationError("AUTH_REQUIRED", {}, correlation_id)

    request.state.user_id = str(user_id)
    return user_id


def get_aggregator_config() -> AggregatorConfig:
    """Aggregator config; raises CONFIG_MISSING if credentials are absent."""
    return get_settings().aggregator_config()


def get_sync_policy() -> SyncPolicy:
    return get_settings().sync_policy()


def get_supported_countries() -> list[str]:
    return get_settings().country_list()


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One outbound HTTP client per request, closed when the request ends."""
    async with httpx.AsyncClient() as client:
        yield client


async def get_aggregator(
    config: AggregatorConfig = Depends(get_aggregator_config),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> AggregatorClient:
    return AggregatorClient.from_http(config, http)


async def get_sync_service(
    db: AsyncSession = Depends(get_db),
    aggregator: AggregatorClient = Depends(get_aggregator),
    config: AggregatorConfig = Depends(get_aggregator_config),
    policy: SyncPolicy = Depends(get_sync_policy),
) -> SyncService:
    return SyncService(db, aggregator, config, policy)


async def get_requisition_service(
    db: AsyncSession = Depends(get_db),
    aggregator: AggregatorClient = Depends(get_aggregator),
    config: AggregatorConfig = Depends(get_aggregator_config),
) -> RequisitionService:
    return RequisitionService(db, aggregator, config)


async def get_institution_service(
    aggregator: AggregatorClient = Depends(get_aggregator),
) -> InstitutionService:
    return InstitutionService(aggregator)


__all__ = [
    "get_aggregator",
    "get_aggregator_config",
    "get_correlation_id",
    "get_current_user_id",
    "get_db",
    "get_http_client",
    "get_institution_service",
    "get_requisition_service",
    "get_supported_countries",
    "get_sync_policy",
    "get_sync_service",
]
