"""API version 1 routes."""

from fastapi import APIRouter

from banksync.api.v1 import accounts, health, institutions, requisitions, rules, sync, transactions
from banksync.schemas.common import ErrorResponse

router = APIRouter(
    prefix="/api/v1",
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid input"},
        401: {"model": ErrorResponse, "description": "Missing or invalid session"},
        502: {"model": ErrorResponse, "description": "Aggregator call failed"},
    },
)

# Include routers
router.include_router(health.router)
router.include_router(institutions.router)
router.include_router(requisitions.router)
router.include_router(accounts.router)
router.include_router(sync.router)
router.include_router(transactions.router)
router.include_router(rules.router)
