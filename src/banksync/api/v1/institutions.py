"""Country and institution listing endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from banksync.api.deps import (
    get_correlation_id,
    get_current_user_id,
    get_institution_service,
    get_supported_countries,
)
from banksync.schemas.institution import CountryResponse, InstitutionResponse
from banksync.services.institutions import InstitutionService

router = APIRouter(prefix="/institutions", tags=["institutions"])


@router.get(
    "/countries",
    response_model=list[CountryResponse],
    summary="List supported countries",
)
async def list_countries(countries: list[str] = Depends(get_supported_countries)) -> list[dict]:
    """Countries the connect flow offers, in configured order."""
    return InstitutionService.list_countries(countries)


@router.get(
    "",
    response_model=list[InstitutionResponse],
    summary="List banks for a country",
    description="Institutions the aggregator offers for a two-letter country code (default SE).",
)
async def list_institutions(
    country: Annotated[str, Query(description="ISO 3166 alpha-2 country code")] = "SE",
    user_id: UUID = Depends(get_current_user_id),
    service: InstitutionService = Depends(get_institution_service),
    correlation_id: str = Depends(get_correlation_id),
) -> list[dict]:
    return await service.list_institutions(country, correlation_id)
