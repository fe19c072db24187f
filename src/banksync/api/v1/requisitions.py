"""Consent flow endpoints: create, finalize and disconnect."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from banksync.api.deps import get_correlation_id, get_current_user_id, get_requisition_service
from banksync.schemas.requisition import (
    ConnectedBankResponse,
    CreateRequisitionRequest,
    CreateRequisitionResponse,
    FinalizeRequisitionRequest,
    FinalizeRequisitionResponse,
)
from banksync.services.requisition import RequisitionService

router = APIRouter(tags=["requisitions"])


@router.post(
    "/requisitions",
    response_model=CreateRequisitionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a bank connection",
    description="""
    Create a consent agreement and a requisition for one institution.

    The response carries the `link` the user must open to grant consent at the
    bank. A pending connected bank is stored with the requisition id.
    """,
)
async def create_requisition(
    body: CreateRequisitionRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: RequisitionService = Depends(get_requisition_service),
    correlation_id: str = Depends(get_correlation_id),
) -> dict:
    return await service.create(
        user_id,
        body.institution_id,
        body.redirect_url,
        bank_name=body.bank_name,
        country=body.country,
        correlation_id=correlation_id,
    )


@router.post(
    "/requisitions/finalize",
    response_model=FinalizeRequisitionResponse,
    summary="Finish a bank connection",
    description="""
    Look up the caller's requisition (by id or reference), store the linked
    accounts and return them together with a `sync_hint`.

    Expired or unlinked consent is reported as `REQUISITION_EXPIRED` /
    `REQUISITION_NOT_LINKED` (409); restart the flow with the same institution.
    """,
)
async def finalize_requisition(
    body: FinalizeRequisitionRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: RequisitionService = Depends(get_requisition_service),
    correlation_id: str = Depends(get_correlation_id),
) -> dict:
    return await service.finalize(
        user_id,
        body.requisition_id or body.reference or "",
        select_accounts=body.select_accounts,
        correlation_id=correlation_id,
    )


@router.get(
    "/connected-banks",
    response_model=list[ConnectedBankResponse],
    summary="List connected banks",
)
async def list_connected_banks(
    user_id: UUID = Depends(get_current_user_id),
    service: RequisitionService = Depends(get_requisition_service),
) -> list:
    return await service.list_connections(user_id)


@router.delete(
    "/connected-banks/{connected_bank_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Disconnect a bank",
    description="Delete the connected bank with its accounts and their transactions.",
)
async def disconnect_bank(
    connected_bank_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: RequisitionService = Depends(get_requisition_service),
    correlation_id: str = Depends(get_correlation_id),
) -> Response:
    await service.disconnect(user_id, connected_bank_id, correlation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
