"""Payment transaction API endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from autohub.api.deps import PaymentServiceDep, parse_payload, read_upload
from autohub.core.logging import get_logger
from autohub.database.models.payment import ReferenceType, TransactionStatus
from autohub.schemas.common import PaginationMeta
from autohub.schemas.transactions import (
    TransactionCreateRequest,
    TransactionDetailResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionStatsResponse,
    TransactionStatusUpdateRequest,
)
from autohub.services.pagination import Page

logger = get_logger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _transaction_list(result: Page) -> TransactionListResponse:
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in result.items],
        meta=PaginationMeta(**result.meta()),
    )


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a payment transaction",
    description=(
        "The amount must equal the referenced entity's total; the reference "
        "is marked payment_pending"
    ),
)
async def create_transaction(
    service: PaymentServiceDep,
    payload: str = Form(..., description="TransactionCreateRequest as JSON"),
    receipt: Optional[UploadFile] = File(None),
) -> TransactionResponse:
    request = parse_payload(TransactionCreateRequest, payload)
    transaction = await service.create_transaction(
        payer_id=request.payer_id,
        reference_type=request.reference_type,
        reference_id=request.reference_id,
        amount=request.amount,
        payment_method=request.payment_method,
        currency=request.currency,
        receipt=await read_upload(receipt),
    )
    return TransactionResponse.model_validate(transaction)


@router.get("", response_model=TransactionListResponse, summary="List transactions")
async def list_transactions(
    service: PaymentServiceDep,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    transaction_status: Optional[TransactionStatus] = Query(None, alias="status"),
    payer_id: Optional[UUID] = None,
    payment_method: Optional[str] = None,
    reference_type: Optional[ReferenceType] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
) -> TransactionListResponse:
    result = await service.list_transactions(
        page=page,
        limit=limit,
        status=transaction_status,
        payer_id=payer_id,
        payment_method=payment_method,
        reference_type=reference_type,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    return _transaction_list(result)


@router.get("/stats", response_model=TransactionStatsResponse, summary="Transaction statistics")
async def get_transaction_stats(service: PaymentServiceDep) -> TransactionStatsResponse:
    return TransactionStatsResponse(**await service.get_transaction_stats())


@router.get(
    "/users/{payer_id}",
    response_model=TransactionListResponse,
    summary="Transactions of a payer",
)
async def get_user_transactions(
    payer_id: str,
    service: PaymentServiceDep,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
) -> TransactionListResponse:
    return _transaction_list(
        await service.get_user_transactions(payer_id, page=page, limit=limit)
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionDetailResponse,
    summary="Get a transaction with its reference details",
)
async def get_transaction(
    transaction_id: str,
    service: PaymentServiceDep,
) -> TransactionDetailResponse:
    details = await service.get_transaction(transaction_id)
    return TransactionDetailResponse(
        transaction=TransactionResponse.model_validate(details.transaction),
        reference_details=details.reference.to_dict() if details.reference is not None else None,
    )


@router.put(
    "/{transaction_id}/status",
    response_model=TransactionResponse,
    summary="Update transaction status",
    description="A completed transaction can only be refunded",
)
async def update_transaction_status(
    transaction_id: str,
    request: TransactionStatusUpdateRequest,
    service: PaymentServiceDep,
) -> TransactionResponse:
    transaction = await service.update_transaction_status(
        transaction_id,
        request.status,
        remarks=request.remarks,
    )
    return TransactionResponse.model_validate(transaction)
