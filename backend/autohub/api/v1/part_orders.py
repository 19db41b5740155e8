"""
Part order API endpoints.

Path ids are taken as plain strings so that malformed ids surface as the
service's ``invalid_argument`` error rather than a 422.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from autohub.api.deps import OrderServiceDep, parse_payload, read_uploads
from autohub.core.logging import get_logger
from autohub.database.models.order import PartOrderStatus
from autohub.schemas.common import PaginationMeta
from autohub.schemas.orders import (
    OrderStatsResponse,
    OrderStatusUpdateRequest,
    PartOrderCreateRequest,
    PartOrderListResponse,
    PartOrderResponse,
)
from autohub.services.pagination import Page

logger = get_logger(__name__)

router = APIRouter(prefix="/part-orders", tags=["part-orders"])


def _order_list(result: Page) -> PartOrderListResponse:
    return PartOrderListResponse(
        orders=[PartOrderResponse.model_validate(order) for order in result.items],
        meta=PaginationMeta(**result.meta()),
    )


@router.post(
    "",
    response_model=PartOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place a part order",
    description="Validates stock, snapshots prices and takes the quantities out of stock",
)
async def create_order(
    service: OrderServiceDep,
    payload: str = Form(..., description="PartOrderCreateRequest as JSON"),
    documents: Optional[list[UploadFile]] = File(None),
) -> PartOrderResponse:
    request = parse_payload(PartOrderCreateRequest, payload)
    order = await service.create_order(
        buyer_id=request.buyer_id,
        items=[item.model_dump() for item in request.items],
        shipping_address=request.shipping_address.model_dump(exclude_none=True),
        attachments=await read_uploads(documents),
    )
    return PartOrderResponse.model_validate(order)


@router.get("", response_model=PartOrderListResponse, summary="List part orders")
async def list_orders(
    service: OrderServiceDep,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    order_status: Optional[PartOrderStatus] = Query(None, alias="status"),
    buyer_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
) -> PartOrderListResponse:
    result = await service.list_orders(
        page=page,
        limit=limit,
        status=order_status,
        buyer_id=buyer_id,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    return _order_list(result)


@router.get("/stats", response_model=OrderStatsResponse, summary="Order statistics")
async def get_order_stats(service: OrderServiceDep) -> OrderStatsResponse:
    return OrderStatsResponse(**await service.get_order_stats())


@router.get(
    "/users/{buyer_id}",
    response_model=PartOrderListResponse,
    summary="Order history of a buyer",
)
async def get_user_orders(
    buyer_id: str,
    service: OrderServiceDep,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
) -> PartOrderListResponse:
    return _order_list(await service.get_user_orders(buyer_id, page=page, limit=limit))


@router.get("/{order_id}", response_model=PartOrderResponse, summary="Get a part order")
async def get_order(order_id: str, service: OrderServiceDep) -> PartOrderResponse:
    return PartOrderResponse.model_validate(await service.get_order(order_id))


@router.put(
    "/{order_id}/status",
    response_model=PartOrderResponse,
    summary="Update order status",
    description="Cancelling restores stock; shipping requires a tracking number",
)
async def update_order_status(
    order_id: str,
    request: OrderStatusUpdateRequest,
    service: OrderServiceDep,
) -> PartOrderResponse:
    order = await service.update_order_status(
        order_id,
        request.status,
        tracking_number=request.tracking_number,
        remarks=request.remarks,
    )
    return PartOrderResponse.model_validate(order)
