"""
Part order request and response schemas.

Order creation arrives as the JSON ``payload`` field of a multipart form
next to the uploaded shipping documents.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autohub.database.models.order import PartOrderStatus
from autohub.database.models.payment import ReferencePaymentStatus
from autohub.schemas.common import PaginationMeta


class OrderItemRequest(BaseModel):
    part_id: UUID = Field(..., description="Ordered car part")
    quantity: int = Field(..., gt=0, description="Units ordered")


class ShippingAddressRequest(BaseModel):
    """Shipping details. Unknown keys are kept as given."""

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    name: Optional[str] = Field(None, max_length=200)
    street_address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=255, description="Receives order emails")

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Invalid email format")
        return v.lower()


class PartOrderCreateRequest(BaseModel):
    buyer_id: UUID
    items: list[OrderItemRequest] = Field(..., min_length=1)
    shipping_address: ShippingAddressRequest = Field(default_factory=ShippingAddressRequest)


class OrderStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    status: PartOrderStatus
    tracking_number: Optional[str] = Field(None, max_length=100)
    remarks: Optional[str] = Field(None, max_length=2000)


class PartOrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    part_id: Optional[UUID]
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class PartOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    buyer_id: UUID
    status: PartOrderStatus
    payment_status: Optional[ReferencePaymentStatus]
    total_amount: Decimal
    items: list[PartOrderItemResponse]
    shipping_address: dict[str, Any]
    tracking_number: Optional[str]
    remarks: Optional[str]
    documents: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PartOrderListResponse(BaseModel):
    orders: list[PartOrderResponse]
    meta: PaginationMeta


class OrderStatusStats(BaseModel):
    status: PartOrderStatus
    count: int
    total_revenue: Decimal
    avg_order_value: Decimal


class MonthlyOrderStats(BaseModel):
    year: int
    month: int
    orders: int
    revenue: Decimal


class TopSellingPart(BaseModel):
    part_id: UUID
    name: str
    total_quantity: int
    total_revenue: Decimal


class OrderStatsResponse(BaseModel):
    status_stats: list[OrderStatusStats]
    monthly_stats: list[MonthlyOrderStats]
    top_selling_parts: list[TopSellingPart]
