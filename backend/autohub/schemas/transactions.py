"""Payment transaction request and response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autohub.database.models.payment import ReferenceType, TransactionStatus
from autohub.schemas.common import PaginationMeta


class TransactionCreateRequest(BaseModel):
    """
    Payment against a referenced entity.

    ``amount`` must equal the reference total exactly; it is parsed as a
    decimal so ``30.01`` is never rounded.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    payer_id: UUID
    reference_type: ReferenceType
    reference_id: UUID
    amount: Decimal = Field(..., ge=0)
    payment_method: str = Field(..., min_length=1, max_length=50)
    currency: str = Field("USD", min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


class TransactionStatusUpdateRequest(BaseModel):
    status: TransactionStatus
    remarks: Optional[str] = Field(None, max_length=2000)


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payer_id: UUID
    amount: Decimal
    currency: str
    payment_method: str
    reference_type: ReferenceType
    reference_id: UUID
    status: TransactionStatus
    receipt_url: Optional[str]
    remarks: Optional[str]
    created_at: datetime
    updated_at: datetime


class TransactionDetailResponse(BaseModel):
    transaction: TransactionResponse
    reference_details: Optional[dict[str, Any]] = None


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    meta: PaginationMeta


class TransactionStatusStats(BaseModel):
    status: TransactionStatus
    count: int
    total_amount: Decimal


class PaymentMethodStats(BaseModel):
    payment_method: str
    count: int
    total_amount: Decimal
    success_rate: float


class DailyTransactionStats(BaseModel):
    date: str
    count: int
    total_amount: Decimal


class TransactionStatsResponse(BaseModel):
    status_stats: list[TransactionStatusStats]
    payment_method_stats: list[PaymentMethodStats]
    daily_stats: list[DailyTransactionStats]
