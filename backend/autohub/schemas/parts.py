"""
Car part request and response schemas.

Create and update requests arrive as the JSON ``payload`` field of a
multipart form next to the uploaded images.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from autohub.database.models.part import PartStatus
from autohub.schemas.common import PaginationMeta


class CarPartCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    seller_id: Optional[UUID] = Field(None, description="Listing seller")
    name: str = Field(..., min_length=1, max_length=200)
    brand: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, max_length=100)
    compatibility: Optional[str] = Field(
        None,
        description="Compatible vehicles, e.g. 'Toyota Corolla 2018'",
    )
    price: Decimal = Field(..., ge=0, decimal_places=2)
    stock_quantity: int = Field(..., ge=0)


class CarPartUpdateRequest(BaseModel):
    """Partial update; only the fields present are changed."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    seller_id: Optional[UUID] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    brand: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, max_length=100)
    compatibility: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    stock_quantity: Optional[int] = Field(None, ge=0)


class CarPartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    seller_id: Optional[UUID]
    name: str
    brand: Optional[str]
    category: Optional[str]
    compatibility: Optional[str]
    price: Decimal
    stock_quantity: int
    status: PartStatus
    images: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class RelatedPartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    brand: Optional[str]
    price: Decimal
    images: list[str] = Field(default_factory=list)


class CarPartDetailResponse(BaseModel):
    part: CarPartResponse
    related_parts: list[RelatedPartResponse]


class CarPartListResponse(BaseModel):
    parts: list[CarPartResponse]
    meta: PaginationMeta
