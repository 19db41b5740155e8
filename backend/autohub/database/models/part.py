"""
Car part inventory model.

A CarPart is a sellable inventory item with a unit price and a stock counter.
Stock never goes below zero (enforced by a check constraint and by the
conditional decrement in the inventory repository) and ``status`` is kept in
step with it: ``out_of_stock`` exactly when the counter is zero.
"""

import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from autohub.database.base import BaseModel
from autohub.database.models.payment import enum_values


class PartStatus(str, Enum):
    """Availability of a car part."""

    AVAILABLE = "available"
    OUT_OF_STOCK = "out_of_stock"

    @classmethod
    def for_stock(cls, stock_quantity: int) -> "PartStatus":
        return cls.AVAILABLE if stock_quantity > 0 else cls.OUT_OF_STOCK

    @classmethod
    def from_string(cls, value: str) -> "PartStatus":
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Invalid part status: {value}")


class CarPart(BaseModel):
    """
    Car part listed by a seller.

    Attributes:
        seller_id: Identity of the listing seller
        name: Display name
        brand: Manufacturer brand
        category: Part category (brakes, filters...)
        compatibility: Free text "make model year" compatibility description
        price: Current unit price; orders snapshot it at creation
        stock_quantity: Units on hand, never negative
        status: Availability derived from stock_quantity
        images: Stored image paths
    """

    __tablename__ = "car_parts"

    seller_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        index=True,
        comment="Seller identifier",
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Part name",
    )

    brand: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Part brand",
    )

    category: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Part category",
    )

    compatibility: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Compatible vehicles (make model year)",
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Current unit price",
    )

    stock_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Units in stock",
    )

    status: Mapped[PartStatus] = mapped_column(
        SQLEnum(
            PartStatus,
            name="part_status",
            values_callable=enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=PartStatus.OUT_OF_STOCK,
        index=True,
        comment="Availability status",
    )

    images: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Stored image paths",
    )

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_car_parts_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_car_parts_price_non_negative"),
        Index("ix_car_parts_category_created", "category", "created_at"),
        {"comment": "Car parts inventory"},
    )

    @property
    def is_in_stock(self) -> bool:
        return self.stock_quantity > 0
